# tests/unit/test_short_url.py
# =================================================================================
# ✂️ Enlaces cortos /inv/<INICIALES>/<código>
# =================================================================================

import pytest

from nupci.cache import short_url_cache
from nupci.services import short_url


@pytest.mark.parametrize(
    "couple_names, expected",
    [
        ("Laura y Javier", "LJ"),
        ("Ana & Íñigo", "AI"),
        ("Émile et Zoé", "EZ"),
        ("Kate and William", "KW"),
        ("Madonna", "MA"),
        ("", "XX"),
    ],
)
def test_parse_initials(couple_names, expected):
    assert short_url.parse_initials(couple_names) == expected


def test_initials_are_unique_across_weddings(make_wedding):
    first = make_wedding(couple_names="Laura y Javier")
    second = make_wedding(couple_names="Lucía y Jorge")
    third = make_wedding(couple_names="Lola y Juan")

    assert first.short_url_initials == "LJ"
    assert second.short_url_initials == "LJ1"
    assert third.short_url_initials == "LJ2"


def test_family_codes_are_short_base62(wedding, make_family):
    family = make_family(wedding)
    assert len(family.short_url_code) == short_url.SHORT_CODE_LENGTH
    assert set(family.short_url_code) <= set(short_url.BASE62)


def test_ensure_family_short_code_keeps_existing(db, wedding, make_family):
    family = make_family(wedding)
    code = family.short_url_code
    assert short_url.ensure_family_short_code(db, family) == code


def test_resolve_short_url_returns_token_and_caches(db, wedding, make_family):
    family = make_family(wedding)

    token = short_url.resolve_short_url(db, "lj", family.short_url_code)

    assert token == family.magic_token
    assert short_url_cache.get(("LJ", family.short_url_code))["family_id"] == family.id


def test_resolve_short_url_unknown_code(db, wedding, make_family):
    make_family(wedding)
    assert short_url.resolve_short_url(db, "LJ", "zzzz") is None
    assert short_url.resolve_short_url(db, "QQ", "abc") is None


def test_build_short_url(wedding, make_family):
    family = make_family(wedding)
    assert short_url.build_short_url(wedding, family).endswith(f"/inv/LJ/{family.short_url_code}")
