# tests/unit/test_phone_i18n.py
# =================================================================================
# 📞 Teléfonos E.164 y 🔤 resolución de idioma / fechas legibles
# =================================================================================

from datetime import datetime

import pytest

from nupci.models import LanguageEnum
from nupci.utils.i18n import format_date, resolve_lang
from nupci.utils.phone import is_valid_e164, normalize_phone, process_phone_number


# =========================
# Teléfonos
# =========================
@pytest.mark.parametrize(
    "raw, country, expected",
    [
        ("600112233", "ES", "+34600112233"),
        ("+34 600 11 22 33", "ES", "+34600112233"),
        ("0034600112233", "ES", "+34600112233"),
        ("34600112233", "ES", "+34600112233"),
        ("06 12 34 56 78", "FR", "+33612345678"),
        ("(555) 123-4567", "us", "+15551234567"),
        ("600112233", None, "600112233"),
        ("600112233", "ZZ", "600112233"),
    ],
)
def test_process_phone_number(raw, country, expected):
    assert process_phone_number(raw, country) == expected


def test_empty_phones_become_none():
    assert process_phone_number(None, "ES") is None
    assert process_phone_number("   ", "ES") is None
    assert normalize_phone("no digits") is None


def test_is_valid_e164():
    assert is_valid_e164("+34600112233")
    assert not is_valid_e164("600112233")
    assert not is_valid_e164("+0123456789")
    assert not is_valid_e164(None)


# =========================
# Idioma
# =========================
def test_resolve_lang_priority():
    assert resolve_lang("en-US", "FR", "de-DE") == "EN"
    assert resolve_lang(None, "FR", "de-DE") == "FR"
    assert resolve_lang(None, None, "pt-BR,de;q=0.8") == "DE"
    assert resolve_lang("pt", None, "ja") == "ES"


def test_resolve_lang_accepts_enums():
    assert resolve_lang(None, LanguageEnum.IT) == "IT"


def test_resolve_lang_custom_default():
    assert resolve_lang(None, default="EN") == "EN"


@pytest.mark.parametrize(
    "lang, expected",
    [
        ("ES", "14 de junio de 2027"),
        ("EN", "June 14, 2027"),
        ("FR", "14 juin 2027"),
        ("IT", "14 giugno 2027"),
        ("DE", "14. Juni 2027"),
        ("xx", "14 de junio de 2027"),
    ],
)
def test_format_date(lang, expected):
    assert format_date(datetime(2027, 6, 14, 18, 0), lang) == expected


def test_format_date_none():
    assert format_date(None, "ES") == ""
