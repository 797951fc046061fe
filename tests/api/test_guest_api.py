# tests/api/test_guest_api.py
# =================================================================================
# 💌 Endpoints del invitado: página RSVP, confirmación, idioma, acompañantes,
#    enlaces cortos y búsqueda de invitación.
# =================================================================================

from nupci import models
from nupci.models import EventTypeEnum, PaymentModeEnum


def _code(response):
    return response.json()["detail"]["code"]


def _events(db, event_type):
    db.expire_all()
    return db.query(models.TrackingEvent).filter(models.TrackingEvent.event_type == event_type).count()


# =========================
# Página RSVP
# =========================
def test_rsvp_page_returns_family_wedding_and_theme(client, db, wedding, make_family):
    family = make_family(wedding, email="garcia@example.com")

    r = client.get(f"/api/guest/{family.magic_token}", params={"channel": "email"})

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["family"]["name"] == "Familia García"
    assert [m["name"] for m in data["family"]["members"]] == ["Ana García", "Luis García"]
    assert data["family"]["reference_code"] is None
    assert data["wedding"]["couple_names"] == "Laura y Javier"
    assert data["wedding"]["wedding_date_formatted"]
    assert data["theme"]["name"] == "Clásico"
    assert data["invitation_template"] is None
    assert data["rsvp_cutoff_passed"] is False
    assert data["has_submitted_rsvp"] is False
    assert _events(db, EventTypeEnum.LINK_OPENED) == 1


def test_rsvp_page_shows_reference_code_in_automated_mode(client, make_wedding, make_family):
    family = make_family(make_wedding(payment_tracking_mode=PaymentModeEnum.AUTOMATED))

    r = client.get(f"/api/guest/{family.magic_token}")

    assert r.json()["family"]["reference_code"] == family.reference_code


def test_rsvp_page_token_errors(client, db, make_wedding, make_family):
    assert client.get("/api/guest/no-es-un-token").status_code == 404
    assert _code(client.get("/api/guest/no-es-un-token")) == "INVALID_TOKEN_FORMAT"

    unknown = "0f0e7a8c-1234-4cde-8f00-123456789abc"
    r = client.get(f"/api/guest/{unknown}")
    assert r.status_code == 404
    assert _code(r) == "TOKEN_NOT_FOUND"

    disabled = make_family(make_wedding(is_disabled=True))
    r = client.get(f"/api/guest/{disabled.magic_token}")
    assert r.status_code == 403
    assert _code(r) == "WEDDING_DISABLED"

    past = make_family(make_wedding(days_ahead=-2, cutoff_days=-10))
    r = client.get(f"/api/guest/{past.magic_token}")
    assert r.status_code == 410
    assert _code(r) == "TOKEN_EXPIRED"


# =========================
# Confirmación (RSVP)
# =========================
def test_submit_rsvp_then_update(client, db, wedding, make_family):
    family = make_family(wedding, email="garcia@example.com")
    ana, luis = family.members
    url = f"/api/guest/{family.magic_token}/rsvp"

    r = client.post(url, json={"members": [
        {"id": ana.id, "attending": True, "dietary_restrictions": "Vegana"},
        {"id": luis.id, "attending": False, "dietary_restrictions": "Sin gluten"},
    ]})

    assert r.status_code == 200, r.text
    assert r.json()["success"] is True
    assert r.json()["attending_count"] == 1
    db.expire_all()
    members = {m.name: m for m in db.get(models.Family, family.id).members}
    assert members["Ana García"].dietary_restrictions == "Vegana"
    assert members["Luis García"].dietary_restrictions is None
    assert _events(db, EventTypeEnum.RSVP_SUBMITTED) == 1

    r = client.post(url, json={"members": [{"id": luis.id, "attending": True}]})
    assert r.json()["attending_count"] == 2
    assert _events(db, EventTypeEnum.RSVP_UPDATED) == 1

    page = client.get(f"/api/guest/{family.magic_token}").json()
    assert page["has_submitted_rsvp"] is True


def test_submit_rsvp_with_foreign_member(client, wedding, make_family):
    family = make_family(wedding)
    other = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))

    r = client.post(f"/api/guest/{family.magic_token}/rsvp", json={
        "members": [{"id": other.members[0].id, "attending": True}],
    })

    assert r.status_code == 400
    assert _code(r) == "INVALID_MEMBER"
    assert r.json()["detail"]["details"]["member_ids"] == [other.members[0].id]


def test_submit_rsvp_after_cutoff(client, make_wedding, make_family):
    family = make_family(make_wedding(days_ahead=10, cutoff_days=-1))

    r = client.post(f"/api/guest/{family.magic_token}/rsvp", json={
        "members": [{"id": family.members[0].id, "attending": True}],
    })

    assert r.status_code == 403
    assert _code(r) == "RSVP_CUTOFF_PASSED"


# =========================
# Idioma y acompañantes
# =========================
def test_update_language(client, db, wedding, make_family):
    family = make_family(wedding)

    r = client.patch(f"/api/guest/{family.magic_token}/language", json={"language": "EN"})

    assert r.status_code == 200
    assert r.json() == {"success": True, "preferred_language": "EN"}
    db.expire_all()
    assert db.get(models.Family, family.id).preferred_language == models.LanguageEnum.EN


def test_add_member_by_guest(client, db, wedding, make_family):
    family = make_family(wedding)

    r = client.post(f"/api/guest/{family.magic_token}/member", json={"name": "  Hugo ", "type": "CHILD", "age": 5})

    assert r.status_code == 201, r.text
    assert r.json()["name"] == "Hugo"
    assert r.json()["added_by_guest"] is True
    assert _events(db, EventTypeEnum.GUEST_ADDED) == 1


def test_add_member_when_disabled(client, make_wedding, make_family):
    family = make_family(make_wedding(allow_guest_additions=False))

    r = client.post(f"/api/guest/{family.magic_token}/member", json={"name": "Hugo", "type": "CHILD"})

    assert r.status_code == 403
    assert _code(r) == "GUEST_ADDITIONS_DISABLED"


# =========================
# Enlaces cortos y búsqueda
# =========================
def test_short_link_redirects_to_rsvp_page(client, wedding, make_family):
    family = make_family(wedding)

    r = client.get(f"/api/guest/inv/{wedding.short_url_initials}/{family.short_url_code}",
                   params={"channel": "whatsapp"}, follow_redirects=False)

    assert r.status_code == 307
    assert r.headers["location"] == f"https://nupci.example.com/rsvp/{family.magic_token}?channel=whatsapp"

    r = client.get(f"/api/guest/inv/{wedding.short_url_initials}/zzz")
    assert r.status_code == 404
    assert _code(r) == "SHORT_URL_NOT_FOUND"


def test_lookup_by_email_and_phone(client, wedding, make_family):
    family = make_family(wedding, email="garcia@example.com", phone="600112233")

    by_email = client.post("/api/guest/lookup", json={"initials": "lj", "contact": "GARCIA@example.com"})
    by_phone = client.post("/api/guest/lookup", json={"initials": "LJ", "contact": "600 11 22 33"})
    missing = client.post("/api/guest/lookup", json={"initials": "LJ", "contact": "otro@example.com"})

    assert by_email.json()["found"] is True
    assert by_email.json()["url"].endswith(f"/inv/LJ/{family.short_url_code}")
    assert by_phone.json()["found"] is True
    assert missing.json() == {"found": False, "url": None}


def test_lookup_is_rate_limited(client, wedding):
    for _ in range(10):
        assert client.post("/api/guest/lookup", json={"initials": "LJ", "contact": "x@example.com"}).status_code == 200

    r = client.post("/api/guest/lookup", json={"initials": "LJ", "contact": "x@example.com"})
    assert r.status_code == 429
    assert _code(r) == "RATE_LIMITED"
