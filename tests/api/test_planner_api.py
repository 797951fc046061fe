# tests/api/test_planner_api.py
# =================================================================================
# 🗂️ Planner: bodas (alta, edición, borrado lógico y restauración), parejas y temas
# =================================================================================

from datetime import timedelta

from nupci import auth
from nupci.utils.timeutils import utcnow


def _wedding_payload(**overrides):
    now = utcnow()
    payload = {
        "couple_names": "Marta y Raúl",
        "wedding_date": (now + timedelta(days=90)).isoformat(),
        "wedding_time": "17:30",
        "location": "Pazo de Santa Cruz, Lugo",
        "rsvp_cutoff_date": (now + timedelta(days=60)).isoformat(),
    }
    payload.update(overrides)
    return payload


# =========================
# Bodas
# =========================
def test_create_wedding_assigns_initials(client, planner_headers):
    r = client.post("/api/planner/weddings", json=_wedding_payload(), headers=planner_headers)

    assert r.status_code == 201, r.text
    data = r.json()
    assert data["short_url_initials"] == "MR"
    assert data["status"] == "ACTIVE"
    assert data["stats"]["total_families"] == 0
    assert data["planner_name"] == "Paula Planner"

    listing = client.get("/api/planner/weddings", headers=planner_headers).json()
    assert [w["id"] for w in listing] == [data["id"]]


def test_create_wedding_rejects_cutoff_after_wedding(client, planner_headers):
    now = utcnow()
    payload = _wedding_payload(rsvp_cutoff_date=(now + timedelta(days=120)).isoformat())

    assert client.post("/api/planner/weddings", json=payload, headers=planner_headers).status_code == 422


def test_update_wedding_validates_dates(client, wedding, planner_headers):
    url = f"/api/planner/weddings/{wedding.id}"

    r = client.patch(url, json={"location": "Cortijo Nuevo", "status": "ARCHIVED"}, headers=planner_headers)
    assert r.status_code == 200
    assert r.json()["location"] == "Cortijo Nuevo"
    assert r.json()["status"] == "ARCHIVED"

    late = (wedding.wedding_date + timedelta(days=5)).isoformat()
    r = client.patch(url, json={"rsvp_cutoff_date": late}, headers=planner_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_planner_cannot_see_other_planners_wedding(client, make_planner, make_wedding, planner_headers):
    foreign = make_wedding(planner=make_planner(), couple_names="Ana y Pedro")

    r = client.get(f"/api/planner/weddings/{foreign.id}", headers=planner_headers)

    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "WEDDING_NOT_FOUND"


def test_couple_cannot_use_planner_routes(client, couple_headers):
    r = client.get("/api/planner/weddings", headers=couple_headers)
    assert r.status_code == 403


def test_soft_delete_and_restore(client, wedding, make_family, planner_headers):
    family = make_family(wedding)
    url = f"/api/planner/weddings/{wedding.id}"

    assert client.delete(url, headers=planner_headers).status_code == 204
    assert client.get("/api/planner/weddings", headers=planner_headers).json() == []
    deleted = client.get("/api/planner/weddings/deleted", headers=planner_headers).json()
    assert [w["id"] for w in deleted] == [wedding.id]
    assert deleted[0]["deleted_at"] is not None
    assert client.get(url, headers=planner_headers).status_code == 404

    guest = client.get(f"/api/guest/{family.magic_token}")
    assert guest.status_code == 404
    assert guest.json()["detail"]["code"] == "TOKEN_NOT_FOUND"

    restored = client.post(f"{url}/restore", headers=planner_headers)
    assert restored.status_code == 200
    assert restored.json()["deleted_at"] is None
    assert client.get(f"/api/guest/{family.magic_token}").status_code == 200

    again = client.post(f"{url}/restore", headers=planner_headers)
    assert again.json()["detail"]["code"] == "WEDDING_NOT_DELETED"


# =========================
# Parejas (admins de boda)
# =========================
def test_wedding_admins_crud(client, wedding, planner_headers):
    url = f"/api/planner/weddings/{wedding.id}/admins"

    r = client.post(url, json={"email": "Laura@example.com", "name": "Laura"}, headers=planner_headers)
    assert r.status_code == 201, r.text
    admin = r.json()
    assert admin["email"] == "laura@example.com"
    assert admin["accepted_at"] is None

    dup = client.post(url, json={"email": "laura@example.com", "name": "Laura"}, headers=planner_headers)
    assert dup.status_code == 409
    assert dup.json()["detail"]["code"] == "ADMIN_EXISTS"

    assert [a["id"] for a in client.get(url, headers=planner_headers).json()] == [admin["id"]]

    assert client.delete(f"{url}/{admin['id']}", headers=planner_headers).status_code == 204
    assert client.delete(f"{url}/{admin['id']}", headers=planner_headers).status_code == 404


# =========================
# Temas
# =========================
def test_theme_lifecycle_updates_guest_page(client, wedding, make_family, planner_headers):
    family = make_family(wedding)

    r = client.post("/api/planner/themes", json={"name": "Verde", "config": {"colors": {"primary": "#2f6f4f"}}},
                    headers=planner_headers)
    assert r.status_code == 201
    theme = r.json()
    assert theme["is_system_theme"] is False

    client.patch(f"/api/planner/weddings/{wedding.id}", json={"theme_id": theme["id"]}, headers=planner_headers)
    assert client.get(f"/api/guest/{family.magic_token}").json()["theme"]["name"] == "Verde"

    client.patch(f"/api/planner/themes/{theme['id']}", json={"name": "Verde oliva"}, headers=planner_headers)
    assert client.get(f"/api/guest/{family.magic_token}").json()["theme"]["name"] == "Verde oliva"

    r = client.delete(f"/api/planner/themes/{theme['id']}", headers=planner_headers)
    assert r.json() == {"deleted": True, "weddings_updated": 1}
    assert client.get(f"/api/guest/{family.magic_token}").json()["theme"]["name"] == "Clásico"


def test_wedding_rejects_foreign_theme(client, wedding, make_planner, auth_headers, planner_headers):
    other_headers = auth_headers(make_planner(), auth.ROLE_PLANNER)
    theme = client.post("/api/planner/themes", json={"name": "Ajeno"}, headers=other_headers).json()

    r = client.patch(f"/api/planner/weddings/{wedding.id}", json={"theme_id": theme["id"]}, headers=planner_headers)

    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "THEME_NOT_FOUND"
