# tests/api/test_master_api.py
# =================================================================================
# 👑 Master admin: alta con clave de operador, gestión de planners y analítica
# =================================================================================

import pytest

from nupci import auth


@pytest.fixture
def master_headers(make_master, auth_headers):
    return auth_headers(make_master(), auth.ROLE_MASTER_ADMIN)


# =========================
# Alta de master admins (x-admin-key)
# =========================
def test_create_master_admin_requires_admin_key(client, admin_key_headers):
    payload = {"email": "root@example.com", "name": "Root"}

    assert client.post("/api/master/admins", json=payload).status_code == 401
    assert client.post("/api/master/admins", json=payload, headers={"x-admin-key": "mala"}).status_code == 401

    r = client.post("/api/master/admins", json=payload, headers=admin_key_headers)
    assert r.status_code == 201
    assert r.json()["email"] == "root@example.com"

    dup = client.post("/api/master/admins", json={**payload, "email": "ROOT@example.com"}, headers=admin_key_headers)
    assert dup.status_code == 409
    assert dup.json()["detail"]["code"] == "EMAIL_EXISTS"


# =========================
# Planners
# =========================
def test_create_and_list_planners(client, master_headers):
    r = client.post("/api/master/planners", json={"email": "paula@example.com", "name": "Paula"},
                    headers=master_headers)
    assert r.status_code == 201
    assert r.json()["enabled"] is True
    assert r.json()["wedding_count"] == 0

    dup = client.post("/api/master/planners", json={"email": "paula@example.com", "name": "Otra"},
                      headers=master_headers)
    assert dup.status_code == 409

    listing = client.get("/api/master/planners", headers=master_headers).json()
    assert [p["email"] for p in listing] == ["paula@example.com"]


def test_disabled_planner_loses_access(client, master_headers, planner, planner_headers, wedding):
    assert client.get("/api/planner/weddings", headers=planner_headers).status_code == 200

    r = client.patch(f"/api/master/planners/{planner.id}", json={"enabled": False}, headers=master_headers)
    assert r.status_code == 200
    assert r.json()["enabled"] is False
    assert r.json()["wedding_count"] == 1

    denied = client.get("/api/planner/weddings", headers=planner_headers)
    assert denied.status_code == 403
    assert denied.json()["detail"]["code"] == "PLANNER_DISABLED"


def test_update_unknown_planner(client, master_headers):
    r = client.patch("/api/master/planners/no-existe", json={"name": "X"}, headers=master_headers)
    assert r.status_code == 404


def test_master_routes_reject_other_roles(client, planner_headers):
    r = client.get("/api/master/planners", headers=planner_headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "FORBIDDEN"


# =========================
# Bodas y analítica
# =========================
def test_weddings_and_analytics(client, db, master_headers, make_wedding, make_family):
    wedding = make_wedding()
    family = make_family(wedding)
    family.members[0].attending = True
    db.commit()
    make_wedding(couple_names="Ana y Pedro")

    weddings = client.get("/api/master/weddings", headers=master_headers).json()
    assert {w["couple_names"] for w in weddings} == {"Laura y Javier", "Ana y Pedro"}
    assert all(w["planner_name"] == "Paula Planner" for w in weddings)

    stats = client.get("/api/master/analytics", headers=master_headers).json()
    assert stats["planners"] == 2
    assert stats["weddings"] == 2
    assert stats["families"] == 1
    assert stats["members"] == 2
    assert stats["attending"] == 1
    assert stats["rsvp_response_rate"] == 100.0
