# tests/api/test_wedding_api.py
# =================================================================================
# 💍 Configuración de la boda desde el panel: datos, plantilla de invitación e informe
# =================================================================================


def test_couple_reads_and_updates_wedding(client, couple_headers):
    r = client.get("/api/admin/wedding", headers=couple_headers)
    assert r.status_code == 200
    assert r.json()["couple_names"] == "Laura y Javier"

    r = client.patch("/api/admin/wedding", json={"dress_code": "Cóctel", "allow_guest_additions": False},
                     headers=couple_headers)
    assert r.status_code == 200
    assert r.json()["dress_code"] == "Cóctel"
    assert r.json()["allow_guest_additions"] is False


def test_couple_cannot_change_planner_only_fields(client, couple_headers):
    for change in ({"status": "ARCHIVED"}, {"is_disabled": True}, {"payment_tracking_mode": "AUTOMATED"}):
        r = client.patch("/api/admin/wedding", json=change, headers=couple_headers)
        assert r.status_code == 403, change


def test_planner_changes_status_through_scoped_route(client, wedding, planner_headers):
    r = client.patch(f"/api/planner/weddings/{wedding.id}/wedding", json={"is_disabled": True},
                     headers=planner_headers)

    assert r.status_code == 200
    assert r.json()["is_disabled"] is True


def test_wedding_change_refreshes_guest_page(client, wedding, make_family, couple_headers):
    family = make_family(wedding)
    assert client.get(f"/api/guest/{family.magic_token}").json()["wedding"]["location"] == "Finca El Olivar, Sevilla"

    client.patch("/api/admin/wedding", json={"location": "Hacienda La Luz"}, headers=couple_headers)

    assert client.get(f"/api/guest/{family.magic_token}").json()["wedding"]["location"] == "Hacienda La Luz"


def test_invitation_template_put_and_get(client, wedding, make_family, couple_headers):
    family = make_family(wedding)
    assert client.get("/api/admin/invitation-template", headers=couple_headers).json() is None
    client.get(f"/api/guest/{family.magic_token}")

    design = {"blocks": [{"type": "title", "text": "¡Nos casamos!"}]}
    r = client.put("/api/admin/invitation-template", json={"name": "Mi invitación", "design": design},
                   headers=couple_headers)
    assert r.status_code == 200
    assert r.json()["is_system_template"] is False

    assert client.get("/api/admin/invitation-template", headers=couple_headers).json()["design"] == design
    page = client.get(f"/api/guest/{family.magic_token}").json()
    assert page["invitation_template"]["design"] == design


def test_report_summary(client, db, wedding, make_family, couple_headers):
    family = make_family(wedding)
    ana, luis = family.members
    ana.attending, ana.dietary_restrictions = True, "Sin lactosa"
    luis.attending = False
    db.commit()

    r = client.get("/api/admin/reports/summary", headers=couple_headers)

    assert r.status_code == 200
    data = r.json()
    assert data["stats"]["attending"] == 1
    assert data["stats"]["not_attending"] == 1
    assert data["dietary_restrictions"] == [
        {"family_name": "Familia García", "member_name": "Ana García", "note": "Sin lactosa"}
    ]
