# tests/api/test_guests_api.py
# =================================================================================
# 👨‍👩‍👧 Lista de invitados de una boda: pareja (/api/admin) y planner
#    (/api/planner/weddings/{id}), con aislamiento entre bodas.
# =================================================================================

import io

import pandas as pd
import pytest

from nupci.guestlist import excel


@pytest.fixture
def couple_base():
    return "/api/admin"


@pytest.fixture
def planner_base(wedding):
    return f"/api/planner/weddings/{wedding.id}"


def _family_payload(name="Familia García", **fields):
    payload = {"name": name, "members": [{"name": "Ana García"}, {"name": "Hugo García", "type": "CHILD", "age": 7}]}
    payload.update(fields)
    return payload


# =========================
# CRUD por ambos montajes
# =========================
def test_couple_creates_family_with_invited_by(client, couple, couple_headers, couple_base):
    r = client.post(f"{couple_base}/guests", json=_family_payload(email="garcia@example.com"), headers=couple_headers)

    assert r.status_code == 201, r.text
    family = r.json()
    assert family["invited_by_admin_id"] == couple.id
    assert family["magic_token"]
    assert [m["type"] for m in family["members"]] == ["ADULT", "CHILD"]


def test_planner_manages_the_same_list(client, couple_headers, planner_headers, couple_base, planner_base):
    created = client.post(f"{planner_base}/guests", json=_family_payload(), headers=planner_headers)
    assert created.status_code == 201
    assert created.json()["invited_by_admin_id"] is None

    listing = client.get(f"{couple_base}/guests", headers=couple_headers).json()
    assert listing["total"] == 1
    assert listing["stats"]["total_members"] == 2
    assert listing["items"][0]["rsvp_status"] == "pending"

    family_id = created.json()["id"]
    r = client.patch(f"{couple_base}/guests/{family_id}", json={"name": "Familia García López"}, headers=couple_headers)
    assert r.json()["name"] == "Familia García López"
    assert client.get(f"{planner_base}/guests/{family_id}", headers=planner_headers).json()["name"] == \
        "Familia García López"

    deleted = client.delete(f"{planner_base}/guests/{family_id}", headers=planner_headers)
    assert deleted.json() == {"success": True, "had_rsvp": False, "deleted_members": 2}


def test_list_filters(client, db, wedding, make_family, couple_headers, couple_base):
    garcia = make_family(wedding)
    make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))
    for m in garcia.members:
        m.attending = True
    db.commit()

    submitted = client.get(f"{couple_base}/guests", params={"rsvp_status": "submitted"}, headers=couple_headers)
    assert [f["name"] for f in submitted.json()["items"]] == ["Familia García"]

    search = client.get(f"{couple_base}/guests", params={"search": "ruiz"}, headers=couple_headers)
    assert [f["name"] for f in search.json()["items"]] == ["Familia Ruiz"]


# =========================
# Aislamiento entre bodas
# =========================
def test_couple_cannot_reach_other_wedding(client, make_wedding, make_family, couple_headers, couple_base):
    other = make_wedding(couple_names="Ana y Pedro")
    foreign = make_family(other)

    r = client.get(f"{couple_base}/guests/{foreign.id}", headers=couple_headers)
    assert r.status_code == 404

    r = client.get(f"/api/planner/weddings/{other.id}/guests", headers=couple_headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "FORBIDDEN"

    r = client.post(f"{couple_base}/guests/bulk-delete", json={"family_ids": [foreign.id]}, headers=couple_headers)
    assert r.status_code == 403


def test_planner_cannot_reach_other_planners_wedding(client, make_planner, make_wedding, planner_headers):
    foreign = make_wedding(planner=make_planner(), couple_names="Ana y Pedro")

    r = client.get(f"/api/planner/weddings/{foreign.id}/guests", headers=planner_headers)

    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "WEDDING_NOT_FOUND"


def test_planner_needs_wedding_in_path(client, planner_headers):
    r = client.get("/api/admin/guests", headers=planner_headers)
    assert r.status_code == 403


def test_guest_routes_require_session(client, couple_base):
    assert client.get(f"{couple_base}/guests").status_code == 401


def test_couple_of_deleted_wedding(client, db, wedding, couple_headers, couple_base):
    wedding.deleted_at = wedding.created_at
    db.commit()

    r = client.get(f"{couple_base}/guests", headers=couple_headers)
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "WEDDING_NOT_FOUND"


# =========================
# Operaciones masivas
# =========================
def test_bulk_update_delete_and_delete_all(client, wedding, make_family, couple_headers, couple_base):
    a = make_family(wedding)
    b = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))
    c = make_family(wedding, name="Familia Soto", members=("Irene Soto",))

    r = client.post(f"{couple_base}/guests/bulk-update", headers=couple_headers, json={
        "family_ids": [a.id, b.id], "updates": {"channel_preference": "WHATSAPP", "set_all_not_attending": True},
    })
    assert r.json() == {"success": True, "updated_families": 2, "updated_members": 3}

    listing = client.get(f"{couple_base}/guests", params={"attending": "no"}, headers=couple_headers).json()
    assert {f["name"] for f in listing["items"]} == {"Familia García", "Familia Ruiz"}

    r = client.post(f"{couple_base}/guests/bulk-delete", json={"family_ids": [c.id]}, headers=couple_headers)
    assert r.json() == {"success": True, "deleted_count": 1, "deleted_members": 1}

    r = client.delete(f"{couple_base}/guests/delete-all", headers=couple_headers)
    assert r.json() == {"success": True, "deleted_families": 2, "deleted_members": 3}


def test_bulk_delete_with_repeated_ids_is_rejected(client, wedding, make_family, couple_headers, couple_base):
    family = make_family(wedding)

    r = client.post(f"{couple_base}/guests/bulk-delete", json={"family_ids": [family.id, family.id]},
                    headers=couple_headers)

    assert r.status_code == 422
    assert client.get(f"{couple_base}/guests/{family.id}", headers=couple_headers).status_code == 200


def test_deleted_families_lose_their_short_links(client, wedding, make_family, couple_headers, couple_base):
    a = make_family(wedding)
    b = make_family(wedding, name="Familia Ruiz", members=("Eva Ruiz",))
    links = {f.id: f"/api/guest/inv/{wedding.short_url_initials}/{f.short_url_code}" for f in (a, b)}

    # Primero se resuelven (y quedan en caché).
    for link in links.values():
        assert client.get(link, follow_redirects=False).status_code == 307

    assert client.delete(f"{couple_base}/guests/{a.id}", headers=couple_headers).status_code == 200
    r = client.post(f"{couple_base}/guests/bulk-delete", json={"family_ids": [b.id]}, headers=couple_headers)
    assert r.status_code == 200

    for link in links.values():
        r = client.get(link, follow_redirects=False)
        assert r.status_code == 404
        assert r.json()["detail"]["code"] == "SHORT_URL_NOT_FOUND"


def test_bulk_update_rejects_both_flags(client, wedding, make_family, couple_headers, couple_base):
    family = make_family(wedding)
    r = client.post(f"{couple_base}/guests/bulk-update", headers=couple_headers, json={
        "family_ids": [family.id], "updates": {"set_all_attending": True, "set_all_not_attending": True},
    })
    assert r.status_code == 422


# =========================
# Enlaces mágicos
# =========================
def test_magic_link_and_regeneration(client, wedding, make_family, couple_headers, couple_base):
    family = make_family(wedding)
    old_token = family.magic_token

    link = client.get(f"{couple_base}/guests/{family.id}/magic-link", headers=couple_headers).json()
    assert link["magic_token"] == old_token
    assert link["url"].endswith(f"/rsvp/{old_token}")
    assert f"/inv/{wedding.short_url_initials}/" in link["short_url"]

    new = client.post(f"{couple_base}/guests/{family.id}/regenerate-link", headers=couple_headers).json()
    assert new["magic_token"] != old_token
    assert client.get(f"/api/guest/{old_token}").status_code == 404
    assert client.get(f"/api/guest/{new['magic_token']}").status_code == 200


# =========================
# Importación / exportación
# =========================
def test_import_export_roundtrip(client, couple_headers, couple_base):
    template = client.get(f"{couple_base}/guests/template", headers=couple_headers)
    assert template.status_code == 200
    assert template.headers["content-type"] == excel.XLSX_MEDIA_TYPE

    r = client.post(
        f"{couple_base}/guests/import",
        files={"file": ("plantilla.xlsx", template.content, excel.XLSX_MEDIA_TYPE)},
        headers=couple_headers,
    )
    assert r.status_code == 200, r.text
    assert r.json()["families_created"] == 1
    assert r.json()["members_created"] == 3

    export = client.get(f"{couple_base}/guests/export", params={"format": "csv"}, headers=couple_headers)
    assert export.status_code == 200
    assert "attachment" in export.headers["content-disposition"]
    df = pd.read_csv(io.BytesIO(export.content), dtype=str, keep_default_na=False)
    assert df.iloc[0]["Family Name"] == "García Family"
    assert df.iloc[0]["Total Members"] == "3"


def test_import_with_errors_returns_details(client, couple_headers, couple_base):
    headers = excel.import_headers()
    row = ["", "Sin nombre", "", "", "", "ES", "Alguien", "ADULT"]
    csv = ",".join(headers) + "\n" + ",".join(row + [""] * (len(headers) - len(row))) + "\n"

    r = client.post(
        f"{couple_base}/guests/import",
        files={"file": ("invitados.csv", csv.encode("utf-8"), "text/csv")},
        headers=couple_headers,
    )

    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["code"] == "IMPORT_VALIDATION_FAILED"
    assert detail["details"]["errors"][0]["field"] == "Family Name"


def test_import_vcf_endpoint(client, couple_headers, couple_base):
    vcard = "BEGIN:VCARD\nVERSION:3.0\nFN:Carmen López\nTEL;TYPE=CELL:+34600555666\nEND:VCARD\n"

    r = client.post(
        f"{couple_base}/guests/import-vcf",
        files={"file": ("contactos.vcf", vcard.encode("utf-8"), "text/vcard")},
        headers=couple_headers,
    )

    assert r.status_code == 200, r.text
    assert r.json()["families_created"] == 1
    listing = client.get(f"{couple_base}/guests", headers=couple_headers).json()
    assert listing["items"][0]["private_notes"] == "Importado desde archivo VCF por Laura"

    bad = client.post(
        f"{couple_base}/guests/import-vcf",
        files={"file": ("contactos.vcf", b"hola", "text/vcard")},
        headers=couple_headers,
    )
    assert bad.json()["detail"]["code"] == "INVALID_FILE"


def test_planner_import_has_no_invited_by(client, planner_headers, planner_base):
    headers = planner_headers
    vcard = "BEGIN:VCARD\nFN:Carmen López\nEMAIL:carmen@example.com\nEND:VCARD\n"

    client.post(f"{planner_base}/guests/import-vcf", files={"file": ("c.vcf", vcard.encode(), "text/vcard")},
                headers=headers)

    items = client.get(f"{planner_base}/guests", headers=headers).json()["items"]
    assert items[0]["invited_by_admin_id"] is None
    assert items[0]["private_notes"] == "Importado desde archivo VCF por Paula Planner"


# =========================
# Acompañantes añadidos por los invitados
# =========================
def test_guest_additions_review_per_user(client, wedding, make_family, couple_headers, planner_headers,
                                         couple_base, planner_base):
    family = make_family(wedding)
    added = client.post(f"/api/guest/{family.magic_token}/member", json={"name": "Hugo", "type": "CHILD"}).json()

    listing = client.get(f"{couple_base}/guest-additions", headers=couple_headers).json()
    assert listing["feature_enabled"] is True
    assert listing["total"] == 1
    assert listing["new_count"] == 1
    assert listing["items"][0]["family_name"] == "Familia García"
    assert listing["items"][0]["is_new"] is True

    r = client.patch(f"{couple_base}/guest-additions/{added['id']}", json={"age": 6, "mark_reviewed": True},
                     headers=couple_headers)
    assert r.status_code == 200, r.text
    assert r.json()["age"] == 6
    assert r.json()["name"] == "Hugo"

    assert client.get(f"{couple_base}/guest-additions", headers=couple_headers).json()["new_count"] == 0
    # El planner lleva su propio estado de revisión.
    assert client.get(f"{planner_base}/guest-additions", headers=planner_headers).json()["new_count"] == 1


def test_guest_addition_review_only_for_guest_added_members(client, wedding, make_family, couple_headers,
                                                            couple_base):
    family = make_family(wedding)

    r = client.patch(f"{couple_base}/guest-additions/{family.members[0].id}", json={"mark_reviewed": True},
                     headers=couple_headers)

    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "GUEST_ADDITION_NOT_FOUND"


def test_guest_additions_when_feature_disabled(client, db, wedding, couple_headers, couple_base):
    wedding.allow_guest_additions = False
    db.commit()

    r = client.get(f"{couple_base}/guest-additions", headers=couple_headers)

    assert r.json() == {"feature_enabled": False, "items": [], "total": 0, "new_count": 0}
