# tests/api/test_templates_api.py
# =================================================================================
# ✉️ Plantillas de mensajes de la boda: listado, edición, borrado y vista previa
# =================================================================================

from nupci import auth
from nupci.models import ChannelEnum, LanguageEnum, TemplateTypeEnum

TOTAL_COMBINATIONS = len(TemplateTypeEnum) * len(LanguageEnum) * len(ChannelEnum)


def _reminder_es_email(rows):
    return next(
        r for r in rows
        if (r["type"], r["language"], r["channel"]) == ("REMINDER", "ES", "EMAIL")
    )


def test_upsert_and_delete_template(client, couple_headers):
    rows = client.get("/api/admin/templates", headers=couple_headers).json()
    assert len(rows) == TOTAL_COMBINATIONS
    assert _reminder_es_email(rows)["is_default"] is True

    payload = {"type": "REMINDER", "language": "ES", "channel": "EMAIL",
               "subject": "¡Falta poco!", "body": "Hola {{familyName}}: {{magicLink}}"}
    r = client.put("/api/admin/templates", json=payload, headers=couple_headers)
    assert r.status_code == 200, r.text
    template_id = r.json()["id"]

    r = client.put("/api/admin/templates", json={**payload, "subject": "¡Ya casi!"}, headers=couple_headers)
    assert r.json()["id"] == template_id

    custom = _reminder_es_email(client.get("/api/admin/templates", headers=couple_headers).json())
    assert custom["is_default"] is False
    assert custom["subject"] == "¡Ya casi!"

    assert client.delete(f"/api/admin/templates/{template_id}", headers=couple_headers).status_code == 204
    missing = client.delete(f"/api/admin/templates/{template_id}", headers=couple_headers)
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "TEMPLATE_NOT_FOUND"


def test_email_template_requires_subject(client, couple_headers):
    r = client.put("/api/admin/templates", json={
        "type": "INVITATION", "language": "EN", "channel": "EMAIL", "body": "Hi {{familyName}}",
    }, headers=couple_headers)
    assert r.status_code == 422


def test_templates_are_isolated_per_wedding(client, wedding, make_wedding, make_admin, auth_headers, couple_headers):
    other_headers = auth_headers(make_admin(make_wedding(couple_names="Ana y Pedro")), auth.ROLE_WEDDING_ADMIN)
    payload = {"type": "INVITATION", "language": "ES", "channel": "SMS", "body": "SMS {{magicLink}}"}
    template_id = client.put("/api/admin/templates", json=payload, headers=other_headers).json()["id"]

    assert client.delete(f"/api/admin/templates/{template_id}", headers=couple_headers).status_code == 404


def test_preview_with_sample_and_real_family(client, wedding, make_family, couple_headers):
    family = make_family(wedding, email="garcia@example.com")

    sample = client.post("/api/admin/templates/preview", json={
        "subject": "Boda de {{coupleNames}}", "body": "Hola {{familyName}} {{desconocido}}",
    }, headers=couple_headers).json()
    assert sample["subject"] == "Boda de Laura y Javier"
    assert sample["placeholders"] == ["coupleNames", "familyName", "desconocido"]
    assert sample["unknown_placeholders"] == ["desconocido"]

    real = client.post("/api/admin/templates/preview", json={
        "body": "{{familyName}} → {{magicLink}}", "family_id": family.id,
    }, headers=couple_headers).json()
    assert real["subject"] is None
    assert real["body"] == f"Familia García → https://nupci.example.com/rsvp/{family.magic_token}?channel=email"
