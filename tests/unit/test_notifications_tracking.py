# tests/unit/test_notifications_tracking.py
# =================================================================================
# 📣 Envío de invitaciones / recordatorios (DRY_RUN) y 🔔 estado de lectura
# =================================================================================

import pytest

from nupci import models
from nupci.core.errors import NupciError
from nupci.models import ChannelEnum, EventTypeEnum
from nupci.services import notifications, tracking


def _events(db, event_type):
    return db.query(models.TrackingEvent).filter(models.TrackingEvent.event_type == event_type).all()


# =========================
# Canal
# =========================
def test_resolve_channel_rules(wedding, make_family):
    whatsapp = make_family(wedding, whatsapp_number="600112233", email="a@example.com",
                           channel_preference=ChannelEnum.WHATSAPP)
    sms_without_phone = make_family(wedding, name="Familia Ruiz", email="ruiz@example.com",
                                    channel_preference=ChannelEnum.SMS)
    no_contact = make_family(wedding, name="Familia Soto")

    assert notifications.resolve_channel(whatsapp, "PREFERRED") == ChannelEnum.WHATSAPP
    assert notifications.resolve_channel(whatsapp, None) == ChannelEnum.WHATSAPP
    assert notifications.resolve_channel(whatsapp, "EMAIL") == ChannelEnum.EMAIL
    assert notifications.resolve_channel(sms_without_phone, "PREFERRED") == ChannelEnum.EMAIL
    assert notifications.resolve_channel(no_contact, "EMAIL") is None


def test_whatsapp_falls_back_to_main_phone(wedding, make_family):
    family = make_family(wedding, phone="600112233")
    assert notifications.contact_for(family, ChannelEnum.WHATSAPP) == "+34600112233"


# =========================
# Invitaciones
# =========================
def test_send_invitations_only_once_by_default(db, wedding, make_family):
    make_family(wedding, email="garcia@example.com")
    make_family(wedding, name="Familia Ruiz", phone="600112233", channel_preference=ChannelEnum.SMS)
    make_family(wedding, name="Familia Soto")

    first = notifications.send_invitations(db, wedding)

    assert first["sent_count"] == 2
    assert first["skipped_count"] == 1
    assert first["failed_count"] == 0
    channels = {r["family_name"]: r["channel"] for r in first["results"]}
    assert channels == {"Familia García": "EMAIL", "Familia Ruiz": "SMS", "Familia Soto": None}
    assert len(_events(db, EventTypeEnum.INVITATION_SENT)) == 2

    second = notifications.send_invitations(db, wedding)
    assert [r["family_name"] for r in second["results"]] == ["Familia Soto"]


def test_send_invitations_to_foreign_family_is_forbidden(db, wedding, make_wedding, make_family):
    foreign = make_family(make_wedding(couple_names="Ana y Pedro"), email="x@example.com")
    with pytest.raises(NupciError) as exc:
        notifications.send_invitations(db, wedding, [foreign.id])
    assert exc.value.status_code == 403


# =========================
# Recordatorios
# =========================
def test_reminders_send_invitation_to_never_invited(db, wedding, make_family):
    invited = make_family(wedding, email="garcia@example.com")
    fresh = make_family(wedding, name="Familia Ruiz", email="ruiz@example.com")
    answered = make_family(wedding, name="Familia Soto", email="soto@example.com")
    answered.members[0].attending = True
    db.commit()
    notifications.send_invitations(db, wedding, [invited.id])

    summary = notifications.send_reminders(db, wedding, "EMAIL")

    types = {r["family_id"]: r["message_type"] for r in summary["results"]}
    assert types == {invited.id: "REMINDER", fresh.id: "INVITATION"}
    assert len(_events(db, EventTypeEnum.REMINDER_SENT)) == 1


def test_reminders_after_cutoff_are_rejected(db, make_wedding, make_family):
    wedding = make_wedding(days_ahead=10, cutoff_days=-1)
    make_family(wedding, email="garcia@example.com")

    with pytest.raises(NupciError) as exc:
        notifications.send_reminders(db, wedding, "EMAIL")
    assert exc.value.code == "RSVP_CUTOFF_PASSED"


def test_validate_reminders_reports_missing_contact(db, wedding, make_family):
    make_family(wedding, email="garcia@example.com")
    make_family(wedding, name="Familia Soto")

    result = notifications.validate_reminders(db, wedding, "SMS")

    assert result["summary"] == {"total": 2, "valid": 1, "invalid": 1}
    assert result["valid_families"][0]["channel"] == "EMAIL"
    assert result["invalid_families"][0]["missing_info"] == "phone"


def test_preview_reminder_uses_sample_values(db, wedding):
    preview = notifications.preview_reminder(db, wedding, models.LanguageEnum.ES, ChannelEnum.EMAIL)
    assert "Laura y Javier" in preview["subject"]
    assert "Familia García" in preview["body"]

    sms = notifications.preview_reminder(db, wedding, models.LanguageEnum.EN, ChannelEnum.SMS, "Hi {{familyName}}")
    assert sms == {"subject": None, "body": "Hi Familia García"}


# =========================
# Notificaciones: lectura por usuario
# =========================
def test_read_state_is_tracked_per_actor(db, wedding, make_family):
    family = make_family(wedding)
    first = tracking.track_event(db, family.id, wedding.id, EventTypeEnum.RSVP_SUBMITTED)
    tracking.track_event(db, family.id, wedding.id, EventTypeEnum.LINK_OPENED, channel=ChannelEnum.EMAIL)

    assert tracking.mark_notifications_read(db, wedding.id, "couple-1", ids=[first.id]) == 1
    assert tracking.mark_notifications_read(db, wedding.id, "couple-1", ids=[first.id]) == 0

    assert tracking.unread_count(db, wedding.id, "couple-1") == 1
    assert tracking.unread_count(db, wedding.id, "planner-1") == 2

    listing = tracking.list_notifications(db, wedding.id, "couple-1", read=False)
    assert [i["event_type"] for i in listing["items"]] == [EventTypeEnum.LINK_OPENED]
    assert listing["unread_count"] == 1

    assert tracking.mark_notifications_read(db, wedding.id, "planner-1", mark_all=True) == 2
    assert tracking.unread_count(db, wedding.id, "planner-1") == 0


def test_families_with_event(db, wedding, make_family):
    a = make_family(wedding)
    b = make_family(wedding, name="Familia Ruiz")
    tracking.track_event(db, a.id, wedding.id, EventTypeEnum.INVITATION_SENT)

    assert tracking.families_with_event(db, [a.id, b.id], EventTypeEnum.INVITATION_SENT) == {a.id}
    assert tracking.families_with_event(db, [], EventTypeEnum.INVITATION_SENT) == set()
