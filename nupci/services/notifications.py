# nupci/services/notifications.py

# =================================================================================
# 📣 ENVÍO DE MENSAJES A FAMILIAS (invitaciones, recordatorios, confirmaciones)
# ---------------------------------------------------------------------------------
# 1. Canal: el pedido, o la preferencia de la familia ("PREFERRED"), o EMAIL.
#    Si falta el dato de contacto del canal elegido se cae a EMAIL; sin email
#    tampoco, la familia se omite.
# 2. Plantilla: la de la boda para (tipo, idioma, canal) o la de por defecto.
# 3. Proveedor: mailer (SendGrid/Gmail) o sms (Twilio SMS/WhatsApp).
# 4. Seguimiento: INVITATION_SENT / REMINDER_SENT solo si el envío fue bien.
# =================================================================================

from dataclasses import dataclass
from typing import List, Optional

from fastapi import status
from loguru import logger
from sqlalchemy.orm import Session

from nupci import mailer, models, sms
from nupci.core.errors import NupciError
from nupci.models import ChannelEnum, EventTypeEnum, TemplateTypeEnum
from nupci.services import magic_link, tracking
from nupci.services.templates import (
    build_variables,
    default_template,
    get_template_for_sending,
    render_template,
    sample_variables,
)
from nupci.utils.timeutils import utcnow

PREFERRED = "PREFERRED"

_EVENT_FOR_TYPE = {
    TemplateTypeEnum.INVITATION: EventTypeEnum.INVITATION_SENT,
    TemplateTypeEnum.REMINDER: EventTypeEnum.REMINDER_SENT,
    TemplateTypeEnum.SAVE_THE_DATE: EventTypeEnum.SAVE_THE_DATE_SENT,
}

# Campo de contacto que necesita cada canal (se informa como missing_info).
CONTACT_FIELD = {
    ChannelEnum.EMAIL: "email",
    ChannelEnum.SMS: "phone",
    ChannelEnum.WHATSAPP: "whatsapp_number",
}


@dataclass
class DispatchResult:
    success: bool
    channel: Optional[ChannelEnum] = None
    error: Optional[str] = None


def contact_for(family: models.Family, channel: ChannelEnum) -> Optional[str]:
    if channel == ChannelEnum.EMAIL:
        return family.email
    if channel == ChannelEnum.SMS:
        return family.phone
    # WhatsApp: número específico o, si no hay, el móvil principal.
    return family.whatsapp_number or family.phone


def requested_channel(family: models.Family, requested: Optional[str] = None) -> ChannelEnum:
    if requested is None or requested == PREFERRED:
        return family.channel_preference or ChannelEnum.EMAIL
    return ChannelEnum(requested)


def resolve_channel(family: models.Family, requested: Optional[str] = None) -> Optional[ChannelEnum]:
    chosen = requested_channel(family, requested)
    if contact_for(family, chosen):
        return chosen
    if family.email:
        return ChannelEnum.EMAIL
    return None


def send_to_family(
    db: Session,
    family: models.Family,
    wedding: models.Wedding,
    template_type: TemplateTypeEnum,
    channel: Optional[str] = None,
    *,
    admin_triggered: bool = True,
    custom_body: Optional[str] = None,
) -> DispatchResult:
    chosen = resolve_channel(family, channel)
    if chosen is None:
        logger.info("Familia {} sin datos de contacto: se omite el envío {}", family.id, template_type.value)
        return DispatchResult(False, None, "NO_CONTACT")

    template = get_template_for_sending(db, wedding.id, template_type, family.preferred_language, chosen)
    link = magic_link.generate_magic_link(db, family.id, channel=chosen)
    variables = build_variables(family, wedding, link)
    body = render_template(custom_body or template.body, variables)
    destination = contact_for(family, chosen)

    if chosen == ChannelEnum.EMAIL:
        subject = template.subject or default_template(template_type, family.preferred_language.value).subject
        ok = mailer.send_email(destination, render_template(subject, variables), body, template.image_url)
        result = DispatchResult(ok, chosen, None if ok else "EMAIL_FAILED")
    elif chosen == ChannelEnum.SMS:
        sent = sms.send_sms(destination, body)
        result = DispatchResult(sent.success, chosen, sent.error)
    else:
        sent = sms.send_whatsapp(destination, body, media_url=template.image_url)
        result = DispatchResult(sent.success, chosen, sent.error)

    event_type = _EVENT_FOR_TYPE.get(template_type)
    if result.success and event_type is not None:
        tracking.track_message_sent(
            db, family.id, wedding.id, event_type, chosen,
            admin_triggered=admin_triggered,
            metadata={"template_id": template.template_id} if template.template_id else None,
        )
    return result


def send_rsvp_confirmation(db: Session, family: models.Family, wedding: models.Wedding) -> bool:
    """Confirmación al invitado tras responder. Nunca rompe la petición del RSVP."""
    try:
        return send_to_family(db, family, wedding, TemplateTypeEnum.CONFIRMATION, admin_triggered=False).success
    except Exception as e:
        logger.exception("No se pudo enviar la confirmación de RSVP a family_id={}: {}", family.id, e)
        return False


# =================================================================================
# 👪 Selección de familias
# =================================================================================
def families_by_ids(db: Session, wedding_id: str, family_ids: List[str]) -> List[models.Family]:
    """Familias pedidas; si alguna no pertenece a la boda → 403."""
    unique_ids = list(dict.fromkeys(family_ids))
    families = (
        db.query(models.Family)
        .filter(models.Family.id.in_(unique_ids), models.Family.wedding_id == wedding_id)
        .order_by(models.Family.name)
        .all()
    )
    if len(families) != len(unique_ids):
        raise NupciError("FORBIDDEN", "Algunas familias no pertenecen a esta boda", status.HTTP_403_FORBIDDEN)
    return families


def has_pending_rsvp(family: models.Family) -> bool:
    """Ningún miembro ha respondido todavía."""
    return bool(family.members) and all(m.attending is None for m in family.members)


def reminder_families(db: Session, wedding_id: str, family_ids: Optional[List[str]] = None) -> List[models.Family]:
    if family_ids:
        return families_by_ids(db, wedding_id, family_ids)
    families = (
        db.query(models.Family)
        .filter(models.Family.wedding_id == wedding_id)
        .order_by(models.Family.name)
        .all()
    )
    return [f for f in families if has_pending_rsvp(f)]


# =================================================================================
# 💌 Invitaciones
# =================================================================================
def _outcome(family: models.Family, result: DispatchResult, message_type: str) -> dict:
    return {
        "family_id": family.id,
        "family_name": family.name,
        "channel": result.channel.value if result.channel else None,
        "success": result.success,
        "message_type": message_type,
        "error": result.error,
    }


def _summarize(results: List[dict]) -> dict:
    skipped = sum(1 for r in results if r["error"] == "NO_CONTACT")
    sent = sum(1 for r in results if r["success"])
    return {
        "sent_count": sent,
        "failed_count": len(results) - sent - skipped,
        "skipped_count": skipped,
        "recipient_families": [r["family_id"] for r in results if r["success"]],
        "results": results,
    }


def send_invitations(
    db: Session,
    wedding: models.Wedding,
    family_ids: Optional[List[str]] = None,
    channel: Optional[str] = None,
) -> dict:
    """Envía la invitación a las familias indicadas o, sin ids, a las que aún no la recibieron."""
    if family_ids:
        families = families_by_ids(db, wedding.id, family_ids)
    else:
        families = (
            db.query(models.Family)
            .filter(models.Family.wedding_id == wedding.id)
            .order_by(models.Family.name)
            .all()
        )
        invited = tracking.families_with_event(db, [f.id for f in families], EventTypeEnum.INVITATION_SENT)
        families = [f for f in families if f.id not in invited]

    results = [
        _outcome(f, send_to_family(db, f, wedding, TemplateTypeEnum.INVITATION, channel), "INVITATION")
        for f in families
    ]
    summary = _summarize(results)
    logger.info(
        "Invitaciones boda {} → enviadas={} fallidas={} omitidas={}",
        wedding.id, summary["sent_count"], summary["failed_count"], summary["skipped_count"],
    )
    return summary


# =================================================================================
# 📅 Reserva la fecha (save the date)
# =================================================================================
def send_save_the_date(
    db: Session,
    wedding: models.Wedding,
    family_ids: Optional[List[str]] = None,
    channel: Optional[str] = None,
) -> dict:
    """Solo a familias que aún no lo recibieron ni tienen ya la invitación formal."""
    if not wedding.save_the_date_enabled:
        raise NupciError("SAVE_THE_DATE_DISABLED", "El envío de 'reserva la fecha' no está activado en esta boda",
                         status.HTTP_403_FORBIDDEN)

    if family_ids:
        families = families_by_ids(db, wedding.id, family_ids)
    else:
        families = (
            db.query(models.Family)
            .filter(models.Family.wedding_id == wedding.id)
            .order_by(models.Family.name)
            .all()
        )
    invited = tracking.families_with_event(db, [f.id for f in families], EventTypeEnum.INVITATION_SENT)
    families = [f for f in families if f.save_the_date_sent is None and f.id not in invited]

    results = []
    for family in families:
        result = send_to_family(db, family, wedding, TemplateTypeEnum.SAVE_THE_DATE, channel)
        if result.success:
            family.save_the_date_sent = utcnow()
            db.commit()
        results.append(_outcome(family, result, "SAVE_THE_DATE"))

    summary = _summarize(results)
    logger.info(
        "Save the date boda {} → enviados={} fallidos={} omitidos={}",
        wedding.id, summary["sent_count"], summary["failed_count"], summary["skipped_count"],
    )
    return summary


# =================================================================================
# ⏰ Recordatorios
# =================================================================================
def validate_reminders(
    db: Session,
    wedding: models.Wedding,
    channel: str,
    family_ids: Optional[List[str]] = None,
) -> dict:
    valid, invalid = [], []
    for family in reminder_families(db, wedding.id, family_ids):
        chosen = resolve_channel(family, channel)
        if chosen is None:
            wanted = requested_channel(family, channel)
            invalid.append({
                "id": family.id, "name": family.name,
                "channel": wanted.value, "missing_info": CONTACT_FIELD[wanted],
            })
        else:
            valid.append({"id": family.id, "name": family.name, "channel": chosen.value})
    return {
        "valid_families": valid,
        "invalid_families": invalid,
        "summary": {"total": len(valid) + len(invalid), "valid": len(valid), "invalid": len(invalid)},
    }


def send_reminders(
    db: Session,
    wedding: models.Wedding,
    channel: str,
    family_ids: Optional[List[str]] = None,
    message_template: Optional[str] = None,
) -> dict:
    if utcnow() > wedding.rsvp_cutoff_date:
        raise NupciError("RSVP_CUTOFF_PASSED", "La fecha límite de confirmación ya pasó", status.HTTP_400_BAD_REQUEST)

    families = reminder_families(db, wedding.id, family_ids)
    invited = tracking.families_with_event(db, [f.id for f in families], EventTypeEnum.INVITATION_SENT)

    results = []
    for family in families:
        if family.id not in invited:
            # Nunca recibió la invitación: se le envía la invitación en lugar del recordatorio.
            result = send_to_family(db, family, wedding, TemplateTypeEnum.INVITATION, channel)
            results.append(_outcome(family, result, "INVITATION"))
        else:
            result = send_to_family(
                db, family, wedding, TemplateTypeEnum.REMINDER, channel, custom_body=message_template
            )
            results.append(_outcome(family, result, "REMINDER"))

    summary = _summarize(results)
    logger.info(
        "Recordatorios boda {} → enviados={} fallidos={} omitidos={}",
        wedding.id, summary["sent_count"], summary["failed_count"], summary["skipped_count"],
    )
    return summary


def preview_reminder(
    db: Session,
    wedding: models.Wedding,
    language: models.LanguageEnum,
    channel: ChannelEnum,
    message_template: Optional[str] = None,
) -> dict:
    template = get_template_for_sending(db, wedding.id, TemplateTypeEnum.REMINDER, language, channel)
    variables = sample_variables(wedding, language.value)
    subject = render_template(template.subject, variables) if channel == ChannelEnum.EMAIL else None
    return {"subject": subject, "body": render_template(message_template or template.body, variables)}
