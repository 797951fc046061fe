# nupci/services/rsvp.py

# =================================================================================
# ✅ OPERACIONES DEL INVITADO (todas limitadas a su propia familia)
# =================================================================================

from typing import Optional

from fastapi import status
from loguru import logger
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from nupci import models, schemas
from nupci.core.errors import NupciError, not_found
from nupci.db import transaction
from nupci.models import EventTypeEnum, LanguageEnum
from nupci.services import magic_link, notifications, tracking
from nupci.services.magic_link import GuestIdentity
from nupci.utils.phone import process_phone_number
from nupci.utils.timeutils import utcnow


def _load(db: Session, identity: GuestIdentity):
    family = db.get(models.Family, identity.family_id)
    if family is None or family.wedding_id != identity.wedding_id:
        raise not_found("Familia", "FAMILY_NOT_FOUND")
    return family, family.wedding


def _check_cutoff(wedding: models.Wedding) -> None:
    if utcnow() > wedding.rsvp_cutoff_date:
        raise NupciError(
            "RSVP_CUTOFF_PASSED",
            "The RSVP deadline has passed",
            status.HTTP_403_FORBIDDEN,
        )


def submit_rsvp(db: Session, identity: GuestIdentity, payload: schemas.RSVPSubmitRequest) -> dict:
    family, wedding = _load(db, identity)
    _check_cutoff(wedding)

    members = {m.id: m for m in family.members}
    unknown = [m.id for m in payload.members if m.id not in members]
    if unknown:
        raise NupciError("INVALID_MEMBER", "One or more members do not belong to this family",
                         details={"member_ids": unknown})

    first_time = not any(m.attending is not None for m in family.members)

    with transaction(db):
        for answer in payload.members:
            member = members[answer.id]
            member.attending = answer.attending
            if answer.attending:
                member.dietary_restrictions = answer.dietary_restrictions
                member.accessibility_needs = answer.accessibility_needs
            else:
                member.dietary_restrictions = None
                member.accessibility_needs = None
        for field in ("transportation_answer", "extra_question_1_answer",
                      "extra_question_2_answer", "extra_question_3_answer"):
            if field in payload.model_fields_set:
                setattr(family, field, getattr(payload, field))

    attending_count = sum(1 for m in family.members if m.attending is True)
    tracking.track_event(
        db, family.id, wedding.id,
        EventTypeEnum.RSVP_SUBMITTED if first_time else EventTypeEnum.RSVP_UPDATED,
        metadata={"total_members": len(family.members), "attending_count": attending_count},
    )
    notifications.send_rsvp_confirmation(db, family, wedding)

    logger.info("RSVP {} family_id={} asistentes={}", "nuevo" if first_time else "actualizado",
                family.id, attending_count)
    return {
        "success": True,
        "message": (
            "Thank you for your RSVP! We have received your response "
            f"for {attending_count} attending guest(s)."
        ),
        "attending_count": attending_count,
    }


def add_family_member(db: Session, identity: GuestIdentity, payload: schemas.GuestAddMemberRequest):
    family, wedding = _load(db, identity)
    if not wedding.allow_guest_additions:
        raise NupciError("GUEST_ADDITIONS_DISABLED", "Adding guests is not allowed for this wedding",
                         status.HTTP_403_FORBIDDEN)
    _check_cutoff(wedding)

    position = max((m.position for m in family.members), default=-1) + 1
    member = models.FamilyMember(
        family_id=family.id,
        name=payload.name,
        type=payload.type,
        age=payload.age,
        added_by_guest=True,
        position=position,
    )
    with transaction(db):
        db.add(member)
    db.refresh(member)
    tracking.track_guest_added(db, family.id, wedding.id, member.id, member.name)
    return member


def update_language(db: Session, identity: GuestIdentity, language: LanguageEnum) -> models.Family:
    family, _ = _load(db, identity)
    family.preferred_language = language
    db.commit()
    return family


def lookup_guest(db: Session, initials: str, contact: str) -> Optional[str]:
    """Busca la invitación por iniciales de la boda + email/teléfono. Devuelve la URL corta o None."""
    wedding = (
        db.query(models.Wedding)
        .filter(
            func.upper(models.Wedding.short_url_initials) == initials.strip().upper(),
            models.Wedding.deleted_at.is_(None),
        )
        .first()
    )
    if wedding is None:
        return None

    contact = contact.strip()
    query = db.query(models.Family).filter(models.Family.wedding_id == wedding.id)
    if "@" in contact:
        family = query.filter(func.lower(models.Family.email) == contact.lower()).first()
    else:
        phone = process_phone_number(contact, wedding.wedding_country)
        if phone is None:
            return None
        family = query.filter(
            or_(models.Family.phone == phone, models.Family.whatsapp_number == phone)
        ).first()

    if family is None or not family.magic_token:
        return None
    return magic_link.generate_magic_link(db, family.id)

