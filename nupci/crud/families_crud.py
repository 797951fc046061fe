# nupci/crud/families_crud.py

# =================================================================================
# 👨‍👩‍👧 CRUD DE FAMILIAS (lista de invitados de una boda)
# ---------------------------------------------------------------------------------
# Todas las funciones reciben el wedding_id del ámbito del usuario:
# - familias de otra boda → 404 en operaciones individuales;
# - ids ajenos en operaciones masivas → 403 y no se toca nada.
# Las escrituras de varias filas (familia + miembros, o varias familias) van en
# una única transacción para que los recuentos agregados sean siempre coherentes.
# =================================================================================

import math
import secrets
from typing import Dict, List, Optional, Tuple

from fastapi import status
from loguru import logger
from sqlalchemy import distinct, func, or_, select
from sqlalchemy.orm import Session

from nupci import models, schemas
from nupci.cache import invalidate_short_urls_for_families
from nupci.core.errors import NupciError, not_found
from nupci.db import transaction
from nupci.models import MemberTypeEnum, PaymentModeEnum
from nupci.services import magic_link, short_url, tracking
from nupci.utils.phone import process_phone_number

REFERENCE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERENCE_CODE_LENGTH = 6

RSVP_PENDING = "pending"
RSVP_SUBMITTED = "submitted"


# =================================================================================
# 🧮 Recuentos
# =================================================================================
def member_counts(family: models.Family) -> Tuple[int, int, int]:
    """(asisten, no asisten, pendientes) de una familia."""
    attending = sum(1 for m in family.members if m.attending is True)
    not_attending = sum(1 for m in family.members if m.attending is False)
    return attending, not_attending, len(family.members) - attending - not_attending


def has_rsvp(family: models.Family) -> bool:
    return any(m.attending is not None for m in family.members)


def rsvp_status(family: models.Family) -> str:
    return RSVP_SUBMITTED if has_rsvp(family) else RSVP_PENDING


def get_wedding_stats(db: Session, wedding_id: str) -> Dict[str, int]:
    stats = {key: 0 for key in schemas.WeddingStats.model_fields}
    stats["total_families"] = (
        db.query(func.count(models.Family.id)).filter(models.Family.wedding_id == wedding_id).scalar() or 0
    )
    rows = (
        db.query(models.FamilyMember.attending, models.FamilyMember.type, func.count(models.FamilyMember.id))
        .join(models.Family, models.Family.id == models.FamilyMember.family_id)
        .filter(models.Family.wedding_id == wedding_id)
        .group_by(models.FamilyMember.attending, models.FamilyMember.type)
        .all()
    )
    for attending, member_type, count in rows:
        stats["total_members"] += count
        if attending is True:
            stats["attending"] += count
        elif attending is False:
            stats["not_attending"] += count
        else:
            stats["pending"] += count
        if member_type == MemberTypeEnum.ADULT:
            stats["adults"] += count
        elif member_type == MemberTypeEnum.CHILD:
            stats["children"] += count
        else:
            stats["infants"] += count
    stats["families_responded"] = (
        db.query(func.count(distinct(models.FamilyMember.family_id)))
        .join(models.Family, models.Family.id == models.FamilyMember.family_id)
        .filter(models.Family.wedding_id == wedding_id, models.FamilyMember.attending.isnot(None))
        .scalar()
        or 0
    )
    stats["families_pending"] = stats["total_families"] - stats["families_responded"]
    return stats


# =================================================================================
# 🔎 Lectura
# =================================================================================
def get_family(db: Session, wedding_id: str, family_id: str) -> models.Family:
    family = db.get(models.Family, family_id)
    if family is None or family.wedding_id != wedding_id:
        raise not_found("Familia", "FAMILY_NOT_FOUND")
    return family


def to_list_item(family: models.Family) -> dict:
    attending, not_attending, pending = member_counts(family)
    item = schemas.FamilyOut.model_validate(family).model_dump()
    item.update(
        rsvp_status=rsvp_status(family),
        attending_count=attending,
        not_attending_count=not_attending,
        pending_count=pending,
    )
    return item


def _rsvp_filters(rsvp: Optional[str], attendance: Optional[str]) -> list:
    """Filtros por respuesta de los miembros (EXISTS sobre family_members)."""
    members = models.Family.members
    answered = members.any(models.FamilyMember.attending.isnot(None))
    some_yes = members.any(models.FamilyMember.attending.is_(True))
    clauses = []
    if rsvp == RSVP_SUBMITTED:
        clauses.append(answered)
    elif rsvp == RSVP_PENDING:
        clauses.append(~answered)

    if attendance == "yes":
        clauses.append(some_yes)
    elif attendance == "no":
        clauses.extend([members.any(models.FamilyMember.attending.is_(False)), ~some_yes])
    elif attendance == "partial":
        clauses.extend([
            some_yes,
            members.any(or_(models.FamilyMember.attending.is_(False), models.FamilyMember.attending.is_(None))),
        ])
    return clauses


def list_families(
    db: Session,
    wedding_id: str,
    *,
    search: Optional[str] = None,
    rsvp: Optional[str] = None,
    attendance: Optional[str] = None,
    channel: Optional[models.ChannelEnum] = None,
    invited_by_admin_id: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> dict:
    query = db.query(models.Family).filter(models.Family.wedding_id == wedding_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.Family.name.ilike(pattern),
                models.Family.email.ilike(pattern),
                models.Family.phone.ilike(pattern),
                models.Family.whatsapp_number.ilike(pattern),
            )
        )
    if channel is not None:
        query = query.filter(models.Family.channel_preference == channel)
    if invited_by_admin_id:
        query = query.filter(models.Family.invited_by_admin_id == invited_by_admin_id)
    for clause in _rsvp_filters(rsvp, attendance):
        query = query.filter(clause)

    total = query.count()
    families = (
        query.order_by(models.Family.created_at.desc(), models.Family.name)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": [to_list_item(f) for f in families],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
        "stats": get_wedding_stats(db, wedding_id),
    }


# =================================================================================
# ✍️ Alta, edición y borrado individual
# =================================================================================
def generate_reference_code(db: Session, wedding_id: str) -> str:
    while True:
        code = "".join(secrets.choice(REFERENCE_CODE_ALPHABET) for _ in range(REFERENCE_CODE_LENGTH))
        taken = (
            db.query(models.Family.id)
            .filter(models.Family.wedding_id == wedding_id, models.Family.reference_code == code)
            .first()
        )
        if taken is None:
            return code


def _check_admin(db: Session, wedding_id: str, admin_id: Optional[str]) -> None:
    if admin_id is None:
        return
    admin = db.get(models.WeddingAdmin, admin_id)
    if admin is None or admin.wedding_id != wedding_id:
        raise NupciError("ADMIN_NOT_FOUND", "El administrador no pertenece a esta boda", status.HTTP_404_NOT_FOUND)


def new_member(data: dict, position: int, added_by_guest: bool = False) -> models.FamilyMember:
    return models.FamilyMember(
        name=data["name"],
        type=data.get("type") or MemberTypeEnum.ADULT,
        age=data.get("age"),
        attending=data.get("attending"),
        dietary_restrictions=data.get("dietary_restrictions"),
        accessibility_needs=data.get("accessibility_needs"),
        added_by_guest=added_by_guest,
        position=position,
    )


def build_family(
    db: Session,
    wedding: models.Wedding,
    *,
    name: str,
    members: List[dict],
    email: Optional[str] = None,
    phone: Optional[str] = None,
    whatsapp_number: Optional[str] = None,
    channel_preference: Optional[models.ChannelEnum] = None,
    preferred_language: Optional[models.LanguageEnum] = None,
    invited_by_admin_id: Optional[str] = None,
    private_notes: Optional[str] = None,
) -> models.Family:
    """Crea familia + miembros dentro de la transacción en curso (sin commit)."""
    family = models.Family(
        wedding_id=wedding.id,
        name=name,
        email=email.lower() if email else None,
        phone=process_phone_number(phone, wedding.wedding_country),
        whatsapp_number=process_phone_number(whatsapp_number, wedding.wedding_country),
        channel_preference=channel_preference,
        preferred_language=preferred_language or wedding.default_language,
        invited_by_admin_id=invited_by_admin_id,
        private_notes=private_notes,
        magic_token=magic_link.generate_magic_token(),
    )
    if wedding.payment_tracking_mode == PaymentModeEnum.AUTOMATED:
        family.reference_code = generate_reference_code(db, wedding.id)
    family.members = [new_member(m, position) for position, m in enumerate(members)]
    db.add(family)
    db.flush()
    short_url.ensure_family_short_code(db, family)
    return family


def create_family(
    db: Session,
    wedding: models.Wedding,
    payload: schemas.FamilyCreate,
    actor_admin_id: Optional[str] = None,
) -> models.Family:
    invited_by = payload.invited_by_admin_id or actor_admin_id
    _check_admin(db, wedding.id, invited_by)
    with transaction(db):
        family = build_family(
            db,
            wedding,
            name=payload.name,
            members=[m.model_dump() for m in payload.members],
            email=payload.email,
            phone=payload.phone,
            whatsapp_number=payload.whatsapp_number,
            channel_preference=payload.channel_preference,
            preferred_language=payload.preferred_language,
            invited_by_admin_id=invited_by,
            private_notes=payload.private_notes,
        )
    db.refresh(family)
    logger.info("Familia creada id={} boda={} miembros={}", family.id, wedding.id, len(family.members))
    return family


_MEMBER_FIELDS = ("name", "type", "age", "attending", "dietary_restrictions", "accessibility_needs")


def update_family(
    db: Session,
    wedding: models.Wedding,
    family_id: str,
    payload: schemas.FamilyUpdate,
) -> models.Family:
    family = get_family(db, wedding.id, family_id)
    data = payload.model_dump(exclude_unset=True, exclude={"members"})
    if "name" in data and not (data["name"] or "").strip():
        raise NupciError("VALIDATION_ERROR", "El nombre de la familia es obligatorio")
    if data.get("invited_by_admin_id"):
        _check_admin(db, wedding.id, data["invited_by_admin_id"])
    if "preferred_language" in data and data["preferred_language"] is None:
        del data["preferred_language"]

    with transaction(db):
        for field, value in data.items():
            if field in ("phone", "whatsapp_number"):
                value = process_phone_number(value, wedding.wedding_country)
            elif field == "email" and value:
                value = value.lower()
            setattr(family, field, value)

        if payload.members is not None:
            _apply_member_operations(family, payload.members)
            if not family.members:
                raise NupciError("FAMILY_NEEDS_MEMBER", "La familia debe tener al menos un miembro")
    db.refresh(family)
    return family


def _apply_member_operations(family: models.Family, operations: List[schemas.MemberUpdateIn]) -> None:
    existing = {m.id: m for m in family.members}
    next_position = max((m.position for m in family.members), default=-1) + 1
    for op in operations:
        if op.id:
            member = existing.get(op.id)
            if member is None:
                raise NupciError("INVALID_MEMBER", f"El miembro {op.id} no pertenece a esta familia")
            if op.delete:
                family.members.remove(member)  # delete-orphan lo borra al hacer flush.
                continue
            for field in _MEMBER_FIELDS:
                if field not in op.model_fields_set:
                    continue
                value = getattr(op, field)
                if field in ("name", "type") and value is None:
                    raise NupciError("VALIDATION_ERROR", f"El campo {field} no puede ser null")
                setattr(member, field, value)
        else:
            family.members.append(new_member(op.model_dump(), next_position))
            next_position += 1


def delete_family(db: Session, wedding_id: str, family_id: str) -> dict:
    family = get_family(db, wedding_id, family_id)
    had_rsvp = has_rsvp(family)
    deleted = _delete_families(db, [family.id])
    logger.info("Familia borrada id={} boda={} had_rsvp={}", family_id, wedding_id, had_rsvp)
    return {"had_rsvp": had_rsvp, "deleted_members": deleted["deleted_members"]}


# =================================================================================
# 📦 Operaciones masivas
# =================================================================================
def _owned_ids(db: Session, wedding_id: str, family_ids: List[str]) -> List[str]:
    """Comprueba que TODOS los ids son de la boda; si no, 403 sin tocar nada."""
    owned = [
        row.id
        for row in db.query(models.Family.id).filter(
            models.Family.id.in_(family_ids), models.Family.wedding_id == wedding_id
        )
    ]
    if len(owned) != len(set(family_ids)):
        logger.warning("Operación masiva con familias ajenas: boda={} pedidas={} propias={}",
                       wedding_id, len(family_ids), len(owned))
        raise NupciError("FORBIDDEN", "Algunas familias no pertenecen a esta boda", status.HTTP_403_FORBIDDEN)
    return owned


def bulk_update_families(db: Session, wedding_id: str, payload: schemas.BulkUpdateRequest) -> dict:
    ids = _owned_ids(db, wedding_id, payload.family_ids)
    changes = payload.updates
    fields = changes.model_fields_set

    family_values = {}
    for field in ("preferred_language", "channel_preference", "invited_by_admin_id"):
        if field in fields:
            family_values[field] = getattr(changes, field)
    if family_values.get("invited_by_admin_id"):
        _check_admin(db, wedding_id, family_values["invited_by_admin_id"])

    updated_members = 0
    with transaction(db):
        if family_values:
            db.query(models.Family).filter(models.Family.id.in_(ids)).update(
                family_values, synchronize_session=False
            )
        if {"set_all_attending", "set_all_not_attending"} & fields:
            if changes.set_all_attending:
                attending = True
            elif changes.set_all_not_attending:
                attending = False
            else:
                attending = None  # Ambos a false → se vuelve a "sin responder".
            updated_members = (
                db.query(models.FamilyMember)
                .filter(models.FamilyMember.family_id.in_(ids))
                .update({"attending": attending}, synchronize_session=False)
            )
    db.expire_all()
    logger.info("Bulk update boda={} familias={} miembros={}", wedding_id, len(ids), updated_members)
    return {"updated_families": len(ids), "updated_members": updated_members}


def _delete_families(db: Session, family_ids: List[str]) -> dict:
    """Borra familias con sus miembros, eventos y lecturas en una sola transacción."""
    if not family_ids:
        return {"deleted_families": 0, "deleted_members": 0}
    event_ids = select(models.TrackingEvent.id).where(models.TrackingEvent.family_id.in_(family_ids))
    with transaction(db):
        db.query(models.NotificationRead).filter(
            models.NotificationRead.tracking_event_id.in_(event_ids)
        ).delete(synchronize_session=False)
        db.query(models.TrackingEvent).filter(
            models.TrackingEvent.family_id.in_(family_ids)
        ).delete(synchronize_session=False)
        deleted_members = (
            db.query(models.FamilyMember)
            .filter(models.FamilyMember.family_id.in_(family_ids))
            .delete(synchronize_session=False)
        )
        deleted_families = (
            db.query(models.Family)
            .filter(models.Family.id.in_(family_ids))
            .delete(synchronize_session=False)
        )
    db.expire_all()
    invalidate_short_urls_for_families(family_ids)                  # Sus enlaces cortos dejan de resolver.
    return {"deleted_families": deleted_families, "deleted_members": deleted_members}


def bulk_delete_families(db: Session, wedding_id: str, family_ids: List[str]) -> dict:
    ids = _owned_ids(db, wedding_id, family_ids)
    deleted = _delete_families(db, ids)
    logger.info("Bulk delete boda={} familias={} miembros={}",
                wedding_id, deleted["deleted_families"], deleted["deleted_members"])
    return {"deleted_count": deleted["deleted_families"], "deleted_members": deleted["deleted_members"]}


def delete_all_families(db: Session, wedding_id: str) -> dict:
    ids = [row.id for row in db.query(models.Family.id).filter(models.Family.wedding_id == wedding_id)]
    deleted = _delete_families(db, ids)
    logger.warning("Borrado completo de invitados boda={} familias={}", wedding_id, deleted["deleted_families"])
    return deleted


# =================================================================================
# 🙋 Acompañantes añadidos por los invitados (revisión desde el panel)
# ---------------------------------------------------------------------------------
# "Revisado" = el evento GUEST_ADDED del miembro está leído por quien consulta,
# igual que en las notificaciones: pareja y planner llevan su propio estado.
# =================================================================================
def list_guest_additions(db: Session, wedding: models.Wedding, actor_id: str) -> dict:
    if not wedding.allow_guest_additions:
        return {"feature_enabled": False, "items": [], "total": 0, "new_count": 0}

    members = (
        db.query(models.FamilyMember)
        .join(models.Family)
        .filter(models.Family.wedding_id == wedding.id, models.FamilyMember.added_by_guest.is_(True))
        .order_by(models.FamilyMember.created_at.desc())
        .all()
    )
    events = tracking.guest_added_event_ids(db, wedding.id)
    read_ids = tracking.read_event_ids(db, actor_id, [eid for ids in events.values() for eid in ids])

    items = []
    for member in members:
        data = schemas.MemberOut.model_validate(member).model_dump()
        data.update(
            family_id=member.family_id,
            family_name=member.family.name,
            is_new=not any(eid in read_ids for eid in events.get(member.id, [])),
        )
        items.append(data)
    return {
        "feature_enabled": True,
        "items": items,
        "total": len(items),
        "new_count": sum(1 for i in items if i["is_new"]),
    }


def review_guest_addition(
    db: Session, wedding_id: str, member_id: str, payload: schemas.GuestAdditionReview, actor_id: str
) -> models.FamilyMember:
    member = (
        db.query(models.FamilyMember)
        .join(models.Family)
        .filter(
            models.FamilyMember.id == member_id,
            models.FamilyMember.added_by_guest.is_(True),
            models.Family.wedding_id == wedding_id,
        )
        .first()
    )
    if member is None:
        raise not_found("Acompañante", "GUEST_ADDITION_NOT_FOUND")

    for field in ("name", "type", "age"):
        if field in payload.model_fields_set:
            value = getattr(payload, field)
            if field != "age" and value is None:
                raise NupciError("VALIDATION_ERROR", f"El campo {field} no puede ser null")
            setattr(member, field, value)
    db.commit()

    if payload.mark_reviewed:
        event_ids = tracking.guest_added_event_ids(db, wedding_id).get(member.id, [])
        if event_ids:
            tracking.mark_notifications_read(db, wedding_id, actor_id, ids=event_ids)
    db.refresh(member)
    logger.info("Acompañante {} revisado en boda {} por {}", member.id, wedding_id, actor_id)
    return member


# =================================================================================
# 📊 Informe resumen
# =================================================================================
def report_summary(db: Session, wedding_id: str) -> dict:
    families = db.query(models.Family).filter(models.Family.wedding_id == wedding_id).order_by(models.Family.name).all()
    ages, dietary, accessibility = [], [], []
    added_by_guests = 0
    for family in families:
        for member in family.members:
            added_by_guests += int(member.added_by_guest)
            if member.attending is False:
                continue
            if member.age is not None:
                ages.append(member.age)
            if member.dietary_restrictions:
                dietary.append({"family_name": family.name, "member_name": member.name,
                                "note": member.dietary_restrictions})
            if member.accessibility_needs:
                accessibility.append({"family_name": family.name, "member_name": member.name,
                                      "note": member.accessibility_needs})
    return {
        "stats": get_wedding_stats(db, wedding_id),
        "average_age": round(sum(ages) / len(ages), 1) if ages else None,
        "transportation_yes": sum(1 for f in families if f.transportation_answer),
        "added_by_guests": added_by_guests,
        "dietary_restrictions": dietary,
        "accessibility_needs": accessibility,
    }
