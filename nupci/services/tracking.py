# nupci/services/tracking.py

# =================================================================================
# 📊 EVENTOS DE SEGUIMIENTO Y NOTIFICACIONES DEL PANEL
# ---------------------------------------------------------------------------------
# Cada acción relevante de un invitado (o envío del panel) deja una fila en
# tracking_events. El panel las muestra como notificaciones; el estado "leída"
# se guarda por administrador en notification_reads.
# Registrar un evento nunca debe romper la petición que lo origina.
# =================================================================================

import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import and_, exists, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nupci import models
from nupci.models import ChannelEnum, EventTypeEnum


def track_event(
    db: Session,
    family_id: str,
    wedding_id: str,
    event_type: EventTypeEnum,
    channel: Optional[ChannelEnum] = None,
    metadata: Optional[Dict[str, Any]] = None,
    admin_triggered: bool = False,
    commit: bool = True,
) -> Optional[models.TrackingEvent]:
    """
    Inserta un evento. Con commit=False se añade a la transacción en curso
    (el llamador decide); con commit=True se confirma aquí y los errores se
    registran sin propagarse.
    """
    event = models.TrackingEvent(
        family_id=family_id,
        wedding_id=wedding_id,
        event_type=event_type,
        channel=channel,
        event_metadata=metadata or None,
        admin_triggered=admin_triggered,
    )
    if not commit:
        db.add(event)
        return event
    try:
        db.add(event)
        db.commit()
        return event
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("No se pudo registrar {} para family_id={}: {}", event_type.value, family_id, e)
        return None


def track_link_opened(db: Session, family_id: str, wedding_id: str, channel: Optional[ChannelEnum] = None):
    return track_event(db, family_id, wedding_id, EventTypeEnum.LINK_OPENED, channel=channel)


def track_guest_added(db: Session, family_id: str, wedding_id: str, member_id: str, member_name: str):
    return track_event(db, family_id, wedding_id, EventTypeEnum.GUEST_ADDED,
                       metadata={"member_id": member_id, "member_name": member_name})


def track_message_sent(
    db: Session,
    family_id: str,
    wedding_id: str,
    event_type: EventTypeEnum,
    channel: ChannelEnum,
    admin_triggered: bool = True,
    metadata: Optional[Dict[str, Any]] = None,
):
    return track_event(db, family_id, wedding_id, event_type, channel=channel,
                       metadata=metadata, admin_triggered=admin_triggered)


def guest_added_event_ids(db: Session, wedding_id: str) -> Dict[str, List[str]]:
    """member_id → ids de sus eventos GUEST_ADDED (el id va en los metadatos)."""
    by_member: Dict[str, List[str]] = {}
    rows = db.query(models.TrackingEvent).filter(
        models.TrackingEvent.wedding_id == wedding_id,
        models.TrackingEvent.event_type == EventTypeEnum.GUEST_ADDED,
    )
    for event in rows:
        member_id = (event.event_metadata or {}).get("member_id")
        if member_id:
            by_member.setdefault(member_id, []).append(event.id)
    return by_member


def families_with_event(db: Session, family_ids: Iterable[str], event_type: EventTypeEnum) -> set:
    """Ids (de entre family_ids) que tienen al menos un evento del tipo dado."""
    ids = list(family_ids)
    if not ids:
        return set()
    rows = (
        db.query(models.TrackingEvent.family_id)
        .filter(models.TrackingEvent.family_id.in_(ids), models.TrackingEvent.event_type == event_type)
        .distinct()
    )
    return {row.family_id for row in rows}


# =================================================================================
# 🔔 Notificaciones
# =================================================================================
def _read_clause(admin_id: str):
    return exists().where(
        and_(
            models.NotificationRead.tracking_event_id == models.TrackingEvent.id,
            models.NotificationRead.admin_id == admin_id,
        )
    )


def list_notifications(
    db: Session,
    wedding_id: str,
    admin_id: str,
    *,
    event_type: Optional[EventTypeEnum] = None,
    channel: Optional[ChannelEnum] = None,
    family_id: Optional[str] = None,
    read: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = 50,
) -> dict:
    query = db.query(models.TrackingEvent).filter(models.TrackingEvent.wedding_id == wedding_id)
    if event_type is not None:
        query = query.filter(models.TrackingEvent.event_type == event_type)
    if channel is not None:
        query = query.filter(models.TrackingEvent.channel == channel)
    if family_id:
        query = query.filter(models.TrackingEvent.family_id == family_id)
    if date_from is not None:
        query = query.filter(models.TrackingEvent.timestamp >= date_from)
    if date_to is not None:
        query = query.filter(models.TrackingEvent.timestamp <= date_to)
    if read is True:
        query = query.filter(_read_clause(admin_id))
    elif read is False:
        query = query.filter(~_read_clause(admin_id))

    total = query.count()
    events = (
        query.order_by(models.TrackingEvent.timestamp.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    read_ids = read_event_ids(db, admin_id, [e.id for e in events])
    items = [
        {
            "id": e.id,
            "family_id": e.family_id,
            "family_name": e.family.name if e.family else None,
            "event_type": e.event_type,
            "channel": e.channel,
            "metadata": e.event_metadata,
            "admin_triggered": e.admin_triggered,
            "timestamp": e.timestamp,
            "read": e.id in read_ids,
        }
        for e in events
    ]
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
        "unread_count": unread_count(db, wedding_id, admin_id),
    }


def read_event_ids(db: Session, admin_id: str, event_ids: List[str]) -> set:
    if not event_ids:
        return set()
    rows = db.query(models.NotificationRead.tracking_event_id).filter(
        models.NotificationRead.admin_id == admin_id,
        models.NotificationRead.tracking_event_id.in_(event_ids),
    )
    return {row.tracking_event_id for row in rows}


def unread_count(db: Session, wedding_id: str, admin_id: str) -> int:
    return (
        db.query(func.count(models.TrackingEvent.id))
        .filter(models.TrackingEvent.wedding_id == wedding_id, ~_read_clause(admin_id))
        .scalar()
        or 0
    )


def mark_notifications_read(
    db: Session,
    wedding_id: str,
    admin_id: str,
    ids: Optional[List[str]] = None,
    mark_all: bool = False,
) -> int:
    """Marca como leídas las notificaciones indicadas (o todas). Devuelve cuántas se marcaron ahora."""
    query = db.query(models.TrackingEvent.id).filter(
        models.TrackingEvent.wedding_id == wedding_id, ~_read_clause(admin_id)
    )
    if not mark_all:
        query = query.filter(models.TrackingEvent.id.in_(ids or []))
    pending = [row.id for row in query]
    for event_id in pending:
        db.add(models.NotificationRead(tracking_event_id=event_id, admin_id=admin_id))
    db.commit()
    return len(pending)
