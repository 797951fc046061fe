# nupci/routers/notifications.py
# =============================================================================
# 🔔 Notificaciones del panel (eventos de seguimiento de UNA boda)
# El estado "leída" es por usuario: la pareja y el planner llevan el suyo.
# =============================================================================

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.security import WeddingScope, get_wedding_scope
from nupci.db import get_db
from nupci.models import ChannelEnum, EventTypeEnum
from nupci.services import tracking

router = APIRouter(tags=["notifications"])


@router.get("/notifications", response_model=schemas.NotificationListResponse)
def list_notifications(
    event_type: Optional[EventTypeEnum] = None,
    channel: Optional[ChannelEnum] = None,
    family_id: Optional[str] = None,
    read: Optional[bool] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return tracking.list_notifications(
        db,
        scope.wedding_id,
        scope.actor_id,
        event_type=event_type,
        channel=channel,
        family_id=family_id,
        read=read,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )


@router.get("/notifications/unread-count", response_model=schemas.UnreadCountResponse)
def unread_count(scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return {"unread_count": tracking.unread_count(db, scope.wedding_id, scope.actor_id)}   # Por usuario, no por boda.


@router.post("/notifications/mark-read", response_model=schemas.MarkReadResponse)
def mark_read(
    payload: schemas.MarkReadRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    marked = tracking.mark_notifications_read(
        db, scope.wedding_id, scope.actor_id, ids=payload.ids, mark_all=payload.all
    )
    return {"marked": marked}   # Cuántos eventos pasaron a leídos.
