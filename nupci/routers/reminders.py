# nupci/routers/reminders.py
# =============================================================================
# ⏰ Recordatorios e invitaciones de UNA boda
# - validate: qué familias pueden recibir el mensaje por el canal pedido.
# - preview:  cómo quedará el mensaje con datos de ejemplo.
# - send:     envía; familias nunca invitadas reciben la invitación.
# - save-the-date: aviso previo, solo a quien aún no tiene la invitación.
# =============================================================================

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.security import WeddingScope, get_wedding_scope
from nupci.db import get_db
from nupci.services import notifications

router = APIRouter(tags=["reminders"])


@router.post("/reminders/validate", response_model=schemas.ReminderValidateResponse)
def validate_reminders(
    payload: schemas.ReminderValidateRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return notifications.validate_reminders(db, scope.wedding, payload.channel, payload.family_ids)


@router.post("/reminders/preview", response_model=schemas.ReminderPreviewResponse)
def preview_reminder(
    payload: schemas.ReminderPreviewRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return notifications.preview_reminder(
        db, scope.wedding, payload.language, payload.channel, payload.message_template
    )


@router.post("/reminders", response_model=schemas.DispatchSummary)
def send_reminders(
    payload: schemas.ReminderSendRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return notifications.send_reminders(
        db, scope.wedding, payload.channel, payload.family_ids, payload.message_template
    )


@router.post("/invitations/send", response_model=schemas.DispatchSummary)
def send_invitations(
    payload: schemas.InvitationSendRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return notifications.send_invitations(db, scope.wedding, payload.family_ids, payload.channel)


@router.post("/save-the-date", response_model=schemas.DispatchSummary)
def send_save_the_date(
    payload: schemas.InvitationSendRequest,                  # Mismo cuerpo que las invitaciones.
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return notifications.send_save_the_date(db, scope.wedding, payload.family_ids, payload.channel)
