# nupci/routers/wedding.py
# =============================================================================
# 💍 Rutas de configuración de UNA boda (montadas en /api/admin y en
#    /api/planner/weddings/{wedding_id}): datos de la boda, plantilla de
#    invitación e informe resumen.
# =============================================================================

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from nupci import auth, schemas
from nupci.core.errors import http_error
from nupci.core.security import WeddingScope, get_wedding_scope
from nupci.crud import families_crud, weddings_crud
from nupci.db import get_db

router = APIRouter(tags=["wedding"])

# Campos que solo el planner puede cambiar.
PLANNER_ONLY_FIELDS = {"status", "is_disabled", "payment_tracking_mode"}


@router.get("/wedding", response_model=schemas.WeddingWithStats)
def get_wedding(scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return weddings_crud.with_stats(db, scope.wedding)


@router.patch("/wedding", response_model=schemas.WeddingWithStats)
def update_wedding(
    payload: schemas.WeddingUpdate,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    if scope.user.role != auth.ROLE_PLANNER and PLANNER_ONLY_FIELDS & payload.model_fields_set:
        raise http_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Solo el planner puede cambiar esos campos")
    wedding = weddings_crud.update_wedding(db, scope.wedding, payload, scope.actor_id)
    return weddings_crud.with_stats(db, wedding)


@router.get("/invitation-template", response_model=Optional[schemas.InvitationTemplateOut])
def get_invitation_template(scope: WeddingScope = Depends(get_wedding_scope)):
    return scope.wedding.invitation_template   # None si la boda aún no tiene diseño.


@router.put("/invitation-template", response_model=schemas.InvitationTemplateOut)
def put_invitation_template(
    payload: schemas.InvitationTemplateIn,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return weddings_crud.save_invitation_template(db, scope.wedding, payload)


@router.get("/reports/summary", response_model=schemas.ReportSummary)
def report_summary(scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return families_crud.report_summary(db, scope.wedding_id)   # Cifras de asistencia y respuestas.
