# nupci/routers/templates.py
# =============================================================================
# ✉️ Plantillas de mensajes de UNA boda (invitación, recordatorio, confirmación)
# =============================================================================

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.security import WeddingScope, get_wedding_scope
from nupci.crud import families_crud
from nupci.db import get_db
from nupci.models import ChannelEnum
from nupci.services import magic_link, templates

router = APIRouter(tags=["templates"])


@router.get("/templates", response_model=List[schemas.MessageTemplateOut])
def list_templates(scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    """Todas las combinaciones tipo × idioma × canal; las no personalizadas llevan is_default=true."""
    return templates.list_templates(db, scope.wedding_id)   # Guardadas o, si faltan, las de por defecto.


@router.put("/templates", response_model=schemas.MessageTemplateOut)
def upsert_template(
    payload: schemas.MessageTemplateUpsert,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return templates.upsert_template(db, scope.wedding_id, payload)   # Una por tipo, canal e idioma.


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(template_id: str, scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    templates.delete_template(db, scope.wedding_id, template_id)


@router.post("/templates/preview", response_model=schemas.TemplatePreviewResponse)
def preview_template(
    payload: schemas.TemplatePreviewRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    wedding = scope.wedding
    if payload.family_id:
        family = families_crud.get_family(db, wedding.id, payload.family_id)
        link = magic_link.rsvp_url(family.magic_token, ChannelEnum.EMAIL) if family.magic_token else ""
        variables = templates.build_variables(family, wedding, link)
    else:
        language = payload.language.value if payload.language else wedding.default_language.value
        variables = templates.sample_variables(wedding, language)

    text = f"{payload.subject or ''} {payload.body}"
    return {
        "subject": templates.render_template(payload.subject, variables) if payload.subject else None,
        "body": templates.render_template(payload.body, variables),
        "placeholders": templates.get_placeholders(text),
        "unknown_placeholders": templates.unknown_placeholders(text),
    }
