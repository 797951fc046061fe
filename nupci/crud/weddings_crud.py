# nupci/crud/weddings_crud.py

# =================================================================================
# 💍 CRUD DE BODAS (planner) + administradores de boda + plantilla de invitación
# ---------------------------------------------------------------------------------
# - Un planner solo ve y modifica sus propias bodas (404 si no es suya).
# - Borrado lógico (deleted_at/deleted_by) con restauración.
# - Cualquier cambio que afecte a la página RSVP invalida su caché.
# =================================================================================

from typing import List, Optional

from fastapi import status
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nupci import cache, models, schemas
from nupci.core.errors import NupciError, not_found
from nupci.crud.families_crud import get_wedding_stats
from nupci.db import transaction
from nupci.services import short_url
from nupci.utils.timeutils import utcnow


# =================================================================================
# 🔎 Lectura
# =================================================================================
def get_planner_wedding(
    db: Session, planner_id: str, wedding_id: str, *, include_deleted: bool = False
) -> models.Wedding:
    wedding = db.get(models.Wedding, wedding_id)
    if wedding is None or wedding.planner_id != planner_id:
        raise not_found("Boda", "WEDDING_NOT_FOUND")
    if wedding.deleted_at is not None and not include_deleted:
        raise not_found("Boda", "WEDDING_NOT_FOUND")
    return wedding


def with_stats(db: Session, wedding: models.Wedding) -> dict:
    data = schemas.WeddingOut.model_validate(wedding).model_dump()
    data["stats"] = get_wedding_stats(db, wedding.id)
    data["planner_name"] = wedding.planner.name if wedding.planner else None
    return data


def list_planner_weddings(db: Session, planner_id: str, *, deleted: bool = False) -> List[dict]:
    query = db.query(models.Wedding).filter(models.Wedding.planner_id == planner_id)
    if deleted:
        query = query.filter(models.Wedding.deleted_at.isnot(None))
    else:
        query = query.filter(models.Wedding.deleted_at.is_(None))
    return [with_stats(db, w) for w in query.order_by(models.Wedding.wedding_date).all()]


def list_all_weddings(db: Session) -> List[dict]:
    weddings = (
        db.query(models.Wedding)
        .filter(models.Wedding.deleted_at.is_(None))
        .order_by(models.Wedding.wedding_date)
        .all()
    )
    return [with_stats(db, w) for w in weddings]


# =================================================================================
# ✍️ Escritura
# =================================================================================
def _check_theme(db: Session, planner_id: str, theme_id: Optional[str]) -> None:
    if theme_id is None:
        return
    theme = db.get(models.Theme, theme_id)
    if theme is None or not (theme.is_system_theme or theme.planner_id == planner_id):
        raise not_found("Tema", "THEME_NOT_FOUND")


def create_wedding(db: Session, planner_id: str, payload: schemas.WeddingCreate) -> models.Wedding:
    _check_theme(db, planner_id, payload.theme_id)
    with transaction(db):
        wedding = models.Wedding(planner_id=planner_id, created_by=planner_id, **payload.model_dump())
        db.add(wedding)
        db.flush()
        short_url.ensure_wedding_initials(db, wedding)
    db.refresh(wedding)
    logger.info("Boda creada id={} planner={} iniciales={}", wedding.id, planner_id, wedding.short_url_initials)
    return wedding


def update_wedding(
    db: Session, wedding: models.Wedding, payload: schemas.WeddingUpdate, actor_id: str
) -> models.Wedding:
    data = payload.model_dump(exclude_unset=True)
    for required in ("couple_names", "wedding_date", "wedding_time", "location", "rsvp_cutoff_date",
                     "payment_tracking_mode", "default_language", "status"):
        if required in data and data[required] is None:
            raise NupciError("VALIDATION_ERROR", f"El campo {required} no puede ser null")
    if "theme_id" in data:
        _check_theme(db, wedding.planner_id, data["theme_id"])

    wedding_date = data.get("wedding_date", wedding.wedding_date)
    cutoff = data.get("rsvp_cutoff_date", wedding.rsvp_cutoff_date)
    if cutoff > wedding_date:
        raise NupciError("VALIDATION_ERROR", "La fecha límite de RSVP debe ser anterior a la boda")

    with transaction(db):
        for field, value in data.items():
            setattr(wedding, field, value)
        wedding.updated_by = actor_id
    db.refresh(wedding)
    cache.invalidate_rsvp_cache(wedding.id)
    return wedding


def soft_delete_wedding(db: Session, wedding: models.Wedding, actor_id: str) -> None:
    wedding.deleted_at = utcnow()
    wedding.deleted_by = actor_id
    db.commit()
    cache.invalidate_rsvp_cache(wedding.id)
    logger.info("Boda {} borrada (lógico) por {}", wedding.id, actor_id)


def restore_wedding(db: Session, wedding: models.Wedding) -> models.Wedding:
    if wedding.deleted_at is None:
        raise NupciError("WEDDING_NOT_DELETED", "La boda no está borrada")
    wedding.deleted_at = None
    wedding.deleted_by = None
    db.commit()
    db.refresh(wedding)
    cache.invalidate_rsvp_cache(wedding.id)
    return wedding


# =================================================================================
# 👰 Administradores de la boda (la pareja)
# =================================================================================
def list_admins(db: Session, wedding_id: str) -> List[models.WeddingAdmin]:
    return (
        db.query(models.WeddingAdmin)
        .filter(models.WeddingAdmin.wedding_id == wedding_id)
        .order_by(models.WeddingAdmin.invited_at)
        .all()
    )


def add_admin(
    db: Session, wedding_id: str, payload: schemas.WeddingAdminCreate, invited_by: str
) -> models.WeddingAdmin:
    admin = models.WeddingAdmin(
        wedding_id=wedding_id,
        email=payload.email.lower(),
        name=payload.name,
        preferred_language=payload.preferred_language,
        invited_by=invited_by,
    )
    try:
        with transaction(db):
            db.add(admin)
    except IntegrityError:
        raise NupciError("ADMIN_EXISTS", "Ya existe un administrador con ese email en esta boda",
                         status.HTTP_409_CONFLICT)
    db.refresh(admin)
    return admin


def remove_admin(db: Session, wedding_id: str, admin_id: str) -> None:
    admin = db.get(models.WeddingAdmin, admin_id)
    if admin is None or admin.wedding_id != wedding_id:
        raise not_found("Administrador", "ADMIN_NOT_FOUND")
    db.delete(admin)
    db.commit()


# =================================================================================
# 🖼️ Plantilla de invitación de la boda
# =================================================================================
def save_invitation_template(
    db: Session, wedding: models.Wedding, payload: schemas.InvitationTemplateIn
) -> models.InvitationTemplate:
    """Crea o actualiza la plantilla propia de la boda; las de sistema se copian, nunca se editan."""
    template = wedding.invitation_template
    with transaction(db):
        if template is None or template.is_system_template:
            template = models.InvitationTemplate(planner_id=wedding.planner_id, name=payload.name,
                                                 design=payload.design)
            db.add(template)
            db.flush()
            wedding.invitation_template_id = template.id
        else:
            template.name = payload.name
            template.design = payload.design
    db.refresh(template)
    cache.invalidate_rsvp_cache_for_template(db, template.id)
    return template
