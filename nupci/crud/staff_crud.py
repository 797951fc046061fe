# nupci/crud/staff_crud.py

# =================================================================================
# 👑 CUENTAS DEL PERSONAL (master admins y planners) + analítica de plataforma
# =================================================================================

from typing import List

from fastapi import status
from loguru import logger
from sqlalchemy import distinct, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nupci import models, schemas
from nupci.core.errors import NupciError, not_found
from nupci.db import transaction
from nupci.models import WeddingStatusEnum


def create_master_admin(db: Session, payload: schemas.MasterAdminCreate) -> models.MasterAdmin:
    admin = models.MasterAdmin(
        email=payload.email.lower(), name=payload.name, preferred_language=payload.preferred_language
    )
    try:
        with transaction(db):
            db.add(admin)
    except IntegrityError:
        raise NupciError("EMAIL_EXISTS", "Ya existe un master admin con ese email", status.HTTP_409_CONFLICT)
    db.refresh(admin)
    logger.info("Master admin creado id={}", admin.id)
    return admin


# =================================================================================
# 🗂️ Planners
# =================================================================================
def planner_out(db: Session, planner: models.WeddingPlanner) -> dict:
    data = schemas.PlannerOut.model_validate(planner).model_dump()
    data["wedding_count"] = (
        db.query(func.count(models.Wedding.id))
        .filter(models.Wedding.planner_id == planner.id, models.Wedding.deleted_at.is_(None))
        .scalar()
        or 0
    )
    return data


def list_planners(db: Session) -> List[dict]:
    planners = db.query(models.WeddingPlanner).order_by(models.WeddingPlanner.name).all()
    return [planner_out(db, p) for p in planners]


def create_planner(db: Session, payload: schemas.PlannerCreate, created_by: str) -> models.WeddingPlanner:
    planner = models.WeddingPlanner(
        email=payload.email.lower(),
        name=payload.name,
        preferred_language=payload.preferred_language,
        created_by=created_by,
    )
    try:
        with transaction(db):
            db.add(planner)
    except IntegrityError:
        raise NupciError("EMAIL_EXISTS", "Ya existe un planner con ese email", status.HTTP_409_CONFLICT)
    db.refresh(planner)
    logger.info("Planner creado id={} por master={}", planner.id, created_by)
    return planner


def update_planner(db: Session, planner_id: str, payload: schemas.PlannerUpdate) -> models.WeddingPlanner:
    planner = db.get(models.WeddingPlanner, planner_id)
    if planner is None:
        raise not_found("Planner", "PLANNER_NOT_FOUND")
    data = payload.model_dump(exclude_unset=True)
    for field, value in data.items():
        if value is None:
            raise NupciError("VALIDATION_ERROR", f"El campo {field} no puede ser null")
        setattr(planner, field, value)
    db.commit()
    db.refresh(planner)
    if "enabled" in data:
        logger.info("Planner {} {}", planner.id, "habilitado" if planner.enabled else "deshabilitado")
    return planner


# =================================================================================
# 📈 Analítica de plataforma
# =================================================================================
def platform_analytics(db: Session) -> dict:
    active_weddings = models.Wedding.deleted_at.is_(None)
    families = (
        db.query(func.count(models.Family.id))
        .join(models.Wedding, models.Wedding.id == models.Family.wedding_id)
        .filter(active_weddings)
        .scalar()
        or 0
    )
    member_query = (
        db.query(models.FamilyMember)
        .join(models.Family, models.Family.id == models.FamilyMember.family_id)
        .join(models.Wedding, models.Wedding.id == models.Family.wedding_id)
        .filter(active_weddings)
    )
    responded = (
        db.query(func.count(distinct(models.FamilyMember.family_id)))
        .join(models.Family, models.Family.id == models.FamilyMember.family_id)
        .join(models.Wedding, models.Wedding.id == models.Family.wedding_id)
        .filter(active_weddings, models.FamilyMember.attending.isnot(None))
        .scalar()
        or 0
    )
    return {
        "planners": db.query(func.count(models.WeddingPlanner.id)).scalar() or 0,
        "active_planners": (
            db.query(func.count(models.WeddingPlanner.id)).filter(models.WeddingPlanner.enabled.is_(True)).scalar()
            or 0
        ),
        "weddings": db.query(func.count(models.Wedding.id)).filter(active_weddings).scalar() or 0,
        "active_weddings": (
            db.query(func.count(models.Wedding.id))
            .filter(active_weddings, models.Wedding.status == WeddingStatusEnum.ACTIVE)
            .scalar()
            or 0
        ),
        "families": families,
        "members": member_query.count(),
        "attending": member_query.filter(models.FamilyMember.attending.is_(True)).count(),
        "rsvp_response_rate": round(responded / families * 100, 1) if families else 0.0,
    }
