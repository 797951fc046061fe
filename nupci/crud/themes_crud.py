# nupci/crud/themes_crud.py

# =================================================================================
# 🎨 TEMAS DEL PLANNER
# ---------------------------------------------------------------------------------
# El planner ve sus temas + los de sistema; solo puede editar/borrar los suyos.
# Editar o borrar un tema invalida la caché RSVP de las bodas que lo usan.
# =================================================================================

from typing import List

from fastapi import status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from nupci import cache, models, schemas
from nupci.core.errors import NupciError, not_found
from nupci.db import transaction


def list_themes(db: Session, planner_id: str) -> List[models.Theme]:
    return (
        db.query(models.Theme)
        .filter(or_(models.Theme.planner_id == planner_id, models.Theme.is_system_theme.is_(True)))
        .order_by(models.Theme.is_system_theme.desc(), models.Theme.name)
        .all()
    )


def get_own_theme(db: Session, planner_id: str, theme_id: str) -> models.Theme:
    theme = db.get(models.Theme, theme_id)
    if theme is None or not (theme.is_system_theme or theme.planner_id == planner_id):
        raise not_found("Tema", "THEME_NOT_FOUND")
    if theme.is_system_theme:
        raise NupciError("FORBIDDEN", "Los temas de sistema no se pueden modificar", status.HTTP_403_FORBIDDEN)
    return theme


def _clear_default(db: Session, planner_id: str) -> None:
    db.query(models.Theme).filter(
        models.Theme.planner_id == planner_id, models.Theme.is_default.is_(True)
    ).update({"is_default": False}, synchronize_session=False)


def create_theme(db: Session, planner_id: str, payload: schemas.ThemeCreate) -> models.Theme:
    with transaction(db):
        if payload.is_default:
            _clear_default(db, planner_id)
        theme = models.Theme(planner_id=planner_id, **payload.model_dump())
        db.add(theme)
    db.refresh(theme)
    return theme


def update_theme(db: Session, planner_id: str, theme_id: str, payload: schemas.ThemeUpdate) -> models.Theme:
    theme = get_own_theme(db, planner_id, theme_id)
    data = payload.model_dump(exclude_unset=True)
    if "name" in data and not data["name"]:
        raise NupciError("VALIDATION_ERROR", "El nombre del tema es obligatorio")
    with transaction(db):
        if data.get("is_default"):
            _clear_default(db, planner_id)
        for field, value in data.items():
            if field == "config" and value is None:
                value = {}
            setattr(theme, field, value)
    db.refresh(theme)
    cache.invalidate_rsvp_cache_for_theme(db, theme.id)
    return theme


def delete_theme(db: Session, planner_id: str, theme_id: str) -> int:
    """Borra el tema; las bodas que lo usaban vuelven al tema por defecto. Devuelve cuántas eran."""
    theme = get_own_theme(db, planner_id, theme_id)
    affected = cache.invalidate_rsvp_cache_for_theme(db, theme.id)
    with transaction(db):
        db.query(models.Wedding).filter(models.Wedding.theme_id == theme.id).update(
            {"theme_id": None}, synchronize_session=False
        )
        db.delete(theme)
    return affected
