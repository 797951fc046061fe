# nupci/routers/planner.py

# =================================================================================
# 🗂️ Router del Planner: sus bodas, las parejas que las administran y sus temas
# ---------------------------------------------------------------------------------
# Las rutas de invitados, recordatorios, plantillas y notificaciones de una boda
# se montan aparte bajo /api/planner/weddings/{wedding_id} (ver main.py).
# =================================================================================

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.security import CurrentUser, require_planner
from nupci.crud import themes_crud, weddings_crud
from nupci.db import get_db

router = APIRouter(
    prefix="/api/planner",
    tags=["planner"],
)


# ------------------------------------ Bodas ------------------------------------

@router.get("/weddings", response_model=List[schemas.WeddingWithStats])
def list_weddings(user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    return weddings_crud.list_planner_weddings(db, user.id)   # Solo las bodas del planner autenticado.


@router.post("/weddings", response_model=schemas.WeddingWithStats, status_code=status.HTTP_201_CREATED)
def create_wedding(
    payload: schemas.WeddingCreate,
    user: CurrentUser = Depends(require_planner),
    db: Session = Depends(get_db),
):
    wedding = weddings_crud.create_wedding(db, user.id, payload)
    return weddings_crud.with_stats(db, wedding)


@router.get("/weddings/deleted", response_model=List[schemas.WeddingWithStats])
def list_deleted_weddings(user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    return weddings_crud.list_planner_weddings(db, user.id, deleted=True)   # Papelera: bodas borradas aún restaurables.


@router.get("/weddings/{wedding_id}", response_model=schemas.WeddingWithStats)
def get_wedding(wedding_id: str, user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id)
    return weddings_crud.with_stats(db, wedding)


@router.patch("/weddings/{wedding_id}", response_model=schemas.WeddingWithStats)
def update_wedding(
    wedding_id: str,
    payload: schemas.WeddingUpdate,
    user: CurrentUser = Depends(require_planner),
    db: Session = Depends(get_db),
):
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id)
    wedding = weddings_crud.update_wedding(db, wedding, payload, user.id)
    return weddings_crud.with_stats(db, wedding)


@router.delete("/weddings/{wedding_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_wedding(wedding_id: str, user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    """Borrado lógico: la boda desaparece de los listados y sus enlaces dejan de funcionar."""
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id)
    weddings_crud.soft_delete_wedding(db, wedding, user.id)


@router.post("/weddings/{wedding_id}/restore", response_model=schemas.WeddingWithStats)
def restore_wedding(wedding_id: str, user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id, include_deleted=True)
    wedding = weddings_crud.restore_wedding(db, wedding)
    return weddings_crud.with_stats(db, wedding)


# ------------------------------ Admins de la boda ------------------------------

@router.get("/weddings/{wedding_id}/admins", response_model=List[schemas.WeddingAdminOut])
def list_admins(wedding_id: str, user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id)
    return weddings_crud.list_admins(db, wedding.id)


@router.post(
    "/weddings/{wedding_id}/admins",
    response_model=schemas.WeddingAdminOut,
    status_code=status.HTTP_201_CREATED,
)
def add_admin(
    wedding_id: str,
    payload: schemas.WeddingAdminCreate,
    user: CurrentUser = Depends(require_planner),
    db: Session = Depends(get_db),
):
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id)
    return weddings_crud.add_admin(db, wedding.id, payload, invited_by=user.id)


@router.delete("/weddings/{wedding_id}/admins/{admin_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_admin(
    wedding_id: str,
    admin_id: str,
    user: CurrentUser = Depends(require_planner),
    db: Session = Depends(get_db),
):
    wedding = weddings_crud.get_planner_wedding(db, user.id, wedding_id)
    weddings_crud.remove_admin(db, wedding.id, admin_id)


# ------------------------------------ Temas ------------------------------------

@router.get("/themes", response_model=List[schemas.ThemeOut])
def list_themes(user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    return themes_crud.list_themes(db, user.id)


@router.post("/themes", response_model=schemas.ThemeOut, status_code=status.HTTP_201_CREATED)
def create_theme(
    payload: schemas.ThemeCreate,
    user: CurrentUser = Depends(require_planner),
    db: Session = Depends(get_db),
):
    return themes_crud.create_theme(db, user.id, payload)


@router.patch("/themes/{theme_id}", response_model=schemas.ThemeOut)
def update_theme(
    theme_id: str,
    payload: schemas.ThemeUpdate,
    user: CurrentUser = Depends(require_planner),
    db: Session = Depends(get_db),
):
    return themes_crud.update_theme(db, user.id, theme_id, payload)


@router.delete("/themes/{theme_id}")
def delete_theme(theme_id: str, user: CurrentUser = Depends(require_planner), db: Session = Depends(get_db)):
    affected = themes_crud.delete_theme(db, user.id, theme_id)
    return {"deleted": True, "weddings_updated": affected}   # Bodas que vuelven al tema por defecto.
