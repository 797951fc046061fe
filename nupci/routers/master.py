# nupci/routers/master.py

# =================================================================================
# 👑 Router del Master Admin (operador de la plataforma)
# ---------------------------------------------------------------------------------
# - POST /api/master/admins se protege con la cabecera x-admin-key (bootstrap).
# - El resto exige un access token con rol master_admin.
# =================================================================================

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.security import CurrentUser, require_admin, require_master_admin
from nupci.crud import staff_crud, weddings_crud
from nupci.db import get_db

router = APIRouter(
    prefix="/api/master",
    tags=["master"],
)


@router.post(
    "/admins",
    response_model=schemas.MasterAdminOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_master_admin(payload: schemas.MasterAdminCreate, db: Session = Depends(get_db)):
    return staff_crud.create_master_admin(db, payload)   # Solo otro master admin puede crearlo.


# ----------------------------------- Planners ------------------------------------

@router.get("/planners", response_model=List[schemas.PlannerOut])
def list_planners(_: CurrentUser = Depends(require_master_admin), db: Session = Depends(get_db)):
    return staff_crud.list_planners(db)


@router.post("/planners", response_model=schemas.PlannerOut, status_code=status.HTTP_201_CREATED)
def create_planner(
    payload: schemas.PlannerCreate,
    user: CurrentUser = Depends(require_master_admin),
    db: Session = Depends(get_db),
):
    planner = staff_crud.create_planner(db, payload, created_by=user.id)
    return staff_crud.planner_out(db, planner)


@router.patch("/planners/{planner_id}", response_model=schemas.PlannerOut)
def update_planner(
    planner_id: str,
    payload: schemas.PlannerUpdate,
    _: CurrentUser = Depends(require_master_admin),
    db: Session = Depends(get_db),
):
    """Cambia nombre, idioma o estado; un planner deshabilitado pierde el acceso al instante."""
    planner = staff_crud.update_planner(db, planner_id, payload)
    return staff_crud.planner_out(db, planner)


# ------------------------------- Bodas y analítica -------------------------------

@router.get("/weddings", response_model=List[schemas.WeddingWithStats])
def list_weddings(_: CurrentUser = Depends(require_master_admin), db: Session = Depends(get_db)):
    return weddings_crud.list_all_weddings(db)   # Incluye bodas de todos los planners.


@router.get("/analytics", response_model=schemas.PlatformAnalytics)
def analytics(_: CurrentUser = Depends(require_master_admin), db: Session = Depends(get_db)):
    return staff_crud.platform_analytics(db)   # Totales de toda la plataforma.
