# nupci/routers/guests.py
# =============================================================================
# 👨‍👩‍👧 Rutas de la lista de invitados de UNA boda
# - Se montan dos veces (ver main.py):
#     /api/admin/...                          → la pareja (boda del token)
#     /api/planner/weddings/{wedding_id}/...  → el planner dueño de la boda
# - get_wedding_scope resuelve la boda y comprueba la propiedad antes de nada.
# - /guest-additions: revisión de los acompañantes que añadieron los invitados.
# =============================================================================

from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.security import WeddingScope, get_wedding_scope
from nupci.crud import families_crud
from nupci.db import get_db
from nupci.guestlist import excel, vcf
from nupci.models import ChannelEnum
from nupci.services import magic_link

router = APIRouter(tags=["guests"])


# --------------------------------- Listado ------------------------------------

@router.get("/guests", response_model=schemas.FamilyListResponse)
def list_guests(
    search: Optional[str] = None,
    rsvp_status: Optional[Literal["pending", "submitted"]] = None,
    attending: Optional[Literal["yes", "no", "partial"]] = None,
    channel: Optional[ChannelEnum] = None,
    invited_by_admin_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return families_crud.list_families(
        db,
        scope.wedding_id,
        search=search,
        rsvp=rsvp_status,
        attendance=attending,
        channel=channel,
        invited_by_admin_id=invited_by_admin_id,
        page=page,
        limit=limit,
    )


# ---------------------- Import / export (antes de /{id}) ----------------------

@router.get("/guests/export")
def export_guests(
    fmt: Literal["xlsx", "csv"] = Query("xlsx", alias="format"),
    include_rsvp: bool = True,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    content, filename, media_type = excel.export_guests(db, scope.wedding, fmt, include_rsvp)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/guests/template")
def download_template(scope: WeddingScope = Depends(get_wedding_scope)):
    return Response(
        content=excel.build_template(),
        media_type=excel.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="guest_import_template.xlsx"'},
    )


@router.post("/guests/import", response_model=schemas.ImportResult)
def import_guests(
    file: UploadFile = File(...),
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    """Importa familias desde Excel/CSV. Todo-o-nada: con un solo error no se crea nada."""
    content = file.file.read()
    return excel.import_guests(db, scope.wedding, content, file.filename or "guests.xlsx", scope.admin_id)


@router.post("/guests/import-vcf", response_model=schemas.VCFImportResult)
def import_guests_vcf(
    file: UploadFile = File(...),
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    text = file.file.read().decode("utf-8", errors="replace")
    return vcf.import_vcf(db, scope.wedding, text, scope.admin_id, scope.user.name)


# ----------------------------- Operaciones masivas ----------------------------

@router.post("/guests/bulk-update", response_model=schemas.BulkUpdateResult)
def bulk_update(
    payload: schemas.BulkUpdateRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return families_crud.bulk_update_families(db, scope.wedding_id, payload)


@router.post("/guests/bulk-delete", response_model=schemas.BulkDeleteResult)
def bulk_delete(
    payload: schemas.BulkDeleteRequest,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return families_crud.bulk_delete_families(db, scope.wedding_id, payload.family_ids)


@router.delete("/guests/delete-all", response_model=schemas.DeleteAllResult)
def delete_all(scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return families_crud.delete_all_families(db, scope.wedding_id)


# ------------------------------- Familia única --------------------------------

@router.post("/guests", response_model=schemas.FamilyOut, status_code=status.HTTP_201_CREATED)
def create_guest(
    payload: schemas.FamilyCreate,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return families_crud.create_family(db, scope.wedding, payload, scope.admin_id)


@router.get("/guests/{family_id}", response_model=schemas.FamilyOut)
def get_guest(family_id: str, scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return families_crud.get_family(db, scope.wedding_id, family_id)


@router.patch("/guests/{family_id}", response_model=schemas.FamilyOut)
def update_guest(
    family_id: str,
    payload: schemas.FamilyUpdate,
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return families_crud.update_family(db, scope.wedding, family_id, payload)


@router.delete("/guests/{family_id}", response_model=schemas.FamilyDeleteResult)
def delete_guest(family_id: str, scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return families_crud.delete_family(db, scope.wedding_id, family_id)


# ------------------------------- Enlaces mágicos ------------------------------

def _link_out(db: Session, scope: WeddingScope, family_id: str) -> dict:
    short = magic_link.generate_magic_link(db, family_id, wedding_id=scope.wedding_id)
    family = families_crud.get_family(db, scope.wedding_id, family_id)
    return {
        "family_id": family.id,
        "magic_token": family.magic_token,
        "url": magic_link.rsvp_url(family.magic_token),
        "short_url": short,
    }


@router.get("/guests/{family_id}/magic-link", response_model=schemas.MagicLinkOut)
def get_magic_link(family_id: str, scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return _link_out(db, scope, family_id)


@router.post("/guests/{family_id}/regenerate-link", response_model=schemas.MagicLinkOut)
def regenerate_link(family_id: str, scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    """Emite un token nuevo: el enlace anterior deja de funcionar al instante."""
    magic_link.regenerate_magic_token(db, family_id, scope.wedding_id)
    return _link_out(db, scope, family_id)


# -------------------- Acompañantes añadidos por los invitados --------------------

@router.get("/guest-additions", response_model=schemas.GuestAdditionListResponse)
def list_guest_additions(scope: WeddingScope = Depends(get_wedding_scope), db: Session = Depends(get_db)):
    return families_crud.list_guest_additions(db, scope.wedding, scope.actor_id)   # is_new según quien consulta.


@router.patch("/guest-additions/{member_id}", response_model=schemas.MemberOut)
def review_guest_addition(
    member_id: str,
    payload: schemas.GuestAdditionReview,                                         # Corrección + mark_reviewed.
    scope: WeddingScope = Depends(get_wedding_scope),
    db: Session = Depends(get_db),
):
    return families_crud.review_guest_addition(db, scope.wedding_id, member_id, payload, scope.actor_id)
