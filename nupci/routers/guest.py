# nupci/routers/guest.py

# =================================================================================
# 💌 Router: Endpoints del Invitado (enlace mágico)
# ---------------------------------------------------------------------------------
# El invitado no tiene cuenta: el magic token de su familia es su credencial.
# - GET   /api/guest/{token}            → datos de la página de confirmación.
# - POST  /api/guest/{token}/rsvp       → envía/actualiza la confirmación.
# - PATCH /api/guest/{token}/language   → cambia el idioma preferido.
# - POST  /api/guest/{token}/member     → añade un acompañante (si la boda lo permite).
# - POST  /api/guest/lookup             → recupera la invitación (iniciales + contacto).
# - GET   /api/guest/inv/{initials}/{code} → resuelve un enlace corto.
# =================================================================================

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy.orm import Session

from nupci import schemas
from nupci.core.errors import http_error
from nupci.db import get_db
from nupci.rate_limit import enforce, get_limits_from_env
from nupci.services import magic_link, rsvp, rsvp_page
from nupci.services.magic_link import GuestIdentity, MagicLinkValidation
from nupci.services.short_url import resolve_short_url

router = APIRouter(
    prefix="/api/guest",
    tags=["guest"],
)

LOOKUP_MAX, LOOKUP_WINDOW = get_limits_from_env("LOOKUP_RL", default_max=10, default_window=60)


def _validate(db: Session, token: str) -> MagicLinkValidation:
    validation = magic_link.validate_magic_link(db, token)
    if not validation.valid:
        logger.info("Enlace de invitado rechazado | error={}", validation.error)
        raise http_error(validation.http_status, validation.error, validation.message)
    return validation


def _identity(db: Session, token: str) -> GuestIdentity:
    return _validate(db, token).identity


# ---------------------------- Rutas fijas (antes de /{token}) ----------------------------

@router.get("/inv/{initials}/{code}", response_class=RedirectResponse, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
def resolve_short_link(initials: str, code: str, channel: Optional[str] = None, db: Session = Depends(get_db)):
    """Redirige /inv/{iniciales}/{código} a la página de confirmación de la familia."""
    token = resolve_short_url(db, initials, code)                                   # Caché TTL → BD.
    if token is None:
        raise http_error(status.HTTP_404_NOT_FOUND, "SHORT_URL_NOT_FOUND", "Invitation link not found")
    url = magic_link.rsvp_url(token, magic_link.parse_channel(channel))             # Conserva el canal de origen.
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.post("/lookup", response_model=schemas.GuestLookupResponse)
def lookup(payload: schemas.GuestLookupRequest, request: Request, db: Session = Depends(get_db)):
    enforce(request, "guest_lookup", LOOKUP_MAX, LOOKUP_WINDOW)
    url = rsvp.lookup_guest(db, payload.initials, payload.contact)
    return {"found": url is not None, "url": url}


# ---------------------------------- Página RSVP ----------------------------------

@router.get("/{token}", response_model=schemas.RSVPPageResponse)
def get_rsvp_page(token: str, channel: Optional[str] = None, db: Session = Depends(get_db)):
    validation = _validate(db, token)
    return rsvp_page.get_rsvp_page_data(db, validation, magic_link.parse_channel(channel))


@router.post("/{token}/rsvp", response_model=schemas.RSVPSubmitResponse)
def submit_rsvp(token: str, payload: schemas.RSVPSubmitRequest, db: Session = Depends(get_db)):
    return rsvp.submit_rsvp(db, _identity(db, token), payload)


@router.patch("/{token}/language", response_model=schemas.LanguageUpdateResponse)
def update_language(token: str, payload: schemas.LanguageUpdateRequest, db: Session = Depends(get_db)):
    family = rsvp.update_language(db, _identity(db, token), payload.language)
    return {"success": True, "preferred_language": family.preferred_language}


@router.post("/{token}/member", response_model=schemas.MemberOut, status_code=status.HTTP_201_CREATED)
def add_member(token: str, payload: schemas.GuestAddMemberRequest, db: Session = Depends(get_db)):
    return rsvp.add_family_member(db, _identity(db, token), payload)
