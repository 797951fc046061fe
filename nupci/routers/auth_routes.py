# nupci/routers/auth_routes.py

# =================================================================================
# 🔑 ROUTER DE AUTENTICACIÓN DEL PERSONAL (master admins, planners, parejas)
# ---------------------------------------------------------------------------------
# - request-access: envía por email un enlace de acceso por cada cuenta que
#   coincida con el email. Respuesta SIEMPRE neutra (anti-enumeración).
# - magic-login: canjea el token del enlace por un access token de sesión.
# - me: datos del usuario autenticado.
# - Rate limit por IP en request-access.
# =================================================================================

from typing import List, Tuple
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, status
from jose import JWTError
from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from nupci import auth, config, mailer, models, schemas
from nupci.core.errors import http_error
from nupci.core.security import CurrentUser, get_current_user, load_user
from nupci.db import get_db
from nupci.rate_limit import enforce, get_limits_from_env
from nupci.utils.i18n import resolve_lang
from nupci.utils.timeutils import utcnow

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)

# --- Configuración de rate limit desde .env (con defaults sensatos) ---
REQUEST_MAX, REQUEST_WINDOW = get_limits_from_env("REQUEST_RL", default_max=3, default_window=120)

NEUTRAL_MESSAGE = "If the email belongs to an account, you'll receive a sign-in link shortly"


def _matching_accounts(db: Session, email: str) -> List[Tuple[str, object, str]]:
    """(rol, fila, ámbito legible) para cada cuenta con ese email que puede entrar."""
    email = email.strip().lower()
    accounts: List[Tuple[str, object, str]] = []

    master = db.query(models.MasterAdmin).filter(func.lower(models.MasterAdmin.email) == email).first()
    if master:
        accounts.append((auth.ROLE_MASTER_ADMIN, master, "Nupci Master"))

    planner = db.query(models.WeddingPlanner).filter(func.lower(models.WeddingPlanner.email) == email).first()
    if planner and planner.enabled:
        accounts.append((auth.ROLE_PLANNER, planner, "Nupci Planner"))

    admins = (
        db.query(models.WeddingAdmin)
        .join(models.Wedding, models.Wedding.id == models.WeddingAdmin.wedding_id)
        .filter(func.lower(models.WeddingAdmin.email) == email, models.Wedding.deleted_at.is_(None))
        .all()
    )
    for admin in admins:
        accounts.append((auth.ROLE_WEDDING_ADMIN, admin, admin.wedding.couple_names))
    return accounts


# =================================================================================
# ✉️ REQUEST-ACCESS
# =================================================================================
@router.post("/request-access", response_model=schemas.RequestAccessResponse)
def request_access(
    payload: schemas.RequestAccessPayload,
    request: Request,
    db: Session = Depends(get_db),
):
    enforce(request, "request_access", REQUEST_MAX, REQUEST_WINDOW)

    accounts = _matching_accounts(db, payload.email)
    if not accounts:
        logger.warning("AUTH/ACCESS → sin cuentas para email='{}'", mailer.mask_email(payload.email))

    accept_lang = request.headers.get("Accept-Language")
    for role, row, scope in accounts:
        wedding_id = getattr(row, "wedding_id", None)
        token = auth.create_login_token(row.id, role, row.email, wedding_id=wedding_id)
        url = f"{config.APP_URL}/auth/verify?{urlencode({'token': token})}"
        lang = resolve_lang(payload.lang, row.preferred_language, accept_lang)
        mailer.send_login_link_email(
            row.email, row.name, lang, url, scope, auth.LOGIN_LINK_EXPIRE_MINUTES
        )
        logger.info("AUTH/ACCESS → enlace enviado | role={} | id={}", role, row.id)

    return {"ok": True, "message": NEUTRAL_MESSAGE}   # Misma respuesta exista o no la cuenta.


# =================================================================================
# 🔓 MAGIC-LOGIN (canjea el token del enlace por un access token)
# =================================================================================
@router.post("/magic-login", response_model=schemas.Token)
def magic_login(payload: schemas.LoginLinkPayload, db: Session = Depends(get_db)):
    try:
        claims = auth.decode_login_token(payload.token)
    except (JWTError, ValueError):
        raise http_error(status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "The sign-in link is invalid or has expired")

    role = claims["role"]
    row = load_user(db, claims["sub"], role, claims.get("wedding_id"))
    if row is None:
        raise http_error(status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "The sign-in link is invalid or has expired")
    if role == auth.ROLE_PLANNER and not row.enabled:
        raise http_error(status.HTTP_403_FORBIDDEN, "PLANNER_DISABLED", "La cuenta del planner está deshabilitada")
    if role == auth.ROLE_WEDDING_ADMIN and row.wedding.deleted_at is not None:
        raise http_error(status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "The sign-in link is invalid or has expired")

    now = utcnow()
    row.last_login_at = now
    if role == auth.ROLE_WEDDING_ADMIN and row.accepted_at is None:
        row.accepted_at = now                      # Primer acceso de la pareja = invitación aceptada.
    db.commit()

    wedding_id = getattr(row, "wedding_id", None)
    logger.info("AUTH/LOGIN → sesión iniciada | role={} | id={}", role, row.id)
    return {
        "access_token": auth.create_access_token(row.id, role, wedding_id=wedding_id),
        "token_type": "bearer",
        "role": role,
        "wedding_id": wedding_id,
        "expires_in": auth.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }


@router.get("/me", response_model=schemas.MeResponse)
def me(user: CurrentUser = Depends(get_current_user)):
    return user   # Datos del token ya verificados.
