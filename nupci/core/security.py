# nupci/core/security.py

# =================================================================================
# 🛡️ DEPENDENCIAS DE SEGURIDAD
# ---------------------------------------------------------------------------------
# - require_admin: clave de operador (cabecera x-admin-key) para el bootstrap.
# - get_current_user / require_roles: sesión JWT del personal y control de rol.
# - get_wedding_scope: resuelve la boda sobre la que actúa la petición y
#   comprueba la propiedad (tenant) antes de tocar ningún dato.
# =================================================================================

import os
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from fastapi.security.api_key import APIKeyHeader
from loguru import logger
from sqlalchemy.orm import Session

from nupci import auth, models
from nupci.core.errors import http_error
from nupci.db import get_db

ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")
_api_key_header = APIKeyHeader(name="x-admin-key", auto_error=False)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/magic-login", auto_error=False)


def require_admin(api_key: str = Depends(_api_key_header)) -> None:
    if not ADMIN_API_KEY or api_key != ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHORIZED", "message": "Invalid or missing admin key"},
        )


@dataclass
class CurrentUser:
    id: str
    role: str
    email: str
    name: str
    wedding_id: Optional[str] = None
    preferred_language: str = "ES"


def _unauthorized(message: str = "No se pudieron validar las credenciales") -> HTTPException:
    return http_error(
        status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", message, headers={"WWW-Authenticate": "Bearer"}
    )


def load_user(db: Session, user_id: str, role: str, wedding_id: Optional[str] = None):
    """Carga la fila ORM del usuario según su rol; None si no existe (o no aplica)."""
    if role == auth.ROLE_MASTER_ADMIN:
        return db.get(models.MasterAdmin, user_id)
    if role == auth.ROLE_PLANNER:
        return db.get(models.WeddingPlanner, user_id)
    if role == auth.ROLE_WEDDING_ADMIN:
        admin = db.get(models.WeddingAdmin, user_id)
        if admin is None or (wedding_id and admin.wedding_id != wedding_id):
            return None
        return admin
    return None


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    if not token:
        raise _unauthorized("Authentication required")

    payload = auth.verify_access_token(token)
    if payload is None:
        raise _unauthorized()

    role = payload["role"]
    row = load_user(db, payload["sub"], role, payload.get("wedding_id"))
    if row is None:
        raise _unauthorized()
    if role == auth.ROLE_PLANNER and not row.enabled:
        logger.info("Acceso denegado a planner deshabilitado id={}", row.id)
        raise http_error(status.HTTP_403_FORBIDDEN, "PLANNER_DISABLED", "La cuenta del planner está deshabilitada")

    return CurrentUser(
        id=row.id,
        role=role,
        email=row.email,
        name=row.name,
        wedding_id=getattr(row, "wedding_id", None),
        preferred_language=getattr(row.preferred_language, "value", row.preferred_language),
    )


def require_roles(*roles: str):
    """Dependencia que exige uno de los roles indicados (403 en caso contrario)."""
    def _dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise http_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", f"Rol requerido: {' | '.join(roles)}")
        return user
    return _dependency


require_master_admin = require_roles(auth.ROLE_MASTER_ADMIN)
require_planner = require_roles(auth.ROLE_PLANNER)
require_wedding_admin = require_roles(auth.ROLE_WEDDING_ADMIN)


# =================================================================================
# 🏠 ÁMBITO DE BODA (tenant)
# =================================================================================
@dataclass
class WeddingScope:
    wedding: models.Wedding
    user: CurrentUser

    @property
    def wedding_id(self) -> str:
        return self.wedding.id

    @property
    def actor_id(self) -> str:
        return self.user.id

    @property
    def admin_id(self) -> Optional[str]:
        """Id de WeddingAdmin si el actor es la pareja; None si es el planner."""
        return self.user.id if self.user.role == auth.ROLE_WEDDING_ADMIN else None


def get_wedding_scope(
    request: Request,
    user: CurrentUser = Depends(require_roles(auth.ROLE_PLANNER, auth.ROLE_WEDDING_ADMIN)),
    db: Session = Depends(get_db),
) -> WeddingScope:
    """
    Resuelve la boda de la petición:
    - admin de boda → la boda de su token (la ruta no puede apuntar a otra);
    - planner → la boda de la ruta, que debe pertenecerle.
    Bodas ajenas o borradas responden 404 para no revelar su existencia.
    """
    path_wedding_id = request.path_params.get("wedding_id")

    if user.role == auth.ROLE_WEDDING_ADMIN:
        if path_wedding_id and path_wedding_id != user.wedding_id:
            raise http_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Solo puedes gestionar tu propia boda")
        wedding = db.get(models.Wedding, user.wedding_id)
    else:
        if not path_wedding_id:
            raise http_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Usa las rutas de planner con el id de la boda")
        wedding = (
            db.query(models.Wedding)
            .filter(models.Wedding.id == path_wedding_id, models.Wedding.planner_id == user.id)
            .first()
        )

    if wedding is None or wedding.deleted_at is not None:
        raise http_error(status.HTTP_404_NOT_FOUND, "WEDDING_NOT_FOUND", "Boda no encontrada")
    return WeddingScope(wedding=wedding, user=user)
