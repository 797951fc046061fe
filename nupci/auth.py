# nupci/auth.py  # Módulo de tokens JWT del personal (master admin, planner, admin de boda).

# =================================================================================
# 🔐 MÓDULO DE AUTENTICACIÓN (JWT)
# ---------------------------------------------------------------------------------
# - Tokens de sesión ('access') con el rol y, si aplica, la boda del usuario.
# - Tokens de enlace de acceso ('login') de vida corta, enviados por email.
# - Usa python-jose (jose.jwt) para firmar/decodificar.
# Los invitados NO usan JWT: su credencial es el magic token (UUID) de la familia.
# =================================================================================

import os                                                     # Variables de entorno (.env).
from datetime import datetime, timedelta                      # Emisión/expiración.
from typing import Dict, Any, Optional                        # Tipado de payloads.
from jose import jwt, JWTError                                # Implementación de JWT (python-jose).

from nupci.utils.timeutils import utcnow

SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret")            # Clave de firma (valor real en producción).
ALGORITHM = os.getenv("ALGORITHM", "HS256")                   # Algoritmo de firmado.
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # Sesión: 24 h.
LOGIN_LINK_EXPIRE_MINUTES = int(os.getenv("LOGIN_LINK_EXPIRE_MINUTES", "15"))        # Enlace de acceso: 15 min.

# Roles del personal; el orden se usa como prioridad al enviar enlaces.
ROLE_MASTER_ADMIN = "master_admin"
ROLE_PLANNER = "planner"
ROLE_WEDDING_ADMIN = "wedding_admin"
ROLES = (ROLE_MASTER_ADMIN, ROLE_PLANNER, ROLE_WEDDING_ADMIN)

if not SECRET_KEY:                                            # Fail-fast si se sobreescribe con vacío.
    raise ValueError("SECRET_KEY no está configurado.")
if not ALGORITHM:
    raise ValueError("ALGORITHM no está configurado.")


def _timestamp(dt: datetime) -> int:
    # Los datetimes son UTC naive; se calcula el epoch sin pasar por la zona local.
    return int((dt - datetime(1970, 1, 1)).total_seconds())


def _encode(payload: Dict[str, Any]) -> str:                   # Firma el payload como JWT.
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def _claims(user_id: str, role: str, wedding_id: Optional[str]) -> Dict[str, Any]:
    if role not in ROLES:
        raise ValueError(f"Rol desconocido: {role}")
    claims: Dict[str, Any] = {"sub": user_id, "role": role}
    if wedding_id:
        claims["wedding_id"] = wedding_id                     # Solo los admins de boda van atados a una boda.
    return claims

# =================================================================================
# ✨ CREACIÓN DE TOKENS
# =================================================================================

def create_access_token(
    user_id: str,
    role: str,
    *,
    wedding_id: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    """Crea un token de sesión (tipo 'access') para un usuario del personal."""
    now = utcnow()
    exp = now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = _claims(user_id, role, wedding_id)
    payload.update({
        "type": "access",
        "iat": _timestamp(now),
        "exp": _timestamp(exp),
    })
    if extra:
        payload.update(extra)
    return _encode(payload)


def create_login_token(user_id: str, role: str, email: str, *, wedding_id: Optional[str] = None) -> str:
    """Crea el token corto (tipo 'login') que viaja en el enlace de acceso por email."""
    now = utcnow()
    exp = now + timedelta(minutes=LOGIN_LINK_EXPIRE_MINUTES)
    payload = _claims(user_id, role, wedding_id)
    payload.update({
        "type": "login",
        "email": email,                                       # Trazabilidad: a quién se envió.
        "iat": _timestamp(now),
        "exp": _timestamp(exp),
    })
    return _encode(payload)

# =================================================================================
# 🔎 DECODIFICACIÓN/VERIFICACIÓN
# =================================================================================

def _decode_typed(token: str, expected_type: str) -> Dict[str, Any]:
    data = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])  # Valida firma y expiración.
    if data.get("type") != expected_type:
        raise ValueError(f"Invalid token type, expected '{expected_type}'")
    if data.get("role") not in ROLES or not data.get("sub"):
        raise ValueError("Token sin rol o sujeto válido")
    return data


def decode_access_token(token: str) -> Dict[str, Any]:
    """Decodifica un token de sesión. Lanza JWTError/ValueError si no es válido."""
    return _decode_typed(token, "access")


def decode_login_token(token: str) -> Dict[str, Any]:
    """Decodifica un token de enlace de acceso. Lanza JWTError/ValueError si no es válido."""
    return _decode_typed(token, "login")


def verify_access_token(token: str) -> dict | None:
    """Devuelve el payload de un token de sesión válido o None si la validación falla."""
    try:
        return decode_access_token(token)
    except (JWTError, ValueError):
        return None
