# nupci/services/short_url.py

# =================================================================================
# ✂️ ENLACES CORTOS DE INVITACIÓN: /inv/<INICIALES>/<código>
# ---------------------------------------------------------------------------------
# - Iniciales por boda a partir de los nombres de la pareja ("Laura y Javier" → LJ),
#   únicas en toda la plataforma (LJ, LJ1, LJ2...).
# - Código base62 de 3 caracteres por familia, único dentro de la boda.
# =================================================================================

import re
import secrets
import string
import unicodedata
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from nupci import config, models
from nupci.cache import short_url_cache

BASE62 = string.digits + string.ascii_letters
SHORT_CODE_LENGTH = 3
SHORT_CODE_ATTEMPTS = 20

# " y ", " & ", " and ", " e ", " i ", " und ", " et ", " och "
_SEPARATORS_RE = re.compile(r"\s*&\s*|\s+(?:y|and|e|i|und|et|och)\s+", re.IGNORECASE)


def _ascii_upper(text: str) -> str:
    """Quita acentos y deja solo letras/dígitos ASCII en mayúscula."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if ch.isascii() and ch.isalnum()).upper()


def parse_initials(couple_names: str) -> str:
    parts = [_ascii_upper(p) for p in _SEPARATORS_RE.split(couple_names or "")]
    parts = [p for p in parts if p]
    if len(parts) >= 2:
        return parts[0][0] + parts[1][0]
    fallback = _ascii_upper(couple_names or "")[:2]
    return fallback or "XX"


def ensure_wedding_initials(db: Session, wedding: models.Wedding) -> str:
    """Asigna (si falta) unas iniciales únicas a la boda. No hace commit."""
    if wedding.short_url_initials:
        return wedding.short_url_initials

    base = parse_initials(wedding.couple_names)
    candidate, suffix = base, 0
    while (
        db.query(models.Wedding.id)
        .filter(models.Wedding.short_url_initials == candidate, models.Wedding.id != wedding.id)
        .first()
        is not None
    ):
        suffix += 1
        candidate = f"{base}{suffix}"
    wedding.short_url_initials = candidate
    db.flush()
    return candidate


def _random_code(length: int) -> str:
    return "".join(secrets.choice(BASE62) for _ in range(length))


def ensure_family_short_code(db: Session, family: models.Family) -> str:
    """Asigna (si falta) un código corto único dentro de la boda. No hace commit."""
    if family.short_url_code:
        return family.short_url_code

    for attempt in range(SHORT_CODE_ATTEMPTS * 2):
        length = SHORT_CODE_LENGTH if attempt < SHORT_CODE_ATTEMPTS else SHORT_CODE_LENGTH + 1
        code = _random_code(length)
        taken = (
            db.query(models.Family.id)
            .filter(models.Family.wedding_id == family.wedding_id, models.Family.short_url_code == code)
            .first()
        )
        if taken is None:
            family.short_url_code = code
            db.flush()
            return code
    raise RuntimeError(f"No se pudo generar un código corto único para la boda {family.wedding_id}")


def build_short_url(wedding: models.Wedding, family: models.Family) -> str:
    return f"{config.APP_URL}/inv/{wedding.short_url_initials}/{family.short_url_code}"


def resolve_short_url(db: Session, initials: str, code: str) -> Optional[str]:
    """Devuelve el magic token de la familia del enlace corto, o None."""
    key = (initials.upper(), code)
    cached = short_url_cache.get(key)
    if cached is not None:
        return cached["token"]

    row = (
        db.query(models.Family)
        .join(models.Wedding, models.Wedding.id == models.Family.wedding_id)
        .filter(
            func.upper(models.Wedding.short_url_initials) == initials.upper(),
            models.Wedding.deleted_at.is_(None),
            models.Family.short_url_code == code,
        )
        .first()
    )
    if row is None or not row.magic_token:
        return None
    short_url_cache.set(key, {"wedding_id": row.wedding_id, "family_id": row.id, "token": row.magic_token})
    return row.magic_token
