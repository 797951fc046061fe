# nupci/services/magic_link.py

# =================================================================================
# 🔗 ENLACES MÁGICOS DE INVITADOS
# ---------------------------------------------------------------------------------
# El magic token (UUID v4) de una familia es la única credencial del invitado.
# Validación, en este orden:
#   1. formato UUID v4                       → INVALID_TOKEN_FORMAT
#   2. familia + boda (no borrada)           → TOKEN_NOT_FOUND
#   3. boda deshabilitada / no activa        → WEDDING_DISABLED
#   4. boda ya celebrada                     → TOKEN_EXPIRED
# El resultado válido entrega una GuestIdentity: todo lo que el invitado puede
# hacer después queda limitado a su propia familia.
# =================================================================================

import re
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlparse

from fastapi import status
from loguru import logger
from sqlalchemy.orm import Session

from nupci import config, models
from nupci.cache import short_url_cache
from nupci.core.errors import not_found
from nupci.models import ChannelEnum, WeddingStatusEnum
from nupci.services import short_url
from nupci.utils.timeutils import utcnow

UUID_V4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

INVALID_TOKEN_FORMAT = "INVALID_TOKEN_FORMAT"
TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
WEDDING_DISABLED = "WEDDING_DISABLED"
VALIDATION_ERROR = "VALIDATION_ERROR"

ERROR_MESSAGES = {
    INVALID_TOKEN_FORMAT: "El enlace no es válido.",
    TOKEN_NOT_FOUND: "No encontramos esta invitación. Revisa el enlace o contacta con los novios.",
    TOKEN_EXPIRED: "Esta invitación ha caducado: la boda ya se celebró.",
    WEDDING_DISABLED: "Las confirmaciones para esta boda no están disponibles.",
    VALIDATION_ERROR: "No pudimos validar el enlace. Inténtalo de nuevo más tarde.",
}


@dataclass(frozen=True)
class GuestIdentity:
    family_id: str
    wedding_id: str
    token: str


@dataclass
class MagicLinkValidation:
    valid: bool
    family: Optional[models.Family] = None
    wedding: Optional[models.Wedding] = None
    theme: Optional[models.Theme] = None
    error: Optional[str] = None

    @property
    def identity(self) -> Optional[GuestIdentity]:
        if not self.valid:
            return None
        return GuestIdentity(self.family.id, self.wedding.id, self.family.magic_token)

    @property
    def http_status(self) -> int:
        if self.error == TOKEN_EXPIRED:
            return status.HTTP_410_GONE
        if self.error == WEDDING_DISABLED:
            return status.HTTP_403_FORBIDDEN
        return status.HTTP_404_NOT_FOUND

    @property
    def message(self) -> str:
        return ERROR_MESSAGES.get(self.error or "", ERROR_MESSAGES[VALIDATION_ERROR])


def generate_magic_token() -> str:
    return str(uuid.uuid4())


def is_valid_token_format(token: Optional[str]) -> bool:
    return bool(token) and bool(UUID_V4_RE.match(token))


def is_wedding_over(wedding: models.Wedding) -> bool:
    """La invitación sigue viva durante todo el día de la boda."""
    return wedding.wedding_date.date() < utcnow().date()


def validate_magic_link(db: Session, token: str) -> MagicLinkValidation:
    if not is_valid_token_format(token):
        return MagicLinkValidation(False, error=INVALID_TOKEN_FORMAT)
    try:
        family = (
            db.query(models.Family)
            .filter(models.Family.magic_token == token.lower())
            .first()
        )
        if family is None or family.wedding is None or family.wedding.deleted_at is not None:
            return MagicLinkValidation(False, error=TOKEN_NOT_FOUND)

        wedding = family.wedding
        if wedding.is_disabled or wedding.status != WeddingStatusEnum.ACTIVE:
            return MagicLinkValidation(False, family=family, wedding=wedding, error=WEDDING_DISABLED)
        if is_wedding_over(wedding):
            return MagicLinkValidation(False, family=family, wedding=wedding, error=TOKEN_EXPIRED)

        return MagicLinkValidation(True, family=family, wedding=wedding, theme=wedding.theme)
    except Exception as e:   # Cualquier fallo se responde como VALIDATION_ERROR, nunca se propaga.
        logger.exception("Error validando magic link: {}", e)
        return MagicLinkValidation(False, error=VALIDATION_ERROR)


# =================================================================================
# 🛠️ Gestión de enlaces (panel)
# =================================================================================
def _get_family(db: Session, family_id: str, wedding_id: Optional[str] = None) -> models.Family:
    family = db.get(models.Family, family_id)
    if family is None or (wedding_id and family.wedding_id != wedding_id):
        raise not_found("Familia", "FAMILY_NOT_FOUND")
    return family


def extract_channel_from_url(url: str) -> Optional[ChannelEnum]:
    """Lee ?channel= (whatsapp/email/sms) de una URL; None si falta o es desconocido."""
    values = parse_qs(urlparse(url).query).get("channel")
    if not values:
        return None
    return parse_channel(values[0])


def parse_channel(value: Optional[str]) -> Optional[ChannelEnum]:
    if not value:
        return None
    try:
        return ChannelEnum(value.strip().upper())
    except ValueError:
        return None


def rsvp_url(token: str, channel: Optional[ChannelEnum] = None) -> str:
    url = f"{config.APP_URL}/rsvp/{token}"
    if channel is not None:
        url += "?" + urlencode({"channel": channel.value.lower()})
    return url


def generate_magic_link(
    db: Session,
    family_id: str,
    channel: Optional[ChannelEnum] = None,
    wedding_id: Optional[str] = None,
) -> str:
    """URL corta absoluta para la familia (/inv/<INICIALES>/<código>), con ?channel= opcional."""
    family = _get_family(db, family_id, wedding_id)
    if not family.magic_token:
        family.magic_token = generate_magic_token()
    short_url.ensure_wedding_initials(db, family.wedding)
    short_url.ensure_family_short_code(db, family)
    db.commit()

    url = short_url.build_short_url(family.wedding, family)
    if channel is not None:
        url += "?" + urlencode({"channel": channel.value.lower()})
    return url


def regenerate_magic_token(db: Session, family_id: str, wedding_id: Optional[str] = None) -> str:
    """Emite un token nuevo; el enlace anterior deja de funcionar inmediatamente."""
    family = _get_family(db, family_id, wedding_id)
    family.magic_token = generate_magic_token()
    db.commit()
    short_url_cache.delete_where(lambda key, value: value.get("family_id") == family.id)
    logger.info("Magic token regenerado para family_id={}", family.id)
    return family.magic_token


def invalidate_magic_token(db: Session, family_id: str, wedding_id: Optional[str] = None) -> None:
    family = _get_family(db, family_id, wedding_id)
    family.magic_token = None
    db.commit()
    short_url_cache.delete_where(lambda key, value: value.get("family_id") == family.id)
    logger.info("Magic token invalidado para family_id={}", family.id)
