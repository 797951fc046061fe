# nupci/meta.py  # Router de metadatos para el frontend.

from typing import Dict, List

from fastapi import APIRouter

from nupci.models import (
    ChannelEnum,
    EventTypeEnum,
    LanguageEnum,
    MemberTypeEnum,
    PaymentModeEnum,
    TemplateTypeEnum,
    WeddingStatusEnum,
)
from nupci.services.templates import AVAILABLE_PLACEHOLDERS

router = APIRouter(prefix="/api/meta", tags=["meta"])


def _values(enum_cls) -> List[str]:
    return [item.value for item in enum_cls]


@router.get("/options")
def get_meta_options() -> Dict[str, List[str]]:
    """
    Devuelve listas de CÓDIGOS (neutros) para que el frontend traduzca con t().
    Incluye los placeholders admitidos en las plantillas de mensajes.
    """
    return {
        "languages": _values(LanguageEnum),
        "channels": _values(ChannelEnum),
        "member_types": _values(MemberTypeEnum),
        "wedding_statuses": _values(WeddingStatusEnum),
        "payment_modes": _values(PaymentModeEnum),
        "event_types": _values(EventTypeEnum),
        "template_types": _values(TemplateTypeEnum),
        "placeholders": sorted(AVAILABLE_PLACEHOLDERS),
    }
