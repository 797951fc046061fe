# nupci/services/rsvp_page.py

# =================================================================================
# 💌 DATOS DE LA PÁGINA RSVP DEL INVITADO
# ---------------------------------------------------------------------------------
# Parte común por boda (configuración, tema, plantilla de invitación) → caché.
# Parte de la familia (miembros, respuestas, idioma) → siempre desde la BD.
# =================================================================================

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from nupci import cache, models, schemas
from nupci.models import ChannelEnum, PaymentModeEnum
from nupci.services import tracking
from nupci.services.magic_link import MagicLinkValidation
from nupci.utils.i18n import format_date
from nupci.utils.timeutils import utcnow

DEFAULT_THEME: Dict[str, Any] = {
    "id": None,
    "name": "Clásico",
    "config": {
        "colors": {
            "primary": "#8b5e3c",
            "secondary": "#f5efe6",
            "accent": "#c9a96e",
            "background": "#ffffff",
            "text": "#2d2d2d",
        },
        "fonts": {"heading": "Playfair Display", "body": "Lato"},
    },
    "preview_image_url": None,
}

_WEDDING_FIELDS = (
    "id", "couple_names", "wedding_date", "wedding_time", "location", "rsvp_cutoff_date",
    "dress_code", "additional_info", "wedding_country", "payment_tracking_mode",
    "allow_guest_additions", "default_language", "gift_iban",
    "transportation_question_enabled", "transportation_question_text",
    "dietary_restrictions_enabled",
    "extra_question_1_enabled", "extra_question_1_text",
    "extra_question_2_enabled", "extra_question_2_text",
    "extra_question_3_enabled", "extra_question_3_text",
)


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def build_wedding_slice(wedding: models.Wedding) -> dict:
    """Lo cacheable de la página: nada que dependa de la familia."""
    theme = wedding.theme
    template = wedding.invitation_template
    return {
        "wedding": {field: _enum_value(getattr(wedding, field)) for field in _WEDDING_FIELDS},
        "theme": (
            {
                "id": theme.id,
                "name": theme.name,
                "config": theme.config or {},
                "preview_image_url": theme.preview_image_url,
            }
            if theme is not None
            else DEFAULT_THEME
        ),
        "invitation_template": (
            {"id": template.id, "name": template.name, "design": template.design or {}}
            if template is not None
            else None
        ),
    }


def get_wedding_slice(wedding: models.Wedding) -> dict:
    data = cache.get_cached_rsvp_page(wedding.id)
    if data is None:
        data = build_wedding_slice(wedding)
        cache.set_cached_rsvp_page(wedding.id, data)
    return data


def get_rsvp_page_data(
    db: Session,
    validation: MagicLinkValidation,
    channel: Optional[ChannelEnum] = None,
) -> dict:
    family, wedding = validation.family, validation.wedding
    page = get_wedding_slice(wedding)

    family_view = schemas.FamilyGuestView.model_validate(family).model_dump()
    if wedding.payment_tracking_mode != PaymentModeEnum.AUTOMATED:
        family_view["reference_code"] = None

    wedding_data = dict(page["wedding"])
    wedding_data["wedding_date_formatted"] = format_date(wedding.wedding_date, family.preferred_language)
    wedding_data["rsvp_cutoff_date_formatted"] = format_date(wedding.rsvp_cutoff_date, family.preferred_language)

    result = {
        "family": family_view,
        "wedding": wedding_data,
        "theme": page["theme"],
        "invitation_template": page["invitation_template"],
        "rsvp_cutoff_passed": utcnow() > wedding.rsvp_cutoff_date,
        "has_submitted_rsvp": any(m.attending is not None for m in family.members),
    }
    tracking.track_link_opened(db, family.id, wedding.id, channel)
    return result
