# nupci/services/templates.py

# =================================================================================
# ✉️ PLANTILLAS DE MENSAJES
# ---------------------------------------------------------------------------------
# Sustitución de variables {{clave}} y resolución de la plantilla a enviar:
#   1. plantilla guardada de la boda para (tipo, idioma, canal)
#   2. la de email del mismo tipo e idioma (el cuerpo sirve para cualquier canal)
#   3. texto por defecto de la plataforma para (tipo, idioma)
# Las variables desconocidas se dejan tal cual para que el admin las vea.
# =================================================================================

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nupci import models
from nupci.core.errors import NupciError, not_found
from nupci.models import ChannelEnum, LanguageEnum, TemplateTypeEnum
from nupci.utils.i18n import format_date, resolve_lang

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

AVAILABLE_PLACEHOLDERS = {
    "familyName": "Nombre de la familia",
    "coupleNames": "Nombres de la pareja",
    "weddingDate": "Fecha de la boda",
    "weddingTime": "Hora de la boda",
    "location": "Lugar de la boda",
    "magicLink": "Enlace personal de confirmación",
    "rsvpCutoffDate": "Fecha límite para confirmar",
    "referenceCode": "Código de referencia de pago",
}


def render_template(text: Optional[str], variables: Dict[str, str]) -> str:
    if not text:
        return ""

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        value = variables.get(key)
        return match.group(0) if value is None else str(value)

    return PLACEHOLDER_RE.sub(_replace, text)


def get_placeholders(text: Optional[str]) -> List[str]:
    """Placeholders usados en el texto, sin repetir y en orden de aparición."""
    seen: List[str] = []
    for key in PLACEHOLDER_RE.findall(text or ""):
        if key not in seen:
            seen.append(key)
    return seen


def unknown_placeholders(text: Optional[str]) -> List[str]:
    return [key for key in get_placeholders(text) if key not in AVAILABLE_PLACEHOLDERS]


def build_variables(family: models.Family, wedding: models.Wedding, magic_link: str) -> Dict[str, str]:
    lang = resolve_lang(family.preferred_language, default=wedding.default_language.value)
    return {
        "familyName": family.name,
        "coupleNames": wedding.couple_names,
        "weddingDate": format_date(wedding.wedding_date, lang),
        "weddingTime": wedding.wedding_time,
        "location": wedding.location,
        "magicLink": magic_link,
        "rsvpCutoffDate": format_date(wedding.rsvp_cutoff_date, lang),
        "referenceCode": family.reference_code or "",
    }


# =================================================================================
# 📚 Textos por defecto
# =================================================================================
DEFAULT_TEMPLATES: Dict[str, Dict[str, Dict[str, str]]] = {
    "INVITATION": {
        "ES": {
            "subject": "{{coupleNames}} os invitan a su boda",
            "body": "Hola {{familyName}},\n\n¡Nos casamos! Nos encantaría celebrarlo con vosotros el {{weddingDate}} a las {{weddingTime}} en {{location}}.\n\nConfirmad vuestra asistencia antes del {{rsvpCutoffDate}} aquí:\n{{magicLink}}\n\nCon cariño,\n{{coupleNames}}",
        },
        "EN": {
            "subject": "{{coupleNames}} invite you to their wedding",
            "body": "Hi {{familyName}},\n\nWe're getting married! We'd love to celebrate with you on {{weddingDate}} at {{weddingTime}} in {{location}}.\n\nPlease RSVP before {{rsvpCutoffDate}} here:\n{{magicLink}}\n\nWith love,\n{{coupleNames}}",
        },
        "FR": {
            "subject": "{{coupleNames}} vous invitent à leur mariage",
            "body": "Bonjour {{familyName}},\n\nNous nous marions ! Nous serions ravis de fêter cela avec vous le {{weddingDate}} à {{weddingTime}} à {{location}}.\n\nMerci de répondre avant le {{rsvpCutoffDate}} ici :\n{{magicLink}}\n\nAvec amour,\n{{coupleNames}}",
        },
        "IT": {
            "subject": "{{coupleNames}} vi invitano al loro matrimonio",
            "body": "Ciao {{familyName}},\n\nCi sposiamo! Ci farebbe piacere festeggiare con voi il {{weddingDate}} alle {{weddingTime}} a {{location}}.\n\nConfermate la vostra presenza entro il {{rsvpCutoffDate}} qui:\n{{magicLink}}\n\nCon affetto,\n{{coupleNames}}",
        },
        "DE": {
            "subject": "{{coupleNames}} laden euch zu ihrer Hochzeit ein",
            "body": "Hallo {{familyName}},\n\nwir heiraten! Wir würden uns freuen, am {{weddingDate}} um {{weddingTime}} in {{location}} mit euch zu feiern.\n\nBitte antwortet bis zum {{rsvpCutoffDate}} hier:\n{{magicLink}}\n\nAlles Liebe,\n{{coupleNames}}",
        },
    },
    "REMINDER": {
        "ES": {
            "subject": "Recordatorio: confirmad vuestra asistencia a la boda de {{coupleNames}}",
            "body": "Hola {{familyName}},\n\nTodavía no hemos recibido vuestra confirmación. La fecha límite es el {{rsvpCutoffDate}}.\n\nPodéis responder aquí:\n{{magicLink}}\n\n¡Gracias!\n{{coupleNames}}",
        },
        "EN": {
            "subject": "Reminder: please RSVP to {{coupleNames}}'s wedding",
            "body": "Hi {{familyName}},\n\nWe haven't received your RSVP yet. The deadline is {{rsvpCutoffDate}}.\n\nYou can reply here:\n{{magicLink}}\n\nThank you!\n{{coupleNames}}",
        },
        "FR": {
            "subject": "Rappel : merci de répondre à l'invitation de {{coupleNames}}",
            "body": "Bonjour {{familyName}},\n\nNous n'avons pas encore reçu votre réponse. La date limite est le {{rsvpCutoffDate}}.\n\nVous pouvez répondre ici :\n{{magicLink}}\n\nMerci !\n{{coupleNames}}",
        },
        "IT": {
            "subject": "Promemoria: confermate la presenza al matrimonio di {{coupleNames}}",
            "body": "Ciao {{familyName}},\n\nNon abbiamo ancora ricevuto la vostra conferma. La scadenza è il {{rsvpCutoffDate}}.\n\nPotete rispondere qui:\n{{magicLink}}\n\nGrazie!\n{{coupleNames}}",
        },
        "DE": {
            "subject": "Erinnerung: Bitte antwortet auf die Einladung von {{coupleNames}}",
            "body": "Hallo {{familyName}},\n\nwir haben eure Antwort noch nicht erhalten. Die Frist endet am {{rsvpCutoffDate}}.\n\nHier könnt ihr antworten:\n{{magicLink}}\n\nDanke!\n{{coupleNames}}",
        },
    },
    "CONFIRMATION": {
        "ES": {
            "subject": "Hemos recibido vuestra confirmación",
            "body": "Hola {{familyName}},\n\n¡Gracias por responder! Hemos guardado vuestra confirmación para la boda del {{weddingDate}}.\n\nPodéis revisarla o cambiarla hasta el {{rsvpCutoffDate}}:\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "EN": {
            "subject": "We've received your RSVP",
            "body": "Hi {{familyName}},\n\nThank you for your reply! Your RSVP for the wedding on {{weddingDate}} has been saved.\n\nYou can review or change it until {{rsvpCutoffDate}}:\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "FR": {
            "subject": "Nous avons bien reçu votre réponse",
            "body": "Bonjour {{familyName}},\n\nMerci pour votre réponse ! Elle est enregistrée pour le mariage du {{weddingDate}}.\n\nVous pouvez la consulter ou la modifier jusqu'au {{rsvpCutoffDate}} :\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "IT": {
            "subject": "Abbiamo ricevuto la vostra conferma",
            "body": "Ciao {{familyName}},\n\nGrazie per la risposta! La vostra conferma per il matrimonio del {{weddingDate}} è stata salvata.\n\nPotete rivederla o modificarla fino al {{rsvpCutoffDate}}:\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "DE": {
            "subject": "Wir haben eure Antwort erhalten",
            "body": "Hallo {{familyName}},\n\ndanke für eure Antwort! Sie wurde für die Hochzeit am {{weddingDate}} gespeichert.\n\nIhr könnt sie bis zum {{rsvpCutoffDate}} ansehen oder ändern:\n{{magicLink}}\n\n{{coupleNames}}",
        },
    },
    "SAVE_THE_DATE": {
        "ES": {
            "subject": "Reservad la fecha: {{coupleNames}} se casan",
            "body": "Hola {{familyName}},\n\n¡Nos casamos! Guardad el {{weddingDate}} en vuestra agenda: lo celebraremos en {{location}}.\n\nLa invitación formal llegará más adelante. Mientras tanto, aquí tenéis vuestro enlace:\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "EN": {
            "subject": "Save the date: {{coupleNames}} are getting married",
            "body": "Hi {{familyName}},\n\nWe're getting married! Please save {{weddingDate}} in your calendar: we'll celebrate in {{location}}.\n\nThe formal invitation will follow. In the meantime, here is your link:\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "FR": {
            "subject": "Réservez la date : {{coupleNames}} se marient",
            "body": "Bonjour {{familyName}},\n\nNous nous marions ! Notez le {{weddingDate}} dans votre agenda : nous fêterons cela à {{location}}.\n\nL'invitation officielle suivra. En attendant, voici votre lien :\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "IT": {
            "subject": "Segnate la data: {{coupleNames}} si sposano",
            "body": "Ciao {{familyName}},\n\nCi sposiamo! Segnate il {{weddingDate}} in agenda: festeggeremo a {{location}}.\n\nL'invito ufficiale arriverà più avanti. Nel frattempo, ecco il vostro link:\n{{magicLink}}\n\n{{coupleNames}}",
        },
        "DE": {
            "subject": "Save the Date: {{coupleNames}} heiraten",
            "body": "Hallo {{familyName}},\n\nwir heiraten! Merkt euch den {{weddingDate}} vor: Wir feiern in {{location}}.\n\nDie offizielle Einladung folgt. Hier ist schon einmal euer Link:\n{{magicLink}}\n\n{{coupleNames}}",
        },
    },
}


@dataclass
class ResolvedTemplate:
    subject: Optional[str]
    body: str
    content_template_id: Optional[str] = None
    image_url: Optional[str] = None
    template_id: Optional[str] = None  # None = texto por defecto de la plataforma.


def default_template(template_type: TemplateTypeEnum, language: str) -> ResolvedTemplate:
    lang = resolve_lang(language)
    entry = DEFAULT_TEMPLATES[template_type.value][lang]
    return ResolvedTemplate(subject=entry["subject"], body=entry["body"])


def _stored(db: Session, wedding_id: str, template_type, language, channel) -> Optional[models.MessageTemplate]:
    return (
        db.query(models.MessageTemplate)
        .filter(
            models.MessageTemplate.wedding_id == wedding_id,
            models.MessageTemplate.type == template_type,
            models.MessageTemplate.language == language,
            models.MessageTemplate.channel == channel,
        )
        .first()
    )


def get_template_for_sending(
    db: Session,
    wedding_id: str,
    template_type: TemplateTypeEnum,
    language: LanguageEnum,
    channel: ChannelEnum,
) -> ResolvedTemplate:
    row = _stored(db, wedding_id, template_type, language, channel)
    if row is None and channel != ChannelEnum.EMAIL:
        row = _stored(db, wedding_id, template_type, language, ChannelEnum.EMAIL)
    if row is None:
        return default_template(template_type, language.value)
    return ResolvedTemplate(
        subject=row.subject,
        body=row.body,
        content_template_id=row.content_template_id if row.channel == channel else None,
        image_url=row.image_url,
        template_id=row.id,
    )


# =================================================================================
# 🛠️ CRUD de plantillas de una boda
# =================================================================================
def list_templates(db: Session, wedding_id: str) -> List[dict]:
    """Todas las combinaciones (tipo, idioma, canal): guardadas o, si no, las de por defecto."""
    stored = {
        (row.type, row.language, row.channel): row
        for row in db.query(models.MessageTemplate).filter(models.MessageTemplate.wedding_id == wedding_id)
    }
    out = []
    for template_type in TemplateTypeEnum:
        for language in LanguageEnum:
            for channel in ChannelEnum:
                row = stored.get((template_type, language, channel))
                if row is not None:
                    out.append({
                        "id": row.id, "type": template_type, "language": language, "channel": channel,
                        "subject": row.subject, "body": row.body,
                        "content_template_id": row.content_template_id, "image_url": row.image_url,
                        "is_default": False,
                    })
                else:
                    default = default_template(template_type, language.value)
                    out.append({
                        "id": None, "type": template_type, "language": language, "channel": channel,
                        "subject": default.subject if channel == ChannelEnum.EMAIL else None,
                        "body": default.body, "is_default": True,
                    })
    return out


def upsert_template(db: Session, wedding_id: str, payload) -> models.MessageTemplate:
    row = _stored(db, wedding_id, payload.type, payload.language, payload.channel)
    if row is None:
        row = models.MessageTemplate(
            wedding_id=wedding_id, type=payload.type, language=payload.language, channel=payload.channel
        )
        db.add(row)
    row.subject = payload.subject
    row.body = payload.body
    row.content_template_id = payload.content_template_id
    row.image_url = payload.image_url
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise NupciError("TEMPLATE_CONFLICT", "La plantilla se modificó a la vez; inténtalo de nuevo", 409) from e
    db.refresh(row)
    return row


def delete_template(db: Session, wedding_id: str, template_id: str) -> None:
    row = db.get(models.MessageTemplate, template_id)
    if row is None or row.wedding_id != wedding_id:
        raise not_found("Plantilla", "TEMPLATE_NOT_FOUND")
    db.delete(row)
    db.commit()


def sample_variables(wedding: models.Wedding, language: str) -> Dict[str, str]:
    """Valores de ejemplo para previsualizar una plantilla sin familia concreta."""
    lang = resolve_lang(language)
    return {
        "familyName": "Familia García",
        "coupleNames": wedding.couple_names,
        "weddingDate": format_date(wedding.wedding_date, lang),
        "weddingTime": wedding.wedding_time,
        "location": wedding.location,
        "magicLink": "https://example.com/inv/XX/abc",
        "rsvpCutoffDate": format_date(wedding.rsvp_cutoff_date, lang),
        "referenceCode": "ABC123",
    }
