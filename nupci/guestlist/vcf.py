# nupci/guestlist/vcf.py

# =================================================================================
# 📇 IMPORTACIÓN DE CONTACTOS vCard (.vcf, versiones 2.1 / 3.0 / 4.0)
# ---------------------------------------------------------------------------------
# Cada contacto se convierte en una familia con un único miembro ADULT.
# Nombre: FN (o N si falta). Teléfono: preferimos CELL/MOBILE.
# Los emails que ya existen en la boda se omiten (se informa como error).
# =================================================================================

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy import func
from sqlalchemy.orm import Session

from nupci import models
from nupci.core.errors import NupciError
from nupci.crud import families_crud
from nupci.db import transaction
from nupci.models import ChannelEnum, MemberTypeEnum

_CARD_SPLIT_RE = re.compile(r"BEGIN:VCARD", re.IGNORECASE)
_PHONE_CLEAN_RE = re.compile(r"[\s\-().\[\]]")

IMPORT_NOTES = {
    "ES": "Importado desde archivo VCF por {name}",
    "EN": "Imported from VCF file by {name}",
    "FR": "Importé depuis un fichier VCF par {name}",
    "IT": "Importato da file VCF da {name}",
    "DE": "Aus VCF-Datei importiert von {name}",
}


@dataclass
class VCFContact:
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    organization: Optional[str] = None


def _unfold(text: str) -> List[str]:
    """Une las líneas partidas (las continuaciones empiezan por espacio o tabulador)."""
    lines: List[str] = []
    for line in re.split(r"\r?\n", text):
        if line[:1] in (" ", "\t") and lines:
            lines[-1] += line[1:]
        else:
            lines.append(line)
    return lines


def _decode(value: str) -> str:
    decoded = (
        value.replace("\\n", " ")
        .replace("\\N", " ")
        .replace("\\,", ",")
        .replace("\\;", ";")
        .replace("\\\\", "\\")
    )
    if len(decoded) >= 2 and decoded.startswith('"') and decoded.endswith('"'):
        decoded = decoded[1:-1]
    return decoded.strip()


def _clean_phone(value: str) -> str:
    cleaned = _PHONE_CLEAN_RE.sub("", value)
    if cleaned.lower().startswith("tel:"):
        cleaned = cleaned[4:]
    return cleaned


def _parse_card(text: str) -> Optional[VCFContact]:
    name = email = phone = organization = None
    for line in _unfold(text):
        line = line.strip()
        if not line or line.upper().startswith("END:VCARD") or ":" not in line:
            continue
        prop, value = line.split(":", 1)
        value = value.strip()
        if not value:
            continue
        prop_name = prop.split(";")[0].upper()
        # Algunos exportadores agrupan propiedades: "item1.TEL".
        prop_name = prop_name.split(".")[-1]

        if prop_name == "FN" and not name:
            name = _decode(value)
        elif prop_name == "N" and not name:
            name = _decode(" ".join(p for p in value.split(";") if p.strip()))
        elif prop_name == "EMAIL" and not email:
            email = _decode(value)
        elif prop_name == "TEL":
            is_mobile = "CELL" in prop.upper() or "MOBILE" in prop.upper()
            if not phone or is_mobile:
                phone = _clean_phone(_decode(value))
        elif prop_name == "ORG" and not organization:
            organization = _decode(value.replace(";", " "))

    if not name:
        return None
    return VCFContact(name=name, email=email or None, phone=phone or None, organization=organization or None)


def parse_vcf(text: str) -> Tuple[List[VCFContact], List[str]]:
    """Devuelve (contactos, errores de parseo)."""
    contacts: List[VCFContact] = []
    errors: List[str] = []
    cards = [card for card in _CARD_SPLIT_RE.split(text or "") if card.strip()]
    if not cards:
        return contacts, ["No valid vCard entries found in the file"]
    for index, card in enumerate(cards, start=1):
        contact = _parse_card(card)
        if contact is None:
            errors.append(f"Contact {index} has no name and was ignored")
            continue
        contacts.append(contact)
    if not contacts and not errors:
        errors.append("No contacts could be extracted from the VCF file")
    return contacts, errors


def validate_vcf(text: str) -> Optional[str]:
    """Mensaje de error si el contenido no parece un vCard; None si es válido."""
    if not text or not text.strip():
        return "VCF file is empty"
    upper = text.upper()
    if "BEGIN:VCARD" not in upper:
        return "Invalid VCF file format: missing BEGIN:VCARD"
    if "END:VCARD" not in upper:
        return "Invalid VCF file format: missing END:VCARD"
    return None


def import_vcf(
    db: Session,
    wedding: models.Wedding,
    text: str,
    actor_admin_id: Optional[str] = None,
    actor_name: str = "admin",
) -> dict:
    problem = validate_vcf(text)
    if problem:
        raise NupciError("INVALID_FILE", problem)

    contacts, errors = parse_vcf(text)
    existing = {
        email
        for (email,) in db.query(func.lower(models.Family.email)).filter(
            models.Family.wedding_id == wedding.id, models.Family.email.isnot(None)
        )
    }
    note = IMPORT_NOTES[wedding.default_language.value].format(name=actor_name)

    created = skipped = 0
    with transaction(db):
        for contact in contacts:
            email = contact.email.lower() if contact.email else None
            if email and email in existing:
                errors.append(f"Email {contact.email} already exists - skipped")
                skipped += 1
                continue
            if contact.phone:
                channel = ChannelEnum.WHATSAPP
            elif email:
                channel = ChannelEnum.EMAIL
            else:
                channel = None
            families_crud.build_family(
                db,
                wedding,
                name=contact.name,
                members=[{"name": contact.name, "type": MemberTypeEnum.ADULT}],
                email=email,
                phone=contact.phone,
                whatsapp_number=contact.phone,
                channel_preference=channel,
                invited_by_admin_id=actor_admin_id,
                private_notes=note,
            )
            if email:
                existing.add(email)
            created += 1

    logger.info("VCF boda={} contactos={} creadas={} omitidas={}", wedding.id, len(contacts), created, skipped)
    return {
        "success": bool(contacts),
        "total_contacts": len(contacts),
        "families_created": created,
        "skipped_duplicates": skipped,
        "errors": errors,
    }
