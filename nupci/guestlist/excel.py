# nupci/guestlist/excel.py

# =================================================================================
# 📊 IMPORTACIÓN / EXPORTACIÓN DE INVITADOS (Excel .xlsx y CSV)
# ---------------------------------------------------------------------------------
# Formato de columnas (fila 1 = cabecera, se ignora):
#   0 Familia · 1 Persona de contacto · 2 Email · 3 Teléfono · 4 WhatsApp · 5 Idioma
#   6.. miembros en tríos (Nombre, Tipo, Edad), hasta 10 miembros.
# La importación es todo-o-nada: si hay un solo error no se crea ninguna familia.
# =================================================================================

from __future__ import annotations

import io
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import pandas as pd
from fastapi import status
from loguru import logger
from sqlalchemy.orm import Session

from nupci import models
from nupci.config import IMPORT_MAX_FAMILIES, IMPORT_MAX_MEMBERS_PER_FAMILY
from nupci.core.errors import NupciError
from nupci.crud import families_crud
from nupci.db import transaction
from nupci.models import LanguageEnum, MemberTypeEnum

MAX_IMPORT_BYTES = 10 * 1024 * 1024  # 10 MB
MEMBER_COLUMNS_START = 6
VALID_LANGUAGES = {lang.value for lang in LanguageEnum}
VALID_MEMBER_TYPES = {t.value for t in MemberTypeEnum}

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MEDIA_TYPE = "text/csv"

FAMILY_HEADERS = ["Family Name *", "Contact Person *", "Email", "Phone", "WhatsApp", "Language *"]
RSVP_HEADERS = ["RSVP Status", "Total Members", "Attending", "Not Attending", "Pending"]
MEMBER_EXPORT_FIELDS = ["Name", "Type", "Age", "Attending", "Dietary", "Accessibility", "Added By Guest"]


def import_headers() -> List[str]:
    headers = list(FAMILY_HEADERS)
    for i in range(1, IMPORT_MAX_MEMBERS_PER_FAMILY + 1):
        star = " *" if i == 1 else ""
        headers += [f"Member {i} Name{star}", f"Member {i} Type{star}", f"Member {i} Age"]
    return headers


# =================================================================================
# 📥 Lectura
# =================================================================================
def read_table(content: bytes, filename: str) -> pd.DataFrame:
    """Lee .xlsx/.xls o .csv como texto, sin cabecera (se descarta la fila 1)."""
    buffer = io.BytesIO(content)
    try:
        if filename.lower().endswith(".csv"):
            df = pd.read_csv(buffer, header=None, dtype=str, keep_default_na=False)
        else:
            df = pd.read_excel(buffer, header=None, dtype=str, engine="openpyxl")
    except Exception as e:
        raise NupciError("INVALID_FILE", f"No se pudo leer el archivo '{filename}': {e}") from e
    df = df.fillna("")
    return df.iloc[1:].reset_index(drop=True)


def _cell(row: List[str], index: int) -> str:
    if index >= len(row):
        return ""
    return str(row[index]).strip()


def _parse_age(value: str) -> Optional[int]:
    if not value:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


def parse_rows(df: pd.DataFrame) -> List[dict]:
    rows = []
    for idx, values in enumerate(df.values.tolist()):
        values = ["" if v is None else str(v) for v in values]
        if not any(v.strip() for v in values):
            continue  # Fila vacía.
        members = []
        for i in range(IMPORT_MAX_MEMBERS_PER_FAMILY):
            base = MEMBER_COLUMNS_START + i * 3
            name, member_type = _cell(values, base), _cell(values, base + 1)
            if name or member_type:
                members.append({"name": name, "type": member_type.upper(), "age": _parse_age(_cell(values, base + 2))})
        rows.append({
            "row": idx + 2,  # Cabecera + índice base 0 → número de fila de la hoja.
            "family_name": _cell(values, 0),
            "contact_person": _cell(values, 1),
            "email": _cell(values, 2) or None,
            "phone": _cell(values, 3) or None,
            "whatsapp": _cell(values, 4) or None,
            "language": (_cell(values, 5) or "").upper(),
            "members": members,
        })
    return rows


# =================================================================================
# ✅ Validación
# =================================================================================
def validate_rows(rows: List[dict], default_language: str) -> Tuple[List[dict], List[dict]]:
    """Devuelve (errores, avisos). Corrige in-place idioma y edades no válidas."""
    errors: List[dict] = []
    warnings: List[dict] = []
    emails_seen, phones_seen = set(), set()

    for row in rows:
        n = row["row"]
        if not row["family_name"]:
            errors.append({"row": n, "field": "Family Name", "message": "Family Name is required"})
        if not row["contact_person"]:
            errors.append({"row": n, "field": "Contact Person", "message": "Contact Person is required"})
        if not row["members"]:
            errors.append({"row": n, "field": "Members", "message": "At least one family member is required"})

        if row["language"] not in VALID_LANGUAGES:
            warnings.append({
                "row": n, "field": "Language",
                "message": f"Invalid language '{row['language']}', using default '{default_language}'",
            })
            row["language"] = default_language

        for i, member in enumerate(row["members"], start=1):
            if not member["name"]:
                errors.append({"row": n, "field": f"Member {i} Name", "message": "Member name is required"})
            if member["type"] not in VALID_MEMBER_TYPES:
                errors.append({
                    "row": n, "field": f"Member {i} Type",
                    "message": f"Invalid member type '{member['type']}'. Must be ADULT, CHILD, or INFANT",
                })
            if member["age"] is not None and not 0 <= member["age"] <= 120:
                warnings.append({"row": n, "field": f"Member {i} Age", "message": f"Age {member['age']} seems invalid"})
                member["age"] = None

        if row["email"]:
            key = row["email"].lower()
            if key in emails_seen:
                warnings.append({"row": n, "field": "Email", "message": f"Duplicate email: {row['email']}"})
            emails_seen.add(key)
        if row["phone"]:
            if row["phone"] in phones_seen:
                warnings.append({"row": n, "field": "Phone", "message": f"Duplicate phone: {row['phone']}"})
            phones_seen.add(row["phone"])
        if not (row["email"] or row["phone"] or row["whatsapp"]):
            warnings.append({
                "row": n, "field": "Contact",
                "message": "No contact method provided (email, phone, or WhatsApp)",
            })
    return errors, warnings


def import_guests(
    db: Session,
    wedding: models.Wedding,
    content: bytes,
    filename: str,
    actor_admin_id: Optional[str] = None,
) -> dict:
    if not content:
        raise NupciError("EMPTY_FILE", "El archivo está vacío")
    if len(content) > MAX_IMPORT_BYTES:
        raise NupciError("FILE_TOO_LARGE", "El archivo supera el tamaño máximo de 10MB")

    rows = parse_rows(read_table(content, filename))
    if not rows:
        raise NupciError("EMPTY_FILE", "No hay filas de datos en el archivo")
    if len(rows) > IMPORT_MAX_FAMILIES:
        raise NupciError("TOO_MANY_FAMILIES", f"Máximo {IMPORT_MAX_FAMILIES} familias por importación")

    errors, warnings = validate_rows(rows, wedding.default_language.value)
    if errors:
        logger.info("Importación rechazada boda={} errores={}", wedding.id, len(errors))
        raise NupciError(
            "IMPORT_VALIDATION_FAILED",
            f"Validation failed with {len(errors)} error(s)",
            status.HTTP_400_BAD_REQUEST,
            details={"errors": errors, "warnings": warnings},
        )

    members_created = 0
    with transaction(db):
        for row in rows:
            families_crud.build_family(
                db,
                wedding,
                name=row["family_name"],
                members=row["members"],
                email=row["email"],
                phone=row["phone"],
                whatsapp_number=row["whatsapp"],
                preferred_language=LanguageEnum(row["language"]),
                invited_by_admin_id=actor_admin_id,
            )
            members_created += len(row["members"])

    logger.info("Importación boda={} familias={} miembros={}", wedding.id, len(rows), members_created)
    return {
        "success": True,
        "families_created": len(rows),
        "members_created": members_created,
        "errors": [],
        "warnings": warnings,
    }


# =================================================================================
# 📤 Exportación
# =================================================================================
def export_rsvp_status(family: models.Family) -> str:
    attending, not_attending, pending = families_crud.member_counts(family)
    if pending or not family.members:
        return "Pending"
    if attending:
        return "Partial" if not_attending else "Attending"
    return "Not Attending"


def _yes_no(value: Optional[bool]) -> str:
    if value is None:
        return "Pending"
    return "Yes" if value else "No"


def build_export_frame(families: List[models.Family], include_rsvp: bool = True) -> pd.DataFrame:
    columns = ["Family Name", "Contact Person", "Email", "Phone", "WhatsApp", "Language", "Reference Code"]
    if include_rsvp:
        columns += RSVP_HEADERS
    for i in range(1, IMPORT_MAX_MEMBERS_PER_FAMILY + 1):
        columns += [f"Member {i} {field}" for field in MEMBER_EXPORT_FIELDS]

    records: List[Dict[str, object]] = []
    for family in families:
        members = list(family.members)
        record: Dict[str, object] = {
            "Family Name": family.name,
            "Contact Person": members[0].name if members else "",
            "Email": family.email or "",
            "Phone": family.phone or "",
            "WhatsApp": family.whatsapp_number or "",
            "Language": family.preferred_language.value,
            "Reference Code": family.reference_code or "",
        }
        if include_rsvp:
            attending, not_attending, pending = families_crud.member_counts(family)
            record.update({
                "RSVP Status": export_rsvp_status(family),
                "Total Members": len(members),
                "Attending": attending,
                "Not Attending": not_attending,
                "Pending": pending,
            })
        for i, member in enumerate(members[:IMPORT_MAX_MEMBERS_PER_FAMILY], start=1):
            record.update({
                f"Member {i} Name": member.name,
                f"Member {i} Type": member.type.value,
                f"Member {i} Age": member.age if member.age is not None else "",
                f"Member {i} Attending": _yes_no(member.attending),
                f"Member {i} Dietary": member.dietary_restrictions or "",
                f"Member {i} Accessibility": member.accessibility_needs or "",
                f"Member {i} Added By Guest": "Yes" if member.added_by_guest else "No",
            })
        records.append(record)
    return pd.DataFrame(records, columns=columns).fillna("")


def export_guests(
    db: Session,
    wedding: models.Wedding,
    fmt: str = "xlsx",
    include_rsvp: bool = True,
) -> Tuple[bytes, str, str]:
    """Devuelve (contenido, nombre de archivo, media type)."""
    families = (
        db.query(models.Family)
        .filter(models.Family.wedding_id == wedding.id)
        .order_by(models.Family.name)
        .all()
    )
    df = build_export_frame(families, include_rsvp=include_rsvp)
    stamp = datetime.now().strftime("%Y%m%d")

    if fmt == "csv":
        return df.to_csv(index=False).encode("utf-8"), f"guests_{stamp}.csv", CSV_MEDIA_TYPE

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Guest List")
    logger.info("Exportación boda={} familias={} formato={}", wedding.id, len(families), fmt)
    return buffer.getvalue(), f"guests_{stamp}.xlsx", XLSX_MEDIA_TYPE


def build_template() -> bytes:
    """Plantilla vacía de importación con una fila de ejemplo."""
    headers = import_headers()
    example = ["García Family", "María García", "maria@example.com", "+34600111222", "+34600111222", "ES",
               "María García", "ADULT", "45", "Juan García", "ADULT", "47", "Lucía García", "CHILD", "8"]
    example += [""] * (len(headers) - len(example))
    df = pd.DataFrame([example], columns=headers)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Guest List")
    return buffer.getvalue()
