# nupci/utils/phone.py

# =================================================================================
# 📞 Normalización de teléfonos
# ---------------------------------------------------------------------------------
# Los teléfonos se guardan en formato E.164 siempre que sea posible. Si el número
# llega sin prefijo internacional se completa con el prefijo del país de la boda.
# =================================================================================

import re
from typing import Optional

COUNTRY_PHONE_PREFIXES = {
    "ES": "+34", "PT": "+351", "FR": "+33", "IT": "+39", "DE": "+49", "GB": "+44",
    "IE": "+353", "NL": "+31", "BE": "+32", "CH": "+41", "AT": "+43", "LU": "+352",
    "DK": "+45", "SE": "+46", "NO": "+47", "FI": "+358", "PL": "+48", "RO": "+40",
    "GR": "+30", "US": "+1", "CA": "+1", "MX": "+52", "AR": "+54", "CO": "+57",
    "CL": "+56", "PE": "+51", "BR": "+55", "VE": "+58", "UY": "+598", "EC": "+593",
    "AU": "+61", "NZ": "+64", "MA": "+212", "ZA": "+27",
}

E164_RE = re.compile(r"^\+[1-9]\d{9,14}$")


def normalize_phone(raw: Optional[str]) -> Optional[str]:
    """Devuelve el teléfono solo con dígitos y un '+' inicial, o None si queda vacío."""
    if raw is None:
        return None
    raw = str(raw).strip()
    if not raw:
        return None
    digits = re.sub(r"\D", "", raw)
    if not digits:
        return None
    return f"+{digits}" if raw.startswith("+") else digits


def get_country_prefix(country: Optional[str]) -> Optional[str]:
    if not country:
        return None
    return COUNTRY_PHONE_PREFIXES.get(country.strip().upper())


def process_phone_number(raw: Optional[str], country: Optional[str]) -> Optional[str]:
    """
    Normaliza y, si falta, añade el prefijo del país de la boda:
    - '+34 600 11 22 33' → '+34600112233'
    - '0034600112233'    → '+34600112233'
    - '600112233' (ES)   → '+34600112233'
    Sin país conocido se devuelve el número normalizado tal cual.
    """
    phone = normalize_phone(raw)
    if phone is None or phone.startswith("+"):
        return phone
    if phone.startswith("00"):
        return "+" + phone[2:]

    prefix = get_country_prefix(country)
    if not prefix:
        return phone
    if phone.startswith(prefix[1:]) and len(phone) > 10:  # Prefijo sin '+'.
        return "+" + phone
    return prefix + phone.lstrip("0")


def is_valid_e164(phone: Optional[str]) -> bool:
    return bool(phone) and bool(E164_RE.match(phone))
