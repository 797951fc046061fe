# nupci/utils/i18n.py

from __future__ import annotations

from datetime import datetime

# =================================================================================
# 🔤 Resolución de idioma: payload > valor guardado > Accept-Language > default
# =================================================================================

SUPPORTED_LANGS = ("ES", "EN", "FR", "IT", "DE")
DEFAULT_LANG = "ES"


def _base_lang(code: str | None) -> str | None:
    """Normaliza 'es-ES', 'en', 'fr-CA;q=0.8' a 'ES'/'EN'/'FR'; None si no está soportado."""
    if code is None:
        return None
    code = str(getattr(code, "value", code)).strip()
    if not code:
        return None
    primary = code.split(",")[0].split(";")[0].strip()
    primary = primary.split("-")[0].split("_")[0].upper()
    return primary if primary in SUPPORTED_LANGS else None


def _from_accept_language(header: str | None) -> str | None:
    """Primer idioma soportado de la cabecera Accept-Language (en orden de aparición)."""
    if not header:
        return None
    for part in header.split(","):
        cand = _base_lang(part)
        if cand:
            return cand
    return None


def resolve_lang(
    payload_lang: str | None,
    stored_lang: str | None = None,
    accept_language_header: str | None = None,
    default: str = DEFAULT_LANG,
) -> str:
    """Resuelve y devuelve siempre un idioma soportado."""
    for cand in (_base_lang(payload_lang), _base_lang(stored_lang), _from_accept_language(accept_language_header)):
        if cand:
            return cand
    return _base_lang(default) or DEFAULT_LANG


# =================================================================================
# 🗓️ Fechas legibles sin depender del locale del sistema
# =================================================================================
_MONTHS = {
    "ES": ["enero", "febrero", "marzo", "abril", "mayo", "junio", "julio", "agosto",
           "septiembre", "octubre", "noviembre", "diciembre"],
    "EN": ["January", "February", "March", "April", "May", "June", "July", "August",
           "September", "October", "November", "December"],
    "FR": ["janvier", "février", "mars", "avril", "mai", "juin", "juillet", "août",
           "septembre", "octobre", "novembre", "décembre"],
    "IT": ["gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno", "luglio", "agosto",
           "settembre", "ottobre", "novembre", "dicembre"],
    "DE": ["Januar", "Februar", "März", "April", "Mai", "Juni", "Juli", "August",
           "September", "Oktober", "November", "Dezember"],
}


def format_date(value: datetime | None, lang_code: str | None) -> str:
    """Fecha en texto según idioma: '14 de junio de 2027', 'June 14, 2027', '14. Juni 2027'..."""
    if value is None:
        return ""
    lang = _base_lang(lang_code) or DEFAULT_LANG
    month = _MONTHS[lang][value.month - 1]
    d, y = value.day, value.year
    if lang == "ES":
        return f"{d} de {month} de {y}"
    if lang == "EN":
        return f"{month} {d}, {y}"
    if lang == "DE":
        return f"{d}. {month} {y}"
    return f"{d} {month} {y}"
