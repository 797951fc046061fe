# nupci/cache.py

# =================================================================================
# 🧊 CACHÉS EN MEMORIA CON TTL
# ---------------------------------------------------------------------------------
# - Página RSVP: solo la parte común de cada boda (configuración, tema y plantilla
#   de invitación), nunca los datos de la familia. Clave: wedding_id.
# - Enlaces cortos: (iniciales, código) → magic token.
# Se invalida al modificar la boda, su tema o su plantilla de invitación.
# Caché por proceso: con varias réplicas cada una expira por TTL.
# =================================================================================

import threading
import time
from typing import Any, Dict, Optional, Tuple

from loguru import logger
from sqlalchemy.orm import Session

from nupci import config
from nupci.models import Wedding


class TTLCache:
    """Diccionario con expiración por entrada (get/set/delete/clear)."""

    def __init__(self, name: str, ttl_seconds: int):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._data: Dict[Any, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Any) -> Optional[Any]:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if time.monotonic() >= expires_at:
                del self._data[key]
                return None
            return value

    def set(self, key: Any, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._data[key] = (time.monotonic() + ttl, value)

    def delete(self, key: Any) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def delete_where(self, predicate) -> int:
        """Borra las entradas para las que predicate(key, value) es verdadero."""
        with self._lock:
            keys = [k for k, (_, v) in self._data.items() if predicate(k, v)]
            for k in keys:
                del self._data[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


rsvp_page_cache = TTLCache("rsvp_page", config.RSVP_CACHE_TTL_MINUTES * 60)
short_url_cache = TTLCache("short_url", config.SHORT_URL_CACHE_TTL_MINUTES * 60)


# =================================================================================
# 📄 Página RSVP
# =================================================================================
def get_cached_rsvp_page(wedding_id: str) -> Optional[dict]:
    return rsvp_page_cache.get(wedding_id)


def set_cached_rsvp_page(wedding_id: str, data: dict) -> None:
    rsvp_page_cache.set(wedding_id, data)


def invalidate_rsvp_cache(wedding_id: str) -> None:
    if rsvp_page_cache.delete(wedding_id):
        logger.debug("Caché RSVP invalidada para wedding_id={}", wedding_id)
    # Las iniciales de la boda pueden haber cambiado: se descartan sus enlaces cortos.
    short_url_cache.delete_where(lambda key, value: value.get("wedding_id") == wedding_id)


def invalidate_rsvp_cache_for_theme(db: Session, theme_id: str) -> int:
    """Invalida todas las bodas que usan el tema. Devuelve cuántas había."""
    wedding_ids = [row.id for row in db.query(Wedding.id).filter(Wedding.theme_id == theme_id)]
    for wedding_id in wedding_ids:
        invalidate_rsvp_cache(wedding_id)
    return len(wedding_ids)


def invalidate_rsvp_cache_for_template(db: Session, template_id: str) -> int:
    """Invalida todas las bodas que usan la plantilla de invitación."""
    wedding_ids = [
        row.id for row in db.query(Wedding.id).filter(Wedding.invitation_template_id == template_id)
    ]
    for wedding_id in wedding_ids:
        invalidate_rsvp_cache(wedding_id)
    return len(wedding_ids)


def invalidate_short_urls_for_families(family_ids) -> int:
    """Descarta los enlaces cortos cacheados de familias borradas o con token nuevo."""
    ids = set(family_ids)
    return short_url_cache.delete_where(lambda key, value: value.get("family_id") in ids)


def clear_rsvp_cache() -> None:
    rsvp_page_cache.clear()
    short_url_cache.clear()
