# nupci/rate_limit.py                                                             # Ruta del archivo.

# =================================================================================
# 🚦 Rate limit ligero en memoria                                                 # Título.
# ---------------------------------------------------------------------------------
# - Ventana deslizante por clave (acción + IP).                                  # Descripción.
# - Pensado para un único proceso uvicorn; en multiinstancia usar un proxy.      # Alcance.
# - Protege los endpoints públicos: enlaces de acceso y búsqueda de invitados.  # Uso.
# =================================================================================

import os                                              # Lectura de límites desde el entorno.
import threading                                       # Lock: los endpoints sync corren en un threadpool.
import time                                            # Timestamps con time.monotonic().
from collections import deque                          # Cola eficiente para purgar por la izquierda.
from typing import Dict                                # Tipado.

from fastapi import Request, status                    # Petición entrante y códigos HTTP.
from loguru import logger                              # Trazas.

from nupci.core.errors import http_error               # HTTPException con detalle estructurado.

_BUCKETS: Dict[str, deque] = {}                        # clave → deque de timestamps.
_LOCK = threading.Lock()                               # Protege _BUCKETS.


def is_allowed(key: str, max_req: int, window_s: int) -> bool:
    """Devuelve True si la acción está permitida para 'key' según (max_req/window_s)."""
    if max_req <= 0:                                   # Límite 0 o negativo → sin rate limit.
        return True

    now = time.monotonic()                             # Reloj monótono (inmune a cambios de hora).
    cutoff = now - window_s                            # Límite inferior de la ventana.
    with _LOCK:
        bucket = _BUCKETS.setdefault(key, deque())     # Obtiene o crea el cubo.
        while bucket and bucket[0] <= cutoff:          # Purga intentos fuera de la ventana.
            bucket.popleft()
        if len(bucket) >= max_req:                     # Ventana llena → deniega.
            logger.warning("Rate limit hit for key='{}' ({}/{} in {}s)", key, len(bucket), max_req, window_s)
            return False
        bucket.append(now)                             # Registra el intento actual.
    return True


def get_limits_from_env(prefix: str, default_max: int, default_window: int) -> tuple[int, int]:
    """Lee {prefix}_MAX y {prefix}_WINDOW (segundos) del entorno; defaults si faltan o son inválidos."""
    try:
        max_req = int(os.getenv(f"{prefix}_MAX", str(default_max)))
        window = int(os.getenv(f"{prefix}_WINDOW", str(default_window)))
    except ValueError:
        max_req, window = default_max, default_window
    return max_req, window


def client_ip(request: Request) -> str:
    """IP real del cliente, respetando X-Forwarded-For de proxies/CDN."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce(request: Request, action: str, max_req: int, window_s: int) -> None:
    """Lanza 429 RATE_LIMITED si la IP superó el límite para 'action'."""
    if not is_allowed(f"{action}:{client_ip(request)}", max_req, window_s):
        raise http_error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "RATE_LIMITED",
            "Too many attempts. Please try again later.",
            headers={"Retry-After": str(window_s)},
        )


def reset() -> None:
    """Vacía todos los cubos (tests y recargas en caliente)."""
    with _LOCK:
        _BUCKETS.clear()
