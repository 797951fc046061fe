# nupci/config.py

# =================================================================================
# ⚙️ CONFIGURACIÓN COMPARTIDA (variables de entorno)
# ---------------------------------------------------------------------------------
# Valores que usan varios módulos a la vez. Cada módulo sigue leyendo con
# os.getenv lo que es exclusivamente suyo (proveedores, rate limits, JWT).
# El .env se carga en nupci/main.py con python-dotenv antes de importar nada.
# =================================================================================

import os


def _int_env(name: str, default: int) -> int:
    """Lee un entero del entorno; si el valor no es válido devuelve el default."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


# --- URLs públicas ---
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")

# --- Caché de la página RSVP y de los enlaces cortos (minutos) ---
RSVP_CACHE_TTL_MINUTES = _int_env("RSVP_CACHE_TTL_MINUTES", 60)
SHORT_URL_CACHE_TTL_MINUTES = _int_env("SHORT_URL_CACHE_TTL_MINUTES", 60)

# --- Límites de operaciones masivas ---
BULK_MAX_FAMILIES = 100
IMPORT_MAX_FAMILIES = 500
IMPORT_MAX_MEMBERS_PER_FAMILY = 10

# --- Orígenes CORS permitidos (separados por coma) ---
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if origin.strip()
]


def is_dry_run() -> bool:
    """DRY_RUN=1 (por defecto) simula los envíos de correo/SMS/WhatsApp."""
    return os.getenv("DRY_RUN", "1") == "1"
