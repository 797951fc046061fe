# nupci/main.py

# ================================================================
# 🧱 MODO MANTENIMIENTO (Control temporal desde variable de entorno)
# ================================================================

import os

# Si la variable MAINTENANCE_MODE=1 está activa, se crea una app mínima
if os.getenv("MAINTENANCE_MODE") == "1":
    from fastapi import FastAPI
    from fastapi.responses import JSONResponse
    from loguru import logger

    app = FastAPI(title="Nupci API en mantenimiento")

    @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"])
    async def maintenance_page(path: str):
        """Responde a cualquier ruta y método con mensaje neutro de mantenimiento."""
        return JSONResponse(
            status_code=503,
            content={
                "status": "offline",
                "message": "🌙 El sistema está en mantenimiento. Vuelve más tarde.",
            },
        )

    logger.warning("🚧 API arrancada en MODO MANTENIMIENTO. Todos los endpoints reales están desactivados.")
else:
    # =================================================================================
    # 🧠 NÚCLEO DE LA APLICACIÓN API (FastAPI)
    # ---------------------------------------------------------------------------------
    # - Carga .env ANTES de importar módulos que leen el entorno al importarse.
    # - Configura CORS y el manejador de NupciError.
    # - Registra routers; los de ámbito de boda se montan dos veces:
    #     /api/admin                          → la pareja (boda del token)
    #     /api/planner/weddings/{wedding_id}  → el planner dueño de la boda
    # =================================================================================

    from pathlib import Path

    from dotenv import load_dotenv                                   # Carga variables desde .env.
    from fastapi import FastAPI                                      # Crea la aplicación.
    from fastapi.middleware.cors import CORSMiddleware               # Orígenes permitidos del frontend.
    from loguru import logger                                        # Trazas de arranque.

    env_path = Path(".") / ".env"                                     # Ruta al .env del directorio actual.
    load_dotenv(dotenv_path=env_path)                                  # Antes de importar config.

    logger.info(
        "[BOOT] DRY_RUN={} | EMAIL_PROVIDER={} | EMAIL_FROM={} | SG_KEY_SET={} | TWILIO_SET={}",
        os.getenv("DRY_RUN", "1"),
        os.getenv("EMAIL_PROVIDER", "sendgrid"),
        os.getenv("EMAIL_FROM"),
        "yes" if os.getenv("SENDGRID_API_KEY") else "no",
        "yes" if os.getenv("TWILIO_ACCOUNT_SID") else "no",
    )

    from nupci import config, meta
    from nupci.core.errors import NupciError, nupci_error_handler
    from nupci.db import log_db_path_on_startup
    from nupci.routers import (
        auth_routes,
        guest,
        guests,
        master,
        notifications,
        planner,
        reminders,
        templates,
        wedding,
    )

    app = FastAPI(
        title="Nupci API",
        description="Backend multi-boda: planners, parejas e invitados con enlace mágico",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(NupciError, nupci_error_handler)   # Errores de dominio → JSON {code, message}.

    @app.on_event("startup")
    def _startup_db_trace() -> None:
        log_db_path_on_startup()

    @app.get("/health", tags=["meta"])
    def health():
        return {"status": "ok"}                              # Comprobación de vida para el hosting.

    app.include_router(auth_routes.router)
    app.include_router(guest.router)                         # Invitados con magic link.
    app.include_router(meta.router)
    app.include_router(master.router)                        # Administración global.
    app.include_router(planner.router)                       # Panel del planner.

    WEDDING_SCOPED_ROUTERS = (guests, wedding, reminders, templates, notifications)
    for module in WEDDING_SCOPED_ROUTERS:
        app.include_router(module.router, prefix="/api/admin")
        app.include_router(module.router, prefix="/api/planner/weddings/{wedding_id}")
