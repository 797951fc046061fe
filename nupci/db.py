# nupci/db.py
# =================================================================================
# 🗄️ CONEXIÓN A LA BASE DE DATOS (SQLAlchemy)
# ---------------------------------------------------------------------------------
# Un único engine por proceso. PostgreSQL en producción, SQLite en local y en
# los tests. FORCE_DB=postgres (por defecto) impide arrancar sin DATABASE_URL.
# =================================================================================

import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from loguru import logger

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
FORCE_DB = os.getenv("FORCE_DB", "postgres").strip().lower()

# Placeholder de plataforma sin resolver (p. ej. "${{Postgres.DATABASE_URL}}").
if DATABASE_URL.startswith("${{") and DATABASE_URL.endswith("}}"):
    logger.warning("DATABASE_URL parece un placeholder sin resolver: {}", DATABASE_URL)
    DATABASE_URL = ""

if not DATABASE_URL:
    if FORCE_DB == "postgres":
        raise RuntimeError(
            "FATAL: DATABASE_URL no está disponible y FORCE_DB=postgres. "
            "Se aborta para evitar un fallback accidental a SQLite en producción."
        )
    logger.warning("DATABASE_URL está vacía. Usando fallback a SQLite local.")
    project_root = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))
    DATABASE_URL = f"sqlite:///{os.path.join(project_root, 'nupci.db')}"

# Algunos proveedores todavía entregan el esquema antiguo "postgres://".
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + DATABASE_URL[len("postgres://"):]

if DATABASE_URL.startswith("sqlite"):
    logger.info("DB in use → SQLite")
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
    )

    @event.listens_for(engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record):
        # SQLite no aplica ON DELETE CASCADE sin este pragma.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
else:
    logger.info("DB in use → PostgreSQL (o no-SQLite)")
    engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Dependencia de FastAPI para inyectar una sesión de BD por petición."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db):
    """
    Agrupa varias escrituras en una sola transacción.
    Hace commit al salir y rollback si algo lanza excepción (que se propaga).
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def log_db_path_on_startup() -> None:
    """Escribe en los logs qué motor de base de datos se está utilizando al arrancar."""
    try:
        url = engine.url
        logger.info("DB driver in use → {}", url.drivername)
        if url.drivername == "sqlite":
            db_file = getattr(url, "database", None)
            abs_path = os.path.abspath(db_file) if db_file else "<memory>"
            logger.info("DB path → {} (abs={})", db_file, abs_path)
    except Exception as e:
        logger.warning("No se pudo resolver la información de la BD: {}", e)
