# create_db.py

# =================================================================================
# 🏗️ SCRIPT DE CREACIÓN DE LA BASE DE DATOS (desarrollo local)
# ---------------------------------------------------------------------------------
# Crea todas las tablas de nupci.models y, si se indica, el primer master admin:
#   MASTER_ADMIN_EMAIL=ops@example.com MASTER_ADMIN_NAME="Ops" python create_db.py
# En producción el esquema lo gestiona Alembic (alembic upgrade head).
# =================================================================================

import os

from dotenv import load_dotenv

load_dotenv()  # DATABASE_URL / FORCE_DB antes de importar el engine.

from loguru import logger

from nupci import models
from nupci.db import Base, SessionLocal, engine


def create_database_tables():
    """
    Crea todas las tablas en la base de datos que están asociadas con `Base`.
    """
    logger.info("Creando tablas en la base de datos...")
    Base.metadata.create_all(bind=engine)
    logger.info("✔️ Base de datos y tablas creadas correctamente.")


def seed_master_admin(email: str, name: str) -> None:
    """Crea el master admin inicial si todavía no existe ninguno con ese email."""
    email = email.strip().lower()
    db = SessionLocal()
    try:
        if db.query(models.MasterAdmin).filter(models.MasterAdmin.email == email).first():
            logger.info("Master admin {} ya existe; no se crea.", email)
            return
        db.add(models.MasterAdmin(email=email, name=name))
        db.commit()
        logger.info("✔️ Master admin {} creado.", email)
    finally:
        db.close()


if __name__ == "__main__":
    create_database_tables()
    master_email = os.getenv("MASTER_ADMIN_EMAIL", "").strip()
    if master_email:
        seed_master_admin(master_email, os.getenv("MASTER_ADMIN_NAME", "Master Admin"))
