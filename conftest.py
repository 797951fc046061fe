# conftest.py
# -------------------------------------------------------------------------------------
# Archivo: conftest.py (raíz del proyecto)
# Propósito: Configurar pytest para probar la API sin servicios externos.
#            - Prepara el entorno ANTES de importar nupci (db.py, auth.py y
#              security.py leen variables al importarse).
#            - SQLite temporal, DRY_RUN=1 (no sale ningún email/SMS real).
#            - Esquema nuevo en cada test; cachés y rate limits vacíos.
#            - Factorías de planners, bodas, parejas y familias + cabeceras Bearer.
# -------------------------------------------------------------------------------------

import os
import tempfile
import uuid
from datetime import timedelta

# =========================
# Entorno de pruebas
# =========================
_TMP_DIR = tempfile.mkdtemp(prefix="nupci-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'nupci_test.db')}"
os.environ["FORCE_DB"] = "sqlite"
os.environ["DRY_RUN"] = "1"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["APP_URL"] = "https://nupci.example.com"
os.environ.pop("MAINTENANCE_MODE", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from nupci import auth, cache, models, rate_limit, schemas  # noqa: E402
from nupci.crud import families_crud  # noqa: E402
from nupci.db import Base, SessionLocal, engine  # noqa: E402
from nupci.main import app  # noqa: E402
from nupci.services import short_url  # noqa: E402
from nupci.utils.timeutils import utcnow  # noqa: E402

ADMIN_KEY = os.environ["ADMIN_API_KEY"]


def _unique_email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


# =========================
# Base de datos y cliente
# =========================
@pytest.fixture(autouse=True)
def _fresh_database():
    """Cada test arranca con tablas vacías, sin caché y sin cubos de rate limit."""
    Base.metadata.create_all(bind=engine)
    cache.clear_rsvp_cache()
    rate_limit.reset()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_key_headers():
    return {"x-admin-key": ADMIN_KEY}


# =========================
# Factorías
# =========================
@pytest.fixture
def make_master(db):
    def _make(email=None, name="Marta Master"):
        master = models.MasterAdmin(email=email or _unique_email("master"), name=name)
        db.add(master)
        db.commit()
        db.refresh(master)
        return master
    return _make


@pytest.fixture
def make_planner(db):
    def _make(email=None, name="Paula Planner", enabled=True):
        planner = models.WeddingPlanner(email=email or _unique_email("planner"), name=name, enabled=enabled)
        db.add(planner)
        db.commit()
        db.refresh(planner)
        return planner
    return _make


@pytest.fixture
def make_wedding(db, make_planner):
    """Boda ACTIVA dentro de 60 días con fecha límite de RSVP dentro de 30 (ajustable)."""
    def _make(planner=None, couple_names="Laura y Javier", days_ahead=60, cutoff_days=30, **fields):
        planner = planner or make_planner()
        now = utcnow()
        fields.setdefault("wedding_country", "ES")
        wedding = models.Wedding(
            planner_id=planner.id,
            couple_names=couple_names,
            wedding_date=now + timedelta(days=days_ahead),
            wedding_time="18:00",
            location="Finca El Olivar, Sevilla",
            rsvp_cutoff_date=now + timedelta(days=cutoff_days),
            **fields,
        )
        db.add(wedding)
        db.flush()
        short_url.ensure_wedding_initials(db, wedding)
        db.commit()
        db.refresh(wedding)
        return wedding
    return _make


@pytest.fixture
def make_admin(db):
    def _make(wedding, email=None, name="Laura", **fields):
        admin = models.WeddingAdmin(
            wedding_id=wedding.id, email=email or _unique_email("couple"), name=name, **fields
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        return admin
    return _make


@pytest.fixture
def make_family(db):
    def _make(wedding, name="Familia García", members=("Ana García", "Luis García"), **fields):
        payload = schemas.FamilyCreate(name=name, members=[{"name": m} for m in members], **fields)
        return families_crud.create_family(db, wedding, payload)
    return _make


# =========================
# Escenario habitual: un planner, su boda y la pareja
# =========================
@pytest.fixture
def planner(make_planner):
    return make_planner()


@pytest.fixture
def wedding(make_wedding, planner):
    return make_wedding(planner=planner)


@pytest.fixture
def couple(make_admin, wedding):
    return make_admin(wedding)


# =========================
# Autenticación
# =========================
@pytest.fixture
def auth_headers():
    """Devuelve una función (fila ORM, rol) → cabecera Authorization con un access token válido."""
    def _headers(user, role):
        token = auth.create_access_token(user.id, role, wedding_id=getattr(user, "wedding_id", None))
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def planner_headers(auth_headers, planner):
    return auth_headers(planner, auth.ROLE_PLANNER)


@pytest.fixture
def couple_headers(auth_headers, couple):
    return auth_headers(couple, auth.ROLE_WEDDING_ADMIN)
