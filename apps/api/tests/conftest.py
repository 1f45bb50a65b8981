"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- Local blob storage under tmp_path
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import AsyncGenerator, Generator

# Settings are read at import time
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.config import settings
from app.core.deps import COOKIE_NAME, get_db
from app.core.security import create_access_token
from app.db.base import Base
from app.db.enums import PhotoStage
from app.db.models import Client, Package
from app.services import blob_store
from app.services.change_feed import deliverable_status_cache

CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}

WEDDING_DELIVERABLES = [
    "Album Design Ready",
    "Laminated Frame(s) Ready",
    "Picstory Created (30s)",
    "Reel Videos Edited (2 x 30s)",
    "Highlight Video Ready (3–5 min)",
    "Full Video Ready",
    "Calendar Designed",
    "Raw Files Shared",
]


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine) -> Generator[Session, None, None]:
    """Session on a fresh database; app code commits normally."""
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture(autouse=True)
def _reset_change_cache():
    deliverable_status_cache.clear()
    yield
    deliverable_status_cache.clear()


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def storage_root(tmp_path, monkeypatch) -> str:
    """Local blob storage rooted in the test's tmp dir."""
    root = str(tmp_path / "storage")
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local", raising=False)
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", root, raising=False)
    return root


def _store_photos(client_id: uuid.UUID, stage: PhotoStage, count: int, prefix: str = "photo") -> list[str]:
    names = [f"{prefix}-{i:03d}.jpg" for i in range(count)]
    for name in names:
        blob_store.upload(stage, client_id, name, f"bytes of {name}".encode(), "image/jpeg")
    return names


@pytest.fixture
def put_photos(storage_root):
    """Store `count` small JPEGs in a client folder and return their names."""
    return _store_photos


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def photographer_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def wedding_package(db: Session) -> Package:
    package = Package(
        name="Premium Wedding Package",
        price=Decimal("3500.00"),
        max_edited_photos=100,
        includes=["Full day coverage", "2 photographers"],
        deliverables=list(WEDDING_DELIVERABLES),
    )
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


@pytest.fixture
def small_package(db: Session) -> Package:
    package = Package(
        name="Mini Session",
        price=Decimal("300.00"),
        max_edited_photos=5,
        includes=["30 minute session"],
        deliverables=["A", "B"],
    )
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


@pytest.fixture
def wedding_client(db: Session, photographer_id: uuid.UUID, wedding_package: Package) -> Client:
    client = Client(
        photographer_id=photographer_id,
        package_id=wedding_package.id,
        name="Priya & Sam",
        contact="priya@example.com",
        event_type="wedding",
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


@pytest.fixture
def small_client(db: Session, photographer_id: uuid.UUID, small_package: Package) -> Client:
    client = Client(
        photographer_id=photographer_id,
        package_id=small_package.id,
        name="Jordan Lee",
        contact="+1 555 0100",
        event_type="portrait",
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user_id: uuid.UUID
    token: str
    cookie_name: str = COOKIE_NAME


@pytest.fixture
def test_auth(photographer_id: uuid.UUID) -> TestAuth:
    """JWT for the photographer owning the fixture clients."""
    return TestAuth(
        user_id=photographer_id,
        token=create_access_token(photographer_id, email="studio@example.com"),
    )


# =============================================================================
# Client Fixtures
# =============================================================================

def _override_db(db: Session):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient (shared links, auth failures)."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=CSRF_HEADERS,
    ) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def authed_client(db: Session, test_auth: TestAuth) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated AsyncClient with bearer token and CSRF header."""
    _override_db(db)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {test_auth.token}", **CSRF_HEADERS},
    ) as c:
        yield c
    app.dependency_overrides.clear()
