"""Pytest configuration and fixtures."""

import os
import tempfile

# Settings are read once; point them at throwaway locations before any import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="property-api-test-"))

from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from property_api.core.database import create_session_factory, init_db
from property_api.repositories.property import PropertyRepository
from property_api.services.admin_property import AdminPropertyService
from property_api.services.audit import AuditService
from property_api.services.property import PropertyService
from property_api.services.storage import ImageStore, ImageUpload, LocalFileSystemProvider

OWNER_ID = "user-owner-1"
OTHER_OWNER_ID = "user-owner-2"
ADMIN_ID = "admin-1"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine):
    async with create_session_factory(engine)() as session:
        yield session


@pytest.fixture
def image_root(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def image_store(image_root: Path) -> ImageStore:
    return ImageStore(
        provider=LocalFileSystemProvider(image_root),
        namespace="property-images",
        io_timeout_seconds=5.0,
    )


@pytest.fixture
def repository(db_session) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def owner_service(repository: PropertyRepository, image_store: ImageStore) -> PropertyService:
    return PropertyService(repository.scoped(OWNER_ID), image_store)


@pytest.fixture
def other_owner_service(repository: PropertyRepository, image_store: ImageStore) -> PropertyService:
    return PropertyService(repository.scoped(OTHER_OWNER_ID), image_store)


@pytest.fixture
def admin_service(repository: PropertyRepository, db_session, image_store: ImageStore) -> AdminPropertyService:
    return AdminPropertyService(repository, AuditService(db_session), image_store)


@pytest.fixture
def cabin_payload() -> dict[str, Any]:
    """The Lakeview Cabin listing."""
    return {
        "name": "Lakeview Cabin",
        "description": "Quiet cabin on the north shore",
        "property_type": "CABIN",
        "address": {
            "street": "12 Shoreline Rd",
            "city": "Tahoe",
            "state_province": "CA",
            "postal_code": "96150",
            "country": "US",
        },
        "accommodates": 4,
        "bedrooms": 2,
        "beds": 3,
        "bathrooms": 1,
    }


@pytest.fixture
def apartment_payload() -> dict[str, Any]:
    return {
        "name": "Downtown Loft",
        "property_type": "APARTMENT",
        "address": {
            "street": "400 Market St",
            "city": "San Francisco",
            "country": "US",
        },
        "accommodates": 2,
        "bedrooms": 1,
        "beds": 1,
        "bathrooms": 1.5,
        "amenities": {"wifi": True, "kitchen": True},
    }


def make_upload(filename: str = "photo.jpg", content: bytes = b"\xff\xd8\xff-image") -> ImageUpload:
    return ImageUpload(filename=filename, content=content)


def stored_path(image_root: Path, reference: str) -> Path:
    return image_root / reference.lstrip("/")
