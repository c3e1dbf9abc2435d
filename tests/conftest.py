"""Pytest configuration and fixtures for ESGTrack tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

import os

# The web app reads its configuration at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from esgtrack.categories import get_definition
from esgtrack.categories.layout import CategoryDefinition
from esgtrack.config import reset_config
from esgtrack.db.connection import enable_sqlite_savepoints
from esgtrack.db.models import Base

IRRIGATION_CSV = (
    "Year,Total Irrigation Water (million ML),Water per Hectare (ML/ha),"
    "Effluent Discharged (thousand ML),Water Treatment for Chiredzi (million ML)\n"
    '2022,185,12.5,"1,200",4.2\n'
    "2023,190,12.1,1100,N/A\n"
    "2024,178,11.8,980,4.0\n"
    "\n"
    "Water Sources:\n"
    "• Chiredzi River\n"
    "• Mutirikwi Dam\n"
).encode("utf-8")


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Point configuration at an in-memory database for every test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def company_id() -> str:
    """Test company ID."""
    return "company-a"


@pytest.fixture
def actor_id() -> str:
    """Acting user ID."""
    return "user-1"


@pytest.fixture
def irrigation() -> CategoryDefinition:
    return get_definition("irrigation")


@pytest.fixture
def irrigation_csv() -> bytes:
    """Sectioned irrigation export: yearly table followed by a bullet list."""
    return IRRIGATION_CSV


@pytest_asyncio.fixture()
async def db_session() -> AsyncSession:
    """Create in-memory database for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()
