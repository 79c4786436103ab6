"""Shared test configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure the project root and the API service are importable (`app`, `catalog_client`)
PROJECT_ROOT = Path(__file__).resolve().parent.parent
for path in (PROJECT_ROOT, PROJECT_ROOT / "catalog_api"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# Test environment must be in place before the app modules are imported
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory schema per test."""
    from app.database import Base, engine
    from app.models import book  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(db_engine):
    from app.database import async_session

    async with async_session() as s:
        yield s


@pytest_asyncio.fixture
async def client(db_engine):
    """Create a test client for the FastAPI app."""
    from app.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client(db_engine):
    """Catalog client wired straight into the ASGI app."""
    from app.main import app
    from catalog_client.api import BookApiClient

    async with BookApiClient("http://test/api", transport=ASGITransport(app=app)) as c:
        yield c
