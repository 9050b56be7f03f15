"""
Shared fixtures.

Strategy:
- Engine tests are synchronous and build ``Employee`` schemas directly with
  the factories in ``tests/helpers.py``.
- API and store tests run against an in-memory SQLite database (aiosqlite,
  one shared connection through StaticPool). Tables are recreated for every
  test that asks for ``client`` or ``db`` and the app's ``get_db``
  dependency is overridden to use it.
- The environment is set before ``pointage`` is imported so the module-level
  engine never points at PostgreSQL and the lifespan never shells out to
  Alembic.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ.pop("SCHEDULE_CONFIG_FILE", None)
os.environ.pop("HOLIDAY_DATA_FILE", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pointage.db.models import Base
from pointage.db.session import get_db
from pointage.main import app
from pointage.services.rules import AttendanceRules

# ---------------------------------------------------------------------------
# Database engine for tests
# ---------------------------------------------------------------------------
_test_engine = create_async_engine(
    "sqlite+aiosqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_TestSession = async_sessionmaker(_test_engine, class_=AsyncSession, expire_on_commit=False)


async def _override_get_db():
    async with _TestSession() as session:
        yield session


@pytest_asyncio.fixture
async def schema():
    """Fresh tables."""
    async with _test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest_asyncio.fixture
async def client(schema) -> AsyncClient:
    """HTTPX client bound to the app with ``get_db`` pointed at the test DB."""
    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def db(schema) -> AsyncSession:
    """Raw DB session for direct store calls and queries in tests."""
    async with _TestSession() as session:
        yield session


@pytest.fixture
def rules() -> AttendanceRules:
    """Built-in defaults: Sales/other 09:00-13:00/14:00-18:00, Production works Saturdays."""
    return AttendanceRules()
