"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.db.engine import create_schema, create_session_factory
from backend.app.db.models import Base
from backend.app.models.uploads import UploadedFile
from backend.app.uploads.parser import parse_upload

SALES_CSV = """Region,Product,Revenue,Date
North,Widget,1200,2025-01-03
South,Gadget,800,2025-01-04
East,Widget,450,2025-01-05
"""

CUSTOMERS_JSON = '[{"name": "Ada", "country": "UK"}, {"name": "Lin", "country": "SG"}]'


@pytest.fixture
def sales_file() -> UploadedFile:
    """CSV upload with a four-column header and three data rows."""
    return parse_upload("sales.csv", "text/csv", SALES_CSV)


@pytest.fixture
def customers_file() -> UploadedFile:
    """JSON upload with two records."""
    return parse_upload("customers.json", "application/json", CUSTOMERS_JSON)


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/dashboards.db", poolclass=NullPool)
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the SQLite test engine."""
    return create_session_factory(sqlite_engine)


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires POSTGRES_TEST_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("POSTGRES_TEST_URL")
    if not database_url:
        pytest.skip("POSTGRES_TEST_URL not set - skipping postgres test")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
