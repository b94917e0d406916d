"""Service test fixtures — SQLite-backed store + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db_manager dependency overridden with a manager bound to the test engine
    - db_manager module singleton patched so readiness checks see the test DB

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      Advisory locks and FOR UPDATE are no-ops here. Races run against the
      in-memory fake store and, when configured, PostgreSQL
      (test_sql_store_concurrency.py)
    - Manager built via __new__: skips engine creation, reuses test_engine
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)
from httpx import ASGITransport, AsyncClient

from eventkeeper.db.base import Base
from eventkeeper.infrastructure.database import DatabaseSessionManager, get_db_manager
from eventkeeper.infrastructure.sql_store import SqlStore
import eventkeeper.infrastructure.database as db_module
import eventkeeper.models  # noqa: F401  registers tables on Base.metadata
from eventkeeper.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_manager(test_engine, test_session_factory):
    manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    manager.engine = test_engine
    manager._session_factory = test_session_factory
    return manager


@pytest.fixture
async def sql_store(test_manager):
    return SqlStore(test_manager)


@pytest.fixture
async def client(test_manager):
    """FastAPI test client with the session manager overridden."""
    app.dependency_overrides[get_db_manager] = lambda: test_manager

    original_manager = db_module.db_manager
    db_module.db_manager = test_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
