"""
Top-level pytest configuration.

Provides:
  - A fresh in-memory SQLite database (aiosqlite) with all tables per test.
  - A db_session fixture whose writes live in one outer transaction that is
    rolled back on teardown. SAVEPOINTs work, so service code that opens
    ``begin_nested()`` blocks behaves as it does on PostgreSQL.
  - An async_client fixture wired to the FastAPI app, with Redis replaced by
    fakeredis and the ARQ pool by an AsyncMock.
"""

from __future__ import annotations

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any matchengine module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)


def _enable_sqlite_savepoints(test_engine) -> None:
    """
    Let SQLAlchemy own transaction boundaries on aiosqlite.

    The sqlite3 driver emits its own BEGIN lazily and ends transactions
    before SAVEPOINT, which breaks ``begin_nested()``. Turning the driver's
    handling off and emitting BEGIN ourselves restores working savepoints.
    """

    @event.listens_for(test_engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Per-test engine: a fresh in-memory database, shared via StaticPool so every
# session in the test sees the same data.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    """Create the SQLite test engine and all tables."""
    from matchengine.core.database import Base
    import matchengine.models  # noqa: F401  registers every table on Base.metadata

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_savepoints(test_engine)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


class _NonCommittingSession(AsyncSession):
    """AsyncSession subclass where commit() becomes flush().

    Endpoint handlers and tasks call ``await db.commit()`` after writes. In
    the test suite those writes must stay visible to later reads in the same
    test without escaping the outer transaction, which is rolled back in
    fixture teardown.
    """

    async def commit(self) -> None:  # type: ignore[override]
        await self.flush()


@pytest_asyncio.fixture
async def db_connection(engine):
    """Connection holding the outer transaction every test session joins."""
    async with engine.connect() as conn:
        await conn.begin()
        try:
            yield conn
        finally:
            await conn.rollback()


@pytest_asyncio.fixture
async def db_session(db_connection) -> AsyncGenerator[AsyncSession, None]:
    """Provide a per-test database session that is fully rolled back on teardown."""
    session = _NonCommittingSession(bind=db_connection, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def session_factory(db_connection):
    """Stand-in for AsyncSessionLocal, for code that opens its own sessions."""

    def _factory() -> AsyncSession:
        return _NonCommittingSession(bind=db_connection, expire_on_commit=False)

    return _factory


# ---------------------------------------------------------------------------
# Redis mock: fakeredis so the profile cache runs without a Redis server.
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def mock_redis(monkeypatch):
    """Replace the Redis client with an in-process fakeredis instance."""
    import fakeredis
    import fakeredis.aioredis as fakeredis_async

    fake_server = fakeredis.FakeServer()
    fake_redis = fakeredis_async.FakeRedis(server=fake_server, decode_responses=True)

    async def _get_redis():
        return fake_redis

    monkeypatch.setattr("matchengine.core.cache.get_redis", _get_redis)
    return fake_redis


# ---------------------------------------------------------------------------
# ARQ task queue mock: keeps tests from reaching Redis for job queuing.
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def mock_arq(monkeypatch):
    """Stub out the ARQ task queue."""
    fake_arq = AsyncMock()
    fake_arq.enqueue_job = AsyncMock(return_value=None)

    async def _get_arq_pool():
        return fake_arq

    monkeypatch.setattr("matchengine.core.arq.get_arq_pool", _get_arq_pool)
    return fake_arq


# ---------------------------------------------------------------------------
# Override FastAPI database dependency to use the test session.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an httpx AsyncClient backed by the FastAPI app.

    The app's get_db dependency is overridden to yield the test session so
    all requests in a test share one transactional session and see any data
    seeded in that test.
    """
    from matchengine.core.database import get_db
    from matchengine.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client

    app.dependency_overrides.clear()
