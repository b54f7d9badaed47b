"""
Top-level pytest configuration.

Provides:
  - A fresh in-memory SQLite database (aiosqlite) per test, with all tables.
  - A db_session fixture bound to it.
  - A fake ARQ pool so side-effect dispatch never reaches Redis; tests can
    inspect ``fake_arq.enqueue_job`` calls.
  - An async_client fixture wired to the FastAPI app.
  - Seeded members and bearer-token helpers.
"""

from __future__ import annotations

import os
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock

# ---------------------------------------------------------------------------
# Environment must be set BEFORE any app module is imported so that
# pydantic-settings picks up the test values.
# ---------------------------------------------------------------------------
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASSWORD", "test")
os.environ.setdefault("POSTGRES_DB", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-32c")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("EMAIL_API_KEY", "")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from tests.factories import MemberFactory

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ---------------------------------------------------------------------------
# Per-test engine: a brand new in-memory database for every test, shared by
# all connections of that test through StaticPool.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def engine():
    """Create the SQLite test engine and all tables."""
    # Import Base here (after env vars are set) to ensure models register.
    from app.core.database import Base
    import app.models  # noqa: F401

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    """Session factory for code that opens its own sessions (worker tasks)."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# ARQ task queue mock: side effects are recorded, never executed.
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def fake_arq(monkeypatch) -> AsyncMock:
    """Stub out the ARQ pool used by the side-effect dispatcher."""
    pool = AsyncMock()
    pool.enqueue_job = AsyncMock(return_value=None)

    async def _get_arq_pool():
        return pool

    monkeypatch.setattr("app.core.arq.get_arq_pool", _get_arq_pool)
    return pool


@pytest.fixture
def enqueued(fake_arq: AsyncMock) -> Callable:
    """Positional args of every enqueued job for a given task name.

    Side effects are enqueued from background tasks, so those are drained
    before the calls are read.
    """
    from app.services.side_effect_dispatcher import drain_background_tasks

    async def _enqueued(function: str) -> list[tuple]:
        await drain_background_tasks(timeout=5.0)
        return [c.args[1:] for c in fake_arq.enqueue_job.call_args_list if c.args[0] == function]

    return _enqueued


# ---------------------------------------------------------------------------
# Override FastAPI database dependency to use the test session.
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an httpx AsyncClient backed by the FastAPI app.

    The app's get_db dependency is overridden to yield the test session so all
    requests in a test see the data seeded in that test.
    """
    from app.core.database import get_db
    from app.main import app
    from app.services.side_effect_dispatcher import drain_background_tasks

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client

    await drain_background_tasks(timeout=1.0)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seeded fixtures
# ---------------------------------------------------------------------------
@pytest_asyncio.fixture
async def alice(db_session: AsyncSession):
    """Approved member."""
    profile = await MemberFactory.create_async(db_session, name="Alice Rao", email="alice@example.com")
    await db_session.commit()
    return profile


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession):
    """Approved member."""
    profile = await MemberFactory.create_async(db_session, name="Bob Iyer", email="bob@example.com")
    await db_session.commit()
    return profile


@pytest_asyncio.fixture
async def carol(db_session: AsyncSession):
    """Member whose profile is still waiting for approval."""
    from app.models.profile import ApprovalStatus

    profile = await MemberFactory.create_async(
        db_session, name="Carol Shah", email="carol@example.com",
        approval_status=ApprovalStatus.pending,
    )
    await db_session.commit()
    return profile


@pytest.fixture
def headers_for() -> Callable:
    """Build Authorization headers for a member's profile."""
    from app.core.security import create_access_token

    def _headers(profile) -> dict[str, str]:
        token = create_access_token(data={"sub": str(profile.user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
