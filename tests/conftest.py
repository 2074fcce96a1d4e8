"""
Tadoku Backend — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the whole suite.

Fixtures:
    mock_db_session:  AsyncMock session for service unit tests (no database)
    mock_store:       AsyncMock LedgerStore for quota/ledger/statistics tests
    sqlite_session:   real AsyncSession on an in-memory aiosqlite database,
                      tables created from Base.metadata
    test_client:      httpx AsyncClient bound to the FastAPI app through
                      ASGITransport, with get_db_session overridden to the
                      sqlite session
    tokyo:            the reference timezone used throughout the tests
"""

import os

# Settings and the engine are built at import time, so the environment
# must be in place before anything from tadoku is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["REFERENCE_TIMEZONE"] = "Asia/Tokyo"
os.environ["DAILY_GENERATION_LIMIT"] = "10"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime  # noqa: E402
from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import pytz  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from tadoku.database import Base, get_db_session  # noqa: E402
from tadoku.models import Story, User  # noqa: E402
from tadoku.services.ledger_store import LedgerStore  # noqa: E402

TOKYO = pytz.timezone("Asia/Tokyo")


@pytest.fixture
def tokyo():
    return TOKYO


@pytest.fixture
def at():
    """Aware datetime in Asia/Tokyo: at(2024, 3, 15, 10, 0)."""

    def make(*args) -> datetime:
        return TOKYO.localize(datetime(*args))

    return make


# ══════════════════════════════════════════════════════════════════════════
# Mocked Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession.

    begin_nested() returns an async context manager whose __aexit__ returns
    False, so exceptions raised inside the block propagate as they would
    with a real SAVEPOINT.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()

    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    session.begin_nested = MagicMock(return_value=savepoint)
    return session


@pytest.fixture
def mock_store():
    """LedgerStore with every method replaced by an AsyncMock."""
    return AsyncMock(spec=LedgerStore)


# ══════════════════════════════════════════════════════════════════════════
# SQLite-backed Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def sqlite_engine():
    # StaticPool: every session shares the one in-memory database.
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sqlite_session(sqlite_engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_user(sqlite_session) -> User:
    user = User(email="reader@example.com")
    sqlite_session.add(user)
    await sqlite_session.flush()
    return user


@pytest.fixture
def make_story(sqlite_session):
    """Inserts a story owned by `user_id` with `word_count` words."""

    async def make(user_id: int, word_count: int, title: str = "story") -> Story:
        story = Story(
            user_id=user_id,
            title=title,
            content=" ".join(["word"] * word_count),
            word_count=word_count,
        )
        sqlite_session.add(story)
        await sqlite_session.flush()
        return story

    return make


@pytest_asyncio.fixture
async def test_client(sqlite_engine) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client for endpoint tests.

    Each request gets its own session on the shared in-memory engine and
    commits on success, like the production dependency.
    """
    from tadoku.main import app

    factory = async_sessionmaker(sqlite_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
