"""Root conftest — shared test configuration and database fixtures.

Invariants:
    - Environment is pinned before any cardledger module reads settings
    - Every test gets a fresh in-memory SQLite database
    - file_session_factory gives independent connections for concurrency tests

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for ledger rules
      (the in-memory pool shares one connection, so real interleaving needs a file DB)
"""

import os

os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("JWT_SECRET", "test-secret-for-the-card-ledger-suite")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, create_async_engine, async_sessionmaker,
)

import cardledger.models  # noqa: E402,F401
from cardledger.db.base import Base  # noqa: E402


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
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def file_session_factory(tmp_path):
    """Session factory over a file DB: each session gets its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
    await engine.dispose()
