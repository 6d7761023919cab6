"""Ledger Database — engine, request sessions and the write transaction boundary.

Invariants:
    - A request session never outlives its request and is rolled back on any failure
    - Driver and ORM failures reach the API only as StorageError (503, generic message)
    - Card writes (create, update, post, delete) run inside unit_of_work(); nothing is
      committed unless the service reaches its own commit()
    - SQLite URLs (tests) get no pool sizing; PostgreSQL gets pre-ping and recycling

Design Decisions:
    - db_manager singleton set by init_db() from the FastAPI lifespan, read through the
      module by health probes and get_db
    - expire_on_commit=False: services return the committed Card to the route, which
      serializes it after the session has committed
    - unit_of_work() lets domain errors (validation, not found) pass through unchanged
      after rollback; only SQLAlchemy errors are re-labelled with the failing operation
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from cardledger.core.errors import StorageError

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors
_SESSION_FAILURES: tuple[tuple[type[SQLAlchemyError], str], ...] = (
    (IntegrityError, "commit"),
    (OperationalError, "execute"),
    (DBAPIError, "query"),
    (SQLAlchemyError, "unknown"),
)


def _failure_label(exc: SQLAlchemyError) -> str:
    for exc_type, label in _SESSION_FAILURES:
        if isinstance(exc, exc_type):
            return label
    return "unknown"


class DatabaseSessionManager:
    """Owns the card ledger engine and hands out per-request sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Request-scoped session; SQLAlchemy failures become StorageError."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            label = _failure_label(e)
            logger.error(
                f"Card ledger query failed ({label}): {e}",
                extra={"operation": label},
            )
            raise StorageError(label) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when the ledger database answers a trivial query."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Ledger DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


@asynccontextmanager
async def unit_of_work(
    db: AsyncSession, operation: str,
) -> AsyncGenerator[AsyncSession, None]:
    """Roll back on any failure; re-raise store failures as StorageError."""
    try:
        yield db
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Storage failure during {operation}: {e}",
            extra={"operation": operation},
        )
        raise StorageError(operation) from e
    except Exception:
        await db.rollback()
        raise


# Set by init_db() during application startup
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one ledger session per request."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
