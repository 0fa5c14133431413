"""
SQLite storage for trips, days and travel logs.

The engine and session factory are created lazily from
``Settings.database_url`` and shared process-wide. Adapters open units of
work with ``get_session()``; a block that exits normally is committed, one
that raises is rolled back and the exception propagates.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from travelscribe.core.config import get_settings


class Base(DeclarativeBase):
    """Parent of the trip, day and log tables."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """SQLite ignores FOREIGN KEY clauses unless each connection opts in."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _ensure_parent_dir(url: str) -> None:
    path = make_url(url).database
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def get_engine(url: str | None = None) -> AsyncEngine:
    """Shared engine; ``url`` only matters on the first call.

    A file-backed database gets its parent directory created.
    """
    global _engine
    if _engine is None:
        target = url or get_settings().database_url
        _ensure_parent_dir(target)
        _engine = create_async_engine(target, echo=False)
        enable_sqlite_foreign_keys(_engine)
    return _engine


def get_session_factory(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        # Rows stay readable after commit; adapters convert them to models.
        _session_factory = async_sessionmaker(engine or get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def get_session(
    factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """One unit of work, from ``factory`` or the shared factory."""
    async with (factory or get_session_factory())() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables on ``engine`` (the shared one by default)."""
    from travelscribe.services.storage import models_db  # noqa: F401  registers tables

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose the shared engine; the next ``get_engine`` builds a new one."""
    if _engine is not None:
        await _engine.dispose()
    reset_engine()


def reset_engine() -> None:
    """Forget the shared engine and factory without disposing them."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None
