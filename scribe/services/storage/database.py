"""Database plumbing for recording records.

One async engine and one session factory per process, both created lazily
from ``settings.database_url``. Callers open units of work through
``get_session()``; nothing else in the package touches the engine.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from scribe.core.config import get_settings


class Base(DeclarativeBase):
    pass


# Tests swap these for an in-memory engine and clear them with reset_engine().
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _prepare_sqlite_path(db_url: str) -> None:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def get_engine(url: str | None = None) -> AsyncEngine:
    """Return the process engine, building it from *url* or settings on first use."""
    global _engine
    if _engine is None:
        db_url = url or get_settings().database_url
        _prepare_sqlite_path(db_url)
        _engine = create_async_engine(db_url, echo=False)
    return _engine


def get_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(engine or get_engine(), expire_on_commit=False)
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Open a unit of work.

    The session is committed when the block exits normally and rolled back
    if it raises; the exception still propagates.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the ``recordings`` schema if it does not exist yet."""
    from scribe.services.storage import models_db  # noqa: F401  (registers tables)

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db() -> bool:
    async with get_session() as session:
        await session.execute(text("SELECT 1"))
    return True


async def close_db() -> None:
    """Dispose the engine on shutdown."""
    if _engine is not None:
        await _engine.dispose()
    reset_engine()


def reset_engine() -> None:
    """Forget the cached engine and factory without disposing them."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None
