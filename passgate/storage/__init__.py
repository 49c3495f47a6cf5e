"""Async database access.

One engine and one session factory per process, created on first use from
Settings. SQLite (aiosqlite) is the default; PostgreSQL works through the
``postgres`` extra (asyncpg).

The singletons are built under a reentrant lock: building the session
factory builds the engine while the lock is held.
"""

import threading
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from passgate.settings import Settings, get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_init_lock = threading.RLock()


def _sqlite_foreign_keys_on(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(url: str, **kwargs: Any) -> AsyncEngine:
    """Build an async engine for ``url``.

    SQLite does not enforce foreign keys unless asked per connection; the
    engine turns enforcement on so credentials cascade with their user.

    Args:
        url: Async SQLAlchemy URL
        **kwargs: Passed to create_async_engine()
    """
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _sqlite_foreign_keys_on)
    return engine


def _engine_from_settings(settings: Settings) -> AsyncEngine:
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_engine_for_url(url, echo=settings.debug)
    return create_engine_for_url(
        url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=True,
        echo=settings.debug,
    )


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """The process-wide engine, created on first call (double-checked locking)."""
    global _engine

    if _engine is None:
        with _init_lock:
            if _engine is None:
                _engine = _engine_from_settings(settings or get_settings())
    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """The process-wide session factory.

    Sessions keep attributes loaded after commit; async code cannot lazy
    load them again.
    """
    global _session_factory

    if _session_factory is None:
        with _init_lock:
            if _session_factory is None:
                _session_factory = async_sessionmaker(
                    bind=get_engine(settings),
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )
    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session and close it on exit.

    Commits are the caller's job; anything uncommitted is rolled back
    when the session closes.

    Usage:
        async with get_session() as session:
            user = await UserRepository(session).find_by_username("alice")
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        await session.close()


async def create_tables() -> None:
    """Create missing tables from the ORM metadata.

    For ``passgate init-db`` and SQLite deployments; PostgreSQL
    deployments run ``alembic upgrade head``.
    """
    from passgate.storage import entities  # noqa: F401  (registers mappers)
    from passgate.storage.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Open the pool and check the database answers."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the engine and forget both singletons."""
    global _engine, _session_factory

    # The lock is a threading lock; never hold it across an await
    with _init_lock:
        engine, _engine, _session_factory = _engine, None, None

    if engine is not None:
        await engine.dispose()


__all__ = [
    "close_db",
    "create_engine_for_url",
    "create_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
]
