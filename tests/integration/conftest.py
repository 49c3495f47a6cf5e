"""Integration test fixtures.

Each test gets a fresh SQLite database file with foreign keys enforced,
so the storage layer behaves as it does in a SQLite deployment.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import passgate.storage.entities  # noqa: F401  (register models with Base.metadata)
from passgate.auth.config import AuthConfig
from passgate.auth.service import PasskeyAuthService
from passgate.auth.session import SessionManager
from passgate.storage import create_engine_for_url
from passgate.storage.models import Base


@pytest.fixture
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'passgate.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(
    db_session: AsyncSession,
    session_manager: SessionManager,
    auth_config: AuthConfig,
) -> PasskeyAuthService:
    """Auth service over the test database and the in-memory cookie jar."""
    return PasskeyAuthService(db_session, session_manager, auth_config)
