"""Fixtures shared by unit and integration tests."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from passgate.auth.config import AuthConfig
from passgate.auth.session import SessionManager
from tests.helpers.auth import FakeClock, InMemorySessionTransport, make_auth_config


@pytest.fixture
def auth_config() -> AuthConfig:
    return make_auth_config()


# =============================================================================
# Session state
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> InMemorySessionTransport:
    """The client's cookie jar."""
    return InMemorySessionTransport()


@pytest.fixture
def session_manager(
    transport: InMemorySessionTransport,
    auth_config: AuthConfig,
    clock: FakeClock,
) -> SessionManager:
    return SessionManager(transport, auth_config, clock=clock)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """An AsyncSession stand-in for code paths that must not touch the database."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session
