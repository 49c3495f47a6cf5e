"""Shared FastAPI dependencies.

Provides the per-request database session, session manager and
authentication service used across route modules.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from passgate.api.cookies import CookieSessionTransport
from passgate.auth import AuthConfig, PasskeyAuthService, SessionManager
from passgate.storage import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session scoped to a single request."""
    async with get_session() as session:
        yield session


def get_auth_config(request: Request) -> AuthConfig:
    return request.app.state.auth_config


def get_session_manager(
    request: Request,
    config: AuthConfig = Depends(get_auth_config),
) -> SessionManager:
    """Session manager over the request's cookie.

    A valid session is re-sealed so the idle timeout slides with activity.
    """
    sessions = SessionManager(CookieSessionTransport(request, config), config)
    sessions.touch()
    return sessions


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    sessions: SessionManager = Depends(get_session_manager),
    config: AuthConfig = Depends(get_auth_config),
) -> PasskeyAuthService:
    return PasskeyAuthService(db, sessions, config)
