"""Passkey registration, login and session routes.

Registration flow (public):
1. POST /auth/register/start  -> creation options (challenge bound in the cookie)
2. POST /auth/register/finish -> account + first passkey, session cookie set

Authentication flow (public, usernameless):
1. POST /auth/login/start     -> request options with an empty allow list
2. POST /auth/login/finish    -> session cookie set

Session:
- GET  /auth/session          -> who the cookie belongs to, if anyone
- POST /auth/logout           -> clears the session cookie
"""

from typing import Any

from fastapi import APIRouter, Depends

from passgate.api.deps import get_auth_service, get_session_manager
from passgate.api.schemas import (
    CeremonyFinishRequest,
    MessageResponse,
    RegisterStartRequest,
    SessionResponse,
)
from passgate.auth import PasskeyAuthService, SessionManager
from passgate.auth.session import CurrentUser

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _session_response(user: CurrentUser | None) -> SessionResponse:
    if user is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user_id=user.user_id, username=user.username)


@router.get("/session", response_model=SessionResponse)
async def get_session_status(
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionResponse:
    """Report whether the caller holds a valid session."""
    return _session_response(sessions.get_current_user())


# =============================================================================
# Registration
# =============================================================================


@router.post("/register/start")
async def register_start(
    body: RegisterStartRequest,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """Generate WebAuthn creation options for a new account.

    Returns options for the browser's navigator.credentials.create() call.
    """
    start = await service.register_start(body.username)
    return start.options


@router.post("/register/finish", response_model=SessionResponse, status_code=201)
async def register_finish(
    body: CeremonyFinishRequest,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Verify the attestation, create the account and log it in."""
    user = await service.register_finish(body.credential)
    return _session_response(user)


# =============================================================================
# Authentication
# =============================================================================


@router.post("/login/start")
async def login_start(
    service: PasskeyAuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """Generate WebAuthn request options for navigator.credentials.get()."""
    return await service.login_start()


@router.post("/login/finish", response_model=SessionResponse)
async def login_finish(
    body: CeremonyFinishRequest,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Verify the assertion and log its owner in."""
    user = await service.login_finish(body.credential)
    return _session_response(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    service: PasskeyAuthService = Depends(get_auth_service),
) -> MessageResponse:
    service.logout()
    return MessageResponse(message="Logged out")
