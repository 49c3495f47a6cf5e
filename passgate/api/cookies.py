"""Cookie transport for the sealed session blob.

Route handlers never touch the response cookie directly. The transport
records the pending write on ``request.state`` and the session cookie
middleware applies it to whatever response leaves the app, error
responses included, so a challenge consumed by a failed Finish stays
consumed in the browser.
"""

from dataclasses import dataclass
from typing import Literal

from fastapi import Request, Response

from passgate.auth.config import AuthConfig
from passgate.exceptions import SessionPersistError

# Browsers drop cookies larger than this (name + value + attributes).
MAX_COOKIE_BYTES = 4096

_PENDING_ATTR = "pending_session_cookie"


@dataclass(frozen=True)
class PendingCookie:
    action: Literal["set", "delete"]
    value: str | None = None


class CookieSessionTransport:
    """``SessionTransport`` backed by the request/response cookie."""

    def __init__(self, request: Request, config: AuthConfig):
        self._request = request
        self._config = config

    def load(self) -> str | None:
        pending = get_pending_cookie(self._request)
        if pending is not None:
            return pending.value
        return self._request.cookies.get(self._config.cookie_name)

    def save(self, blob: str) -> None:
        if len(self._config.cookie_name) + len(blob) > MAX_COOKIE_BYTES:
            raise SessionPersistError(
                f"Session blob of {len(blob)} bytes exceeds the cookie size limit"
            )
        setattr(self._request.state, _PENDING_ATTR, PendingCookie("set", blob))

    def destroy(self) -> None:
        setattr(self._request.state, _PENDING_ATTR, PendingCookie("delete"))


def get_pending_cookie(request: Request) -> PendingCookie | None:
    return getattr(request.state, _PENDING_ATTR, None)


def apply_session_cookie(request: Request, response: Response, config: AuthConfig) -> None:
    """Write the request's pending session cookie change onto ``response``."""
    pending = get_pending_cookie(request)
    if pending is None:
        return

    if pending.action == "delete":
        response.delete_cookie(
            config.cookie_name,
            path="/",
            secure=config.secure_cookies,
            httponly=True,
            samesite="strict",
        )
        return

    response.set_cookie(
        config.cookie_name,
        pending.value or "",
        max_age=int(config.idle_timeout.total_seconds()),
        path="/",
        secure=config.secure_cookies,
        httponly=True,
        samesite="strict",
    )
