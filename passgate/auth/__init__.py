"""Passkey authentication core.

Session and challenge handling, WebAuthn ceremonies and credential
management. ``PasskeyAuthService`` is the public entry point.
"""

from passgate.auth.config import AuthConfig
from passgate.auth.service import PasskeyAuthService
from passgate.auth.session import CurrentUser, SessionManager

__all__ = [
    "AuthConfig",
    "CurrentUser",
    "PasskeyAuthService",
    "SessionManager",
]
