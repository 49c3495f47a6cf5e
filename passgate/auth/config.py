"""Authentication configuration.

Built once from Settings at startup and passed to the session manager and
ceremony orchestrator. Core auth code never reads the environment itself.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from passgate.exceptions import ConfigurationError
from passgate.settings import Settings

logger = logging.getLogger(__name__)

DEV_SESSION_SECRET = "passgate-dev-session-secret"


def _resolve_session_secret(settings: Settings) -> str:
    """Get the session encryption secret.

    In production, an explicit SESSION_SECRET is required (32+ characters
    recommended). In development, falls back to a fixed secret so sessions
    survive restarts.
    """
    configured = settings.session_secret.get_secret_value()
    if configured:
        if settings.environment == "production" and len(configured) < 32:
            logger.warning(
                "SESSION_SECRET is shorter than 32 characters. Use a cryptographically "
                "random secret for production (e.g. `openssl rand -hex 32`)."
            )
        return configured

    if settings.environment == "production":
        raise ConfigurationError(
            "SESSION_SECRET must be set in production. Generate one with: openssl rand -hex 32"
        )
    return DEV_SESSION_SECRET


@dataclass(frozen=True)
class AuthConfig:
    """Relying-party identity and session policy."""

    rp_id: str
    rp_name: str
    origin: str
    session_secret: str
    idle_timeout: timedelta = timedelta(minutes=30)
    absolute_timeout: timedelta = timedelta(hours=8)
    cookie_name: str = "passgate_session"
    secure_cookies: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        """Build the config from application settings.

        Raises:
            ConfigurationError: If production runs without SESSION_SECRET.
        """
        return cls(
            rp_id=settings.webauthn_rp_id,
            rp_name=settings.webauthn_rp_name,
            origin=settings.webauthn_origin,
            session_secret=_resolve_session_secret(settings),
            idle_timeout=timedelta(minutes=settings.session_idle_timeout_minutes),
            absolute_timeout=timedelta(hours=settings.session_absolute_timeout_hours),
            cookie_name=settings.session_cookie_name,
            secure_cookies=settings.environment == "production",
        )
