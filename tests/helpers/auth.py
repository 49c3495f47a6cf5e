"""Shared authentication helpers for tests.

Provides make_test_settings(), make_auth_config() and an in-memory
session transport used across unit and integration tests.
"""

from dataclasses import replace

from pydantic import SecretStr

from passgate.auth.config import AuthConfig
from passgate.settings import Settings

SESSION_SECRET = "test-session-secret-key-for-testing-minimum-32bytes"
RP_ID = "localhost"
ORIGIN = "http://localhost:3000"

_SETTINGS_DEFAULTS: dict = {
    "environment": "testing",
    "debug": True,
    "database_url": "sqlite+aiosqlite:///:memory:",
    "session_secret": SecretStr(SESSION_SECRET),
    "webauthn_rp_id": RP_ID,
    "webauthn_rp_name": "Passgate Test",
    "webauthn_origin": ORIGIN,
}


def make_test_settings(**overrides: object) -> Settings:
    """Create test Settings with auth defaults.

    Args:
        **overrides: Field overrides to merge into defaults.

    Returns:
        A Settings instance for testing.
    """
    merged = {**_SETTINGS_DEFAULTS, **overrides}
    return Settings(**merged)


def make_auth_config(**overrides: object) -> AuthConfig:
    """AuthConfig built from test settings, with dataclass field overrides."""
    config = AuthConfig.from_settings(make_test_settings())
    return replace(config, **overrides) if overrides else config


class InMemorySessionTransport:
    """SessionTransport that keeps the blob in memory, like a browser cookie jar."""

    def __init__(self, blob: str | None = None):
        self.blob = blob
        self.saves = 0
        self.destroyed = False
        self.fail_with: Exception | None = None

    def load(self) -> str | None:
        return self.blob

    def save(self, blob: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.blob = blob
        self.saves += 1

    def destroy(self) -> None:
        self.blob = None
        self.destroyed = True


class FakeClock:
    """Controllable replacement for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
