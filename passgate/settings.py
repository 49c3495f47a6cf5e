"""Passgate configuration.

Read from the environment (and ``.env``) by pydantic-settings. Only the
entry points call get_settings(); the auth core receives an AuthConfig
built from it.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings. Field names map to upper-case variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "staging", "production", "testing"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # --- Storage ---
    database_url: str = Field(
        default="sqlite+aiosqlite:///./passgate.db",
        description="Async SQLAlchemy URL (sqlite+aiosqlite:// or postgresql+asyncpg://)",
    )
    database_pool_size: int = Field(default=5, ge=1, le=20)
    database_max_overflow: int = Field(default=10, ge=0, le=50)
    database_pool_timeout: int = Field(default=30, ge=5)
    database_pool_recycle: int = Field(default=1800, ge=60)

    # --- HTTP server ---
    api_host: str = Field(default="0.0.0.0")  # noqa: S104
    api_port: int = Field(default=8000, ge=1, le=65535)
    api_workers: int = Field(default=1, ge=1, le=16)
    allowed_origins: str = Field(
        default="",
        description="Comma-separated CORS origins; empty allows only WEBAUTHN_ORIGIN",
    )

    # --- Session cookie ---
    session_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Secret the cookie encryption key is derived from (required in production)",
    )
    session_cookie_name: str = "passgate_session"
    session_idle_timeout_minutes: int = Field(
        default=30,
        ge=1,
        le=24 * 60,
        description="Session ends after this long without a request",
    )
    session_absolute_timeout_hours: int = Field(
        default=8,
        ge=1,
        le=24 * 30,
        description="Session ends this long after login regardless of activity",
    )

    # --- Relying party ---
    webauthn_rp_id: str = Field(
        default="localhost",
        description="Relying Party ID: the registrable domain passkeys are scoped to",
    )
    webauthn_rp_name: str = Field(
        default="Passgate",
        description="Relying Party name shown by the authenticator",
    )
    webauthn_origin: str = Field(
        default="http://localhost:3000",
        description="Origin the browser reports in clientDataJSON",
    )


@lru_cache
def get_settings() -> Settings:
    """Settings loaded once per process."""
    return Settings()
