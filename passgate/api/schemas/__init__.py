"""Request and response bodies of the HTTP API."""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from passgate.api.schemas.auth import (
    CeremonyFinishRequest,
    CredentialListResponse,
    CredentialResponse,
    ProfileResponse,
    RegisterStartRequest,
    RenameCredentialRequest,
    SessionResponse,
    UpdateProfileRequest,
)


class ErrorDetail(BaseModel):
    """Body of every error response."""

    code: str = Field(..., description="Stable machine-readable error code")
    message: str = Field(..., description="Message safe to show the user")
    type: str = Field(..., description="Snake-case exception class name")
    correlation_id: str | None = Field(default=None, description="Request correlation ID")


class ErrorResponse(BaseModel):
    """Error envelope: ``{"error": {...}}``."""

    error: ErrorDetail


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Body of GET /health."""

    status: HealthStatus = Field(..., description="healthy while the process serves requests")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Server time of the check (UTC)",
    )
    version: str = Field(default="0.1.0", description="Installed passgate version")


class MessageResponse(BaseModel):
    """Plain acknowledgement, e.g. after logout."""

    message: str = Field(..., description="What happened")


__all__ = [
    "CeremonyFinishRequest",
    "CredentialListResponse",
    "CredentialResponse",
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "HealthStatus",
    "MessageResponse",
    "ProfileResponse",
    "RegisterStartRequest",
    "RenameCredentialRequest",
    "SessionResponse",
    "UpdateProfileRequest",
]
