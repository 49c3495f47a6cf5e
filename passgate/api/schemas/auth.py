"""Request and response schemas for authentication and profile routes.

Field-level rules for usernames and labels are enforced by the auth core,
not here, so that every transport reports them the same way.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegisterStartRequest(BaseModel):
    """Begin creating an account."""

    username: str = Field(..., description="Desired username (3-32 chars, letters, digits, _ and -)")


class CeremonyFinishRequest(BaseModel):
    """WebAuthn response from the browser (``PublicKeyCredential.toJSON()``)."""

    credential: dict[str, Any]


class SessionResponse(BaseModel):
    """Authentication state of the caller's session."""

    authenticated: bool
    user_id: str | None = None
    username: str | None = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    display_name: str
    created_at: datetime
    updated_at: datetime


class UpdateProfileRequest(BaseModel):
    display_name: str


class CredentialResponse(BaseModel):
    """Public info about a registered passkey. The public key is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    device_type: str
    backed_up: bool
    transports: list[str] | None = None
    created_at: datetime
    last_used_at: datetime | None = None


class CredentialListResponse(BaseModel):
    credentials: list[CredentialResponse]


class RenameCredentialRequest(BaseModel):
    name: str
