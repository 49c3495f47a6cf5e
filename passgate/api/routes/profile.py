"""Profile and passkey management routes (session required).

- GET    /profile                              -> profile of the session's user
- PATCH  /profile                              -> change display name
- GET    /profile/credentials                  -> list passkeys
- POST   /profile/credentials/start            -> options for another passkey
- POST   /profile/credentials/finish           -> store it
- PATCH  /profile/credentials/{credential_id}  -> rename
- DELETE /profile/credentials/{credential_id}  -> remove (never the last one)
"""

from typing import Any

from fastapi import APIRouter, Depends, Response

from passgate.api.deps import get_auth_service
from passgate.api.schemas import (
    CeremonyFinishRequest,
    CredentialListResponse,
    CredentialResponse,
    ProfileResponse,
    RenameCredentialRequest,
    UpdateProfileRequest,
)
from passgate.auth import PasskeyAuthService

router = APIRouter(prefix="/profile", tags=["Profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(
    service: PasskeyAuthService = Depends(get_auth_service),
) -> ProfileResponse:
    user = await service.get_profile()
    return ProfileResponse.model_validate(user)


@router.patch("", response_model=ProfileResponse)
async def update_profile(
    body: UpdateProfileRequest,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> ProfileResponse:
    user = await service.update_display_name(body.display_name)
    return ProfileResponse.model_validate(user)


# =============================================================================
# Passkeys
# =============================================================================


@router.get("/credentials", response_model=CredentialListResponse)
async def list_credentials(
    service: PasskeyAuthService = Depends(get_auth_service),
) -> CredentialListResponse:
    credentials = await service.list_credentials()
    return CredentialListResponse(
        credentials=[CredentialResponse.model_validate(c) for c in credentials]
    )


@router.post("/credentials/start")
async def add_credential_start(
    service: PasskeyAuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """Generate creation options for an additional passkey.

    The account's existing passkeys are excluded.
    """
    return await service.add_passkey_start()


@router.post("/credentials/finish", response_model=CredentialResponse, status_code=201)
async def add_credential_finish(
    body: CeremonyFinishRequest,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> CredentialResponse:
    credential = await service.add_passkey_finish(body.credential)
    return CredentialResponse.model_validate(credential)


@router.patch("/credentials/{credential_id}", response_model=CredentialResponse)
async def rename_credential(
    credential_id: str,
    body: RenameCredentialRequest,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> CredentialResponse:
    credential = await service.rename_credential(credential_id, body.name)
    return CredentialResponse.model_validate(credential)


@router.delete("/credentials/{credential_id}", status_code=204)
async def delete_credential(
    credential_id: str,
    service: PasskeyAuthService = Depends(get_auth_service),
) -> Response:
    """Remove a passkey. The account's last passkey cannot be removed."""
    await service.remove_credential(credential_id)
    return Response(status_code=204)
