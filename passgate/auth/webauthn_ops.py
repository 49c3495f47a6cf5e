"""WebAuthn ceremony primitives.

Thin layer over py_webauthn: builds ceremony options as JSON-ready dicts
and runs the signature/attestation checks. Binary values (challenges,
credential ids) cross this boundary as base64url strings, which is how
they are stored in the session and the database.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, cast

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url, options_to_json
from webauthn.helpers.cose import COSEAlgorithmIdentifier
from webauthn.helpers.structs import (
    AttestationConveyancePreference,
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from passgate.auth.config import AuthConfig
from passgate.exceptions import AuthenticationFailedError, RegistrationFailedError
from passgate.storage.entities import DeviceType, PasskeyCredential

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = [
    COSEAlgorithmIdentifier.ECDSA_SHA_256,
    COSEAlgorithmIdentifier.EDDSA,
    COSEAlgorithmIdentifier.RSASSA_PKCS1_v1_5_SHA_256,
]

_KNOWN_TRANSPORTS = {t.value for t in AuthenticatorTransport}


@dataclass(frozen=True)
class CeremonyOptions:
    """Options to hand to the browser plus the challenge to bind."""

    options: dict[str, Any]
    challenge: str


@dataclass(frozen=True)
class VerifiedCredential:
    """Outcome of a successful registration ceremony."""

    credential_id: str
    public_key: bytes
    counter: int
    device_type: str
    backed_up: bool
    transports: list[str] | None


def _options_to_dict(options: Any) -> dict[str, Any]:
    """Convert a py_webauthn options object to a JSON-serializable dict.

    Binary fields come out base64url-encoded for the browser.
    """
    return cast("dict[str, Any]", json.loads(options_to_json(options)))


def _descriptor(credential: PasskeyCredential) -> PublicKeyCredentialDescriptor:
    transports = [
        AuthenticatorTransport(t) for t in (credential.transports or []) if t in _KNOWN_TRANSPORTS
    ]
    return PublicKeyCredentialDescriptor(
        id=base64url_to_bytes(credential.id),
        transports=transports or None,
    )


def build_registration_options(
    config: AuthConfig,
    user_id: str,
    username: str,
    existing: list[PasskeyCredential],
) -> CeremonyOptions:
    """Options for creating a discoverable, user-verified credential.

    ``existing`` credentials are excluded so an authenticator cannot be
    registered twice for the same account.
    """
    options = generate_registration_options(
        rp_id=config.rp_id,
        rp_name=config.rp_name,
        user_id=user_id.encode(),
        user_name=username,
        user_display_name=username,
        exclude_credentials=[_descriptor(c) for c in existing],
        authenticator_selection=AuthenticatorSelectionCriteria(
            resident_key=ResidentKeyRequirement.REQUIRED,
            user_verification=UserVerificationRequirement.REQUIRED,
        ),
        attestation=AttestationConveyancePreference.NONE,
        supported_pub_key_algs=SUPPORTED_ALGORITHMS,
    )
    return CeremonyOptions(
        options=_options_to_dict(options),
        challenge=bytes_to_base64url(options.challenge),
    )


def build_authentication_options(config: AuthConfig) -> CeremonyOptions:
    """Options for a usernameless assertion.

    The allow list is empty so the authenticator offers every discoverable
    credential it holds for this relying party.
    """
    options = generate_authentication_options(
        rp_id=config.rp_id,
        allow_credentials=[],
        user_verification=UserVerificationRequirement.REQUIRED,
    )
    return CeremonyOptions(
        options=_options_to_dict(options),
        challenge=bytes_to_base64url(options.challenge),
    )


def _response_transports(response: dict[str, Any]) -> list[str] | None:
    inner = response.get("response")
    transports = inner.get("transports") if isinstance(inner, dict) else None
    if not isinstance(transports, list):
        return None
    return [t for t in transports if isinstance(t, str)] or None


def verify_registration(
    config: AuthConfig,
    response: dict[str, Any],
    challenge: str,
) -> VerifiedCredential:
    """Verify an attestation response against the bound challenge.

    Raises:
        RegistrationFailedError: On any verification failure (bad signature,
            origin or RP mismatch, challenge mismatch, malformed payload,
            user verification missing).
    """
    try:
        verification = verify_registration_response(
            credential=response,
            expected_challenge=base64url_to_bytes(challenge),
            expected_rp_id=config.rp_id,
            expected_origin=config.origin,
            require_user_verification=True,
            supported_pub_key_algs=SUPPORTED_ALGORITHMS,
        )
    except Exception as e:
        logger.warning("Passkey registration verification failed: %s", e)
        raise RegistrationFailedError() from e

    return VerifiedCredential(
        credential_id=bytes_to_base64url(verification.credential_id),
        public_key=verification.credential_public_key,
        counter=verification.sign_count,
        device_type=DeviceType(verification.credential_device_type.value).value,
        backed_up=bool(verification.credential_backed_up),
        transports=_response_transports(response),
    )


def verify_assertion(
    config: AuthConfig,
    response: dict[str, Any],
    challenge: str,
    credential: PasskeyCredential,
) -> int:
    """Verify an assertion with the stored public key and counter.

    py_webauthn rejects a reported counter that does not exceed the stored
    one, unless both are zero.

    Returns:
        The new counter value to store.

    Raises:
        AuthenticationFailedError: On any verification failure, including
            counter regression.
    """
    try:
        verification = verify_authentication_response(
            credential=response,
            expected_challenge=base64url_to_bytes(challenge),
            expected_rp_id=config.rp_id,
            expected_origin=config.origin,
            credential_public_key=credential.public_key,
            credential_current_sign_count=credential.counter,
            require_user_verification=True,
        )
    except Exception as e:
        logger.warning("Passkey authentication failed for credential %s: %s", credential.id, e)
        raise AuthenticationFailedError() from e

    return verification.new_sign_count


def credential_id_from_response(response: dict[str, Any]) -> str | None:
    """The credential id an assertion claims to come from, if present."""
    raw_id = response.get("id") or response.get("rawId")
    return raw_id if isinstance(raw_id, str) and raw_id else None
