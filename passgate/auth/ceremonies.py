"""Registration and authentication ceremonies.

Each ceremony is two requests. Start builds WebAuthn options and binds the
challenge into the client-held session; Finish consumes that challenge,
verifies the authenticator's signed response and updates the store.
Nothing about an in-flight ceremony is kept server-side.

Registration:
1. register_start(username)  -> options (challenge bound with provisional identity)
2. register_finish(response) -> user row + first credential + session

Authentication (usernameless, discoverable credentials):
1. login_start()             -> options (empty allow list)
2. login_finish(response)    -> credential id resolves the user; counter updated; session
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from passgate.auth import webauthn_ops
from passgate.auth.config import AuthConfig
from passgate.auth.session import (
    AuthenticationChallenge,
    CurrentUser,
    RegistrationChallenge,
    SessionManager,
)
from passgate.auth.validation import validate_username
from passgate.dal import CredentialRepository, UserRepository
from passgate.exceptions import (
    AuthenticationFailedError,
    CredentialNotFoundError,
    NoChallengeError,
    RegistrationFailedError,
    UsernameTakenError,
    UserNotFoundError,
)
from passgate.storage.entities import PasskeyCredential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationStart:
    """Options for the browser plus the provisional identity they bind."""

    options: dict[str, Any]
    user_id: str
    username: str


def default_passkey_name(existing_count: int) -> str:
    """Placeholder label for a new credential; users are nudged to rename it."""
    return f"Passkey {existing_count + 1}"


class CeremonyOrchestrator:
    """Runs the registration and authentication state machines."""

    def __init__(self, db: AsyncSession, sessions: SessionManager, config: AuthConfig):
        self.db = db
        self.sessions = sessions
        self.config = config
        self.users = UserRepository(db)
        self.credentials = CredentialRepository(db)

    # -------------------------------------------------------------------------
    # Shared registration steps
    # -------------------------------------------------------------------------

    async def begin_registration(self, user_id: str, username: str) -> dict[str, Any]:
        """Build creation options and bind the challenge to ``user_id``.

        Used for new accounts and for adding a passkey to an existing one.
        A new call replaces any challenge still pending in the session.
        """
        existing = await self.credentials.list_for_user(user_id)
        ceremony = webauthn_ops.build_registration_options(self.config, user_id, username, existing)
        self.sessions.store_challenge(
            RegistrationChallenge(challenge=ceremony.challenge, user_id=user_id, username=username)
        )
        return ceremony.options

    async def verify_and_store(
        self,
        user_id: str,
        challenge: str,
        response: Any,
    ) -> PasskeyCredential:
        """Verify an attestation and persist the credential for ``user_id``.

        Raises:
            RegistrationFailedError: If the response does not verify or the
                credential is already registered.
        """
        if not isinstance(response, dict):
            raise RegistrationFailedError("Malformed registration response")

        verified = webauthn_ops.verify_registration(self.config, response, challenge)
        existing_count = await self.credentials.count_for_user(user_id)
        credential = await self.credentials.insert(
            credential_id=verified.credential_id,
            user_id=user_id,
            public_key=verified.public_key,
            counter=verified.counter,
            device_type=verified.device_type,
            backed_up=verified.backed_up,
            transports=verified.transports,
            name=default_passkey_name(existing_count),
        )
        await self.db.commit()
        logger.info("Stored passkey %r for user %s", credential.name, user_id)
        return credential

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def register_start(self, username: str) -> RegistrationStart:
        """Begin creating an account.

        The uniqueness check here is advisory; register_finish checks again.

        Raises:
            ValidationError: If the username is malformed (nothing is stored).
            UsernameTakenError: If the username exists.
        """
        username = validate_username(username)
        if await self.users.find_by_username(username) is not None:
            raise UsernameTakenError()

        user_id = str(uuid4())
        options = await self.begin_registration(user_id, username)
        return RegistrationStart(options=options, user_id=user_id, username=username)

    async def register_finish(self, response: Any) -> CurrentUser:
        """Complete account creation and log the new user in.

        The user row is committed before verification so the credential's
        foreign key holds; if anything after that fails, the row is deleted
        again so no account exists without a credential.

        Raises:
            NoChallengeError: No registration challenge in the session.
            UsernameTakenError: The name was registered since register_start.
            RegistrationFailedError: The response did not verify.
        """
        record = self.sessions.get_and_clear_challenge("registration")
        if not isinstance(record, RegistrationChallenge):
            raise NoChallengeError("No registration challenge found. Please start over.")

        if await self.users.find_by_username(record.username) is not None:
            raise UsernameTakenError()

        await self.users.insert(record.user_id, record.username)
        await self.db.commit()

        try:
            await self.verify_and_store(record.user_id, record.challenge, response)
        except Exception:
            await self._discard_user(record.user_id)
            raise

        self.sessions.create_session(record.user_id, record.username)
        logger.info("Registered user %s (%s)", record.username, record.user_id)
        return CurrentUser(user_id=record.user_id, username=record.username)

    async def _discard_user(self, user_id: str) -> None:
        """Compensating delete for a user whose first credential was not stored."""
        await self.db.rollback()
        await self.users.delete(user_id)
        await self.db.commit()
        logger.info("Rolled back provisional user %s", user_id)

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def login_start(self) -> dict[str, Any]:
        """Begin a usernameless login."""
        ceremony = webauthn_ops.build_authentication_options(self.config)
        self.sessions.store_challenge(AuthenticationChallenge(challenge=ceremony.challenge))
        return ceremony.options

    async def login_finish(self, response: Any) -> CurrentUser:
        """Verify an assertion and log its owner in.

        On failure the stored counter is left untouched and no session is
        created.

        Raises:
            NoChallengeError: No authentication challenge in the session.
            CredentialNotFoundError: The credential id is unknown.
            UserNotFoundError: The credential has no owner row.
            AuthenticationFailedError: Signature, origin, RP or counter check failed.
        """
        record = self.sessions.get_and_clear_challenge("authentication")
        if record is None:
            raise NoChallengeError("No authentication challenge found. Please start over.")

        if not isinstance(response, dict):
            raise AuthenticationFailedError("Malformed authentication response")

        credential_id = webauthn_ops.credential_id_from_response(response)
        credential = await self.credentials.get_by_id(credential_id) if credential_id else None
        if credential is None:
            raise CredentialNotFoundError()

        user = await self.users.find_by_id(credential.user_id)
        if user is None:
            logger.error("Credential %s references missing user %s", credential.id, credential.user_id)
            raise UserNotFoundError()

        new_counter = webauthn_ops.verify_assertion(self.config, response, record.challenge, credential)
        await self.credentials.update_counter_and_last_used(credential.id, new_counter)
        await self.db.commit()

        self.sessions.create_session(user.id, user.username)
        logger.info("User %s logged in with passkey %r", user.username, credential.name)
        return CurrentUser(user_id=user.id, username=user.username)
