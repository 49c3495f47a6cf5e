"""Passkey management for an authenticated user.

Adding a passkey reuses the registration ceremony, with the challenge
bound to the identity already in the session. Renames and removals go
through the credential repository, which enforces ownership and refuses
to remove an account's last passkey.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from passgate.auth.ceremonies import CeremonyOrchestrator
from passgate.auth.session import CurrentUser, RegistrationChallenge, SessionManager
from passgate.auth.validation import validate_credential_name, validate_display_name
from passgate.dal import CredentialRepository, UserRepository
from passgate.exceptions import NoChallengeError, RegistrationFailedError, UserNotFoundError
from passgate.storage.entities import PasskeyCredential, User

logger = logging.getLogger(__name__)


class CredentialLifecycle:
    """Add, rename, remove and list the passkeys of the session's user."""

    def __init__(
        self,
        db: AsyncSession,
        sessions: SessionManager,
        ceremonies: CeremonyOrchestrator,
    ):
        self.db = db
        self.sessions = sessions
        self.ceremonies = ceremonies
        self.users = UserRepository(db)
        self.credentials = CredentialRepository(db)

    async def add_passkey_start(self, current: CurrentUser) -> dict[str, Any]:
        """Creation options for another passkey on the current account."""
        return await self.ceremonies.begin_registration(current.user_id, current.username)

    async def add_passkey_finish(self, current: CurrentUser, response: Any) -> PasskeyCredential:
        """Verify and store an additional passkey.

        Raises:
            NoChallengeError: No registration challenge in the session.
            RegistrationFailedError: The challenge was issued for another
                identity, or the response did not verify.
        """
        record = self.sessions.get_and_clear_challenge("registration")
        if not isinstance(record, RegistrationChallenge):
            raise NoChallengeError("No registration challenge found. Please start over.")

        if record.user_id != current.user_id:
            logger.warning(
                "Registration challenge for %s presented by session of %s",
                record.user_id,
                current.user_id,
            )
            raise RegistrationFailedError("Challenge was not issued for this account")

        return await self.ceremonies.verify_and_store(current.user_id, record.challenge, response)

    async def rename_credential(
        self, current: CurrentUser, credential_id: str, name: str
    ) -> PasskeyCredential:
        name = validate_credential_name(name)
        credential = await self.credentials.rename(current.user_id, credential_id, name)
        await self.db.commit()
        return credential

    async def remove_credential(self, current: CurrentUser, credential_id: str) -> None:
        """Delete one of the user's passkeys.

        Raises:
            CredentialNotFoundError: Absent, or owned by someone else.
            LastCredentialError: It is the account's only passkey.
        """
        await self.credentials.delete(current.user_id, credential_id)
        await self.db.commit()
        logger.info("User %s removed passkey %s", current.username, credential_id)

    async def list_credentials(self, current: CurrentUser) -> list[PasskeyCredential]:
        return await self.credentials.list_for_user(current.user_id)

    async def get_profile(self, current: CurrentUser) -> User:
        user = await self.users.find_by_id(current.user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def update_display_name(self, current: CurrentUser, display_name: str) -> User:
        display_name = validate_display_name(display_name)
        user = await self.users.update_display_name(current.user_id, display_name)
        await self.db.commit()
        return user
