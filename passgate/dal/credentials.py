"""Passkey credential repository.

Ownership and the last-credential rule are enforced here, before any
write, so callers get a domain error instead of a constraint violation.
"""

import logging

from sqlalchemy import or_, select, update
from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import IntegrityError

from passgate.dal.base import BaseRepository
from passgate.exceptions import (
    AuthenticationFailedError,
    CredentialNotFoundError,
    CredentialNotOwnedError,
    LastCredentialError,
    RegistrationFailedError,
)
from passgate.storage.entities import PasskeyCredential
from passgate.storage.models import utcnow

logger = logging.getLogger(__name__)


class CredentialRepository(BaseRepository[PasskeyCredential]):
    """Repository for passkey credentials."""

    model = PasskeyCredential

    async def list_for_user(self, user_id: str) -> list[PasskeyCredential]:
        """All credentials of a user, oldest first."""
        result = await self.session.execute(
            select(PasskeyCredential)
            .where(PasskeyCredential.user_id == user_id)
            .order_by(PasskeyCredential.created_at, PasskeyCredential.id)
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str) -> int:
        return await self.count(PasskeyCredential.user_id == user_id)

    async def insert(
        self,
        *,
        credential_id: str,
        user_id: str,
        public_key: bytes,
        counter: int,
        device_type: str,
        backed_up: bool,
        transports: list[str] | None,
        name: str,
    ) -> PasskeyCredential:
        """Store a newly registered credential.

        Raises:
            RegistrationFailedError: If the credential id is already registered.
        """
        if await self.get_by_id(credential_id) is not None:
            raise RegistrationFailedError("This passkey is already registered")

        credential = PasskeyCredential(
            id=credential_id,
            user_id=user_id,
            public_key=public_key,
            counter=counter,
            device_type=device_type,
            backed_up=backed_up,
            transports=transports,
            name=name,
            created_at=utcnow(),
            last_used_at=None,
        )
        self.session.add(credential)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise RegistrationFailedError("This passkey is already registered") from None
        return credential

    async def update_counter_and_last_used(self, credential_id: str, new_counter: int) -> None:
        """Record a successful assertion.

        The update only applies if the counter strictly increases, or if
        both the stored and the new counter are zero (authenticators that
        do not implement a counter). Two concurrent logins replaying the
        same counter cannot both succeed.

        Raises:
            AuthenticationFailedError: If the counter would not advance.
        """
        advances = PasskeyCredential.counter < new_counter
        if new_counter == 0:
            advances = or_(advances, PasskeyCredential.counter == 0)

        result = await self.session.execute(
            update(PasskeyCredential)
            .where(PasskeyCredential.id == credential_id, advances)
            .values(counter=new_counter, last_used_at=utcnow())
        )
        if not result.rowcount:
            logger.warning("Counter for credential %s did not advance; possible clone", credential_id)
            raise AuthenticationFailedError("Signature counter did not increase")

    async def get_owned(self, user_id: str, credential_id: str) -> PasskeyCredential:
        """Get a credential, enforcing ownership.

        Raises:
            CredentialNotFoundError: If absent.
            CredentialNotOwnedError: If owned by another user.
        """
        credential = await self.get_by_id(credential_id)
        if credential is None:
            raise CredentialNotFoundError()
        if credential.user_id != user_id:
            raise CredentialNotOwnedError()
        return credential

    async def rename(self, user_id: str, credential_id: str, name: str) -> PasskeyCredential:
        credential = await self.get_owned(user_id, credential_id)
        credential.name = name
        await self.session.flush()
        return credential

    async def delete(self, user_id: str, credential_id: str) -> None:
        """Delete a credential unless it is the user's last one.

        The user's credential rows are locked (``FOR UPDATE``, ignored by
        SQLite) while counting, so two concurrent removals cannot leave
        the account with none.

        Raises:
            CredentialNotFoundError: If absent.
            CredentialNotOwnedError: If owned by another user.
            LastCredentialError: If it is the only credential.
        """
        await self.get_owned(user_id, credential_id)

        result = await self.session.execute(
            select(PasskeyCredential.id)
            .where(PasskeyCredential.user_id == user_id)
            .with_for_update()
        )
        if len(result.all()) <= 1:
            raise LastCredentialError()

        await self.session.execute(
            sa_delete(PasskeyCredential).where(PasskeyCredential.id == credential_id)
        )
