"""User repository."""

import logging

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from passgate.dal.base import BaseRepository
from passgate.exceptions import UsernameTakenError, UserNotFoundError
from passgate.storage.entities import PasskeyCredential, User
from passgate.storage.models import utcnow

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user rows."""

    model = User

    async def find_by_username(self, username: str) -> User | None:
        """Get a user by exact (case-sensitive) username.

        Args:
            username: Login name

        Returns:
            User or None
        """
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> User | None:
        return await self.get_by_id(user_id)

    async def insert(self, user_id: str, username: str, display_name: str | None = None) -> User:
        """Insert a new user.

        Callers check uniqueness first; the unique constraint is the final
        defence against a concurrent registration of the same name. On a
        violation the session is rolled back, so this must be the first
        write of the transaction.

        Args:
            user_id: Pre-generated user id (bound into the ceremony)
            username: Login name
            display_name: Defaults to the username

        Returns:
            The inserted User

        Raises:
            UsernameTakenError: If the username (or id) already exists.
        """
        user = User(id=user_id, username=username, display_name=display_name or username)
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            logger.info("Username %r lost an insert race", username)
            raise UsernameTakenError() from None
        return user

    async def update_display_name(self, user_id: str, display_name: str) -> User:
        """Change a user's display name.

        Raises:
            UserNotFoundError: If no such user.
        """
        user = await self.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        user.display_name = display_name
        user.updated_at = utcnow()
        await self.session.flush()
        return user

    async def delete(self, user_id: str) -> bool:
        """Delete a user; credential rows cascade in the database.

        Bulk delete: instances already in the session are not synchronized.

        Returns:
            True if a row was deleted.
        """
        result = await self.session.execute(
            sa_delete(User)
            .where(User.id == user_id)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    async def list_with_credential_counts(self, limit: int = 100) -> list[tuple[User, int]]:
        """Users ordered by username, each with its number of passkeys."""
        result = await self.session.execute(
            select(User, func.count(PasskeyCredential.id))
            .outerjoin(PasskeyCredential, PasskeyCredential.user_id == User.id)
            .group_by(User.id)
            .order_by(User.username)
            .limit(limit)
        )
        return [(user, count) for user, count in result.all()]
