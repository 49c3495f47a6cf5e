"""Repository base shared by users and credentials."""

from typing import Any, Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """Lookups keyed on the ``id`` primary key of ``model``.

    Repositories flush but never commit; the caller owns the transaction.
    """

    model: type[ModelT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: str) -> ModelT | None:
        """Row with primary key ``id``, or None."""
        return await self.session.scalar(select(self.model).where(self.model.id == id))

    async def count(self, *criteria: Any) -> int:
        """Number of rows matching every SQL expression in ``criteria``.

        Example:
            await repo.count(PasskeyCredential.user_id == user_id)
        """
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.where(*criteria)
        return (await self.session.scalar(stmt)) or 0
