"""User model.

A user is created at the end of a successful registration ceremony.
The id is generated at ceremony start and bound into the WebAuthn options
as the user handle, so it must be known before the row exists.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from passgate.storage.models import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Registered account. Authenticates only with passkeys."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        doc="Opaque user id (UUID4 text), also the WebAuthn user handle",
    )
    username: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        doc="Unique, case-sensitive login name",
    )
    display_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name shown in UI",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
