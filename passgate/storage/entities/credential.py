"""Registered passkeys.

One row per authenticator a user has enrolled. The public key and
signature counter are what assertions are verified against.
"""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from passgate.storage.models import Base, utcnow


class DeviceType(StrEnum):
    """Whether the credential is bound to one device or synced."""

    SINGLE_DEVICE = "single_device"
    MULTI_DEVICE = "multi_device"


class PasskeyCredential(Base):
    """A WebAuthn public key credential bound to one user.

    Owned by exactly one user; deleting the user cascades.
    """

    __tablename__ = "credentials"

    id: Mapped[str] = mapped_column(
        String(1400),
        primary_key=True,
        doc="Base64url credential id reported by the authenticator",
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Owning user",
    )
    public_key: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        doc="COSE_Key from the attestation, used to check assertion signatures",
    )
    counter: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Highest signCount seen; 0 if the authenticator keeps none",
    )
    device_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="single_device or multi_device",
    )
    backed_up: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Whether the credential is backed up (synced across devices)",
    )
    transports: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        doc='Transport hints echoed back in allow/exclude lists, e.g. ["usb"]',
    )
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="User-facing label (e.g. 'Passkey 1', 'My Phone')",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc="Registration timestamp",
    )
    last_used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Time of the last successful assertion",
    )

    def __repr__(self) -> str:
        return f"<PasskeyCredential(name={self.name!r}, user_id={self.user_id!r})>"
