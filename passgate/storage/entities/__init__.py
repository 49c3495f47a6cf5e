"""Database entity models.

All SQLAlchemy ORM models for Passgate.
"""

from passgate.storage.entities.credential import DeviceType, PasskeyCredential
from passgate.storage.entities.user import User

__all__ = [
    "DeviceType",
    "PasskeyCredential",
    "User",
]
