"""Data access layer.

Repositories over the async SQLAlchemy session for users and
passkey credentials.
"""

from passgate.dal.base import BaseRepository
from passgate.dal.credentials import CredentialRepository
from passgate.dal.users import UserRepository

__all__ = [
    "BaseRepository",
    "CredentialRepository",
    "UserRepository",
]
