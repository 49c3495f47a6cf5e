"""Client-held session and challenge storage.

There is no session table. The session is a small versioned JSON document
sealed with Fernet (AES-CBC + HMAC) and handed to the client through a
transport (the HTTP layer uses a cookie). ``SessionManager`` is the only
code that reads or writes it.

Blob schema (version 1)::

    {"v": 1, "user_id": ..., "username": ..., "created_at": <epoch seconds>,
     "challenge": {"type": "registration", "challenge": ..., "user_id": ..., "username": ...}
                 | {"type": "authentication", "challenge": ...}}

Blobs that fail to decrypt, are older than the idle timeout, or carry an
unknown version decode to an empty session.
"""

import base64
import hashlib
import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Annotated, Literal, Protocol

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from passgate.auth.config import AuthConfig
from passgate.exceptions import SessionPersistError

logger = logging.getLogger(__name__)

SESSION_SCHEMA_VERSION = 1

ChallengeType = Literal["registration", "authentication"]


class RegistrationChallenge(BaseModel):
    """Challenge for creating a credential, bound to the identity it will belong to.

    For a new account the identity is provisional: the user row does not
    exist until the ceremony finishes.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["registration"] = "registration"
    challenge: str
    user_id: str
    username: str


class AuthenticationChallenge(BaseModel):
    """Challenge for a usernameless assertion; the credential identifies the user."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["authentication"] = "authentication"
    challenge: str


ChallengeRecord = Annotated[
    RegistrationChallenge | AuthenticationChallenge,
    Field(discriminator="type"),
]


class SessionData(BaseModel):
    """Decoded session contents."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    v: Literal[1] = SESSION_SCHEMA_VERSION
    user_id: str | None = None
    username: str | None = None
    created_at: float | None = None
    challenge: ChallengeRecord | None = None


@dataclass(frozen=True)
class CurrentUser:
    """Identity of an authenticated session."""

    user_id: str
    username: str


class SessionTransport(Protocol):
    """Carries the opaque session blob to and from the client."""

    def load(self) -> str | None: ...

    def save(self, blob: str) -> None: ...

    def destroy(self) -> None: ...


def _derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from an arbitrary secret string.

    Uses SHA-256 to produce a 32-byte key, then base64-encodes it
    as required by Fernet (url-safe base64, 32 bytes).
    """
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


class SessionCodec:
    """Seals and opens session blobs.

    The Fernet token embeds its issue time; ``decode`` rejects tokens older
    than ``idle_timeout``, so every re-save slides the idle window.
    """

    def __init__(
        self,
        secret: str,
        idle_timeout: timedelta | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._fernet = Fernet(_derive_fernet_key(secret))
        self._ttl = int(idle_timeout.total_seconds()) if idle_timeout else None
        self._clock = clock

    def encode(self, data: SessionData) -> str:
        payload = data.model_dump_json(exclude_none=True).encode()
        return self._fernet.encrypt_at_time(payload, int(self._clock())).decode()

    def decode(self, blob: str) -> SessionData:
        """Open a blob, failing closed to an empty session."""
        try:
            if self._ttl is None:
                raw = self._fernet.decrypt(blob.encode())
            else:
                raw = self._fernet.decrypt_at_time(blob.encode(), self._ttl, int(self._clock()))
            return SessionData.model_validate_json(raw)
        except InvalidToken:
            logger.debug("Discarding session blob: invalid, tampered or idle-expired")
        except (PydanticValidationError, json.JSONDecodeError, UnicodeError):
            logger.debug("Discarding session blob: unsupported schema")
        return SessionData()


class SessionManager:
    """Session lifecycle and one-time challenge storage.

    One instance per request. State is loaded lazily from the transport
    and every mutation is written back immediately. No method awaits, so
    a read-modify-write (notably ``get_and_clear_challenge``) cannot
    interleave with another coroutine.
    """

    def __init__(
        self,
        transport: SessionTransport,
        config: AuthConfig,
        codec: SessionCodec | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._transport = transport
        self._config = config
        self._clock = clock
        self._codec = codec or SessionCodec(config.session_secret, config.idle_timeout, clock)
        self._state: SessionData | None = None

    def _load(self) -> SessionData:
        if self._state is None:
            blob = self._transport.load()
            self._state = self._codec.decode(blob) if blob else SessionData()
        return self._state

    def _persist(self, state: SessionData) -> None:
        blob = self._codec.encode(state)
        try:
            self._transport.save(blob)
        except SessionPersistError:
            raise
        except OSError as e:
            raise SessionPersistError(f"Failed to persist session: {e}") from e
        self._state = state

    def create_session(self, user_id: str, username: str) -> None:
        """Start an authenticated session, discarding any pending challenge."""
        self._persist(
            SessionData(user_id=user_id, username=username, created_at=self._clock())
        )

    def destroy_session(self) -> None:
        self._transport.destroy()
        self._state = SessionData()

    def is_session_valid(self) -> bool:
        """Check identity presence and the absolute lifetime.

        A session past its absolute lifetime is destroyed as a side effect.
        """
        state = self._load()
        if not state.user_id or state.created_at is None:
            return False

        if self._clock() - state.created_at > self._config.absolute_timeout.total_seconds():
            logger.info("Session for %s reached its absolute lifetime", state.username)
            self.destroy_session()
            return False

        return True

    def get_current_user(self) -> CurrentUser | None:
        if not self.is_session_valid():
            return None
        state = self._load()
        return CurrentUser(user_id=state.user_id, username=state.username or "")

    def touch(self) -> None:
        """Re-seal a valid session so the idle window restarts."""
        if self.is_session_valid():
            self._persist(self._load())

    def store_challenge(self, record: RegistrationChallenge | AuthenticationChallenge) -> None:
        """Bind a challenge to the session, replacing any unconsumed one."""
        state = self._load()
        self._persist(state.model_copy(update={"challenge": record}))

    def get_and_clear_challenge(
        self, expected_type: ChallengeType
    ) -> RegistrationChallenge | AuthenticationChallenge | None:
        """Consume the pending challenge.

        Returns None when there is no challenge or it was issued for the
        other ceremony type. A returned challenge is cleared in the same
        write and can never be returned again.
        """
        state = self._load()
        record = state.challenge
        if record is None or record.type != expected_type:
            return None
        self._persist(state.model_copy(update={"challenge": None}))
        return record
