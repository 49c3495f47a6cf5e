"""Unit tests for the client-held session and challenge storage."""

import json

import pytest
from cryptography.fernet import Fernet

from passgate.auth.session import (
    AuthenticationChallenge,
    RegistrationChallenge,
    SessionCodec,
    SessionData,
    SessionManager,
    _derive_fernet_key,
)
from passgate.exceptions import SessionPersistError
from tests.helpers.auth import SESSION_SECRET, InMemorySessionTransport


def _registration(challenge: str = "reg-challenge") -> RegistrationChallenge:
    return RegistrationChallenge(challenge=challenge, user_id="user-1", username="alice")


def _next_request(transport, auth_config, clock) -> SessionManager:
    """A fresh manager over the same cookie jar, as on the next HTTP request."""
    return SessionManager(transport, auth_config, clock=clock)


class TestChallengeStorage:
    def test_get_and_clear_returns_challenge_once(self, session_manager):
        session_manager.store_challenge(_registration())

        first = session_manager.get_and_clear_challenge("registration")
        second = session_manager.get_and_clear_challenge("registration")

        assert first == _registration()
        assert second is None

    def test_cleared_challenge_stays_cleared_for_next_request(
        self, session_manager, transport, auth_config, clock
    ):
        session_manager.store_challenge(AuthenticationChallenge(challenge="auth-challenge"))
        assert session_manager.get_and_clear_challenge("authentication") is not None

        later = _next_request(transport, auth_config, clock)
        assert later.get_and_clear_challenge("authentication") is None

    def test_wrong_type_returns_none_and_keeps_challenge(self, session_manager):
        session_manager.store_challenge(_registration())

        assert session_manager.get_and_clear_challenge("authentication") is None
        assert session_manager.get_and_clear_challenge("registration") == _registration()

    def test_missing_challenge_returns_none(self, session_manager):
        assert session_manager.get_and_clear_challenge("registration") is None

    def test_new_start_replaces_pending_challenge(self, session_manager):
        session_manager.store_challenge(_registration("first"))
        session_manager.store_challenge(_registration("second"))

        record = session_manager.get_and_clear_challenge("registration")
        assert record.challenge == "second"

    def test_store_challenge_preserves_session_identity(self, session_manager):
        session_manager.create_session("user-1", "alice")
        session_manager.store_challenge(_registration())

        user = session_manager.get_current_user()
        assert user is not None
        assert user.username == "alice"

    def test_create_session_discards_pending_challenge(self, session_manager):
        session_manager.store_challenge(AuthenticationChallenge(challenge="auth-challenge"))
        session_manager.create_session("user-1", "alice")

        assert session_manager.get_and_clear_challenge("authentication") is None

    def test_challenge_survives_round_trip_through_transport(
        self, session_manager, transport, auth_config, clock
    ):
        session_manager.store_challenge(_registration())

        later = _next_request(transport, auth_config, clock)
        assert later.get_and_clear_challenge("registration") == _registration()


class TestSessionLifecycle:
    def test_no_session_is_invalid(self, session_manager):
        assert session_manager.is_session_valid() is False
        assert session_manager.get_current_user() is None

    def test_created_session_identifies_user(self, session_manager, transport, auth_config, clock):
        session_manager.create_session("user-1", "alice")

        user = _next_request(transport, auth_config, clock).get_current_user()
        assert user is not None
        assert (user.user_id, user.username) == ("user-1", "alice")

    def test_destroy_session_clears_transport(self, session_manager, transport):
        session_manager.create_session("user-1", "alice")
        session_manager.destroy_session()

        assert transport.destroyed is True
        assert transport.blob is None
        assert session_manager.get_current_user() is None

    def test_idle_session_expires(self, session_manager, transport, auth_config, clock):
        session_manager.create_session("user-1", "alice")

        clock.advance(auth_config.idle_timeout.total_seconds() + 1)

        assert _next_request(transport, auth_config, clock).get_current_user() is None

    def test_touch_slides_idle_window(self, session_manager, transport, auth_config, clock):
        session_manager.create_session("user-1", "alice")
        idle = auth_config.idle_timeout.total_seconds()

        for _ in range(3):
            clock.advance(idle * 0.75)
            _next_request(transport, auth_config, clock).touch()

        assert _next_request(transport, auth_config, clock).get_current_user() is not None

    def test_absolute_timeout_invalidates_active_session(
        self, session_manager, transport, auth_config, clock
    ):
        session_manager.create_session("user-1", "alice")
        step = 20 * 60
        absolute = auth_config.absolute_timeout.total_seconds()

        # Stay active (touch every 20 minutes) until just before the cap
        elapsed = 0
        while elapsed + step <= absolute:
            clock.advance(step)
            elapsed += step
            _next_request(transport, auth_config, clock).touch()
        assert _next_request(transport, auth_config, clock).is_session_valid() is True

        clock.advance(step)
        manager = _next_request(transport, auth_config, clock)
        assert manager.is_session_valid() is False
        assert transport.destroyed is True
        assert manager.get_current_user() is None

    def test_persist_failure_raises_session_persist_error(self, session_manager, transport):
        transport.fail_with = OSError("cookie jar unavailable")

        with pytest.raises(SessionPersistError) as exc_info:
            session_manager.store_challenge(_registration())

        assert isinstance(exc_info.value, OSError)

    def test_failed_persist_does_not_update_state(self, session_manager, transport):
        session_manager.store_challenge(_registration())
        transport.fail_with = OSError("cookie jar unavailable")

        with pytest.raises(SessionPersistError):
            session_manager.get_and_clear_challenge("registration")

        transport.fail_with = None
        assert session_manager.get_and_clear_challenge("registration") == _registration()


class TestSessionCodec:
    def test_tampered_blob_decodes_to_empty_session(self, clock):
        codec = SessionCodec(SESSION_SECRET, clock=clock)
        blob = codec.encode(SessionData(user_id="user-1", username="alice", created_at=clock()))

        middle = len(blob) // 2
        tampered = blob[:middle] + ("A" if blob[middle] != "A" else "B") + blob[middle + 1 :]

        assert codec.decode(tampered) == SessionData()

    def test_blob_from_other_secret_is_rejected(self, clock):
        blob = SessionCodec("another-secret", clock=clock).encode(SessionData(user_id="user-1"))

        assert SessionCodec(SESSION_SECRET, clock=clock).decode(blob) == SessionData()

    def test_unknown_schema_version_is_rejected(self, clock):
        payload = json.dumps({"v": 2, "user_id": "user-1", "username": "alice"}).encode()
        blob = Fernet(_derive_fernet_key(SESSION_SECRET)).encrypt_at_time(payload, int(clock()))

        assert SessionCodec(SESSION_SECRET, clock=clock).decode(blob.decode()) == SessionData()

    def test_garbage_is_rejected(self, clock):
        assert SessionCodec(SESSION_SECRET, clock=clock).decode("not-a-token") == SessionData()

    def test_blob_carries_version(self, clock):
        codec = SessionCodec(SESSION_SECRET, clock=clock)
        blob = codec.encode(SessionData(user_id="user-1"))

        raw = Fernet(_derive_fernet_key(SESSION_SECRET)).decrypt(blob.encode())
        assert json.loads(raw)["v"] == 1
