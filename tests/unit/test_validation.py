"""Unit tests for username and label validation."""

import pytest

from passgate.auth.validation import (
    validate_credential_name,
    validate_display_name,
    validate_username,
)
from passgate.exceptions import ValidationError


class TestValidateUsername:
    @pytest.mark.parametrize("username", ["abc", "alice", "Bob_99", "a-b-c", "x" * 32])
    def test_accepts_valid_usernames(self, username):
        assert validate_username(username) == username

    @pytest.mark.parametrize(
        "username",
        [
            "",
            "ab",
            "x" * 33,
            "alice smith",
            "alice@example.com",
            "ålice",
            "bob!",
            "../etc",
        ],
    )
    def test_rejects_invalid_usernames(self, username):
        with pytest.raises(ValidationError) as exc_info:
            validate_username(username)

        assert exc_info.value.field == "username"
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_usernames_are_not_normalised(self):
        assert validate_username("Alice") == "Alice"

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            validate_username(None)  # type: ignore[arg-type]


class TestValidateLabels:
    def test_credential_name_is_stripped(self):
        assert validate_credential_name("  My Phone  ") == "My Phone"

    @pytest.mark.parametrize("name", ["", "   ", "x" * 51])
    def test_rejects_bad_credential_names(self, name):
        with pytest.raises(ValidationError) as exc_info:
            validate_credential_name(name)

        assert exc_info.value.field == "name"

    def test_credential_name_at_limit(self):
        assert validate_credential_name("x" * 50) == "x" * 50

    def test_display_name_limits(self):
        assert validate_display_name(" Alice Liddell ") == "Alice Liddell"
        assert validate_display_name("x" * 100) == "x" * 100

        with pytest.raises(ValidationError) as exc_info:
            validate_display_name("x" * 101)
        assert exc_info.value.field == "display_name"
