"""Input validation for usernames and labels."""

import re

from passgate.exceptions import ValidationError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 32
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

CREDENTIAL_NAME_MAX_LENGTH = 50
DISPLAY_NAME_MAX_LENGTH = 100


def validate_username(username: str) -> str:
    """Check a candidate username.

    Usernames are case-sensitive and are not normalised.

    Raises:
        ValidationError: If too short, too long, or has disallowed characters.
    """
    if not isinstance(username, str) or len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"Username must be at least {USERNAME_MIN_LENGTH} characters", field="username"
        )
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be at most {USERNAME_MAX_LENGTH} characters", field="username"
        )
    if not USERNAME_PATTERN.match(username):
        raise ValidationError(
            "Username may only contain letters, numbers, underscores and hyphens",
            field="username",
        )
    return username


def _validate_label(value: str, *, field: str, max_length: int) -> str:
    label = value.strip() if isinstance(value, str) else ""
    if not label:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required", field=field)
    if len(label) > max_length:
        raise ValidationError(
            f"{field.replace('_', ' ').capitalize()} is too long (max {max_length})", field=field
        )
    return label


def validate_credential_name(name: str) -> str:
    """Strip and bound a passkey label (1-50 characters)."""
    return _validate_label(name, field="name", max_length=CREDENTIAL_NAME_MAX_LENGTH)


def validate_display_name(display_name: str) -> str:
    """Strip and bound a display name (1-100 characters)."""
    return _validate_label(display_name, field="display_name", max_length=DISPLAY_NAME_MAX_LENGTH)
