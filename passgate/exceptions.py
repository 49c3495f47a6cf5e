"""Passgate exception hierarchy.

Base exceptions for all application layers with correlation ID support.
Authentication failures carry a stable ``code`` and the HTTP status the
API layer renders them with.

Usage:
    from passgate.exceptions import AuthError, NoChallengeError

    try:
        await service.login_finish(credential)
    except AuthError as e:
        logger.info("Login rejected", extra={"code": e.code})
"""

import uuid


class PassgateError(Exception):
    """Base exception for all Passgate application errors.

    Carries a correlation_id for tracing errors across layers.
    """

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.message = message
        super().__init__(message)


class ValidationError(PassgateError):
    """Errors from input validation (beyond Pydantic)."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, *, field: str | None = None, **kwargs):
        self.field = field
        super().__init__(message, **kwargs)


class ConfigurationError(PassgateError):
    """Errors from application configuration."""

    pass


class SessionPersistError(PassgateError, OSError):
    """The session blob could not be written through the transport.

    Subclasses OSError: a failed cookie write is an I/O fault, not an
    authentication outcome.
    """

    pass


class AuthError(PassgateError):
    """Expected, recoverable authentication outcome.

    Subclasses define ``code`` (stable, machine-readable) and
    ``status_code`` (used by the HTTP layer).
    """

    code = "AUTH_ERROR"
    status_code = 400
    default_message = "Authentication error"

    def __init__(self, message: str | None = None, **kwargs):
        super().__init__(message or self.default_message, **kwargs)


class UsernameTakenError(AuthError):
    code = "USERNAME_TAKEN"
    status_code = 409
    default_message = "Username is already taken"


class UserNotFoundError(AuthError):
    code = "USER_NOT_FOUND"
    status_code = 404
    default_message = "User not found"


class CredentialNotFoundError(AuthError):
    code = "CREDENTIAL_NOT_FOUND"
    status_code = 404
    default_message = "Credential not found"


class CredentialNotOwnedError(CredentialNotFoundError):
    """Credential exists but belongs to another user.

    Rendered like CredentialNotFoundError so callers cannot probe
    for other users' credential ids.
    """

    code = "CREDENTIAL_NOT_OWNED"
    default_message = "Credential not found or does not belong to user"


class LastCredentialError(AuthError):
    code = "LAST_CREDENTIAL"
    status_code = 409
    default_message = "Cannot delete the only credential. Add another passkey first."


class RegistrationFailedError(AuthError):
    code = "REGISTRATION_FAILED"
    status_code = 400
    default_message = "Registration verification failed"


class AuthenticationFailedError(AuthError):
    code = "AUTHENTICATION_FAILED"
    status_code = 401
    default_message = "Authentication verification failed"


class NoChallengeError(AuthError):
    """No usable challenge in the session; the ceremony must restart."""

    code = "NO_CHALLENGE"
    status_code = 400
    default_message = "No challenge found. Please start over."


class NotAuthenticatedError(AuthError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "You must be logged in to access this resource"
