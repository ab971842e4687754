"""
auth/errors.py -- Error taxonomy for the authentication core.

Every failure AuthService reports is an AuthError subclass with a stable,
machine-readable code and a caller-safe message. The api/ layer maps codes to
HTTP status codes; auth/ knows nothing about HTTP.

Messages never carry internal diagnostics. RepositoryUnavailable in particular
always uses the same generic text -- the underlying exception is logged
server-side and chained via __cause__, never rendered.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all structured authentication errors."""

    code = "auth_error"
    message = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(AuthError):
    """A precondition on a primitive input was violated (e.g. empty password to hash)."""

    code = "invalid_input"
    message = "Invalid input."


class ValidationError(AuthError):
    """One or more required inputs are missing.

    fields maps each offending input name to its message. Signup reports every
    failing field at once, never only the first.
    """

    code = "validation_error"
    message = "One or more fields are invalid."

    def __init__(self, fields: dict[str, str] | None = None, message: str | None = None) -> None:
        self.fields = dict(fields or {})
        super().__init__(message)


class MissingFields(ValidationError):
    """Sign-in input incomplete. Deliberately a single combined error, not per-field."""

    code = "missing_fields"
    message = "Fields must not be empty."

    def __init__(self) -> None:
        super().__init__(fields=None)


class PasswordMismatch(AuthError):
    code = "password_mismatch"
    message = "Password and confirmation do not match."


class EmailTaken(AuthError):
    code = "email_taken"
    message = "An account with that email already exists."


class InvalidCredentials(AuthError):
    """Sign-in failed.

    Raised with the same code and message for an unknown email and for a wrong
    password so callers cannot tell which emails are registered.
    """

    code = "invalid_credentials"
    message = "Invalid email or password."


class UserNotFound(AuthError):
    code = "not_found"
    message = "User not found."


class TokenInvalid(AuthError):
    code = "token_invalid"
    message = "Session token is invalid."


class TokenExpired(AuthError):
    code = "token_expired"
    message = "Session token has expired."


class RepositoryUnavailable(AuthError):
    code = "service_unavailable"
    message = "The service is temporarily unavailable."


class InternalFault(RepositoryUnavailable):
    """An internal consistency check failed. Fatal for the request, not for the process."""

    code = "internal_error"
    message = "An unexpected error occurred."
