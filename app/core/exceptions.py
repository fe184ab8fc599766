"""Typed application errors.

Services raise these; the HTTP layer maps ``kind`` to a status code and the
response envelope (see ``app.api.exception_handlers``). Messages are safe to
show to clients. ``reason`` carries internal detail (e.g. why a token was
rejected) that is logged and used to pick a client message, never a stack.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error categories."""

    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHENTICATED = "unauthenticated"
    ACCOUNT_DISABLED = "account_disabled"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    MISSING_TOKEN = "missing_token"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    TOKEN_EXPIRED = "token_expired"
    SELF_DELETION = "self_deletion"


class AppError(Exception):
    """Base for all expected, client-facing errors."""

    kind: ErrorKind = ErrorKind.VALIDATION
    default_message = "Request failed."

    def __init__(
        self,
        message: str | None = None,
        *,
        errors: list[dict[str, str]] | None = None,
        reason: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        self.reason = reason
        # Optional per-endpoint override of the kind -> status mapping.
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    kind = ErrorKind.VALIDATION
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
    default_message = "User with this email already exists"


class InvalidCredentialsError(AppError):
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class UnauthenticatedError(AppError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Authentication required. Please provide a valid token."


class AccountDisabledError(AppError):
    kind = ErrorKind.ACCOUNT_DISABLED
    default_message = "Account is deactivated. Please contact support."


class ForbiddenError(AppError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Access denied."


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND
    default_message = "User not found"


class MissingTokenError(AppError):
    kind = ErrorKind.MISSING_TOKEN
    default_message = "Refresh token is required"


class InvalidOrExpiredTokenError(AppError):
    kind = ErrorKind.INVALID_OR_EXPIRED_TOKEN
    default_message = "Invalid or expired token"


class TokenExpiredError(AppError):
    kind = ErrorKind.TOKEN_EXPIRED
    default_message = "Reset token has expired"


class SelfDeletionError(ValidationError):
    """An admin tried to delete their own account."""

    kind = ErrorKind.SELF_DELETION
    default_message = "You cannot delete your own account"
