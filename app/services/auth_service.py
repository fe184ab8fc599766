"""Authentication service: registration, login, token refresh, logout and password reset.

Session state lives on the user row: ``refresh_token`` holds the single live
refresh token (one active session per user; a new login replaces it), and
``password_reset_token`` / ``password_reset_expires`` hold at most one pending
reset. Every transition is a read-modify-write of that one row.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from app.core.exceptions import (
    AccountDisabledError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    MissingTokenError,
    NotFoundError,
    TokenExpiredError,
    ValidationError,
)
from app.core.security import (
    TokenCategory,
    TokenCodec,
    TokenVerificationError,
    hash_password,
    verify_password,
)
from app.models.user import ROLE_USER
from app.repositories.user_repository import UserRepository
from app.schemas.auth import AuthData, TokenPair
from app.schemas.common import normalize_email
from app.schemas.user import PublicUser
from app.services.email_service import EmailService, send_best_effort

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class AuthService:
    """Token lifecycle and password-reset state machine over UserRepository."""

    def __init__(
        self,
        repository: UserRepository,
        codec: TokenCodec,
        settings: "Settings",
        mailer: EmailService | None = None,
    ) -> None:
        self._users = repository
        self._codec = codec
        self._bcrypt_rounds = settings.BCRYPT_ROUNDS
        self._mailer = mailer

    def _hash(self, password: str) -> str:
        return hash_password(password, rounds=self._bcrypt_rounds)

    def _issue_session(self, user: PublicUser) -> TokenPair:
        """Mint an access+refresh pair and store the refresh token, replacing any previous one."""
        access_token = self._codec.sign(TokenCategory.ACCESS, user.id, user.email, user.role)
        refresh_token = self._codec.sign(TokenCategory.REFRESH, user.id, user.email, user.role)
        self._users.update(user.id, refresh_token=refresh_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def register(self, name: str, email: str, password: str, role: str = ROLE_USER) -> AuthData:
        """Create an account and start its first session. Raises ConflictError if the email is taken."""
        email = normalize_email(email)
        if self._users.email_exists(email):
            raise ConflictError()

        user = self._users.create(
            name=name,
            email=email,
            password_hash=self._hash(password),
            role=role,
        )
        tokens = self._issue_session(user)
        logger.info("User registered", extra={"user_id": user.id, "role": user.role})

        if self._mailer is not None:
            send_best_effort(self._mailer.send_welcome_email, user.email, user.name)

        return AuthData(user=user, **tokens.model_dump())

    def login(self, email: str, password: str) -> AuthData:
        """
        Authenticate by email and password; starts a new session.
        Unknown email and wrong password raise the same InvalidCredentialsError.
        """
        user = self._users.get_privileged_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login rejected: invalid credentials")
            raise InvalidCredentialsError()
        if not user.is_active:
            logger.info("Login rejected: account disabled", extra={"user_id": user.id})
            raise AccountDisabledError()

        public = user.public()
        tokens = self._issue_session(public)
        logger.info("User logged in", extra={"user_id": user.id})
        return AuthData(user=public, **tokens.model_dump())

    def refresh(self, refresh_token: str | None) -> str:
        """Exchange the current refresh token for a new access token. The refresh token is not rotated."""
        if not refresh_token:
            raise MissingTokenError()
        try:
            claims = self._codec.verify(TokenCategory.REFRESH, refresh_token)
        except TokenVerificationError as e:
            raise InvalidOrExpiredTokenError(
                "Invalid or expired refresh token", reason=e.reason.value
            ) from e

        user = self._users.get_privileged_by_id(claims.user_id)
        if user is None:
            raise NotFoundError()
        if not user.is_active:
            raise AccountDisabledError("Account is deactivated")
        if user.refresh_token != refresh_token:
            # Superseded by a later login, or cleared by logout / password reset.
            logger.info("Refresh rejected: stale refresh token", extra={"user_id": user.id})
            raise InvalidOrExpiredTokenError("Invalid refresh token", reason="stale")

        return self._codec.sign(TokenCategory.ACCESS, user.id, user.email, user.role)

    def logout(self, user_id: str) -> None:
        """Clear the stored refresh token. Idempotent."""
        self._users.update(user_id, refresh_token=None)
        logger.info("User logged out", extra={"user_id": str(user_id)})

    def request_password_reset(self, email: str) -> str | None:
        """
        Start a password reset. Returns the reset token, or None when no account
        has this email (callers must not reveal which).
        """
        user = self._users.get_by_email(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        reset_token = self._codec.sign(TokenCategory.RESET, user.id, user.email)
        expires = datetime.now(UTC) + self._codec.lifetime(TokenCategory.RESET)
        self._users.update(
            user.id,
            password_reset_token=reset_token,
            password_reset_expires=expires,
        )
        logger.info("Password reset token issued", extra={"user_id": user.id})
        return reset_token

    def complete_password_reset(self, token: str, new_password: str) -> None:
        """Set a new password from a reset token; ends the user's session."""
        try:
            claims = self._codec.verify(TokenCategory.RESET, token)
        except TokenVerificationError as e:
            raise InvalidOrExpiredTokenError(
                "Invalid or expired reset token", reason=e.reason.value
            ) from e

        user = self._users.find_by_reset_token(claims.user_id, token)
        if user is None:
            raise InvalidOrExpiredTokenError("Invalid or expired reset token", reason="not_pending")
        if user.password_reset_expires is None or _as_utc(user.password_reset_expires) < datetime.now(UTC):
            raise TokenExpiredError()

        self._users.update(
            user.id,
            password_hash=self._hash(new_password),
            password_reset_token=None,
            password_reset_expires=None,
            refresh_token=None,
        )
        logger.info("Password reset completed", extra={"user_id": user.id})

    def change_password(self, user_id: str, current_password: str, new_password: str) -> TokenPair:
        """Replace the password after checking the current one; starts a fresh session."""
        user = self._users.get_privileged_by_id(user_id)
        if user is None:
            raise NotFoundError()
        if not verify_password(current_password, user.password_hash):
            raise ValidationError.for_field("currentPassword", "Current password is incorrect")

        self._users.update(user.id, password_hash=self._hash(new_password))
        tokens = self._issue_session(user.public())
        logger.info("Password changed", extra={"user_id": user.id})
        return tokens
