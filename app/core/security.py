"""Password hashing and JWT creation/verification for authentication."""

import uuid
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt
from pydantic import BaseModel

if TYPE_CHECKING:
    from app.core.config import Settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of input.
BCRYPT_MAX_BYTES = 72


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


class TokenCategory(str, Enum):
    """Bearer token categories; each has its own secret and lifetime."""

    ACCESS = "access"
    REFRESH = "refresh"
    RESET = "reset"


class TokenFailure(str, Enum):
    EXPIRED = "expired"
    INVALID = "invalid"


class TokenVerificationError(Exception):
    """Raised when a token cannot be verified for the requested category."""

    def __init__(self, reason: TokenFailure, message: str) -> None:
        self.reason = reason
        self.message = message
        super().__init__(message)


class TokenClaims(BaseModel):
    """Verified claims of a bearer token."""

    user_id: str
    email: str
    role: str | None = None
    category: TokenCategory
    issued_at: datetime
    expires_at: datetime


class TokenCodec:
    """
    Signs and verifies access, refresh and password-reset JWTs.

    Every category is signed with its own secret and carries a ``typ`` claim,
    so a token minted for one category never verifies as another.
    """

    def __init__(self, settings: "Settings") -> None:
        self._algorithm = settings.JWT_ALGORITHM
        self._secrets = {
            TokenCategory.ACCESS: settings.JWT_ACCESS_SECRET.get_secret_value(),
            TokenCategory.REFRESH: settings.JWT_REFRESH_SECRET.get_secret_value(),
            TokenCategory.RESET: settings.JWT_RESET_SECRET.get_secret_value(),
        }
        self._lifetimes = {
            TokenCategory.ACCESS: timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
            TokenCategory.REFRESH: timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
            TokenCategory.RESET: timedelta(minutes=settings.JWT_RESET_EXPIRE_MINUTES),
        }

    def lifetime(self, category: TokenCategory) -> timedelta:
        return self._lifetimes[category]

    def sign(
        self,
        category: TokenCategory,
        user_id: str,
        email: str,
        role: str | None = None,
    ) -> str:
        """Create a signed token with userId, email, role (omitted for reset), iat and exp."""
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "userId": str(user_id),
            "email": email,
            "typ": category.value,
            "iat": now,
            "exp": now + self._lifetimes[category],
            # Unique per token, so two tokens minted in the same second still differ.
            "jti": uuid.uuid4().hex,
        }
        if category is not TokenCategory.RESET and role is not None:
            payload["role"] = role
        return jwt.encode(payload, self._secrets[category], algorithm=self._algorithm)

    def verify(self, category: TokenCategory, token: str) -> TokenClaims:
        """
        Decode and validate a token for the given category.
        Raises TokenVerificationError with reason EXPIRED or INVALID.
        """
        try:
            payload = jwt.decode(
                token,
                self._secrets[category],
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenVerificationError(TokenFailure.EXPIRED, "Token has expired") from e
        except jwt.PyJWTError as e:
            raise TokenVerificationError(TokenFailure.INVALID, "Invalid token") from e

        user_id = payload.get("userId")
        email = payload.get("email")
        if payload.get("typ") != category.value or not user_id or not email:
            raise TokenVerificationError(TokenFailure.INVALID, "Invalid token payload")
        return TokenClaims(
            user_id=str(user_id),
            email=str(email),
            role=payload.get("role"),
            category=category,
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )
