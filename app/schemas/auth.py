"""Request/response schemas for auth endpoints."""

from pydantic import Field

from app.schemas.common import CamelModel, Name, NewPassword, NormalizedEmail
from app.schemas.user import PublicUser, Role


class RegisterRequest(CamelModel):
    """New account details."""

    name: Name = Field(..., description="Display name (2-50 chars)")
    email: NormalizedEmail = Field(..., description="Email address (stored lowercase)")
    password: NewPassword = Field(..., description="Password (6-128 chars)")
    role: Role = Field(default="user", description="Account role")


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: NormalizedEmail = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class RefreshRequest(CamelModel):
    # Optional here so a missing token is reported as such, not as a generic validation error.
    refresh_token: str | None = Field(default=None, description="Refresh token from login")


class ForgotPasswordRequest(CamelModel):
    email: NormalizedEmail = Field(..., description="Account email")


class ResetPasswordRequest(CamelModel):
    """Reset token from the emailed link plus the new password."""

    token: str = Field(..., min_length=1, description="Password reset token")
    password: NewPassword = Field(..., description="New password (6-128 chars)")


class TokenPair(CamelModel):
    """Access + refresh token pair."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class AuthData(TokenPair):
    """User plus token pair returned by register and login."""

    user: PublicUser


class AccessTokenData(CamelModel):
    access_token: str = Field(..., description="New JWT access token")
