"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccessTokenData,
    AuthData,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPair,
)
from app.schemas.common import ApiResponse, FieldError
from app.schemas.health import HealthResponse
from app.schemas.user import (
    ChangePasswordRequest,
    PrivilegedUser,
    PublicUser,
    UpdateProfileRequest,
    UserData,
    UsersData,
)

__all__ = [
    "AccessTokenData",
    "ApiResponse",
    "AuthData",
    "ChangePasswordRequest",
    "FieldError",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "PrivilegedUser",
    "PublicUser",
    "RefreshRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenPair",
    "UpdateProfileRequest",
    "UserData",
    "UsersData",
]
