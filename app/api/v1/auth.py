"""Auth endpoints and auth dependencies (get_current_user, require_roles)."""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.api.v1.deps import (
    get_auth_service,
    get_email_service,
    get_token_codec,
    get_user_repository,
)
from app.core.exceptions import AppError, ErrorKind
from app.core.security import TokenCodec
from app.repositories.user_repository import UserRepository
from app.schemas.auth import (
    AccessTokenData,
    AuthData,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from app.schemas.common import ApiResponse
from app.schemas.user import PublicUser
from app.services.access_control import authenticate_token, authorize_roles
from app.services.auth_service import AuthService
from app.services.email_service import EmailService, send_best_effort

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)


@contextmanager
def _report_as(status_code: int, *kinds: ErrorKind) -> Iterator[None]:
    """Pin the HTTP status of AppErrors raised inside the block (all kinds, or only ``kinds``)."""
    try:
        yield
    except AppError as e:
        if not kinds or e.kind in kinds:
            e.status_code = status_code
        raise


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> PublicUser:
    """Dependency: require a valid Bearer access token; binds the user to request.state.user."""
    token = credentials.credentials if credentials is not None else None
    user = authenticate_token(token, codec, repository)
    request.state.user = user
    return user


def require_roles(*roles: str) -> Callable[[Request], PublicUser]:
    """
    Dependency factory: allow only users whose role is in ``roles``.
    Reads the user bound by get_current_user, so it must be declared after it.
    """

    def _check(request: Request) -> PublicUser:
        return authorize_roles(getattr(request.state, "user", None), roles)

    return _check


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: RegisterRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[AuthData]:
    """Create an account; returns the user and a first access/refresh token pair."""
    result = service.register(body.name, body.email, body.password, body.role)
    return ApiResponse[AuthData](message="User registered successfully", data=result)


@router.post(
    "/login",
    response_model=ApiResponse[AuthData],
    response_model_exclude_none=True,
)
def login(
    body: LoginRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[AuthData]:
    """
    Authenticate with email and password; returns new access and refresh tokens.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    with _report_as(status.HTTP_401_UNAUTHORIZED):
        result = service.login(body.email, body.password)
    return ApiResponse[AuthData](message="Login successful", data=result)


@router.post(
    "/refresh",
    response_model=ApiResponse[AccessTokenData],
    response_model_exclude_none=True,
)
def refresh(
    body: RefreshRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[AccessTokenData]:
    """Exchange the current refresh token for a new access token."""
    with _report_as(
        status.HTTP_401_UNAUTHORIZED,
        ErrorKind.NOT_FOUND,
        ErrorKind.INVALID_OR_EXPIRED_TOKEN,
        ErrorKind.ACCOUNT_DISABLED,
    ):
        access_token = service.refresh(body.refresh_token)
    return ApiResponse[AccessTokenData](
        message="Token refreshed successfully",
        data=AccessTokenData(access_token=access_token),
    )


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
)
def logout(
    current_user: Annotated[PublicUser, Depends(get_current_user)],
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[None]:
    """End the current session by clearing the stored refresh token."""
    service.logout(current_user.id)
    return ApiResponse[None](message="Logout successful")


@router.post(
    "/forgot-password",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
)
def forgot_password(
    body: ForgotPasswordRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
    mailer: Annotated[EmailService, Depends(get_email_service)],
) -> ApiResponse[None]:
    """
    Request a password reset link. The response is the same whether or not
    the email belongs to an account.
    """
    reset_token = service.request_password_reset(body.email)
    if reset_token is not None:
        send_best_effort(mailer.send_password_reset_email, body.email, reset_token)
    return ApiResponse[None](
        message="If an account with that email exists, a password reset link has been sent."
    )


@router.post(
    "/reset-password",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
)
def reset_password(
    body: ResetPasswordRequest,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[None]:
    """Set a new password using the emailed reset token. Existing sessions are ended."""
    with _report_as(status.HTTP_400_BAD_REQUEST):
        service.complete_password_reset(body.token, body.password)
    return ApiResponse[None](
        message="Password reset successful. Please login with your new password."
    )
