"""User endpoints: own profile and password for any user; account management for admins."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.auth import get_current_user, require_roles
from app.api.v1.deps import get_auth_service, get_user_service
from app.models.user import ROLE_ADMIN
from app.schemas.auth import TokenPair
from app.schemas.common import ApiResponse
from app.schemas.user import (
    ChangePasswordRequest,
    PublicUser,
    UpdateProfileRequest,
    UserData,
    UsersData,
)
from app.services.auth_service import AuthService
from app.services.user_service import UserService

# Every route here needs a valid access token.
router = APIRouter(dependencies=[Depends(get_current_user)])

CurrentUser = Annotated[PublicUser, Depends(get_current_user)]
Users = Annotated[UserService, Depends(get_user_service)]


@router.get(
    "/profile",
    response_model=ApiResponse[UserData],
    response_model_exclude_none=True,
)
def get_profile(current_user: CurrentUser, users: Users) -> ApiResponse[UserData]:
    user = users.get_profile(current_user.id)
    return ApiResponse[UserData](message="Profile retrieved successfully", data=UserData(user=user))


@router.put(
    "/profile",
    response_model=ApiResponse[UserData],
    response_model_exclude_none=True,
)
def update_profile(
    body: UpdateProfileRequest,
    current_user: CurrentUser,
    users: Users,
) -> ApiResponse[UserData]:
    """Update name and/or email. Returns 400 if the email is already in use."""
    user = users.update_profile(current_user.id, name=body.name, email=body.email)
    return ApiResponse[UserData](message="Profile updated successfully", data=UserData(user=user))


@router.put(
    "/change-password",
    response_model=ApiResponse[TokenPair],
    response_model_exclude_none=True,
)
def change_password(
    body: ChangePasswordRequest,
    current_user: CurrentUser,
    service: Annotated[AuthService, Depends(get_auth_service)],
) -> ApiResponse[TokenPair]:
    """Change password; returns a new token pair and ends any other session."""
    tokens = service.change_password(current_user.id, body.current_password, body.new_password)
    return ApiResponse[TokenPair](message="Password changed successfully", data=tokens)


@router.get(
    "",
    response_model=ApiResponse[UsersData],
    response_model_exclude_none=True,
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)
def list_users(users: Users) -> ApiResponse[UsersData]:
    """List all users (admin only)."""
    items = users.list_users()
    return ApiResponse[UsersData](
        message="Users retrieved successfully",
        data=UsersData(users=items, count=len(items)),
    )


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserData],
    response_model_exclude_none=True,
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)
def get_user(user_id: str, users: Users) -> ApiResponse[UserData]:
    user = users.get_user(user_id)
    return ApiResponse[UserData](message="User retrieved successfully", data=UserData(user=user))


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)
def delete_user(user_id: str, current_user: CurrentUser, users: Users) -> ApiResponse[None]:
    """Delete another account (admin only). Admins cannot delete themselves."""
    users.delete_user(current_user.id, user_id)
    return ApiResponse[None](message="User deleted successfully")
