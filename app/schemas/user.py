"""User projections and profile request schemas."""

from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field

from app.schemas.common import CamelModel, Name, NewPassword, NormalizedEmail

Role = Literal["user", "admin"]


class PublicUser(CamelModel):
    """Safe projection of a user: no password hash, no tokens."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PrivilegedUser(PublicUser):
    """
    Full user record including credential fields.

    Only returned by the explicit privileged repository reads; never used as a
    response model.
    """

    password_hash: str
    refresh_token: str | None = None
    password_reset_token: str | None = None
    password_reset_expires: datetime | None = None

    def public(self) -> PublicUser:
        return PublicUser.model_validate(self.model_dump(include=set(PublicUser.model_fields)))


class UpdateProfileRequest(CamelModel):
    """Profile fields a user may change on their own account."""

    name: Name | None = Field(default=None, description="Display name (2-50 chars)")
    email: NormalizedEmail | None = Field(default=None, description="New email address")


class ChangePasswordRequest(CamelModel):
    """Current and new password for an authenticated password change."""

    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: NewPassword = Field(..., description="New password (6-128 chars)")


class UserData(CamelModel):
    user: PublicUser


class UsersData(CamelModel):
    """Response data for GET /users (admin only)."""

    users: list[PublicUser]
    count: int
