"""Profile and admin user management on top of UserRepository."""

import logging

from app.core.exceptions import ConflictError, NotFoundError, SelfDeletionError
from app.repositories.user_repository import UserRepository
from app.schemas.user import PublicUser

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, repository: UserRepository) -> None:
        self._users = repository

    def get_profile(self, user_id: str) -> PublicUser:
        return self.get_user(user_id)

    def update_profile(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
    ) -> PublicUser:
        """Change name and/or email. Raises ConflictError if the email belongs to another account."""
        fields: dict[str, str] = {}
        if name is not None:
            fields["name"] = name.strip()
        if email is not None:
            if self._users.email_exists(email, exclude_user_id=user_id):
                raise ConflictError("Email already in use")
            fields["email"] = email

        if not fields:
            return self.get_user(user_id)
        user = self._users.update(user_id, **fields)
        if user is None:
            raise NotFoundError()
        logger.info("Profile updated", extra={"user_id": user.id, "fields": sorted(fields)})
        return user

    def list_users(self) -> list[PublicUser]:
        return self._users.list_all()

    def get_user(self, user_id: str) -> PublicUser:
        user = self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user

    def delete_user(self, actor_id: str, user_id: str) -> None:
        """Delete another account. Admins cannot delete themselves."""
        user = self.get_user(user_id)
        if user.id == str(actor_id):
            raise SelfDeletionError()
        self._users.delete(user.id)
        logger.info("User deleted by admin", extra={"user_id": user.id, "actor_id": str(actor_id)})
