"""Credential store: user persistence with public and privileged projections.

Every read returns a pydantic projection instead of the ORM row. Default reads
return ``PublicUser`` (no hash, no tokens); callers that need credential
fields must ask for them explicitly through the ``*_privileged`` methods.
"""

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.models.user import ROLE_USER, User
from app.schemas.common import normalize_email
from app.schemas.user import PrivilegedUser, PublicUser

logger = logging.getLogger(__name__)

# Columns that may be written through update(); id and timestamps are store-managed.
UPDATABLE_FIELDS = frozenset(
    {
        "name",
        "email",
        "password_hash",
        "role",
        "refresh_token",
        "password_reset_token",
        "password_reset_expires",
        "is_active",
    }
)


class UserRepository:
    """Single-row reads and writes against the users table. Each write commits."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _find(self, user_id: str) -> User | None:
        return self._session.query(User).filter(User.id == str(user_id)).first()

    def _find_by_email(self, email: str) -> User | None:
        return (
            self._session.query(User)
            .filter(User.email == normalize_email(email))
            .first()
        )

    def get_by_id(self, user_id: str) -> PublicUser | None:
        row = self._find(user_id)
        return PublicUser.model_validate(row) if row is not None else None

    def get_privileged_by_id(self, user_id: str) -> PrivilegedUser | None:
        row = self._find(user_id)
        return PrivilegedUser.model_validate(row) if row is not None else None

    def get_by_email(self, email: str) -> PublicUser | None:
        row = self._find_by_email(email)
        return PublicUser.model_validate(row) if row is not None else None

    def get_privileged_by_email(self, email: str) -> PrivilegedUser | None:
        row = self._find_by_email(email)
        return PrivilegedUser.model_validate(row) if row is not None else None

    def find_by_reset_token(self, user_id: str, reset_token: str) -> PrivilegedUser | None:
        """Return the user only if both id and the stored reset token match exactly."""
        row = (
            self._session.query(User)
            .filter(User.id == str(user_id), User.password_reset_token == reset_token)
            .first()
        )
        return PrivilegedUser.model_validate(row) if row is not None else None

    def email_exists(self, email: str, exclude_user_id: str | None = None) -> bool:
        query = self._session.query(User.id).filter(User.email == normalize_email(email))
        if exclude_user_id is not None:
            query = query.filter(User.id != str(exclude_user_id))
        return query.first() is not None

    def list_all(self) -> list[PublicUser]:
        rows = self._session.query(User).order_by(User.created_at, User.email).all()
        return [PublicUser.model_validate(row) for row in rows]

    def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = ROLE_USER,
    ) -> PublicUser:
        """Insert a user. Raises ConflictError if the email is already registered."""
        if not password_hash:
            raise ValueError("password_hash must be non-empty")
        row = User(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            is_active=True,
        )
        self._session.add(row)
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise ConflictError() from e
        self._session.refresh(row)
        logger.info("Created user", extra={"user_id": row.id, "role": row.role})
        return PublicUser.model_validate(row)

    def update(self, user_id: str, **fields: Any) -> PublicUser | None:
        """
        Set the given columns on one user and commit. A value of None clears the column.
        Returns the updated public projection, or None if the user does not exist.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if "email" in fields and fields["email"] is not None:
            fields["email"] = normalize_email(fields["email"])
        if "password_hash" in fields and not fields["password_hash"]:
            raise ValueError("password_hash must be non-empty")

        row = self._find(user_id)
        if row is None:
            return None
        for key, value in fields.items():
            setattr(row, key, value)
        try:
            self._session.commit()
        except IntegrityError as e:
            self._session.rollback()
            raise ConflictError("Email already in use") from e
        self._session.refresh(row)
        return PublicUser.model_validate(row)

    def delete(self, user_id: str) -> bool:
        row = self._find(user_id)
        if row is None:
            return False
        self._session.delete(row)
        self._session.commit()
        logger.info("Deleted user", extra={"user_id": str(user_id)})
        return True
