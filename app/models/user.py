"""ORM model for application users (auth and RBAC)."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String, Text, func

from app.models.base import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'admin' or 'user'. Credential columns (password_hash, refresh_token,
    password_reset_*) are only exposed through the privileged projection of
    UserRepository.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
        # Reset token and its expiry are always set and cleared together.
        CheckConstraint(
            "(password_reset_token IS NULL) = (password_reset_expires IS NULL)",
            name="ck_users_reset_pair",
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_user_id)
    name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=ROLE_USER)
    refresh_token = Column(Text, nullable=True)
    password_reset_token = Column(Text, nullable=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
