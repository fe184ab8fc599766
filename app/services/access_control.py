"""Access control: resolve a bearer access token to an active user and gate on roles."""

import logging
from collections.abc import Iterable

from app.core.exceptions import AccountDisabledError, ForbiddenError, UnauthenticatedError
from app.core.security import TokenCategory, TokenCodec, TokenFailure, TokenVerificationError
from app.repositories.user_repository import UserRepository
from app.schemas.user import PublicUser

logger = logging.getLogger(__name__)


def authenticate_token(
    token: str | None,
    codec: TokenCodec,
    repository: UserRepository,
) -> PublicUser:
    """
    Verify an access token and load its user (public projection).

    Raises UnauthenticatedError (reason: missing, expired, invalid, user_not_found)
    or AccountDisabledError.
    """
    if not token:
        raise UnauthenticatedError(reason="missing")
    try:
        claims = codec.verify(TokenCategory.ACCESS, token)
    except TokenVerificationError as e:
        if e.reason is TokenFailure.EXPIRED:
            raise UnauthenticatedError("Token expired. Please login again.", reason="expired") from e
        raise UnauthenticatedError("Invalid token. Please login again.", reason="invalid") from e

    user = repository.get_by_id(claims.user_id)
    if user is None:
        logger.info("Access token for unknown user", extra={"user_id": claims.user_id})
        raise UnauthenticatedError("User not found. Invalid token.", reason="user_not_found")
    if not user.is_active:
        raise AccountDisabledError()
    return user


def authorize_roles(user: PublicUser | None, roles: Iterable[str]) -> PublicUser:
    """Require an authenticated user whose role is one of ``roles``."""
    allowed = tuple(roles)
    if user is None:
        raise UnauthenticatedError("Authentication required.", reason="no_user")
    if user.role not in allowed:
        raise ForbiddenError(
            "Access denied. This route requires one of the following roles: "
            f"{', '.join(allowed)}."
        )
    return user
