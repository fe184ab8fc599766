"""Dependency providers wiring settings, the credential store and services into routes."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import TokenCodec
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.email_service import EmailService
from app.services.user_service import UserService


@lru_cache
def get_token_codec() -> TokenCodec:
    """One codec per process, built from the frozen settings."""
    return TokenCodec(get_settings())


@lru_cache
def get_email_service() -> EmailService:
    return EmailService(get_settings())


def get_user_repository(db: Annotated[Session, Depends(get_db)]) -> UserRepository:
    return UserRepository(db)


def get_auth_service(
    repository: Annotated[UserRepository, Depends(get_user_repository)],
    codec: Annotated[TokenCodec, Depends(get_token_codec)],
    settings: Annotated[Settings, Depends(get_settings)],
    mailer: Annotated[EmailService, Depends(get_email_service)],
) -> AuthService:
    return AuthService(repository, codec, settings, mailer=mailer)


def get_user_service(
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserService:
    return UserService(repository)
