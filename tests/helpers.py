"""Shared test wiring: in-memory SQLite store and a TestClient with overridden dependencies."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock

import jwt
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_email_service
from app.core.config import get_settings
from app.core.database import get_db
from app.core.security import TokenCodec
from app.main import app
from app.models import Base
from app.repositories.user_repository import UserRepository
from app.services.auth_service import AuthService
from app.services.email_service import EmailService

API = get_settings().API_V1_PREFIX


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database shared by every session from the returned factory."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def make_mailer() -> tuple[EmailService, MagicMock]:
    """EmailService whose transport is a mock; returns (service, transport)."""
    transport = MagicMock()
    return EmailService(get_settings(), transport=transport), transport


def make_auth_service(session: Session, mailer: EmailService | None = None) -> AuthService:
    settings = get_settings()
    return AuthService(UserRepository(session), TokenCodec(settings), settings, mailer=mailer)


def make_client(
    session_factory: sessionmaker,
    mailer: EmailService,
    raise_server_exceptions: bool = True,
) -> TestClient:
    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: mailer
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


def clear_overrides() -> None:
    app.dependency_overrides.clear()


def expired_token(secret: str, typ: str, **claims: Any) -> str:
    """A correctly signed token whose exp is an hour in the past."""
    past = datetime.now(UTC) - timedelta(hours=1)
    payload = {
        "typ": typ,
        "iat": past - timedelta(minutes=15),
        "exp": past,
        **claims,
    }
    return jwt.encode(payload, secret, algorithm=get_settings().JWT_ALGORITHM)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
