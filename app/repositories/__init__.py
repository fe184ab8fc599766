"""Persistence access for the credential store."""

from app.repositories.user_repository import UserRepository

__all__ = ["UserRepository"]
