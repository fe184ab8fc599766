"""Outgoing account notifications (welcome and password reset).

Delivery is best-effort: callers use send_best_effort so a mail failure is
logged and never fails the request that triggered it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urlencode

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """Raised when the mail API rejects a message or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MailTransport(Protocol):
    def send(self, to: str, subject: str, text: str) -> None: ...


class LogMailTransport:
    """Writes messages to the log instead of sending them (local development)."""

    def __init__(self, settings: "Settings") -> None:
        self._show_body = settings.APP_ENV == "dev"

    def send(self, to: str, subject: str, text: str) -> None:
        logger.info("Mail (not sent, no MAIL_API_URL): to=%s subject=%s", to, subject)
        if self._show_body:
            logger.debug("Mail body for %s:\n%s", to, text)


class HttpMailTransport:
    """POSTs each message as JSON ``{from, to, subject, text}`` to MAIL_API_URL."""

    def __init__(self, settings: "Settings") -> None:
        if not settings.MAIL_API_URL:
            raise ValueError("HttpMailTransport requires MAIL_API_URL")
        self._url = settings.MAIL_API_URL
        self._sender = settings.MAIL_FROM
        self._timeout = httpx.Timeout(settings.MAIL_REQUEST_TIMEOUT_SEC)

    def send(self, to: str, subject: str, text: str) -> None:
        payload = {"from": self._sender, "to": to, "subject": subject, "text": text}
        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._url, json=payload)
        except httpx.TimeoutException as e:
            raise MailDeliveryError("Mail API request timed out.") from e
        except httpx.HTTPError as e:
            raise MailDeliveryError("Mail API is unreachable.") from e
        if response.status_code >= 400:
            raise MailDeliveryError(
                f"Mail API returned status {response.status_code}.",
                status_code=response.status_code,
            )


def build_transport(settings: "Settings") -> MailTransport:
    """HTTP transport when MAIL_API_URL is configured, otherwise log-only."""
    if settings.MAIL_API_URL:
        return HttpMailTransport(settings)
    return LogMailTransport(settings)


class EmailService:
    """Composes account notification messages and hands them to a transport."""

    def __init__(self, settings: "Settings", transport: MailTransport | None = None) -> None:
        self._frontend_url = settings.FRONTEND_URL
        self._transport = transport or build_transport(settings)

    def reset_url(self, reset_token: str) -> str:
        return f"{self._frontend_url}/reset-password?{urlencode({'token': reset_token})}"

    def send_welcome_email(self, email: str, name: str) -> None:
        self._transport.send(
            email,
            "Welcome!",
            f"Hi {name},\n\nYour account has been created. Welcome aboard!",
        )

    def send_password_reset_email(self, email: str, reset_token: str) -> None:
        self._transport.send(
            email,
            "Password Reset Request",
            "We received a request to reset your password.\n\n"
            f"Reset it here: {self.reset_url(reset_token)}\n\n"
            "The link expires in one hour. If you did not ask for this, ignore this email.",
        )


def send_best_effort(send: Callable[..., Any], *args: Any) -> bool:
    """Call a mail function; log and swallow any failure. Returns True if it succeeded."""
    try:
        send(*args)
        return True
    except Exception:
        logger.exception("Notification dispatch failed: %s", getattr(send, "__name__", send))
        return False
