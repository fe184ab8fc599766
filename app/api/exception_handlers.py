"""Map application errors to HTTP responses in the standard envelope.

Error response format:
    {"success": false, "message": "...", "errors": [{"field": "...", "message": "..."}]}

Services raise typed AppError subclasses; only this module knows HTTP status
codes. Unexpected exceptions become a generic 500 and are logged with their
stack trace, which is never sent to the client.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppError, ErrorKind

logger = logging.getLogger(__name__)

ERROR_KIND_TO_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SELF_DELETION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.MISSING_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorKind.TOKEN_EXPIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ACCOUNT_DISABLED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_OR_EXPIRED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}

INTERNAL_ERROR_MESSAGE = "Internal server error. Please try again."


def error_body(message: str, errors: list[dict[str, str]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def status_for(exc: AppError) -> int:
    if exc.status_code is not None:
        return exc.status_code
    return ERROR_KIND_TO_STATUS.get(exc.kind, status.HTTP_400_BAD_REQUEST)


def _field_name(loc: tuple[Any, ...]) -> str:
    # Drop the leading location marker ("body", "query", ...).
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code = status_for(exc)
    logger.info(
        "Request failed: %s",
        exc.kind.value,
        extra={"path": request.url.path, "status_code": status_code, "reason": exc.reason},
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content=error_body(exc.message, exc.errors),
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_name(tuple(err.get("loc", ()))), "message": str(err.get("msg", "Invalid value"))}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_body("Validation failed", errors)),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(INTERNAL_ERROR_MESSAGE),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
