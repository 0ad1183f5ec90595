"""
Error handling for the admin API

- AdminBaseError subclasses -> JSON body {"error": ...} with the class status
- Anything else -> logged with traceback, sanitized 500
- Store/driver details never reach the client outside DEBUG
"""
import logging
import traceback
from typing import Union

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from otrocoro_admin.core.config import settings
from otrocoro_admin.core.exceptions import AdminBaseError, DocumentStoreError

logger = logging.getLogger(__name__)

# Patterns that indicate internal/sensitive error information
SENSITIVE_PATTERNS = [
    "password",
    "secret",
    "token",
    "credential",
    "sqlalchemy",
    "asyncpg",
    "aiosqlite",
    "postgresql",
    "sqlite",
    "traceback",
    "file \"",
]

GENERIC_MESSAGE = "An internal error occurred. Please try again later."


def is_sensitive_error(message: str) -> bool:
    """Check if error message contains sensitive information."""
    message_lower = message.lower()
    return any(pattern in message_lower for pattern in SENSITIVE_PATTERNS)


def sanitize_error_message(error: Union[str, Exception]) -> str:
    """Sanitize an error message for safe client exposure."""
    message = error if isinstance(error, str) else str(error)

    # In debug mode, return full message
    if settings.DEBUG:
        return message

    if is_sensitive_error(message):
        return GENERIC_MESSAGE

    # Truncate very long messages
    if len(message) > 200:
        return message[:200] + "..."

    return message


async def admin_error_handler(request: Request, exc: AdminBaseError) -> JSONResponse:
    body = exc.to_dict()
    body["message"] = sanitize_error_message(exc.message)

    if isinstance(exc, DocumentStoreError):
        logger.error(f"Store error on {request.method} {request.url.path}: {exc!r}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(status_code=exc.status_code, content={"error": body})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error_id = f"{request.client.host if request.client else 'unknown'}-{id(exc)}"
    logger.error(
        f"Unhandled exception [{error_id}]: {type(exc).__name__}: {exc}\n"
        f"Path: {request.url.path}\n"
        f"Method: {request.method}\n"
        f"Traceback:\n{''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))}"
    )

    content = {
        "error": "internal_error",
        "message": str(exc) if settings.DEBUG else "An unexpected error occurred. Please try again later.",
        "error_id": error_id,
    }
    if settings.DEBUG:
        content["type"] = type(exc).__name__
    return JSONResponse(status_code=500, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AdminBaseError, admin_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
