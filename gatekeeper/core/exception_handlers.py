"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses -> mapped HTTP status (400, 403, 500, 503)
- Unexpected Exception -> generic 500 (safety net)
- All responses include request_id for distributed tracing

Throttle denials (429/403) are decisions rendered by the throttle
middleware, not exceptions, and never pass through here.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from gatekeeper.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    StorageAppError,
)
from gatekeeper.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 403),
    (StorageAppError, 503),
    (ConfigurationAppError, 500),
)


def status_for_error(exc: AppError) -> int:
    """Return the HTTP status for a domain error (400 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Responses carry ``error.code``, ``error.message``, ``error.request_id``
    and, when present, ``error.details``.
    """
    status_code = status_for_error(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(status_code=status_code, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure for debugging while returning a generic message, so
    no stack traces or internal messages reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
