"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses -> HTTP status by category (429, 503, 500, 400)
- Unexpected Exception -> generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging
import math

from fastapi import Request
from fastapi.responses import JSONResponse

from sliding_limiter.core.config import settings
from sliding_limiter.core.errors import (
    AppError,
    ConfigurationAppError,
    PersistenceAppError,
    QuotaExceededAppError,
)
from sliding_limiter.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, QuotaExceededAppError):
        return 429
    if isinstance(exc, PersistenceAppError):
        return 503  # backend unavailable; verdict unknown
    if isinstance(exc, ConfigurationAppError):
        return 500
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to HTTP status codes:
    - QuotaExceededAppError -> 429 Too Many Requests
    - PersistenceAppError -> 503 Service Unavailable
    - ConfigurationAppError -> 500 Internal Server Error
    - any other AppError -> 400 Bad Request

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers: dict[str, str] = {}
    if status_code == 429 and settings.app.rate_limit_include_headers and exc.details:
        retry_after = exc.details.get("retry_after")
        if retry_after is not None:
            headers["Retry-After"] = str(int(math.ceil(retry_after)))
        max_calls = exc.details.get("max_calls")
        if max_calls is not None:
            headers["X-RateLimit-Limit"] = str(max_calls)

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure for debugging while returning a generic message, so no
    implementation details leak to the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
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
