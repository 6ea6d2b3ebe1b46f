"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- RateLimitExceededError → 429 with ``{error, message, retryAfter}`` + headers
- AppError subclasses → appropriate HTTP status (400, 403, 404, 410, 503)
- Unexpected Exception → generic 500 (safety net)
- AppError responses include request_id for distributed tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    GoneAppError,
    NotFoundAppError,
    RateLimitExceededError,
    StoreUnavailableError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, 403),
    (NotFoundAppError, 404),
    (GoneAppError, 410),
    (RateLimitExceededError, 429),
    (StoreUnavailableError, 503),
)


def status_for(exc: AppError) -> int:
    """Map an AppError subclass to its HTTP status (400 by default)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render a denied rate-limit decision as HTTP 429.

    Body shape is ``{"error", "message", "retryAfter"}`` so clients can back
    off without parsing headers.
    """
    details = exc.details or {}
    retry_after = int(details.get("retry_after", 0))

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        if "limit" in details:
            headers["X-RateLimit-Limit"] = str(details["limit"])
            headers["X-RateLimit-Remaining"] = str(details.get("remaining", 0))
        if "reset_at" in details:
            headers["X-RateLimit-Reset"] = str(details["reset_at"])

    return JSONResponse(
        status_code=429,
        content={
            "error": "Too Many Requests",
            "message": exc.message,
            "retryAfter": retry_after,
        },
        headers=headers or None,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        }
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    # Infrastructure details stay in the logs
    if exc.details and not isinstance(exc, StoreUnavailableError):
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
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
    """Register all exception handlers with FastAPI app.

    Starlette resolves handlers by the exception's MRO, so the 429 handler
    wins over the generic AppError one for rate-limit denials.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
