"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    public_id: str
    form_id: str
    backend: str
    operation: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class NotFoundAppError(AppError):
    """Raised when a form does not exist or is not visible to the caller."""


class GoneAppError(AppError):
    """Raised when a form existed but no longer accepts traffic (expired, full)."""


class RateLimitExceededError(AppError):
    """Raised at the HTTP edge when the limiter returns a denied result."""


class StoreUnavailableError(AppError):
    """Raised by key-value adapters when the backend fails or times out.

    Never surfaces to clients: the rate limiter fails open and the form cache
    degrades to a miss.
    """
