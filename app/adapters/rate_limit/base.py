"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so the counting strategy and storage backend can change without touching
the HTTP layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Limit applied to one family of routes.

    Attributes:
        limit: Max requests per window.
        window_seconds: Fixed window length; also the counter TTL.
        key_prefix: Namespace separating counters of different policies.
    """

    limit: int
    window_seconds: int
    key_prefix: str = "default"

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if not self.key_prefix:
            raise ValueError("key_prefix must be a non-empty string")

    def build_key(self, identity: str, route_key: str) -> str:
        """Compose the counter key ``prefix:identity:route``."""
        return f"{self.key_prefix}:{identity}:{route_key}"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds hint for when the window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
        degraded: True when the store failed and the request was let through.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None
    degraded: bool = False


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    async def check(
        self,
        identity: str,
        route_key: str,
        policy: RateLimitPolicy,
    ) -> RateLimitResult:
        """Count one request for ``identity`` on ``route_key`` under ``policy``.

        Args:
            identity: Caller identity (client IP, user id, or API key hash).
            route_key: Request path, so limits apply per endpoint.
            policy: Limit, window and key prefix to enforce.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
