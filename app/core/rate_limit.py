"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on dependency functions only.
- Swap-friendly: the limiter and its store live on ``app.state`` and are
  built by the app factory, so tests inject in-memory fakes.
- Policies are configuration: limits and windows come from settings and are
  read per request.

Rate limiting strategy:
- Fixed window per ``prefix:identity:path``.
- Identity is the client IP by default; the per-user policy keys on the
  authenticated user id, and the API-key scope on a hash of the key.
- Guards stack: routers apply the default policy and individual routes add
  stricter ones, each with its own key prefix.
"""

from __future__ import annotations

import logging
from typing import Annotated, Awaitable, Callable, Literal

from fastapi import Depends, Header, Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy, RateLimitResult
from app.core.auth import hash_identifier, require_user
from app.core.config import settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

IdentityScope = Literal["ip", "user", "api_key"]


def default_policy() -> RateLimitPolicy:
    """Broad policy applied to all API traffic."""
    return RateLimitPolicy(
        limit=settings.app.rate_limit_requests,
        window_seconds=settings.app.rate_limit_window_seconds,
        key_prefix="default",
    )


def strict_policy() -> RateLimitPolicy:
    """Policy for credential checks and other brute-force targets."""
    return RateLimitPolicy(
        limit=settings.app.rate_limit_strict_requests,
        window_seconds=settings.app.rate_limit_strict_window_seconds,
        key_prefix="strict",
    )


def public_policy() -> RateLimitPolicy:
    """Policy for unauthenticated respondent traffic on public forms."""
    return RateLimitPolicy(
        limit=settings.app.rate_limit_public_requests,
        window_seconds=settings.app.rate_limit_public_window_seconds,
        key_prefix="public",
    )


def user_policy() -> RateLimitPolicy:
    """Per-user ceiling for specific authenticated actions."""
    return RateLimitPolicy(
        limit=settings.app.rate_limit_user_requests,
        window_seconds=settings.app.rate_limit_user_window_seconds,
        key_prefix="user",
    )


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter built by the app factory."""
    return request.app.state.rate_limiter


def client_ip(request: Request) -> str:
    """Resolve the caller IP from the trusted proxy header or the socket.

    Args:
        request: FastAPI request.

    Returns:
        str: Client IP, or "unknown" when nothing is available.
    """
    forwarded = request.headers.get(settings.app.client_ip_header)
    if forwarded:
        # X-Forwarded-For style headers list the original client first
        return forwarded.split(",")[0].strip() or "unknown"
    return request.client.host if request.client else "unknown"


def _apply_headers(response: Response, result: RateLimitResult) -> None:
    if not settings.app.rate_limit_include_headers or result.degraded:
        return
    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_at)


async def _enforce(
    request: Request,
    response: Response,
    limiter: AbstractRateLimiter,
    policy: RateLimitPolicy,
    identity: str,
    key_type: IdentityScope,
) -> RateLimitResult | None:
    if not settings.app.rate_limit_enabled:
        return None

    route_key = request.url.path
    result = await limiter.check(identity, route_key, policy)
    log_extra = {
        "key_type": key_type,
        "key_prefix": policy.key_prefix,
        "identity_hash": hash_identifier(identity),
        "route": route_key,
        "limit": result.limit,
        "remaining": result.remaining,
        "window_s": policy.window_seconds,
    }

    if result.allowed:
        logger.info("rate_limit.allowed", extra={**log_extra, "degraded": result.degraded})
        _apply_headers(response, result)
        return result

    retry_after = result.retry_after_seconds or policy.window_seconds
    logger.warning("rate_limit.exceeded", extra={**log_extra, "retry_after_s": retry_after})
    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Please try again later.",
        details={
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after": retry_after,
        },
    )


def rate_limit(
    policy_factory: Callable[[], RateLimitPolicy] = default_policy,
    *,
    scope: IdentityScope = "ip",
) -> Callable[..., Awaitable[RateLimitResult | None]]:
    """Build a FastAPI dependency enforcing ``policy_factory()`` per request.

    Consumes one unit from the caller's budget. On denial raises
    RateLimitExceededError, rendered as HTTP 429 by the exception handlers.
    The per-user counter is charged for every attempt, including ones that
    later fail in the handler.

    Args:
        policy_factory: Callable returning the policy to enforce.
        scope: Which caller identity keys the counter.

    Returns:
        Dependency callable suitable for ``Depends``.
    """

    if scope == "user":

        async def enforce_user_rate_limit(
            request: Request,
            response: Response,
            user_id: Annotated[str, Depends(require_user)],
            limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
        ) -> RateLimitResult | None:
            return await _enforce(request, response, limiter, policy_factory(), user_id, "user")

        return enforce_user_rate_limit

    if scope == "api_key":

        async def enforce_api_key_rate_limit(
            request: Request,
            response: Response,
            limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
            x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
        ) -> RateLimitResult | None:
            # Without a key, fall back to the client IP
            if x_api_key:
                return await _enforce(
                    request, response, limiter, policy_factory(),
                    hash_identifier(x_api_key), "api_key",
                )
            return await _enforce(request, response, limiter, policy_factory(), client_ip(request), "ip")

        return enforce_api_key_rate_limit

    async def enforce_ip_rate_limit(
        request: Request,
        response: Response,
        limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
    ) -> RateLimitResult | None:
        return await _enforce(request, response, limiter, policy_factory(), client_ip(request), "ip")

    return enforce_ip_rate_limit
