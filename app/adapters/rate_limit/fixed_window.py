"""Fixed-window rate limiter on top of a key-value store.

Notes:
- The window is the counter's TTL: it is set on the first request and kept
  by every later increment, so all requests in a window expire together.
- Read-then-write is not atomic. Two concurrent requests may both read N and
  both write N + 1; the limiter is a best-effort throttle, not a quota.
- Fail-open: any store error or timeout lets the request through.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from typing import Callable

from app.adapters.kv.base import AbstractKeyValueStore
from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitPolicy, RateLimitResult
from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


StoreErrorHook = Callable[[StoreUnavailableError], None]


def _parse_count(raw: bytes | None) -> int:
    """Decode a stored counter; absent or garbage values count as 0."""
    if raw is None:
        return 0
    try:
        return max(0, int(raw.decode("ascii")))
    except (UnicodeDecodeError, ValueError):
        return 0


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per ``prefix:identity:route`` key.

    Args:
        store: Key-value store holding the counters.
        timeout_seconds: Upper bound for each store call.
        on_store_error: Optional hook called with the error whenever the
            limiter fails open.
        clock: Time source returning UNIX time in seconds.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        timeout_seconds: float = 0.5,
        on_store_error: StoreErrorHook | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._store = store
        self._timeout = timeout_seconds
        self._on_store_error = on_store_error
        self._clock = clock

    async def _read_count(self, key: str) -> int:
        raw = await asyncio.wait_for(self._store.get(key), timeout=self._timeout)
        return _parse_count(raw)

    async def _write_count(self, key: str, count: int, policy: RateLimitPolicy) -> None:
        await asyncio.wait_for(
            self._store.put(
                key,
                str(count).encode("ascii"),
                expiration_ttl=policy.window_seconds,
                keep_ttl=count > 1,
            ),
            timeout=self._timeout,
        )

    def _fail_open(self, key: str, policy: RateLimitPolicy, exc: Exception) -> RateLimitResult:
        error = exc if isinstance(exc, StoreUnavailableError) else StoreUnavailableError(
            code="kv_store_timeout" if isinstance(exc, asyncio.TimeoutError) else "kv_store_error",
            message=f"Rate limit store call failed: {type(exc).__name__}",
        )
        logger.error(
            "rate_limit.store_error",
            extra={
                "key_prefix": policy.key_prefix,
                "key_hash": hashlib.sha256(key.encode()).hexdigest()[:16],
                "error_code": error.code,
                "error_type": type(exc).__name__,
            },
        )
        if self._on_store_error is not None:
            self._on_store_error(error)

        return RateLimitResult(
            allowed=True,
            limit=policy.limit,
            remaining=policy.limit,
            reset_at=int(self._clock()) + policy.window_seconds,
            retry_after_seconds=None,
            degraded=True,
        )

    async def check(
        self,
        identity: str,
        route_key: str,
        policy: RateLimitPolicy,
    ) -> RateLimitResult:
        """Count one request and decide whether it may proceed.

        Args:
            identity: Caller identity (client IP, user id, or API key hash).
            route_key: Request path.
            policy: Limit, window and key prefix to enforce.

        Returns:
            RateLimitResult; denied results carry ``retry_after_seconds`` equal
            to the policy window.

        Raises:
            ValueError: If identity or route_key is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")
        if not route_key:
            raise ValueError("route_key must be a non-empty string")

        key = policy.build_key(identity, route_key)
        reset_at = int(self._clock()) + policy.window_seconds

        try:
            count = await self._read_count(key)
            if count >= policy.limit:
                return RateLimitResult(
                    allowed=False,
                    limit=policy.limit,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after_seconds=policy.window_seconds,
                )

            await self._write_count(key, count + 1, policy)
        except Exception as exc:  # noqa: BLE001 - any store failure fails open
            return self._fail_open(key, policy, exc)

        return RateLimitResult(
            allowed=True,
            limit=policy.limit,
            remaining=policy.limit - count - 1,
            reset_at=reset_at,
            retry_after_seconds=None,
        )
