"""Redis-backed key-value store.

Shared across workers, so rate limits and cached forms are consistent for
every process behind the load balancer. Expiration relies on Redis native
TTLs (``SET ... EX`` / ``KEEPTTL``), never on application timestamps.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.adapters.kv.base import AbstractKeyValueStore
from app.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisKeyValueStore(AbstractKeyValueStore):
    """Key-value store on top of ``redis.asyncio``.

    Args:
        client: Async Redis client. Must be created with ``decode_responses=False``
            so values round-trip as bytes.
        namespace: Optional prefix applied to every key.
    """

    def __init__(self, client: Redis, *, namespace: str | None = None) -> None:
        self._client = client
        self._namespace = namespace

    @classmethod
    def from_url(cls, url: str, *, namespace: str | None = None) -> "RedisKeyValueStore":
        """Build a store from a Redis connection URL."""
        return cls(Redis.from_url(url, decode_responses=False), namespace=namespace)

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailableError:
        logger.warning(
            "kv.redis.error",
            extra={
                "operation": operation,
                "namespace": self._namespace,
                "error_type": type(exc).__name__,
            },
        )
        return StoreUnavailableError(
            code="kv_store_unavailable",
            message=f"Redis {operation} failed: {exc}",
            details={"backend": "redis", "operation": operation},
        )

    async def get(self, key: str) -> bytes | None:
        try:
            return await self._client.get(self._full_key(key))
        except RedisError as exc:
            raise self._unavailable("get", exc) from exc

    async def put(
        self,
        key: str,
        value: bytes,
        *,
        expiration_ttl: int | None = None,
        keep_ttl: bool = False,
    ) -> None:
        full_key = self._full_key(key)
        try:
            if keep_ttl:
                # Only overwrite a live key; its expiry stays untouched.
                updated = await self._client.set(full_key, value, xx=True, keepttl=True)
                if updated:
                    return
                # Key expired between read and write: start a fresh entry.
                # NX lets a concurrent creator win instead of resetting its TTL.
                await self._client.set(full_key, value, nx=True, ex=expiration_ttl)
                return

            await self._client.set(full_key, value, ex=expiration_ttl)
        except RedisError as exc:
            raise self._unavailable("put", exc) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._full_key(key))
        except RedisError as exc:
            raise self._unavailable("delete", exc) from exc

    async def close(self) -> None:
        await self._client.aclose()
