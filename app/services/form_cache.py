"""Read-through cache for published form payloads.

Entries live under ``form:{public_id}`` in a key-value store and expire via
the store's native TTL. Reads are strictly hit-or-miss: there is no
stale-while-revalidate state. Every failure path (store error, timeout,
corrupt JSON, payload that no longer validates) degrades to a miss so the
caller falls back to the repository.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from app.adapters.kv.base import AbstractKeyValueStore
from app.core.errors import ValidationAppError
from app.schemas.forms import PublicFormPayload

logger = logging.getLogger(__name__)


CACHE_KEY_PREFIX = "form"


def build_cache_key(public_id: str) -> str:
    """Return the store key for a public form id."""
    return f"{CACHE_KEY_PREFIX}:{public_id}"


def _validate_projection(payload: Mapping[str, Any] | BaseModel) -> PublicFormPayload:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)

    try:
        return PublicFormPayload.model_validate(payload)
    except ValidationError as exc:
        raise ValidationAppError(
            code="form_cache_invalid_payload",
            message="Form payload cannot be cached: schema is missing or malformed",
            details={"context": {"errors": exc.error_count()}},
        ) from exc


def project_payload(payload: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    """Reduce a form payload to its cacheable public projection.

    Accepts camelCase or snake_case keys, a dict or any pydantic model with
    the same fields (e.g. a FormRecord).

    Returns:
        Dict with exactly ``schema``, ``settings`` and ``requireAuth``.

    Raises:
        ValidationAppError: If the payload lacks a usable schema.
    """
    return _validate_projection(payload).model_dump(by_alias=True)


class FormCache:
    """Cache of public form projections keyed by public id.

    Attributes:
        ttl_seconds: Default TTL applied by ``set``.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        ttl_seconds: int = 3600,
        timeout_seconds: float = 0.5,
    ) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self.ttl_seconds = ttl_seconds
        self._store = store
        self._timeout = timeout_seconds
        self._hits = 0
        self._misses = 0
        self._store_errors = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"FormCache(ttl_seconds={self.ttl_seconds}, hits={self._hits}, "
            f"misses={self._misses}, store_errors={self._store_errors})"
        )

    def _log_store_error(self, operation: str, public_id: str, exc: Exception) -> None:
        self._store_errors += 1
        logger.error(
            "form_cache.store_error",
            extra={
                "operation": operation,
                "public_id": public_id,
                "error_type": type(exc).__name__,
            },
        )

    def _miss(self, public_id: str, reason: str) -> None:
        """Record a miss and return None so callers can ``return self._miss(...)``."""
        self._misses += 1
        logger.debug("form_cache.miss", extra={"public_id": public_id, "reason": reason})
        return None

    async def get(self, public_id: str) -> dict[str, Any] | None:
        """Return the cached projection, or None on any kind of miss.

        Args:
            public_id: Public form identifier.

        Returns:
            Dict with ``schema``, ``settings`` and ``requireAuth``, or None.
        """
        try:
            raw = await asyncio.wait_for(
                self._store.get(build_cache_key(public_id)),
                timeout=self._timeout,
            )
        except Exception as exc:  # noqa: BLE001 - store failure is a miss
            self._log_store_error("get", public_id, exc)
            return self._miss(public_id, "store_error")

        if raw is None:
            return self._miss(public_id, "not_found")

        try:
            payload = PublicFormPayload.model_validate_json(raw)
        except ValidationError:
            # Malformed JSON surfaces as a ValidationError as well
            return self._miss(public_id, "decode_error")

        self._hits += 1
        logger.debug("form_cache.hit", extra={"public_id": public_id})
        return payload.model_dump(by_alias=True)

    async def set(
        self,
        public_id: str,
        payload: Mapping[str, Any] | BaseModel,
        ttl_seconds: int | None = None,
    ) -> bool:
        """Project ``payload`` and store it for ``ttl_seconds``.

        Store failures are logged and swallowed: caching is best effort and
        must never fail the request that triggered it.

        Args:
            public_id: Public form identifier.
            payload: Form data; anything beyond the public projection is dropped.
            ttl_seconds: Entry TTL; defaults to ``self.ttl_seconds``.

        Returns:
            True if the entry was written, False if the store failed.

        Raises:
            ValidationAppError: If the payload cannot be projected.
        """
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        if ttl < 1:
            raise ValueError("ttl_seconds must be >= 1")

        encoded = _validate_projection(payload).model_dump_json(by_alias=True).encode("utf-8")

        try:
            await asyncio.wait_for(
                self._store.put(build_cache_key(public_id), encoded, expiration_ttl=ttl),
                timeout=self._timeout,
            )
        except Exception as exc:  # noqa: BLE001 - cache writes are best effort
            self._log_store_error("set", public_id, exc)
            return False

        logger.debug(
            "form_cache.set",
            extra={"public_id": public_id, "ttl_s": ttl, "size_bytes": len(encoded)},
        )
        return True

    async def invalidate(self, public_id: str) -> bool:
        """Drop the cached entry. Absent keys are a no-op.

        Returns:
            True if the delete reached the store, False if the store failed.
        """
        try:
            await asyncio.wait_for(
                self._store.delete(build_cache_key(public_id)),
                timeout=self._timeout,
            )
        except Exception as exc:  # noqa: BLE001 - cache writes are best effort
            self._log_store_error("invalidate", public_id, exc)
            return False

        logger.info("form_cache.invalidate", extra={"public_id": public_id})
        return True

    def stats(self) -> dict[str, int]:
        """Return lightweight cache metrics without exposing values."""
        return {
            "ttl_seconds": self.ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "store_errors": self._store_errors,
        }
