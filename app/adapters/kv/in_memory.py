"""In-memory key-value store with per-key TTL (MVP).

Notes:
- Per-process only: running multiple workers gives each worker its own store,
  which multiplies effective rate limits and splits the form cache.
- Thread-safe: uses a lock around shared state.
- Expiry is lazy: entries are dropped when read or overwritten after their
  deadline. Writes also purge expired entries, at most once per
  ``sweep_interval_seconds``, so a write costs O(1) between sweeps.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.kv.base import AbstractKeyValueStore


@dataclass
class _Entry:
    value: bytes
    expires_at: float | None


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dict-backed store emulating native key expiration.

    Args:
        namespace: Optional prefix applied to every key.
        clock: Time source returning UNIX time in seconds.
        sweep_interval_seconds: Minimum time between two full purges of
            expired entries.
    """

    def __init__(
        self,
        *,
        namespace: str | None = None,
        clock: Callable[[], float] = time.time,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._namespace = namespace
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep_at = clock() + sweep_interval_seconds
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(namespace={self._namespace!r}, size={len(self._entries)})"

    def _full_key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    def _is_expired(self, entry: _Entry, now: float) -> bool:
        return entry.expires_at is not None and entry.expires_at <= now

    def _live_entry_locked(self, full_key: str, now: float) -> _Entry | None:
        entry = self._entries.get(full_key)
        if entry is None:
            return None
        if self._is_expired(entry, now):
            del self._entries[full_key]
            return None
        return entry

    def _sweep_expired_locked(self, now: float) -> None:
        if now < self._next_sweep_at:
            return
        self._next_sweep_at = now + self._sweep_interval
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            del self._entries[key]

    def entry_count(self) -> int:
        """Return the number of stored entries, including expired ones not yet purged."""
        with self._lock:
            return len(self._entries)

    async def get(self, key: str) -> bytes | None:
        now = self._clock()
        with self._lock:
            entry = self._live_entry_locked(self._full_key(key), now)
            return entry.value if entry else None

    async def put(
        self,
        key: str,
        value: bytes,
        *,
        expiration_ttl: int | None = None,
        keep_ttl: bool = False,
    ) -> None:
        if expiration_ttl is not None and expiration_ttl < 1:
            raise ValueError("expiration_ttl must be >= 1")

        now = self._clock()
        full_key = self._full_key(key)
        with self._lock:
            self._sweep_expired_locked(now)
            existing = self._live_entry_locked(full_key, now)
            if keep_ttl and existing is not None:
                expires_at = existing.expires_at
            elif expiration_ttl is not None:
                expires_at = now + expiration_ttl
            else:
                expires_at = None
            self._entries[full_key] = _Entry(value=bytes(value), expires_at=expires_at)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(self._full_key(key), None)

    def ttl(self, key: str) -> float | None:
        """Return seconds left before ``key`` expires, or None if absent/persistent."""
        now = self._clock()
        with self._lock:
            entry = self._live_entry_locked(self._full_key(key), now)
            if entry is None or entry.expires_at is None:
                return None
            return entry.expires_at - now

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()
