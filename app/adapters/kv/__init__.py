"""Key-value store adapters.

The rate limiter and the form cache depend only on ``AbstractKeyValueStore``
so the per-process store used in development and tests can be swapped for
Redis without touching either component.
"""

from app.adapters.kv.base import AbstractKeyValueStore
from app.adapters.kv.factory import create_kv_store
from app.adapters.kv.in_memory import InMemoryKeyValueStore
from app.adapters.kv.redis_store import RedisKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "create_kv_store",
]
