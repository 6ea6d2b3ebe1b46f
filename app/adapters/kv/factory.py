"""Factory pattern for creating key-value store instances."""

from app.adapters.kv.base import AbstractKeyValueStore
from app.adapters.kv.in_memory import InMemoryKeyValueStore
from app.adapters.kv.redis_store import RedisKeyValueStore
from app.core.config import settings
from app.core.errors import ValidationAppError


def create_kv_store(namespace: str) -> AbstractKeyValueStore:
    """Instantiate the configured key-value backend.

    Reads ``settings.app.kv_backend`` and routes to the matching adapter.
    Each caller passes its own namespace so rate-limit counters and cached
    forms never share keys, even on a single Redis database.

    Args:
        namespace: Key prefix for this store (e.g. "ratelimit", "cache").

    Returns:
        AbstractKeyValueStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    backend = settings.app.kv_backend.lower()

    if backend == "memory":
        return InMemoryKeyValueStore(namespace=namespace)

    if backend == "redis":
        return RedisKeyValueStore.from_url(settings.app.redis_url, namespace=namespace)

    raise ValidationAppError(
        code="kv_unknown_backend",
        message=f"Unknown key-value backend: '{backend}'. Supported backends: memory, redis",
    )
