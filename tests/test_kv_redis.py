"""Unit tests for the Redis key-value store adapter (client mocked)."""

from unittest.mock import AsyncMock, call

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.adapters.kv.redis_store import RedisKeyValueStore
from app.core.errors import StoreUnavailableError


@pytest.fixture
def redis_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def store(redis_client: AsyncMock) -> RedisKeyValueStore:
    return RedisKeyValueStore(redis_client, namespace="ratelimit")


@pytest.mark.asyncio
async def test_get_uses_namespaced_key(store: RedisKeyValueStore, redis_client: AsyncMock) -> None:
    redis_client.get.return_value = b"3"

    assert await store.get("default:1.2.3.4:/forms") == b"3"
    redis_client.get.assert_awaited_once_with("ratelimit:default:1.2.3.4:/forms")


@pytest.mark.asyncio
async def test_put_sets_expiration(store: RedisKeyValueStore, redis_client: AsyncMock) -> None:
    await store.put("k", b"1", expiration_ttl=60)

    redis_client.set.assert_awaited_once_with("ratelimit:k", b"1", ex=60)


@pytest.mark.asyncio
async def test_keep_ttl_updates_live_key_only(
    store: RedisKeyValueStore, redis_client: AsyncMock
) -> None:
    redis_client.set.return_value = True

    await store.put("k", b"2", expiration_ttl=60, keep_ttl=True)

    redis_client.set.assert_awaited_once_with("ratelimit:k", b"2", xx=True, keepttl=True)


@pytest.mark.asyncio
async def test_keep_ttl_recreates_expired_key_with_ttl(
    store: RedisKeyValueStore, redis_client: AsyncMock
) -> None:
    redis_client.set.side_effect = [None, True]

    await store.put("k", b"2", expiration_ttl=60, keep_ttl=True)

    assert redis_client.set.await_args_list == [
        call("ratelimit:k", b"2", xx=True, keepttl=True),
        call("ratelimit:k", b"2", nx=True, ex=60),
    ]


@pytest.mark.asyncio
async def test_delete_and_close(store: RedisKeyValueStore, redis_client: AsyncMock) -> None:
    await store.delete("k")
    await store.close()

    redis_client.delete.assert_awaited_once_with("ratelimit:k")
    redis_client.aclose.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("operation", ["get", "put", "delete"])
async def test_redis_errors_become_store_unavailable(
    store: RedisKeyValueStore, redis_client: AsyncMock, operation: str
) -> None:
    error = RedisConnectionError("connection refused")
    redis_client.get.side_effect = error
    redis_client.set.side_effect = error
    redis_client.delete.side_effect = error

    with pytest.raises(StoreUnavailableError) as exc_info:
        if operation == "put":
            await store.put("k", b"v", expiration_ttl=5)
        else:
            await getattr(store, operation)("k")

    assert exc_info.value.code == "kv_store_unavailable"
    assert exc_info.value.details == {"backend": "redis", "operation": operation}


def test_store_without_namespace_uses_raw_keys() -> None:
    client = AsyncMock()
    store = RedisKeyValueStore(client)

    assert store._full_key("form:abc") == "form:abc"
