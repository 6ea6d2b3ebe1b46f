"""Unit tests for the fixed-window rate limiter."""

import pytest

from app.adapters.kv.in_memory import InMemoryKeyValueStore
from app.adapters.rate_limit.base import RateLimitPolicy
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.core.errors import StoreUnavailableError
from conftest import FailingStore, FakeClock, SlowStore


@pytest.fixture
def limiter(kv_store: InMemoryKeyValueStore, clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(kv_store, clock=clock)


@pytest.mark.asyncio
async def test_scenario_limit_two_third_call_denied(
    limiter: FixedWindowRateLimiter, kv_store: InMemoryKeyValueStore
) -> None:
    policy = RateLimitPolicy(limit=2, window_seconds=60, key_prefix="strict")

    results = [await limiter.check("1.2.3.4", "/signin", policy) for _ in range(3)]

    assert [r.allowed for r in results] == [True, True, False]
    assert [r.remaining for r in results] == [1, 0, 0]
    assert results[2].retry_after_seconds == 60
    assert await kv_store.get("strict:1.2.3.4:/signin") == b"2"


@pytest.mark.asyncio
async def test_remaining_decreases_by_one_per_call(limiter: FixedWindowRateLimiter) -> None:
    policy = RateLimitPolicy(limit=5, window_seconds=60)

    remaining = [(await limiter.check("ip", "/forms", policy)).remaining for _ in range(5)]

    assert remaining == [4, 3, 2, 1, 0]


@pytest.mark.asyncio
async def test_window_resets_after_ttl(
    limiter: FixedWindowRateLimiter, kv_store: InMemoryKeyValueStore, clock: FakeClock
) -> None:
    policy = RateLimitPolicy(limit=1, window_seconds=10)

    assert (await limiter.check("ip", "/forms", policy)).allowed is True
    assert (await limiter.check("ip", "/forms", policy)).allowed is False

    clock.advance(10)
    result = await limiter.check("ip", "/forms", policy)

    assert result.allowed is True
    assert result.remaining == 0
    assert await kv_store.get("default:ip:/forms") == b"1"


@pytest.mark.asyncio
async def test_later_increments_do_not_extend_window(
    limiter: FixedWindowRateLimiter, kv_store: InMemoryKeyValueStore, clock: FakeClock
) -> None:
    policy = RateLimitPolicy(limit=2, window_seconds=60)

    await limiter.check("ip", "/forms", policy)
    clock.advance(30)
    await limiter.check("ip", "/forms", policy)

    assert kv_store.ttl("default:ip:/forms") == 30

    # A sliding window would still hold count=2 here and deny
    clock.advance(31)
    result = await limiter.check("ip", "/forms", policy)
    assert result.allowed is True
    assert result.remaining == 1


@pytest.mark.asyncio
async def test_denied_requests_do_not_write(
    limiter: FixedWindowRateLimiter, kv_store: InMemoryKeyValueStore
) -> None:
    policy = RateLimitPolicy(limit=1, window_seconds=60)

    await limiter.check("ip", "/forms", policy)
    for _ in range(3):
        await limiter.check("ip", "/forms", policy)

    assert await kv_store.get("default:ip:/forms") == b"1"


@pytest.mark.asyncio
async def test_counters_isolated_by_identity_route_and_prefix(
    limiter: FixedWindowRateLimiter,
) -> None:
    default = RateLimitPolicy(limit=1, window_seconds=60)
    strict = RateLimitPolicy(limit=1, window_seconds=60, key_prefix="strict")

    assert (await limiter.check("a", "/x", default)).allowed is True
    assert (await limiter.check("a", "/x", default)).allowed is False

    assert (await limiter.check("b", "/x", default)).allowed is True
    assert (await limiter.check("a", "/y", default)).allowed is True
    assert (await limiter.check("a", "/x", strict)).allowed is True


@pytest.mark.asyncio
async def test_reset_hint_is_now_plus_window(limiter: FixedWindowRateLimiter) -> None:
    result = await limiter.check("ip", "/forms", RateLimitPolicy(limit=3, window_seconds=60))

    assert result.reset_at == 1_060
    assert result.degraded is False


@pytest.mark.asyncio
async def test_store_get_failure_fails_open(clock: FakeClock) -> None:
    limiter = FixedWindowRateLimiter(FailingStore(), clock=clock)
    policy = RateLimitPolicy(limit=60, window_seconds=60, key_prefix="default")

    result = await limiter.check("5.6.7.8", "/forms", policy)

    assert result.allowed is True
    assert result.degraded is True
    assert result.retry_after_seconds is None


@pytest.mark.asyncio
async def test_store_put_failure_fails_open(clock: FakeClock) -> None:
    class ReadOnlyStore(InMemoryKeyValueStore):
        async def put(self, key, value, *, expiration_ttl=None, keep_ttl=False) -> None:
            raise StoreUnavailableError(code="kv_store_unavailable", message="read only")

    limiter = FixedWindowRateLimiter(ReadOnlyStore(clock=clock), clock=clock)

    result = await limiter.check("ip", "/forms", RateLimitPolicy(limit=1, window_seconds=60))

    assert result.allowed is True
    assert result.degraded is True


@pytest.mark.asyncio
async def test_store_timeout_fails_open_and_reports(clock: FakeClock) -> None:
    errors: list[StoreUnavailableError] = []
    limiter = FixedWindowRateLimiter(
        SlowStore(clock=clock),
        timeout_seconds=0.01,
        on_store_error=errors.append,
        clock=clock,
    )

    result = await limiter.check("ip", "/forms", RateLimitPolicy(limit=1, window_seconds=60))

    assert result.allowed is True
    assert result.degraded is True
    assert len(errors) == 1
    assert errors[0].code == "kv_store_timeout"


@pytest.mark.asyncio
async def test_store_error_hook_receives_adapter_error(clock: FakeClock) -> None:
    adapter_error = StoreUnavailableError(code="kv_store_unavailable", message="down")
    errors: list[StoreUnavailableError] = []
    limiter = FixedWindowRateLimiter(
        FailingStore(adapter_error), on_store_error=errors.append, clock=clock
    )

    await limiter.check("ip", "/forms", RateLimitPolicy(limit=1, window_seconds=60))

    assert errors == [adapter_error]


@pytest.mark.asyncio
async def test_corrupt_counter_treated_as_zero(
    limiter: FixedWindowRateLimiter, kv_store: InMemoryKeyValueStore
) -> None:
    await kv_store.put("default:ip:/forms", b"not-a-number", expiration_ttl=60)

    result = await limiter.check("ip", "/forms", RateLimitPolicy(limit=2, window_seconds=60))

    assert result.allowed is True
    assert result.remaining == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": 1, "window_seconds": 60, "key_prefix": ""},
    ],
)
def test_invalid_policy_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitPolicy(**kwargs)


@pytest.mark.asyncio
async def test_invalid_check_args(limiter: FixedWindowRateLimiter) -> None:
    policy = RateLimitPolicy(limit=1, window_seconds=60)

    with pytest.raises(ValueError):
        await limiter.check("", "/forms", policy)

    with pytest.raises(ValueError):
        await limiter.check("ip", "", policy)


def test_policy_builds_composite_key() -> None:
    policy = RateLimitPolicy(limit=5, window_seconds=300, key_prefix="strict")

    assert policy.build_key("1.2.3.4", "/signin") == "strict:1.2.3.4:/signin"
