"""Unit tests for the Redis quota store using an AsyncMock client."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import AuthenticationError, ConnectionError as RedisConnectionError

from app.adapters.rate_limit.redis_store import RedisQuotaStore
from app.core.errors import QuotaStoreUnavailableError


def _client(*, incr: int = 1, ttl: int = 60) -> AsyncMock:
    client = AsyncMock()
    client.incr.return_value = incr
    client.expire.return_value = True
    client.ttl.return_value = ttl
    return client


@pytest.mark.asyncio
async def test_first_hit_sets_expiry_and_reads_ttl() -> None:
    client = _client(incr=1, ttl=60)
    store = RedisQuotaStore(client)

    record = await store.hit("ratelimit:ip:1.2.3.4", 60, 1000.0)

    client.incr.assert_awaited_once_with("ratelimit:ip:1.2.3.4")
    client.expire.assert_awaited_once_with("ratelimit:ip:1.2.3.4", 60)
    client.ttl.assert_awaited_once_with("ratelimit:ip:1.2.3.4")
    assert record.count == 1
    assert record.reset_at == 1060.0


@pytest.mark.asyncio
async def test_later_hits_do_not_reset_expiry() -> None:
    client = _client(incr=4, ttl=17)
    store = RedisQuotaStore(client)

    record = await store.hit("k", 60, 1000.0)

    client.expire.assert_not_awaited()
    assert record.count == 4
    assert record.reset_at == 1017.0


@pytest.mark.asyncio
async def test_missing_ttl_falls_back_to_window_length() -> None:
    # -2: key vanished between INCR and TTL
    client = _client(incr=2, ttl=-2)
    store = RedisQuotaStore(client)

    record = await store.hit("k", 30, 1000.0)

    assert record.reset_at == 1030.0
    client.expire.assert_not_awaited()


@pytest.mark.asyncio
async def test_key_without_expiry_gets_expiry_restored() -> None:
    client = _client(incr=3, ttl=-1)
    store = RedisQuotaStore(client)

    record = await store.hit("k", 30, 1000.0)

    client.expire.assert_awaited_once_with("k", 30)
    assert record.reset_at == 1030.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        RedisConnectionError("refused"),
        AuthenticationError("bad token"),
        asyncio.TimeoutError(),
        OSError("network unreachable"),
        RuntimeError("Event loop is closed"),
        ValueError("invalid literal for int()"),
    ],
)
async def test_store_errors_are_wrapped(error: Exception) -> None:
    client = _client()
    client.incr.side_effect = error
    store = RedisQuotaStore(client)

    with pytest.raises(QuotaStoreUnavailableError) as exc_info:
        await store.hit("k", 60, 1000.0)

    assert exc_info.value.code == "quota_store_unavailable"
    assert exc_info.value.details["error_type"] == type(error).__name__
    assert exc_info.value.__cause__ is error


@pytest.mark.asyncio
async def test_error_during_expire_is_wrapped() -> None:
    client = _client(incr=1)
    client.expire.side_effect = RedisConnectionError("reset by peer")
    store = RedisQuotaStore(client)

    with pytest.raises(QuotaStoreUnavailableError):
        await store.hit("k", 60, 1000.0)


@pytest.mark.asyncio
async def test_close_closes_client() -> None:
    client = _client()
    store = RedisQuotaStore(client)

    await store.close()

    client.aclose.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_swallows_connection_errors() -> None:
    client = _client()
    client.aclose.side_effect = RedisConnectionError("already closed")
    store = RedisQuotaStore(client)

    await store.close()
