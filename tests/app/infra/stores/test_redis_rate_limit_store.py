"""Testes do RedisRateLimitStore com Redis mockado."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from evolution_gateway.api.connectors.evolution import RateLimit, RateLimiter
from evolution_gateway.app.infra.stores import RedisRateLimitStore
from evolution_gateway.utils.errors import RedisConnectionError

LIMIT = RateLimit(max_attempts=2, window_seconds=60)


def _redis(count: int, ttl: int) -> MagicMock:
    client = MagicMock()
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=[count, ttl])
    client.pipeline.return_value = pipeline
    client.expire = AsyncMock(return_value=True)
    client.get = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=1)
    return client


async def test_first_hit_sets_window_ttl() -> None:
    client = _redis(count=1, ttl=-1)
    store = RedisRateLimitStore(client)

    decision = await store.hit("default:messages", "messages", LIMIT, now=0)

    assert decision.allowed
    client.pipeline.return_value.incr.assert_called_once_with("ratelimit:default:messages")
    client.expire.assert_awaited_once_with("ratelimit:default:messages", 60)


async def test_over_limit_uses_ttl_as_retry_after() -> None:
    client = _redis(count=3, ttl=42)
    decision = await RedisRateLimitStore(client).hit("k", "default", LIMIT, now=0)

    assert not decision.allowed
    assert decision.retry_after_seconds == 42
    client.expire.assert_not_awaited()


async def test_remaining_reads_counter() -> None:
    client = _redis(count=0, ttl=0)
    client.get.return_value = b"1"
    assert await RedisRateLimitStore(client).remaining("k", LIMIT, now=0) == 1


async def test_reset_deletes_key() -> None:
    client = _redis(count=0, ttl=0)
    await RedisRateLimitStore(client, prefix="rl:").reset("k")
    client.delete.assert_awaited_once_with("rl:k")


async def test_redis_failure_is_wrapped() -> None:
    client = _redis(count=0, ttl=0)
    client.pipeline.return_value.execute.side_effect = ConnectionError("down")
    with pytest.raises(RedisConnectionError):
        await RedisRateLimitStore(client).hit("k", "default", LIMIT, now=0)


async def test_rate_limiter_scopes_keys_with_redis_store() -> None:
    client = _redis(count=1, ttl=60)
    limiter = RateLimiter({"default": (2, 60)}, RedisRateLimitStore(client))

    assert (await limiter.acquire("messages", scope="default")).allowed
    client.pipeline.return_value.incr.assert_called_once_with("ratelimit:default:messages")
    assert limiter.bucket("messages", scope="default") is None
