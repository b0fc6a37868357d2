"""Redis Rate Limit Store — janelas fixas compartilhadas entre workers.

Usa INCR + EXPIRE: o primeiro hit da janela cria a chave com TTL igual à
janela; hits seguintes só incrementam. O TTL restante é o retry_after.

Contrato de Keys:
    ratelimit:{scope}:{categoria} — contador da janela corrente
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from evolution_gateway.api.connectors.evolution.rate_limiter import RateLimitDecision
from evolution_gateway.app.protocols.rate_limit_store import RateLimitStoreProtocol
from evolution_gateway.utils.errors import RedisConnectionError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

    from evolution_gateway.api.connectors.evolution.rate_limiter import RateLimit

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "ratelimit:"


class RedisRateLimitStore(RateLimitStoreProtocol):
    """Store de rate limit com contadores atômicos no Redis.

    Args:
        redis_client: Cliente Redis assíncrono
        prefix: Namespace das chaves
    """

    def __init__(self, redis_client: AsyncRedis, prefix: str = RATE_LIMIT_PREFIX) -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def hit(
        self,
        key: str,
        category: str,
        limit: RateLimit,
        now: float,
    ) -> RateLimitDecision:
        redis_key = self._key(key)
        try:
            pipeline = self._redis.pipeline()
            pipeline.incr(redis_key)
            pipeline.ttl(redis_key)
            count, ttl = await pipeline.execute()
            # -1 = chave sem TTL (primeiro hit ou TTL perdido)
            if ttl is None or int(ttl) < 0:
                await self._redis.expire(redis_key, limit.window_seconds)
                ttl = limit.window_seconds
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar rate limit no Redis") from exc

        if int(count) <= limit.max_attempts:
            return RateLimitDecision(allowed=True)

        logger.debug(
            "rate_limit_denied_redis",
            extra={"category": category, "count": int(count), "ttl": int(ttl)},
        )
        return RateLimitDecision(allowed=False, retry_after_seconds=max(1, int(ttl)))

    async def remaining(self, key: str, limit: RateLimit, now: float) -> int:
        try:
            raw = await self._redis.get(self._key(key))
        except Exception as exc:
            raise RedisConnectionError("Falha ao consultar rate limit no Redis") from exc
        used = int(raw) if raw is not None else 0
        return max(0, limit.max_attempts - used)

    async def reset(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except Exception as exc:
            raise RedisConnectionError("Falha ao limpar rate limit no Redis") from exc
