"""Stores de infraestrutura (rate limit)."""

from evolution_gateway.api.connectors.evolution.rate_limiter import MemoryRateLimitStore
from evolution_gateway.app.infra.stores.redis_rate_limit_store import RedisRateLimitStore

__all__ = ["MemoryRateLimitStore", "RedisRateLimitStore"]
