"""Rate limiter de janela fixa por categoria de chamada.

Cada bucket é identificado por (scope, categoria); o gateway usa o nome da
conexão como scope. O limiter só informa allowed/not-allowed: a política
quando o limite é atingido (wait/throw/skip) pertence ao chamador.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from evolution_gateway.app.protocols.rate_limit_store import RateLimitStoreProtocol

if TYPE_CHECKING:
    from evolution_gateway.config.settings import RateLimitSettings

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "default"


class OnLimitReached(str, Enum):
    """Política do chamador quando o bucket está cheio."""

    WAIT = "wait"
    THROW = "throw"
    SKIP = "skip"


@dataclass(frozen=True)
class RateLimit:
    """Política de uma categoria: `max_attempts` por `window_seconds`."""

    max_attempts: int
    window_seconds: int


@dataclass
class RateLimitBucket:
    """Estado mutável de uma janela fixa (mutado apenas via acquire)."""

    category: str
    max_attempts: int
    window_seconds: int
    current_count: int = 0
    window_started_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now - self.window_started_at >= self.window_seconds


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: int = 0


def compute_retry_after(window_started_at: float, window_seconds: int, now: float) -> int:
    """Segundos até o fim da janela, arredondado para cima (mínimo 1)."""
    return max(1, math.ceil(window_started_at + window_seconds - now))


class MemoryRateLimitStore(RateLimitStoreProtocol):
    """Buckets em memória — processo único."""

    def __init__(self) -> None:
        self._buckets: dict[str, RateLimitBucket] = {}

    async def hit(
        self,
        key: str,
        category: str,
        limit: RateLimit,
        now: float,
    ) -> RateLimitDecision:
        bucket = self._buckets.get(key)
        if bucket is None or bucket.is_expired(now):
            bucket = RateLimitBucket(
                category=category,
                max_attempts=limit.max_attempts,
                window_seconds=limit.window_seconds,
                current_count=0,
                window_started_at=now,
            )
            self._buckets[key] = bucket

        if bucket.current_count < bucket.max_attempts:
            bucket.current_count += 1
            return RateLimitDecision(allowed=True)

        return RateLimitDecision(
            allowed=False,
            retry_after_seconds=compute_retry_after(
                bucket.window_started_at, bucket.window_seconds, now
            ),
        )

    async def remaining(self, key: str, limit: RateLimit, now: float) -> int:
        bucket = self._buckets.get(key)
        if bucket is None or bucket.is_expired(now):
            return limit.max_attempts
        return max(0, bucket.max_attempts - bucket.current_count)

    async def reset(self, key: str) -> None:
        self._buckets.pop(key, None)

    def get(self, key: str) -> RateLimitBucket | None:
        return self._buckets.get(key)


class RateLimiter:
    """Rate limiter de janela fixa com store plugável.

    Args:
        limits: categoria -> RateLimit (ou tupla (max_attempts, window_seconds));
            precisa conter "default", usada para categorias desconhecidas.
        store: Backend dos buckets (padrão: memória)
        clock: Fonte de tempo em segundos (injetável em testes)
        enabled: Quando False, toda chamada é permitida
    """

    def __init__(
        self,
        limits: Mapping[str, RateLimit | tuple[int, int]],
        store: RateLimitStoreProtocol | None = None,
        clock: Callable[[], float] = time.time,
        *,
        enabled: bool = True,
    ) -> None:
        self._limits = {
            category: value if isinstance(value, RateLimit) else RateLimit(*value)
            for category, value in limits.items()
        }
        if DEFAULT_CATEGORY not in self._limits:
            raise ValueError("Rate limits precisam da categoria 'default'")
        self._store = store or MemoryRateLimitStore()
        self._clock = clock
        self.enabled = enabled

    @classmethod
    def from_settings(
        cls,
        settings: RateLimitSettings,
        store: RateLimitStoreProtocol | None = None,
    ) -> RateLimiter:
        return cls(settings.limits, store, enabled=settings.enabled)

    @property
    def categories(self) -> list[str]:
        return list(self._limits)

    def policy_for(self, category: str) -> RateLimit:
        """Política da categoria (fallback para "default")."""
        return self._limits.get(category, self._limits[DEFAULT_CATEGORY])

    async def acquire(self, category: str = DEFAULT_CATEGORY, scope: str = "") -> RateLimitDecision:
        """Consome um slot do bucket (scope, category).

        Returns:
            RateLimitDecision; quando negado, retry_after_seconds >= 1.
        """
        if not self.enabled:
            return RateLimitDecision(allowed=True)

        decision = await self._store.hit(
            _bucket_key(category, scope),
            category,
            self.policy_for(category),
            self._clock(),
        )
        if not decision.allowed:
            logger.debug(
                "rate_limit_denied",
                extra={
                    "category": category,
                    "scope": scope,
                    "retry_after_seconds": decision.retry_after_seconds,
                },
            )
        return decision

    async def remaining(self, category: str = DEFAULT_CATEGORY, scope: str = "") -> int:
        return await self._store.remaining(
            _bucket_key(category, scope), self.policy_for(category), self._clock()
        )

    async def reset(self, category: str | None = None, scope: str = "") -> None:
        """Zera um bucket, ou todos os buckets configurados do scope."""
        categories = [category] if category is not None else list(self._limits)
        for name in categories:
            await self._store.reset(_bucket_key(name, scope))

    def bucket(self, category: str = DEFAULT_CATEGORY, scope: str = "") -> RateLimitBucket | None:
        """Inspeciona o bucket (apenas store em memória)."""
        if isinstance(self._store, MemoryRateLimitStore):
            return self._store.get(_bucket_key(category, scope))
        return None


def _bucket_key(category: str, scope: str) -> str:
    return f"{scope}:{category}" if scope else category
