"""Protocolo de store para buckets de rate limit.

Interface leve (ABC) dependida pelo RateLimiter. Implementações:
- MemoryRateLimitStore: processo único (dev/test ou worker único)
- RedisRateLimitStore: contadores atômicos compartilhados entre workers
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from evolution_gateway.api.connectors.evolution.rate_limiter import (
        RateLimit,
        RateLimitDecision,
    )


class RateLimitStoreProtocol(ABC):
    """Contrato assíncrono para janelas fixas de rate limit.

    Métodos canônicos:
    - hit(key, category, limit, now) -> RateLimitDecision
      Consome um slot da janela corrente se houver; nunca bloqueia.
    - remaining(key, limit, now) -> int
    - reset(key) -> None
    """

    @abstractmethod
    async def hit(
        self,
        key: str,
        category: str,
        limit: RateLimit,
        now: float,
    ) -> RateLimitDecision:
        """Tenta consumir um slot do bucket `key`.

        Args:
            key: Chave do bucket (scope + categoria)
            category: Categoria lógica (para o bucket e para o erro)
            limit: Política da categoria
            now: Instante atual em segundos (epoch)

        Returns:
            Decisão com allowed e retry_after_seconds (>= 1 quando negado).
        """

    @abstractmethod
    async def remaining(self, key: str, limit: RateLimit, now: float) -> int:
        """Slots restantes na janela corrente."""

    @abstractmethod
    async def reset(self, key: str) -> None:
        """Descarta o bucket."""
