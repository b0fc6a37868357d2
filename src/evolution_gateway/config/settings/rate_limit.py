"""Settings de rate limiting outbound.

Janelas fixas por categoria (default, messages, media) para não
sobrecarregar o servidor Evolution e respeitar limites do WhatsApp.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from evolution_gateway.config.settings.base.core import BaseSettings

RateLimitBackend = Literal["memory", "redis"]
OnLimitReachedPolicy = Literal["wait", "throw", "skip"]

# categoria -> (max_attempts, window_seconds)
DEFAULT_LIMITS: dict[str, tuple[int, int]] = {
    "default": (60, 60),
    "messages": (30, 60),
    "media": (10, 60),
}


@dataclass(frozen=True)
class RateLimitSettings:
    """Configurações do rate limiter.

    Attributes:
        enabled: Liga/desliga o rate limiting
        backend: memory (processo único) | redis (workers compartilhando limites)
        on_limit_reached: wait | throw | skip
        max_wait_seconds: Espera máxima na política `wait`
        limits: categoria -> (max_attempts, window_seconds)
    """

    enabled: bool = True
    backend: RateLimitBackend = "memory"
    on_limit_reached: OnLimitReachedPolicy = "wait"
    max_wait_seconds: int = 60
    limits: dict[str, tuple[int, int]] = field(default_factory=lambda: dict(DEFAULT_LIMITS))

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações de rate limit.

        Args:
            base: BaseSettings para verificar ambiente e Redis.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.backend not in ("memory", "redis"):
            errors.append(f"EVOLUTION_RATE_LIMIT_BACKEND inválido: {self.backend}")

        if self.backend == "redis" and not base.redis_url:
            errors.append("EVOLUTION_RATE_LIMIT_BACKEND=redis requer REDIS_URL configurado")

        if self.on_limit_reached not in ("wait", "throw", "skip"):
            errors.append(
                "EVOLUTION_RATE_LIMIT_ON_LIMIT deve ser 'wait', 'throw' ou 'skip'"
            )

        if "default" not in self.limits:
            errors.append("Categoria 'default' de rate limit é obrigatória")

        for category, (max_attempts, window_seconds) in self.limits.items():
            if max_attempts < 1 or window_seconds < 1:
                errors.append(f"Limite inválido para categoria {category}")

        return errors


def _load_limits_from_env() -> dict[str, tuple[int, int]]:
    limits: dict[str, tuple[int, int]] = {}
    for category, (max_attempts, window_seconds) in DEFAULT_LIMITS.items():
        prefix = f"EVOLUTION_RATE_LIMIT_{category.upper()}"
        limits[category] = (
            int(os.getenv(f"{prefix}_MAX", str(max_attempts))),
            int(os.getenv(f"{prefix}_WINDOW", str(window_seconds))),
        )
    return limits


def _load_rate_limit_from_env() -> RateLimitSettings:
    """Carrega RateLimitSettings de variáveis de ambiente."""
    backend_str = os.getenv("EVOLUTION_RATE_LIMIT_BACKEND", "memory").lower()
    backend: RateLimitBackend = "redis" if backend_str == "redis" else "memory"
    policy_str = os.getenv("EVOLUTION_RATE_LIMIT_ON_LIMIT", "wait").lower()
    policy: OnLimitReachedPolicy = (
        policy_str if policy_str in ("wait", "throw", "skip") else "wait"
    )
    return RateLimitSettings(
        enabled=os.getenv("EVOLUTION_RATE_LIMIT_ENABLED", "true").lower() in ("true", "1"),
        backend=backend,
        on_limit_reached=policy,
        max_wait_seconds=int(os.getenv("EVOLUTION_RATE_LIMIT_MAX_WAIT_SECONDS", "60")),
        limits=_load_limits_from_env(),
    )


@lru_cache(maxsize=1)
def get_rate_limit_settings() -> RateLimitSettings:
    """Retorna instância cacheada de RateLimitSettings."""
    return _load_rate_limit_from_env()
