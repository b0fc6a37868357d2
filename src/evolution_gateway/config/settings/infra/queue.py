"""Settings da fila de entrega (DeliveryQueue).

Processa handlers de webhook e envios enfileirados fora do request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

QueueBackend = Literal["memory", "redis"]


@dataclass(frozen=True)
class QueueSettings:
    """Configurações da fila.

    Attributes:
        backend: memory (asyncio, dev/test) | redis (workers dedicados)
        queue_name: Nome lógico da fila (prefixo das chaves Redis)
        max_attempts: Tentativas por task antes do dead-letter
        backoff_seconds: Espera entre tentativas (último valor se repete)
        concurrency: Tasks simultâneas no backend memory
    """

    backend: QueueBackend = "memory"
    queue_name: str = "evolution-api"
    max_attempts: int = 3
    backoff_seconds: tuple[int, ...] = (10, 30, 60)
    concurrency: int = 100

    def validate(self, redis_url: str, is_development: bool) -> list[str]:
        """Valida configurações da fila.

        Args:
            redis_url: REDIS_URL configurada.
            is_development: Se está em ambiente de desenvolvimento.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.backend not in ("memory", "redis"):
            errors.append(f"QUEUE_BACKEND inválido: {self.backend}")

        if self.backend == "memory" and not is_development:
            errors.append(
                "QUEUE_BACKEND=memory proibido em staging/production. Use redis."
            )

        if self.backend == "redis" and not redis_url:
            errors.append("QUEUE_BACKEND=redis requer REDIS_URL configurado")

        if self.max_attempts < 1:
            errors.append("EVOLUTION_QUEUE_MAX_ATTEMPTS deve ser >= 1")

        if not self.queue_name:
            errors.append("EVOLUTION_QUEUE_NAME não pode ser vazio")

        return errors


def _parse_backoff(raw: str) -> tuple[int, ...]:
    values = tuple(int(v.strip()) for v in raw.split(",") if v.strip())
    return values or (10, 30, 60)


def _load_queue_from_env() -> QueueSettings:
    """Carrega QueueSettings de variáveis de ambiente."""
    backend_str = os.getenv("QUEUE_BACKEND", "memory").lower()
    backend: QueueBackend = "redis" if backend_str == "redis" else "memory"

    return QueueSettings(
        backend=backend,
        queue_name=os.getenv("EVOLUTION_QUEUE_NAME", "evolution-api"),
        max_attempts=int(os.getenv("EVOLUTION_QUEUE_MAX_ATTEMPTS", "3")),
        backoff_seconds=_parse_backoff(os.getenv("EVOLUTION_QUEUE_BACKOFF", "10,30,60")),
        concurrency=int(os.getenv("EVOLUTION_QUEUE_CONCURRENCY", "100")),
    )


@lru_cache(maxsize=1)
def get_queue_settings() -> QueueSettings:
    """Retorna instância cacheada de QueueSettings."""
    return _load_queue_from_env()
