"""correlation_id por request/task, propagado para os logs.

ContextVar mantém o valor isolado por task asyncio. O webhook define o id a
partir do header `x-correlation-id`; tasks enfileiradas carregam o id no
envelope e o restauram no worker.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar, Token

CORRELATION_HEADER = "x-correlation-id"

_correlation_id: ContextVar[str] = ContextVar("evolution_correlation_id", default="")


def get_correlation_id() -> str:
    """correlation_id atual ("" fora de request/task)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> Token[str]:
    """Define o correlation_id (gera UUID4 quando ausente).

    Returns:
        Token para `reset_correlation_id`.
    """
    return _correlation_id.set(correlation_id or generate_correlation_id())


def reset_correlation_id(token: Token[str]) -> None:
    _correlation_id.reset(token)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex
