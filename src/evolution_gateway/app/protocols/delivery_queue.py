"""Contrato da fila de entrega (colaborador externo do despacho)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

TaskRunnerFn = Callable[[dict[str, Any]], Awaitable[None]]


class DeliveryQueueProtocol(ABC):
    """Fila com retry próprio; consumidores devem ser idempotentes.

    Método canônico:
    - enqueue(task) -> str
      Entrega a task (dict serializável em JSON) e retorna o id. Falha de
      entrega levanta DeliveryQueueError.
    """

    @abstractmethod
    async def enqueue(self, task: dict[str, Any]) -> str:
        """Enfileira task.

        Args:
            task: Envelope com `kind` e dados da task

        Returns:
            Identificador da task.

        Raises:
            DeliveryQueueError: Se a fila não aceitou a task
        """
