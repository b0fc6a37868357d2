"""DeliveryQueue em memória (asyncio) — apenas para desenvolvimento e testes.

ATENÇÃO: Tasks pendentes se perdem em reinícios. Em staging/production use
RedisDeliveryQueue com workers dedicados.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from evolution_gateway.app.protocols.delivery_queue import DeliveryQueueProtocol, TaskRunnerFn
from evolution_gateway.utils.errors import DeliveryQueueError

logger = logging.getLogger(__name__)


class InMemoryDeliveryQueue(DeliveryQueueProtocol):
    """Executa tasks como asyncio.Task com limite de concorrência e retry.

    Args:
        runner: Função que executa a task (pode ser ligada depois via `bind`)
        max_attempts: Tentativas por task
        backoff_seconds: Espera entre tentativas; o último valor se repete
        concurrency: Tasks executando simultaneamente
        sleep: Função de espera (injetável em testes)
    """

    def __init__(
        self,
        runner: TaskRunnerFn | None = None,
        *,
        max_attempts: int = 3,
        backoff_seconds: Sequence[float] = (10, 30, 60),
        concurrency: int = 100,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._runner = runner
        self._max_attempts = max(1, max_attempts)
        self._backoff = tuple(backoff_seconds) or (0,)
        self._semaphore = asyncio.Semaphore(concurrency)
        self._sleep = sleep
        self._active_tasks: set[asyncio.Task[None]] = set()
        self.dead_letters: list[dict[str, Any]] = []

    def bind(self, runner: TaskRunnerFn) -> None:
        self._runner = runner

    @property
    def pending(self) -> int:
        return len(self._active_tasks)

    async def enqueue(self, task: dict[str, Any]) -> str:
        if self._runner is None:
            raise DeliveryQueueError("Fila sem runner configurado")
        try:
            json.dumps(task)
        except (TypeError, ValueError) as exc:
            raise DeliveryQueueError("Task não serializável em JSON") from exc

        task_id = uuid.uuid4().hex
        scheduled = asyncio.create_task(self._run(task_id, task, self._runner))
        self._active_tasks.add(scheduled)
        scheduled.add_done_callback(self._on_task_done)
        logger.info(
            "delivery_task_enqueued",
            extra={
                "task_id": task_id,
                "kind": task.get("kind"),
                "active_tasks": len(self._active_tasks),
            },
        )
        return task_id

    def _backoff_for(self, attempt: int) -> float:
        return self._backoff[min(attempt - 1, len(self._backoff) - 1)]

    async def _run(self, task_id: str, task: dict[str, Any], runner: TaskRunnerFn) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._semaphore:
                    await runner(task)
            except Exception as exc:
                logger.warning(
                    "delivery_task_failed",
                    extra={
                        "task_id": task_id,
                        "attempt": attempt,
                        "max_attempts": self._max_attempts,
                        "error_type": type(exc).__name__,
                    },
                )
                if attempt < self._max_attempts:
                    await self._sleep(self._backoff_for(attempt))
            else:
                logger.debug("delivery_task_done", extra={"task_id": task_id, "attempt": attempt})
                return

        self.dead_letters.append({"id": task_id, "task": task})
        logger.error(
            "delivery_task_dead_lettered",
            extra={"task_id": task_id, "kind": task.get("kind")},
        )

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._active_tasks.discard(task)
        with contextlib.suppress(asyncio.CancelledError):
            exc = task.exception()
            if exc is not None:
                logger.error(
                    "delivery_task_crashed",
                    extra={"error_type": type(exc).__name__},
                )

    async def drain(self, timeout_seconds: float = 30.0) -> None:
        """Aguarda tasks pendentes durante o shutdown; cancela as que excederem."""
        if not self._active_tasks:
            return

        pending_now = list(self._active_tasks)
        logger.info(
            "delivery_queue_shutdown_wait",
            extra={"pending_tasks": len(pending_now), "timeout_seconds": timeout_seconds},
        )
        _, pending = await asyncio.wait(pending_now, timeout=timeout_seconds)
        if not pending:
            return

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        logger.warning(
            "delivery_queue_shutdown_cancelled",
            extra={"cancelled_tasks": len(pending)},
        )
