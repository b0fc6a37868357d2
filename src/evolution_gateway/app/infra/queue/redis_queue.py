"""DeliveryQueue em Redis para workers dedicados.

Contrato de Keys:
    {queue}:pending     — LIST com envelopes JSON prontos (LPUSH / BLMOVE)
    {queue}:processing  — LIST com envelopes em execução (ack via LREM)
    {queue}:delayed     — ZSET de retries agendados (score = epoch de liberação)
    {queue}:dead        — LIST de envelopes que esgotaram as tentativas ou
                          que não puderam ser decodificados

Entrega at-least-once: o envelope só sai de `processing` depois de concluído,
reagendado ou enviado ao dead-letter. Envelopes presos em `processing`
(worker morto no meio da execução) voltam para `pending` no start do worker.
Requer Redis >= 6.2 (BLMOVE/LMOVE).

Envelope: {"id": str, "attempts": int, "task": dict}
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from evolution_gateway.app.protocols.delivery_queue import DeliveryQueueProtocol, TaskRunnerFn
from evolution_gateway.utils.errors import DeliveryQueueError, RedisConnectionError

if TYPE_CHECKING:
    from redis.asyncio import Redis as AsyncRedis

logger = logging.getLogger(__name__)

WORKER_ERROR_PAUSE_SECONDS = 1.0


class RedisDeliveryQueue(DeliveryQueueProtocol):
    """Fila Redis com ack explícito, retry agendado e dead-letter.

    Args:
        redis_client: Cliente Redis assíncrono
        queue_name: Prefixo das chaves
        max_attempts: Tentativas por task antes do dead-letter
        backoff_seconds: Espera entre tentativas; o último valor se repete
        clock: Fonte de tempo (injetável em testes)
    """

    def __init__(
        self,
        redis_client: AsyncRedis,
        queue_name: str = "evolution-api",
        *,
        max_attempts: int = 3,
        backoff_seconds: Sequence[float] = (10, 30, 60),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis_client
        self._queue_name = queue_name
        self._max_attempts = max(1, max_attempts)
        self._backoff = tuple(backoff_seconds) or (0,)
        self._clock = clock

    @property
    def pending_key(self) -> str:
        return f"{self._queue_name}:pending"

    @property
    def processing_key(self) -> str:
        return f"{self._queue_name}:processing"

    @property
    def delayed_key(self) -> str:
        return f"{self._queue_name}:delayed"

    @property
    def dead_key(self) -> str:
        return f"{self._queue_name}:dead"

    async def enqueue(self, task: dict[str, Any]) -> str:
        task_id = uuid.uuid4().hex
        try:
            envelope = json.dumps({"id": task_id, "attempts": 0, "task": task})
        except (TypeError, ValueError) as exc:
            raise DeliveryQueueError("Task não serializável em JSON") from exc

        try:
            await self._redis.lpush(self.pending_key, envelope)
        except Exception as exc:
            raise DeliveryQueueError("Falha ao enfileirar task no Redis") from exc

        logger.info(
            "delivery_task_enqueued",
            extra={"task_id": task_id, "kind": task.get("kind"), "backend": "redis"},
        )
        return task_id

    async def promote_due(self) -> int:
        """Move retries vencidos de delayed para pending."""
        try:
            due = await self._redis.zrangebyscore(self.delayed_key, 0, self._clock())
            if not due:
                return 0
            pipeline = self._redis.pipeline()
            for raw in due:
                pipeline.zrem(self.delayed_key, raw)
                pipeline.lpush(self.pending_key, raw)
            await pipeline.execute()
        except Exception as exc:
            raise RedisConnectionError("Falha ao promover retries no Redis") from exc
        return len(due)

    async def recover_processing(self) -> int:
        """Devolve para pending os envelopes abandonados em processing.

        Chamado no start do worker. Com vários workers no mesmo `queue_name`,
        tasks em execução em outro worker também voltam (entrega duplicada,
        aceitável em at-least-once).
        """
        recovered = 0
        try:
            # Os mais antigos ficam à direita; voltam para a ponta consumida
            while await self._redis.lmove(self.processing_key, self.pending_key, "RIGHT", "RIGHT"):
                recovered += 1
        except Exception as exc:
            raise RedisConnectionError("Falha ao recuperar tasks em processamento") from exc
        if recovered:
            logger.warning(
                "delivery_tasks_recovered",
                extra={"queue": self._queue_name, "recovered": recovered},
            )
        return recovered

    async def work_once(self, runner: TaskRunnerFn, timeout_seconds: int = 1) -> bool:
        """Processa no máximo uma task.

        Returns:
            True se uma task foi consumida (sucesso, falha ou dead-letter).
        """
        await self.promote_due()
        try:
            raw = await self._redis.blmove(
                self.pending_key,
                self.processing_key,
                timeout_seconds,
                "RIGHT",
                "LEFT",
            )
        except Exception as exc:
            raise RedisConnectionError("Falha ao consumir fila no Redis") from exc
        if raw is None:
            return False

        try:
            envelope = json.loads(raw)
            task = envelope["task"]
            attempts = int(envelope.get("attempts", 0)) + 1
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            await self._dead_letter_raw(raw, exc)
            return True
        envelope["attempts"] = attempts

        try:
            await runner(task)
        except asyncio.CancelledError:
            await self._release(raw, envelope.get("id"))
            raise
        except Exception as exc:
            await self._handle_failure(raw, envelope, exc)
        else:
            await self._ack(raw)
            logger.debug(
                "delivery_task_done",
                extra={"task_id": envelope.get("id"), "attempt": attempts},
            )
        return True

    async def _ack(self, raw: bytes | str) -> None:
        try:
            await self._redis.lrem(self.processing_key, 1, raw)
        except Exception as exc:
            raise RedisConnectionError("Falha ao confirmar task no Redis") from exc

    async def _release(self, raw: bytes | str, task_id: str | None) -> None:
        """Devolve a task interrompida para pending sem contar tentativa."""
        try:
            pipeline = self._redis.pipeline()
            pipeline.lrem(self.processing_key, 1, raw)
            pipeline.rpush(self.pending_key, raw)
            await pipeline.execute()
        except Exception:
            # Fica em processing; recover_processing devolve no próximo start
            logger.exception("delivery_task_release_failed", extra={"task_id": task_id})
            return
        logger.warning("delivery_task_released", extra={"task_id": task_id})

    async def _dead_letter_raw(self, raw: bytes | str, exc: Exception) -> None:
        logger.error(
            "delivery_task_malformed",
            extra={"queue": self._queue_name, "error_type": type(exc).__name__},
        )
        try:
            pipeline = self._redis.pipeline()
            pipeline.lrem(self.processing_key, 1, raw)
            pipeline.lpush(self.dead_key, raw)
            await pipeline.execute()
        except Exception as redis_exc:
            raise RedisConnectionError("Falha ao mover task inválida no Redis") from redis_exc

    async def _handle_failure(
        self,
        raw: bytes | str,
        envelope: dict[str, Any],
        exc: Exception,
    ) -> None:
        attempts = envelope["attempts"]
        logger.warning(
            "delivery_task_failed",
            extra={
                "task_id": envelope.get("id"),
                "attempt": attempts,
                "max_attempts": self._max_attempts,
                "error_type": type(exc).__name__,
            },
        )
        payload = json.dumps(envelope)
        dead = attempts >= self._max_attempts
        try:
            pipeline = self._redis.pipeline()
            pipeline.lrem(self.processing_key, 1, raw)
            if dead:
                pipeline.lpush(self.dead_key, payload)
            else:
                delay = self._backoff[min(attempts - 1, len(self._backoff) - 1)]
                pipeline.zadd(self.delayed_key, {payload: self._clock() + delay})
            await pipeline.execute()
        except Exception as redis_exc:
            raise RedisConnectionError("Falha ao reagendar task no Redis") from redis_exc
        if dead:
            logger.error("delivery_task_dead_lettered", extra={"task_id": envelope.get("id")})

    async def run_worker(self, runner: TaskRunnerFn, stop_event: asyncio.Event) -> None:
        """Loop do worker até `stop_event` ser sinalizado."""
        logger.info("delivery_worker_started", extra={"queue": self._queue_name})
        recovered = False
        while not stop_event.is_set():
            try:
                if not recovered:
                    await self.recover_processing()
                    recovered = True
                await self.work_once(runner)
            except RedisConnectionError:
                logger.exception("delivery_worker_redis_error", extra={"queue": self._queue_name})
                await asyncio.sleep(WORKER_ERROR_PAUSE_SECONDS)
        logger.info("delivery_worker_stopped", extra={"queue": self._queue_name})
