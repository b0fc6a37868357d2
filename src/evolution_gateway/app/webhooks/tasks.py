"""Execução de tasks da DeliveryQueue.

Tipos de task:
- webhook: handler de webhook enfileirado pelo dispatcher
- send_message: envio outbound adiado (ApiGateway.call)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from evolution_gateway.app.observability import reset_correlation_id, set_correlation_id
from evolution_gateway.app.webhooks.dispatcher import WEBHOOK_TASK_KIND

if TYPE_CHECKING:
    from collections.abc import Mapping

    from evolution_gateway.api.connectors.evolution.gateway import ApiGateway
    from evolution_gateway.app.webhooks.dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)

SEND_MESSAGE_TASK_KIND = "send_message"


def build_send_message_task(
    path: str,
    body: dict[str, Any],
    *,
    connection_name: str | None = None,
    instance_name: str | None = None,
    category: str | None = "messages",
) -> dict[str, Any]:
    """Envelope de envio adiado (JSON-serializável)."""
    return {
        "kind": SEND_MESSAGE_TASK_KIND,
        "connection": connection_name,
        "method": "POST",
        "path": path,
        "body": body,
        "category": category,
        "instance": instance_name,
    }


class TaskRunner:
    """Roteia tasks da fila pelo campo `kind`.

    Exceções propagam para a fila, que aplica retry/backoff.
    """

    def __init__(
        self,
        dispatcher: WebhookDispatcher | None = None,
        gateway: ApiGateway | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._gateway = gateway

    async def __call__(self, task: Mapping[str, Any]) -> None:
        await self.run(task)

    async def run(self, task: Mapping[str, Any]) -> None:
        kind = task.get("kind")
        token = set_correlation_id(task.get("correlation_id") or None)
        try:
            if kind == WEBHOOK_TASK_KIND:
                if self._dispatcher is None:
                    raise RuntimeError("TaskRunner sem WebhookDispatcher")
                await self._dispatcher.run_queued_handler(task)
            elif kind == SEND_MESSAGE_TASK_KIND:
                await self._send_message(task)
            else:
                raise ValueError(f"Tipo de task desconhecido: {kind}")
        finally:
            reset_correlation_id(token)

    async def _send_message(self, task: Mapping[str, Any]) -> None:
        if self._gateway is None:
            raise RuntimeError("TaskRunner sem ApiGateway")
        response = await self._gateway.call(
            task.get("connection"),
            str(task.get("method") or "POST"),
            str(task["path"]),
            task.get("body"),
            task.get("category"),
            instance_name=task.get("instance"),
        )
        logger.info(
            "queued_message_sent",
            extra={
                "status_code": response.status_code,
                "skipped": response.skipped,
                "message_id": response.get("key.id"),
            },
        )
