"""Worker dedicado da DeliveryQueue Redis.

Executa handlers de webhook enfileirados e envios adiados fora do processo
HTTP. O host registra os mesmos handlers usados pelo dispatcher do app.

Uso:
    dispatcher = create_webhook_dispatcher()
    dispatcher.on("MESSAGES_UPSERT")(on_message)
    asyncio.run(run_delivery_worker(dispatcher))
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from evolution_gateway.app.bootstrap import create_api_gateway, create_delivery_queue
from evolution_gateway.app.infra.queue import RedisDeliveryQueue
from evolution_gateway.app.webhooks import TaskRunner

if TYPE_CHECKING:
    from evolution_gateway.api.connectors.evolution import ApiGateway
    from evolution_gateway.app.webhooks import WebhookDispatcher

logger = logging.getLogger(__name__)


async def run_delivery_worker(
    dispatcher: WebhookDispatcher,
    gateway: ApiGateway | None = None,
    queue: RedisDeliveryQueue | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Consome a fila até SIGINT/SIGTERM ou `stop_event`.

    Raises:
        ValueError: Fila configurada não é Redis
    """
    queue = queue if queue is not None else dispatcher.queue or create_delivery_queue()
    if not isinstance(queue, RedisDeliveryQueue):
        raise ValueError("Worker dedicado requer EVOLUTION_QUEUE_BACKEND=redis")

    gateway = gateway or create_api_gateway()
    dispatcher.registry.freeze()
    stop_event = stop_event or asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("signal_handler_unavailable", extra={"signal": sig.name})

    try:
        await queue.run_worker(TaskRunner(dispatcher, gateway), stop_event)
    finally:
        await gateway.aclose()
