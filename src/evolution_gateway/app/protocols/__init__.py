"""Protocolos (interfaces) dependidos pela camada de aplicação."""

from evolution_gateway.app.protocols.delivery_queue import DeliveryQueueProtocol, TaskRunnerFn
from evolution_gateway.app.protocols.rate_limit_store import RateLimitStoreProtocol
from evolution_gateway.app.protocols.webhook_handler import (
    WebhookHandler,
    WebhookHandlerProtocol,
)

__all__ = [
    "DeliveryQueueProtocol",
    "RateLimitStoreProtocol",
    "TaskRunnerFn",
    "WebhookHandler",
    "WebhookHandlerProtocol",
]
