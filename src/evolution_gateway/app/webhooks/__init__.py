"""Despacho de webhooks e execução de tasks enfileiradas."""

from evolution_gateway.app.webhooks.dispatcher import (
    DispatchOutcome,
    DispatchState,
    WebhookDispatcher,
    build_webhook_task,
)
from evolution_gateway.app.webhooks.registry import HandlerRegistration, HandlerRegistry
from evolution_gateway.app.webhooks.tasks import TaskRunner, build_send_message_task

__all__ = [
    "DispatchOutcome",
    "DispatchState",
    "HandlerRegistration",
    "HandlerRegistry",
    "TaskRunner",
    "WebhookDispatcher",
    "build_send_message_task",
    "build_webhook_task",
]
