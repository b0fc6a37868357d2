"""Contrato de handlers de webhook registrados pelo host."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from evolution_gateway.api.connectors.evolution.events import WebhookEvent


@runtime_checkable
class WebhookHandlerProtocol(Protocol):
    """Objeto com `handle(event)`, síncrono ou assíncrono.

    Handlers devem ser idempotentes: no modo queued a entrega é at-least-once.
    """

    def handle(self, event: WebhookEvent) -> Any | Awaitable[Any]:
        """Processa o evento."""


WebhookHandlerCallable = Callable[["WebhookEvent"], Any]
WebhookHandler = WebhookHandlerProtocol | WebhookHandlerCallable
