"""Despacho de webhooks Evolution para handlers do host.

Estados por webhook: received -> verified -> routed -> {handled | queued | failed}

- sync: handlers executados inline, em ordem de registro; falhas de um
  handler são coletadas e não impedem os demais
- queued: uma task por handler na DeliveryQueue; a resposta HTTP não espera
  a execução (entrega at-least-once, governada pela fila)
"""

from __future__ import annotations

import inspect
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Literal

from evolution_gateway.api.connectors.evolution.events import (
    WebhookEvent,
    WebhookEventType,
    build_webhook_event,
)
from evolution_gateway.api.connectors.evolution.webhook.receive import (
    decode_webhook_body,
    parse_webhook_payload,
)
from evolution_gateway.app.observability import (
    get_correlation_id,
    record_latency,
    record_webhook_outcome,
)
from evolution_gateway.app.webhooks.registry import HandlerRegistration, HandlerRegistry
from evolution_gateway.utils.errors import (
    DeliveryQueueError,
    EvolutionApiError,
    HandlerExecutionError,
    InvalidPayloadError,
    InvalidSignatureError,
)

if TYPE_CHECKING:
    from evolution_gateway.api.connectors.evolution.signature import WebhookVerifier
    from evolution_gateway.app.protocols import DeliveryQueueProtocol, WebhookHandler

logger = logging.getLogger(__name__)

DispatchMode = Literal["sync", "queued"]
WEBHOOK_TASK_KIND = "webhook"


class DispatchState(str, Enum):
    RECEIVED = "received"
    VERIFIED = "verified"
    ROUTED = "routed"
    HANDLED = "handled"
    QUEUED = "queued"
    FAILED = "failed"


@dataclass(frozen=True)
class DispatchOutcome:
    """Resultado do despacho de um webhook.

    Attributes:
        state: Estado terminal (handled | queued | failed)
        event: Evento normalizado (None se o payload era inválido)
        handlers_invoked: Handlers executados (sync) ou enfileirados (queued)
        failures: Falhas individuais de handlers (sync)
        task_ids: Ids das tasks enfileiradas (queued)
        error: Erro terminal (assinatura, payload ou enqueue)
    """

    state: DispatchState
    event: WebhookEvent | None = None
    handlers_invoked: int = 0
    failures: tuple[HandlerExecutionError, ...] = ()
    task_ids: tuple[str, ...] = ()
    error: EvolutionApiError | None = None

    @property
    def partial_failure(self) -> bool:
        return self.state is DispatchState.HANDLED and bool(self.failures)

    @property
    def accepted(self) -> bool:
        return self.state in (DispatchState.HANDLED, DispatchState.QUEUED)


async def invoke_handler(handler: WebhookHandler, event: WebhookEvent) -> Any:
    """Executa handler sync/async (callable ou objeto com `handle`)."""
    target = getattr(handler, "handle", None)
    if not callable(target):
        target = handler
    result = target(event)
    if inspect.isawaitable(result):
        result = await result
    return result


class WebhookDispatcher:
    """Roteia webhooks verificados para os handlers registrados.

    Args:
        registry: Registro de handlers (novo quando omitido)
        verifier: Verificador de assinatura (None = sem verificação)
        queue: DeliveryQueue, obrigatória no modo queued
        mode: sync | queued
        subscribed_events: Eventos assinados por padrão
    """

    def __init__(
        self,
        registry: HandlerRegistry | None = None,
        *,
        verifier: WebhookVerifier | None = None,
        queue: DeliveryQueueProtocol | None = None,
        mode: DispatchMode = "sync",
        subscribed_events: Iterable[str] = (),
    ) -> None:
        if mode == "queued" and queue is None:
            raise ValueError("Modo queued requer DeliveryQueue")
        self.registry = registry if registry is not None else HandlerRegistry()
        self._verifier = verifier
        self._queue = queue
        self.mode: DispatchMode = mode
        self._subscribed_events = tuple(
            str(name).strip().upper().replace(".", "_") for name in subscribed_events
        )

    @property
    def subscribed_events(self) -> tuple[str, ...]:
        return self._subscribed_events

    def is_subscribed(self, event: WebhookEvent) -> bool:
        """True sem lista configurada ou quando o evento consta nela."""
        if not self._subscribed_events:
            return True
        return (
            event.event_type.value in self._subscribed_events
            or event.event_name in self._subscribed_events
        )

    @property
    def queue(self) -> DeliveryQueueProtocol | None:
        return self._queue

    def register_handler(
        self,
        event_types: str | Iterable[str | WebhookEventType],
        handler: WebhookHandler,
        *,
        name: str | None = None,
    ) -> HandlerRegistration:
        return self.registry.register(event_types, handler, name=name)

    def on(
        self,
        *event_types: str | WebhookEventType,
        name: str | None = None,
    ) -> Any:
        """Decorator para registrar handler: `@dispatcher.on("MESSAGES_UPSERT")`."""

        def decorator(func: WebhookHandler) -> WebhookHandler:
            self.register_handler(event_types or ("*",), func, name=name)
            return func

        return decorator

    async def process(
        self,
        raw_payload: bytes | Mapping[str, Any],
        instance_name: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> DispatchOutcome:
        """Processa um webhook recebido.

        Args:
            raw_payload: Corpo bruto (bytes) ou payload já decodificado
            instance_name: Instância vinda do path (fallback)
            headers: Headers do request (assinatura/timestamp)

        Returns:
            DispatchOutcome com estado terminal; nunca levanta por falha de handler.
        """
        started = time.perf_counter()
        outcome = await self._process(raw_payload, instance_name, headers or {})
        record_webhook_outcome(
            outcome.event.event_name if outcome.event else WebhookEventType.UNKNOWN.value,
            outcome.state.value,
            outcome.handlers_invoked,
            len(outcome.failures),
            outcome.event.instance_name if outcome.event else instance_name,
        )
        record_latency("webhook_dispatcher", "process", (time.perf_counter() - started) * 1000)
        return outcome

    async def _process(
        self,
        raw_payload: bytes | Mapping[str, Any],
        instance_name: str | None,
        headers: Mapping[str, str],
    ) -> DispatchOutcome:
        # received: assinatura é verificada sobre o corpo bruto, antes do parse
        signature_valid = False
        if (
            self._verifier is not None
            and self._verifier.enforcing
            and not isinstance(raw_payload, bytes | bytearray)
        ):
            # Payload já decodificado não tem corpo bruto para conferir o HMAC
            logger.warning("webhook_signature_unverifiable")
            return DispatchOutcome(
                state=DispatchState.FAILED,
                error=InvalidSignatureError("unverifiable_payload"),
            )
        if self._verifier is not None and isinstance(raw_payload, bytes | bytearray):
            result = self._verifier.verify(bytes(raw_payload), headers)
            if not result.valid:
                logger.warning("webhook_signature_invalid", extra={"error": result.error})
                return DispatchOutcome(
                    state=DispatchState.FAILED,
                    error=InvalidSignatureError(result.error or "invalid_signature"),
                )
            signature_valid = not result.skipped

        try:
            if isinstance(raw_payload, bytes | bytearray):
                payload = decode_webhook_body(bytes(raw_payload))
            else:
                payload = dict(raw_payload)
            envelope = parse_webhook_payload(payload)
        except InvalidPayloadError as exc:
            logger.warning("webhook_payload_invalid", extra={"error": str(exc)})
            return DispatchOutcome(state=DispatchState.FAILED, error=exc)

        # verified
        event = build_webhook_event(
            payload,
            envelope.resolved_instance or instance_name,
            signature_valid=signature_valid,
        )
        if not self.is_subscribed(event):
            # Evento fora da assinatura ainda é despachado; só fica registrado
            logger.info(
                "webhook_event_not_subscribed",
                extra={"event_type": event.event_name, "instance": event.instance_name},
            )
        registrations = self.registry.match(event)
        # routed
        logger.info(
            "webhook_routed",
            extra={
                "event_type": event.event_name,
                "instance": event.instance_name,
                "handlers": len(registrations),
                "mode": self.mode,
            },
        )

        if self.mode == "queued":
            return await self._enqueue_all(event, registrations)
        return await self._run_all(event, registrations)

    async def _run_all(
        self,
        event: WebhookEvent,
        registrations: list[HandlerRegistration],
    ) -> DispatchOutcome:
        failures: list[HandlerExecutionError] = []
        for registration in registrations:
            try:
                await invoke_handler(registration.handler, event)
            except Exception as exc:
                failure = HandlerExecutionError(event.event_name, registration.name, exc)
                failures.append(failure)
                logger.exception(
                    "webhook_handler_failed",
                    extra={
                        "handler": registration.name,
                        "event_type": event.event_name,
                        "error_type": type(exc).__name__,
                    },
                )
        return DispatchOutcome(
            state=DispatchState.HANDLED,
            event=event,
            handlers_invoked=len(registrations),
            failures=tuple(failures),
        )

    async def _enqueue_all(
        self,
        event: WebhookEvent,
        registrations: list[HandlerRegistration],
    ) -> DispatchOutcome:
        queue = self._queue
        if queue is None:
            raise RuntimeError("Modo queued sem DeliveryQueue")
        task_ids: list[str] = []
        for registration in registrations:
            task = build_webhook_task(event, registration.name)
            try:
                task_ids.append(await queue.enqueue(task))
            except DeliveryQueueError as exc:
                logger.error(
                    "webhook_enqueue_failed",
                    extra={"handler": registration.name, "event_type": event.event_name},
                )
                return DispatchOutcome(
                    state=DispatchState.FAILED,
                    event=event,
                    handlers_invoked=len(task_ids),
                    task_ids=tuple(task_ids),
                    error=exc,
                )
        return DispatchOutcome(
            state=DispatchState.QUEUED,
            event=event,
            handlers_invoked=len(task_ids),
            task_ids=tuple(task_ids),
        )

    async def run_queued_handler(self, task: Mapping[str, Any]) -> None:
        """Executa, no worker, a task de webhook enfileirada.

        Raises:
            HandlerExecutionError: Handler falhou (a fila decide o retry)
            ValueError: Task malformada ou handler desconhecido
        """
        handler_ref = str(task.get("handler") or "")
        registration = self.registry.get_by_name(handler_ref)
        if registration is None:
            raise ValueError(f"Handler não registrado: {handler_ref}")

        event = WebhookEvent.from_dict(dict(task.get("event") or {}))
        try:
            await invoke_handler(registration.handler, event)
        except Exception as exc:
            raise HandlerExecutionError(event.event_name, handler_ref, exc) from exc


def build_webhook_task(event: WebhookEvent, handler_ref: str) -> dict[str, Any]:
    """Envelope da task de webhook (JSON-serializável)."""
    return {
        "kind": WEBHOOK_TASK_KIND,
        "handler": handler_ref,
        "event": event.to_dict(),
        "correlation_id": get_correlation_id(),
    }
