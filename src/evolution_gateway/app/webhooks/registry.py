"""Registro de handlers de webhook.

Append-only durante o startup; `freeze()` torna o registro somente leitura
antes do primeiro despacho. Ordem de registro = ordem de execução no modo sync.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from evolution_gateway.api.connectors.evolution.events import WebhookEventType

if TYPE_CHECKING:
    from evolution_gateway.api.connectors.evolution.events import WebhookEvent
    from evolution_gateway.app.protocols import WebhookHandler

logger = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class HandlerRegistration:
    """Handler associado a um conjunto de tipos de evento.

    Attributes:
        event_types: Tipos normalizados ("*" = todos)
        handler: Callable ou objeto com `handle(event)`
        name: Referência estável usada pelas tasks enfileiradas
    """

    event_types: frozenset[str]
    handler: WebhookHandler
    name: str

    def matches(self, event: WebhookEvent) -> bool:
        return (
            WILDCARD in self.event_types
            or event.event_type.value in self.event_types
            or event.event_name in self.event_types
        )


def _normalize_event_types(event_types: str | Iterable[str | WebhookEventType]) -> frozenset[str]:
    values = [event_types] if isinstance(event_types, str) else list(event_types)
    normalized: set[str] = set()
    for value in values:
        if isinstance(value, WebhookEventType):
            normalized.add(value.value)
        elif value == WILDCARD:
            normalized.add(WILDCARD)
        else:
            normalized.add(str(value).strip().upper().replace(".", "_"))
    if not normalized:
        raise ValueError("Handler precisa de ao menos um tipo de evento")
    return frozenset(normalized)


def _handler_ref(handler: object) -> str:
    target = handler if callable(handler) and not hasattr(handler, "handle") else type(handler)
    module = getattr(target, "__module__", "unknown")
    qualname = getattr(target, "__qualname__", type(handler).__name__)
    return f"{module}.{qualname}"


class HandlerRegistry:
    """Lista de HandlerRegistration (processo)."""

    def __init__(self) -> None:
        self._registrations: list[HandlerRegistration] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(
        self,
        event_types: str | Iterable[str | WebhookEventType],
        handler: WebhookHandler,
        *,
        name: str | None = None,
    ) -> HandlerRegistration:
        """Registra handler.

        Raises:
            RuntimeError: Registro já congelado
            ValueError: `name` explícito duplicado ou handler inválido

        Sem `name`, o nome é derivado de módulo + qualname; repetições
        recebem sufixo `#2`, `#3`... em ordem de registro.
        """
        if self._frozen:
            raise RuntimeError("Registro de handlers congelado; registre no startup")
        if not callable(handler) and not callable(getattr(handler, "handle", None)):
            raise ValueError("Handler deve ser callable ou ter método handle(event)")

        if name is not None:
            if self.get_by_name(name) is not None:
                raise ValueError(f"Handler já registrado: {name}")
            ref = name
        else:
            ref = self._unique_ref(_handler_ref(handler))

        registration = HandlerRegistration(
            event_types=_normalize_event_types(event_types),
            handler=handler,
            name=ref,
        )
        self._registrations.append(registration)
        logger.info(
            "webhook_handler_registered",
            extra={"handler": ref, "event_types": sorted(registration.event_types)},
        )
        return registration

    def _unique_ref(self, base: str) -> str:
        # App e worker registram na mesma ordem, logo derivam os mesmos nomes
        ref = base
        suffix = 1
        while self.get_by_name(ref) is not None:
            suffix += 1
            ref = f"{base}#{suffix}"
        return ref

    def freeze(self) -> None:
        self._frozen = True

    def match(self, event: WebhookEvent) -> list[HandlerRegistration]:
        return [reg for reg in self._registrations if reg.matches(event)]

    def get_by_name(self, name: str) -> HandlerRegistration | None:
        for registration in self._registrations:
            if registration.name == name:
                return registration
        return None

    def __len__(self) -> int:
        return len(self._registrations)
