"""Testes do HandlerRegistry."""

from __future__ import annotations

import pytest

from evolution_gateway.api.connectors.evolution import WebhookEventType, build_webhook_event
from evolution_gateway.app.webhooks import HandlerRegistry


def on_message(event) -> None:
    return None


class ConnectionHandler:
    def handle(self, event) -> None:
        return None


def test_matches_by_type_and_wildcard() -> None:
    registry = HandlerRegistry()
    registry.register(["messages.upsert"], on_message)
    registry.register("*", lambda event: None, name="audit")
    registry.register([WebhookEventType.CONNECTION_UPDATE], ConnectionHandler())

    event = build_webhook_event({"event": "MESSAGES_UPSERT", "instance": "i"})

    assert [reg.name for reg in registry.match(event)] == [
        f"{__name__}.on_message",
        "audit",
    ]


def test_object_handler_ref_uses_class() -> None:
    registry = HandlerRegistry()
    registration = registry.register("CALL", ConnectionHandler())
    assert registration.name == f"{__name__}.ConnectionHandler"


def test_unknown_event_routes_by_raw_name() -> None:
    registry = HandlerRegistry()
    registry.register("labels.removed", on_message)
    event = build_webhook_event({"event": "labels.removed", "instance": "i"})
    assert len(registry.match(event)) == 1


def test_duplicate_explicit_name_rejected() -> None:
    registry = HandlerRegistry()
    registry.register("CALL", on_message, name="audit")
    with pytest.raises(ValueError, match="já registrado"):
        registry.register("CALL", ConnectionHandler(), name="audit")


class AuditHandler:
    def __init__(self, sink: list) -> None:
        self.sink = sink

    def handle(self, event) -> None:
        self.sink.append(event)


def test_two_instances_of_same_class_get_distinct_names() -> None:
    first: list = []
    second: list = []
    registry = HandlerRegistry()
    registry.register({"MESSAGES_UPSERT"}, AuditHandler(first))
    registry.register({"MESSAGES_UPSERT"}, AuditHandler(second))

    names = [reg.name for reg in registry.match(
        build_webhook_event({"event": "messages.upsert", "instance": "i"})
    )]

    assert names == [f"{__name__}.AuditHandler", f"{__name__}.AuditHandler#2"]
    assert registry.get_by_name(names[1]).handler.sink is second


def test_same_function_for_two_event_sets() -> None:
    registry = HandlerRegistry()
    registry.register("MESSAGES_UPSERT", on_message)
    registry.register("CALL", on_message)
    registry.register("CONNECTION_UPDATE", on_message)

    assert len(registry) == 3
    call = build_webhook_event({"event": "call", "instance": "i"})
    assert [reg.name for reg in registry.match(call)] == [f"{__name__}.on_message#2"]


def test_closures_from_same_factory_are_accepted() -> None:
    def make_handler(tag: str):
        def handler(event) -> None:
            return None

        return handler

    registry = HandlerRegistry()
    registry.register("*", make_handler("a"))
    registry.register("*", make_handler("b"))

    assert len(registry) == 2
    assert registry.get_by_name(
        f"{__name__}.test_closures_from_same_factory_are_accepted.<locals>.make_handler.<locals>.handler#2"
    ) is not None


def test_non_callable_rejected() -> None:
    with pytest.raises(ValueError):
        HandlerRegistry().register("CALL", object())


def test_frozen_registry_rejects_registration() -> None:
    registry = HandlerRegistry()
    registry.freeze()
    assert registry.frozen
    with pytest.raises(RuntimeError):
        registry.register("CALL", on_message)
