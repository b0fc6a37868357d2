"""Testes do TaskRunner (roteamento de tasks da fila)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from evolution_gateway.api.connectors.evolution import OutboundResponse
from evolution_gateway.app.observability import get_correlation_id
from evolution_gateway.app.webhooks import TaskRunner, build_send_message_task


async def test_routes_webhook_task_and_restores_correlation_id() -> None:
    dispatcher = MagicMock()
    seen: list[str] = []

    async def run_queued_handler(task) -> None:
        seen.append(get_correlation_id())

    dispatcher.run_queued_handler = run_queued_handler
    runner = TaskRunner(dispatcher=dispatcher)

    await runner({"kind": "webhook", "handler": "h", "event": {}, "correlation_id": "corr-1"})

    assert seen == ["corr-1"]
    assert get_correlation_id() == ""


async def test_send_message_task_calls_gateway() -> None:
    gateway = MagicMock()
    gateway.call = AsyncMock(return_value=OutboundResponse(201, {"key": {"id": "MSG1"}}))
    runner = TaskRunner(gateway=gateway)
    task = build_send_message_task(
        "message/sendText/{instance}",
        {"number": "5511", "text": "oi"},
        connection_name="default",
        instance_name="inst",
    )

    await runner.run(task)

    gateway.call.assert_awaited_once_with(
        "default",
        "POST",
        "message/sendText/{instance}",
        {"number": "5511", "text": "oi"},
        "messages",
        instance_name="inst",
    )


async def test_unknown_kind_raises() -> None:
    with pytest.raises(ValueError, match="desconhecido"):
        await TaskRunner().run({"kind": "mystery"})


async def test_webhook_task_without_dispatcher_raises() -> None:
    with pytest.raises(RuntimeError):
        await TaskRunner().run({"kind": "webhook"})
