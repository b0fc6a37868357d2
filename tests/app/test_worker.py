"""Testes do worker dedicado."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from evolution_gateway.app.infra.queue import InMemoryDeliveryQueue, RedisDeliveryQueue
from evolution_gateway.app.webhooks import WebhookDispatcher
from evolution_gateway.app.worker import run_delivery_worker


async def test_worker_requires_redis_queue() -> None:
    with pytest.raises(ValueError, match="redis"):
        await run_delivery_worker(WebhookDispatcher(), queue=InMemoryDeliveryQueue())


async def test_worker_runs_until_stop_and_closes_gateway() -> None:
    queue = MagicMock(spec=RedisDeliveryQueue)
    queue.run_worker = AsyncMock()
    gateway = MagicMock()
    gateway.aclose = AsyncMock()
    dispatcher = WebhookDispatcher()
    stop_event = asyncio.Event()

    await run_delivery_worker(dispatcher, gateway=gateway, queue=queue, stop_event=stop_event)

    queue.run_worker.assert_awaited_once()
    assert queue.run_worker.await_args.args[1] is stop_event
    assert dispatcher.registry.frozen
    gateway.aclose.assert_awaited_once()
