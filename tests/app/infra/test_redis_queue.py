"""Testes do RedisDeliveryQueue com Redis mockado."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from evolution_gateway.app.infra.queue import RedisDeliveryQueue
from evolution_gateway.utils.errors import DeliveryQueueError, RedisConnectionError


@pytest.fixture
def redis_client() -> MagicMock:
    client = MagicMock()
    client.lpush = AsyncMock(return_value=1)
    client.lrem = AsyncMock(return_value=1)
    client.lmove = AsyncMock(return_value=None)
    client.zrangebyscore = AsyncMock(return_value=[])
    client.blmove = AsyncMock(return_value=None)
    pipeline = MagicMock()
    pipeline.execute = AsyncMock(return_value=[])
    client.pipeline.return_value = pipeline
    return client


@pytest.fixture
def pipeline(redis_client) -> MagicMock:
    return redis_client.pipeline.return_value


@pytest.fixture
def queue(redis_client, fake_clock) -> RedisDeliveryQueue:
    return RedisDeliveryQueue(
        redis_client,
        "evo",
        max_attempts=2,
        backoff_seconds=(10,),
        clock=fake_clock,
    )


def _envelope(attempts: int = 0) -> bytes:
    return json.dumps({"id": "t1", "attempts": attempts, "task": {"kind": "test"}}).encode()


async def test_enqueue_pushes_envelope(queue, redis_client) -> None:
    task_id = await queue.enqueue({"kind": "test", "n": 1})

    key, raw = redis_client.lpush.await_args.args
    envelope = json.loads(raw)
    assert key == "evo:pending"
    assert envelope == {"id": task_id, "attempts": 0, "task": {"kind": "test", "n": 1}}


async def test_enqueue_wraps_redis_failure(queue, redis_client) -> None:
    redis_client.lpush.side_effect = ConnectionError("down")
    with pytest.raises(DeliveryQueueError):
        await queue.enqueue({"kind": "test"})


async def test_work_once_returns_false_when_empty(queue) -> None:
    assert await queue.work_once(AsyncMock()) is False


async def test_work_once_moves_to_processing_then_acks(queue, redis_client) -> None:
    raw = _envelope()
    redis_client.blmove.return_value = raw
    runner = AsyncMock()

    assert await queue.work_once(runner) is True

    redis_client.blmove.assert_awaited_once_with("evo:pending", "evo:processing", 1, "RIGHT", "LEFT")
    runner.assert_awaited_once_with({"kind": "test"})
    redis_client.lrem.assert_awaited_once_with("evo:processing", 1, raw)


async def test_failed_task_is_scheduled_for_retry(queue, redis_client, pipeline, fake_clock) -> None:
    raw = _envelope()
    redis_client.blmove.return_value = raw
    runner = AsyncMock(side_effect=RuntimeError("boom"))

    await queue.work_once(runner)

    pipeline.lrem.assert_called_once_with("evo:processing", 1, raw)
    key, mapping = pipeline.zadd.call_args.args
    (payload, score), = mapping.items()
    assert key == "evo:delayed"
    assert score == fake_clock.now + 10
    assert json.loads(payload)["attempts"] == 1
    pipeline.execute.assert_awaited_once()
    redis_client.lrem.assert_not_awaited()


async def test_exhausted_task_goes_to_dead_letter(queue, redis_client, pipeline) -> None:
    redis_client.blmove.return_value = _envelope(attempts=1)
    runner = AsyncMock(side_effect=RuntimeError("boom"))

    await queue.work_once(runner)

    key, payload = pipeline.lpush.call_args.args
    assert key == "evo:dead"
    assert json.loads(payload)["attempts"] == 2
    pipeline.zadd.assert_not_called()


async def test_cancelled_task_is_released_back_to_pending(queue, redis_client, pipeline) -> None:
    raw = _envelope()
    redis_client.blmove.return_value = raw
    runner = AsyncMock(side_effect=asyncio.CancelledError())

    with pytest.raises(asyncio.CancelledError):
        await queue.work_once(runner)

    pipeline.lrem.assert_called_once_with("evo:processing", 1, raw)
    pipeline.rpush.assert_called_once_with("evo:pending", raw)
    pipeline.execute.assert_awaited_once()
    pipeline.zadd.assert_not_called()


async def test_release_failure_leaves_task_in_processing(queue, redis_client, pipeline) -> None:
    redis_client.blmove.return_value = _envelope()
    pipeline.execute.side_effect = ConnectionError("down")

    with pytest.raises(asyncio.CancelledError):
        await queue.work_once(AsyncMock(side_effect=asyncio.CancelledError()))

    redis_client.lrem.assert_not_awaited()


@pytest.mark.parametrize("raw", [b"not-json", b"[1, 2]", b'{"id": "x"}'])
async def test_malformed_envelope_goes_to_dead_letter(queue, redis_client, pipeline, raw) -> None:
    runner = AsyncMock()
    redis_client.blmove.return_value = raw

    assert await queue.work_once(runner) is True

    runner.assert_not_awaited()
    pipeline.lrem.assert_called_once_with("evo:processing", 1, raw)
    pipeline.lpush.assert_called_once_with("evo:dead", raw)


async def test_worker_survives_malformed_envelope(queue, redis_client) -> None:
    stop = asyncio.Event()
    executed = []
    polls = 0

    async def blmove(*args):
        nonlocal polls
        polls += 1
        if polls == 1:
            return b"not-json"
        stop.set()
        return _envelope()

    async def runner(task) -> None:
        executed.append(task)

    redis_client.blmove.side_effect = blmove

    await queue.run_worker(runner, stop)

    assert polls == 2
    assert executed == [{"kind": "test"}]


async def test_recover_processing_moves_stale_entries(queue, redis_client) -> None:
    redis_client.lmove.side_effect = [_envelope(), _envelope(attempts=1), None]

    recovered = await queue.recover_processing()

    assert recovered == 2
    assert redis_client.lmove.await_args_list[0] == call(
        "evo:processing", "evo:pending", "RIGHT", "RIGHT"
    )


async def test_promote_due_moves_retries(queue, redis_client, pipeline) -> None:
    redis_client.zrangebyscore.return_value = [_envelope(attempts=1)]

    moved = await queue.promote_due()

    assert moved == 1
    pipeline.zrem.assert_called_once_with("evo:delayed", _envelope(attempts=1))
    pipeline.lpush.assert_called_once_with("evo:pending", _envelope(attempts=1))
    pipeline.execute.assert_awaited_once()


async def test_blmove_failure_raises_redis_error(queue, redis_client) -> None:
    redis_client.blmove.side_effect = TimeoutError()
    with pytest.raises(RedisConnectionError):
        await queue.work_once(AsyncMock())


async def test_run_worker_recovers_then_stops_on_event(queue, redis_client) -> None:
    stop = asyncio.Event()
    polls = 0

    async def blmove(*args):
        nonlocal polls
        polls += 1
        if polls == 2:
            stop.set()
        return None

    redis_client.blmove.side_effect = blmove

    await queue.run_worker(AsyncMock(), stop)

    assert polls == 2
    redis_client.lmove.assert_awaited_once()
