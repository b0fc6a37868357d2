"""Testes dos endpoints de health e readiness."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from starlette.requests import Request

from evolution_gateway.api.routes.health.router import health_check, readiness_check


def _build_request_with_state(state: SimpleNamespace) -> Request:
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "path": "/ready",
        "raw_path": b"/ready",
        "query_string": b"",
        "headers": [],
        "app": SimpleNamespace(state=state),
    }

    async def _receive() -> dict[str, object]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, _receive)


async def test_health_is_healthy() -> None:
    response = await health_check()
    assert response.status == "healthy"
    assert response.service == "evolution-gateway"


async def test_ready_without_redis_when_gateway_reachable() -> None:
    gateway = MagicMock()
    gateway.ping = AsyncMock(return_value=True)

    response = await readiness_check(
        _build_request_with_state(SimpleNamespace(redis_client=None, api_gateway=gateway))
    )
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 200
    assert payload["checks"]["redis"]["status"] == "skipped"
    assert payload["checks"]["evolution_api"]["status"] == "ok"


async def test_unreachable_evolution_only_degrades() -> None:
    gateway = MagicMock()
    gateway.ping = AsyncMock(return_value=False)

    response = await readiness_check(
        _build_request_with_state(SimpleNamespace(redis_client=None, api_gateway=gateway))
    )
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 200
    assert payload["checks"]["evolution_api"]["status"] == "degraded"


async def test_redis_failure_is_not_ready() -> None:
    redis_client = MagicMock()
    redis_client.ping = AsyncMock(side_effect=ConnectionError("down"))
    gateway = MagicMock()
    gateway.ping = AsyncMock(return_value=True)

    response = await readiness_check(
        _build_request_with_state(SimpleNamespace(redis_client=redis_client, api_gateway=gateway))
    )
    payload = json.loads(response.body.decode("utf-8"))

    assert response.status_code == 503
    assert payload["status"] == "not_ready"
    assert payload["checks"]["redis"]["error"] == "ConnectionError"


async def test_missing_gateway_is_not_ready() -> None:
    response = await readiness_check(_build_request_with_state(SimpleNamespace()))
    assert response.status_code == 503
