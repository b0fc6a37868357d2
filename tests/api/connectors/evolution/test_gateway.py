"""Testes do ApiGateway: conexão, rate limit, URL, headers e erros."""

from __future__ import annotations

import json

import httpx
import pytest

from evolution_gateway.api.connectors.evolution import (
    ApiGateway,
    RateLimiter,
    resolve_rate_limit_category,
)
from evolution_gateway.config.settings import EvolutionSettings, RateLimitSettings
from evolution_gateway.utils.errors import (
    ApiError,
    AuthenticationError,
    ConnectionNotFoundError,
    InstanceNotFoundError,
    RateLimitExceededError,
)


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"key": {"id": "MSG1"}})


async def test_send_text_end_to_end(make_gateway, fake_clock) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return _ok(request)

    limiter = RateLimiter({"default": (60, 60), "messages": (30, 60)}, clock=fake_clock)
    gateway = make_gateway(handler, rate_limiter=limiter)

    response = await gateway.call(
        "default",
        "POST",
        "message/sendText/inst",
        {"number": "5511999999999", "text": "hi"},
        "messages",
    )

    assert response.status_code == 200
    assert response.get("key.id") == "MSG1"
    assert limiter.bucket("messages", scope="default").current_count == 1

    request = seen[0]
    assert str(request.url) == "https://api.test/message/sendText/inst"
    assert request.headers["apikey"] == "k"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"number": "5511999999999", "text": "hi"}


async def test_instance_placeholder_is_replaced(make_gateway) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return _ok(request)

    gateway = make_gateway(handler)
    await gateway.post("message/sendText/{instance}", {"text": "x"}, instance_name="inst-1")

    assert seen == ["/message/sendText/inst-1"]


async def test_placeholder_without_instance_raises(make_gateway) -> None:
    gateway = make_gateway(_ok)
    with pytest.raises(ValueError, match="instance_name"):
        await gateway.post("message/sendText/{instance}", {"text": "x"})


async def test_default_instance_fills_placeholder(make_gateway) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return _ok(request)

    gateway = make_gateway(handler, default_instance="main")
    await gateway.get("instance/connectionState/{instance}")

    assert seen == ["/instance/connectionState/main"]


async def test_get_sends_no_body_and_passes_query(make_gateway) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"name": "inst"}])

    gateway = make_gateway(handler)
    response = await gateway.get("instance/fetchInstances", {"instanceName": "inst"})

    assert seen[0].content == b""
    assert seen[0].url.params["instanceName"] == "inst"
    assert response.body == {"raw": [{"name": "inst"}]}


async def test_null_connection_uses_active(make_gateway, registry) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        return _ok(request)

    registry.add_runtime("tenant", {"server_url": "https://tenant.test", "api_key": "t"})
    registry.set_active("tenant")
    gateway = make_gateway(handler)

    await gateway.call(None, "GET", "/")

    assert seen == ["tenant.test"]


async def test_unknown_connection_raises_before_network(make_gateway) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return _ok(request)

    gateway = make_gateway(handler)
    with pytest.raises(ConnectionNotFoundError):
        await gateway.call("nope", "GET", "/")
    assert calls == 0


@pytest.mark.parametrize(
    ("status_code", "error_type"),
    [(401, AuthenticationError), (404, InstanceNotFoundError), (400, ApiError)],
)
async def test_error_status_maps_to_typed_error(make_gateway, status_code, error_type) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"message": "boom"})

    gateway = make_gateway(handler)
    with pytest.raises(error_type) as exc_info:
        await gateway.post("message/sendText/inst", {"text": "x"}, instance_name="inst")

    assert exc_info.value.status_code == status_code
    assert exc_info.value.instance_name == "inst"
    assert "boom" in str(exc_info.value)


async def test_2xx_with_error_flag_raises(make_gateway) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "instance disconnected"})

    gateway = make_gateway(handler)
    with pytest.raises(ApiError):
        await gateway.post("message/sendText/inst", {"text": "x"})


async def test_exhausted_retryable_status_sets_instance(make_gateway, sleep_recorder) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={})

    gateway = make_gateway(handler)
    with pytest.raises(ApiError) as exc_info:
        await gateway.post("message/sendText/{instance}", {"text": "x"}, instance_name="inst")

    assert exc_info.value.status_code == 503
    assert exc_info.value.instance_name == "inst"
    assert len(sleep_recorder.calls) == 2


class TestOnLimitReached:
    @pytest.fixture
    def tight_limiter(self, fake_clock) -> RateLimiter:
        return RateLimiter({"default": (1, 60)}, clock=fake_clock)

    async def test_throw_raises_with_retry_after(self, make_gateway, tight_limiter) -> None:
        gateway = make_gateway(_ok, rate_limiter=tight_limiter, on_limit_reached="throw")
        await gateway.call("default", "GET", "/")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await gateway.call("default", "GET", "/")

        assert exc_info.value.retry_after_seconds == 60
        assert exc_info.value.category == "default"

    async def test_skip_returns_noop_result(self, make_gateway, tight_limiter) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return _ok(request)

        gateway = make_gateway(handler, rate_limiter=tight_limiter, on_limit_reached="skip")
        await gateway.call("default", "GET", "/")
        result = await gateway.call("default", "GET", "/")

        assert result.skipped
        assert calls == 1

    async def test_wait_sleeps_then_retries(
        self, make_gateway, tight_limiter, fake_clock, sleep_recorder
    ) -> None:
        async def advancing_sleep(seconds: float) -> None:
            sleep_recorder.calls.append(seconds)
            fake_clock.advance(seconds)

        gateway = make_gateway(_ok, rate_limiter=tight_limiter, on_limit_reached="wait")
        gateway._sleep = advancing_sleep

        await gateway.call("default", "GET", "/")
        response = await gateway.call("default", "GET", "/")

        assert response.status_code == 200
        assert sleep_recorder.calls == [60]

    async def test_wait_is_bounded_by_max_wait(
        self, make_gateway, tight_limiter, sleep_recorder
    ) -> None:
        gateway = make_gateway(
            _ok, rate_limiter=tight_limiter, on_limit_reached="wait", max_wait_seconds=5
        )
        await gateway.call("default", "GET", "/")

        with pytest.raises(RateLimitExceededError):
            await gateway.call("default", "GET", "/")
        assert sleep_recorder.calls == [5]


async def test_ping_returns_false_on_failure(make_gateway) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Unauthorized"})

    gateway = make_gateway(handler)
    assert await gateway.ping() is False


async def test_ping_does_not_consume_rate_limit_slot(make_gateway, fake_clock) -> None:
    limiter = RateLimiter({"default": (1, 60)}, clock=fake_clock)
    gateway = make_gateway(_ok, rate_limiter=limiter, on_limit_reached="throw")

    for _ in range(5):
        assert await gateway.ping() is True

    assert await limiter.remaining("default", scope="default") == 1
    response = await gateway.call("default", "GET", "/")
    assert response.status_code == 200


async def test_ping_does_not_retry(make_gateway, sleep_recorder) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503, json={"error": "down"})

    gateway = make_gateway(handler)

    assert await gateway.ping() is False
    assert calls == 1
    assert sleep_recorder.calls == []


async def test_info_returns_body(make_gateway) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": 200, "version": "2.1.1"})

    gateway = make_gateway(handler)
    assert (await gateway.info())["version"] == "2.1.1"


@pytest.mark.parametrize(
    ("path", "category"),
    [
        ("message/sendText/inst", "messages"),
        ("message/sendMedia/inst", "media"),
        ("/message/sendWhatsAppAudio/{instance}", "media"),
        ("chat/sendPresence/inst", "messages"),
        ("instance/fetchInstances", "default"),
        ("/", "default"),
    ],
)
def test_resolve_rate_limit_category(path: str, category: str) -> None:
    assert resolve_rate_limit_category(path) == category


def test_from_settings_builds_limiter_and_policy() -> None:
    gateway = ApiGateway.from_settings(
        EvolutionSettings(server_url="https://api.test", api_key="k", retry_max_attempts=4),
        RateLimitSettings(on_limit_reached="skip"),
    )

    assert gateway.registry.resolve("default").server_url == "https://api.test"
    assert gateway.retry_policy.max_attempts == 4
    assert gateway.rate_limiter is not None
    assert gateway.on_limit_reached.value == "skip"
