"""Configuração do pytest para o evolution_gateway."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

# Adiciona src/ ao PYTHONPATH para permitir imports absolutos
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from evolution_gateway.api.connectors.evolution import (  # noqa: E402
    ApiGateway,
    ConnectionRegistry,
    RateLimiter,
    RetryingTransport,
    RetryPolicy,
)
from evolution_gateway.config.settings import (  # noqa: E402
    get_base_settings,
    get_evolution_settings,
    get_queue_settings,
    get_rate_limit_settings,
    get_webhook_settings,
)

BASE_URL = "https://api.test"
API_KEY = "k"


class SleepRecorder:
    """Substituto de asyncio.sleep que registra as esperas sem dormir."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    """Relógio controlável para janelas de rate limit."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    """Settings são cacheadas por processo; cada teste lê o env do zero."""
    for getter in (
        get_base_settings,
        get_evolution_settings,
        get_queue_settings,
        get_rate_limit_settings,
        get_webhook_settings,
    ):
        getter.cache_clear()
    yield
    for getter in (
        get_base_settings,
        get_evolution_settings,
        get_queue_settings,
        get_rate_limit_settings,
        get_webhook_settings,
    ):
        getter.cache_clear()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry({"default": {"server_url": BASE_URL, "api_key": API_KEY}})


@pytest.fixture
def make_gateway(
    registry: ConnectionRegistry,
    sleep_recorder: SleepRecorder,
) -> Callable[..., ApiGateway]:
    """Monta ApiGateway sobre httpx.MockTransport."""

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        *,
        rate_limiter: RateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        **kwargs: object,
    ) -> ApiGateway:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        transport = RetryingTransport(client, sleep=sleep_recorder)
        return ApiGateway(
            registry,
            transport,
            retry_policy or RetryPolicy(max_attempts=3),
            rate_limiter,
            sleep=sleep_recorder,
            **kwargs,
        )

    return _make
