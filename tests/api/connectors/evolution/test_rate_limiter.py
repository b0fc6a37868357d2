"""Testes do RateLimiter de janela fixa."""

from __future__ import annotations

import pytest

from evolution_gateway.api.connectors.evolution import RateLimit, RateLimiter
from evolution_gateway.api.connectors.evolution.rate_limiter import compute_retry_after
from evolution_gateway.config.settings import RateLimitSettings


@pytest.fixture
def limiter(fake_clock) -> RateLimiter:
    return RateLimiter({"default": (3, 60), "messages": (2, 60)}, clock=fake_clock)


async def test_fourth_call_in_window_is_denied(limiter: RateLimiter) -> None:
    for _ in range(3):
        assert (await limiter.acquire("default")).allowed

    decision = await limiter.acquire("default")

    assert decision.allowed is False
    assert decision.retry_after_seconds > 0


async def test_window_expiry_resets_bucket(limiter: RateLimiter, fake_clock) -> None:
    for _ in range(3):
        await limiter.acquire("default")
    assert not (await limiter.acquire("default")).allowed

    fake_clock.advance(60)

    assert (await limiter.acquire("default")).allowed
    assert limiter.bucket("default").current_count == 1


async def test_retry_after_counts_down(limiter: RateLimiter, fake_clock) -> None:
    for _ in range(3):
        await limiter.acquire("default")
    fake_clock.advance(45.2)

    decision = await limiter.acquire("default")

    assert decision.retry_after_seconds == 15


async def test_denied_call_does_not_consume(limiter: RateLimiter) -> None:
    for _ in range(5):
        await limiter.acquire("messages")
    assert limiter.bucket("messages").current_count == 2


async def test_unknown_category_uses_default_policy(limiter: RateLimiter) -> None:
    assert limiter.policy_for("reports") == RateLimit(3, 60)
    for _ in range(3):
        assert (await limiter.acquire("reports")).allowed
    assert not (await limiter.acquire("reports")).allowed


async def test_scopes_are_independent(limiter: RateLimiter) -> None:
    for _ in range(2):
        await limiter.acquire("messages", scope="a")

    assert not (await limiter.acquire("messages", scope="a")).allowed
    assert (await limiter.acquire("messages", scope="b")).allowed


async def test_remaining_and_reset(limiter: RateLimiter) -> None:
    await limiter.acquire("default")
    assert await limiter.remaining("default") == 2

    await limiter.reset("default")
    assert await limiter.remaining("default") == 3
    assert limiter.bucket("default") is None


async def test_reset_all_categories(limiter: RateLimiter) -> None:
    await limiter.acquire("default")
    await limiter.acquire("messages")

    await limiter.reset()

    assert limiter.bucket("default") is None
    assert limiter.bucket("messages") is None


async def test_disabled_limiter_always_allows(fake_clock) -> None:
    limiter = RateLimiter({"default": (1, 60)}, clock=fake_clock, enabled=False)
    for _ in range(5):
        assert (await limiter.acquire()).allowed


def test_requires_default_category() -> None:
    with pytest.raises(ValueError, match="default"):
        RateLimiter({"messages": (1, 60)})


def test_from_settings_uses_configured_limits() -> None:
    limiter = RateLimiter.from_settings(
        RateLimitSettings(limits={"default": (10, 30), "media": (1, 5)})
    )
    assert limiter.policy_for("media") == RateLimit(1, 5)
    assert sorted(limiter.categories) == ["default", "media"]


def test_compute_retry_after_has_floor_of_one() -> None:
    assert compute_retry_after(100.0, 60, 159.9) == 1
    assert compute_retry_after(100.0, 60, 200.0) == 1
