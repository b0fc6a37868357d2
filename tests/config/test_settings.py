"""Testes das settings carregadas do ambiente."""

from __future__ import annotations

from pathlib import Path

import pytest

from evolution_gateway.config.settings import (
    BaseSettings,
    EvolutionSettings,
    QueueSettings,
    RateLimitSettings,
    WebhookSettings,
    get_base_settings,
    get_evolution_settings,
    get_queue_settings,
    get_rate_limit_settings,
    get_webhook_settings,
    load_connections_file,
)

DEV = BaseSettings(environment="development")
PROD = BaseSettings(environment="production", redis_url="redis://localhost:6379/0")


class TestBaseSettings:
    def test_environment_aliases(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "prod")
        assert get_base_settings().is_production

    def test_unknown_environment_falls_back_to_development(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ENVIRONMENT", "qa")
        assert get_base_settings().is_development


class TestEvolutionSettings:
    def test_loads_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVOLUTION_API_URL", "https://evo.test")
        monkeypatch.setenv("EVOLUTION_API_KEY", "key")
        monkeypatch.setenv("EVOLUTION_RETRY_BACKOFF", "LINEAR")
        monkeypatch.setenv("EVOLUTION_RETRY_STATUS_CODES", "500, 503")
        monkeypatch.delenv("EVOLUTION_CONNECTIONS_FILE", raising=False)

        settings = get_evolution_settings()

        assert settings.has_legacy_connection
        assert settings.retry_backoff == "linear"
        assert settings.retryable_status_codes == (500, 503)
        assert settings.validate() == []

    def test_missing_default_connection_is_invalid(self) -> None:
        errors = EvolutionSettings().validate()
        assert any("default" in error for error in errors)

    def test_invalid_backoff_is_reported(self) -> None:
        settings = EvolutionSettings(
            server_url="https://evo.test", api_key="k", retry_backoff="random"
        )
        assert any("EVOLUTION_RETRY_BACKOFF" in error for error in settings.validate())

    def test_connections_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "connections.yaml"
        path.write_text(
            "connections:\n"
            "  default:\n"
            "    server_url: https://a.test\n"
            "    api_key: ka\n"
            "  backup:\n"
            "    server_url: https://b.test\n"
            "    api_key: kb\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("EVOLUTION_CONNECTIONS_FILE", str(path))
        monkeypatch.delenv("EVOLUTION_API_URL", raising=False)
        monkeypatch.delenv("EVOLUTION_API_KEY", raising=False)

        settings = get_evolution_settings()

        assert settings.connections["backup"] == {"server_url": "https://b.test", "api_key": "kb"}
        assert settings.validate() == []

    def test_connections_file_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_connections_file(path)

    def test_connections_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_connections_file(tmp_path / "nope.yaml")


class TestRateLimitSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("EVOLUTION_RATE_LIMIT_ON_LIMIT", "EVOLUTION_RATE_LIMIT_MESSAGES_MAX"):
            monkeypatch.delenv(name, raising=False)
        settings = get_rate_limit_settings()
        assert settings.on_limit_reached == "wait"
        assert settings.limits["messages"] == (30, 60)
        assert settings.limits["media"] == (10, 60)

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVOLUTION_RATE_LIMIT_MESSAGES_MAX", "5")
        monkeypatch.setenv("EVOLUTION_RATE_LIMIT_ON_LIMIT", "throw")
        settings = get_rate_limit_settings()
        assert settings.limits["messages"] == (5, 60)
        assert settings.on_limit_reached == "throw"

    def test_redis_backend_requires_url(self) -> None:
        errors = RateLimitSettings(backend="redis").validate(DEV)
        assert any("REDIS_URL" in error for error in errors)

    def test_missing_default_category(self) -> None:
        errors = RateLimitSettings(limits={"messages": (1, 1)}).validate(DEV)
        assert any("default" in error for error in errors)


class TestWebhookSettings:
    def test_secret_required_when_verifying(self) -> None:
        errors = WebhookSettings(secret="").validate(DEV)
        assert any("EVOLUTION_WEBHOOK_SECRET" in error for error in errors)

    def test_allow_unsigned_only_in_development(self) -> None:
        settings = WebhookSettings(secret="", allow_unsigned=True)
        assert settings.validate(DEV) == []
        assert any("ALLOW_UNSIGNED" in error for error in settings.validate(PROD))

    def test_events_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EVOLUTION_WEBHOOK_EVENTS", "messages_upsert, connection_update")
        monkeypatch.setenv("EVOLUTION_WEBHOOK_PROCESSING_MODE", "inline")
        settings = get_webhook_settings()
        assert settings.subscribed_events == ("MESSAGES_UPSERT", "CONNECTION_UPDATE")
        assert settings.processing_mode == "sync"


class TestQueueSettings:
    def test_memory_forbidden_outside_development(self) -> None:
        errors = QueueSettings(backend="memory").validate("redis://x", is_development=False)
        assert any("memory" in error for error in errors)

    def test_redis_backend_ok(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUEUE_BACKEND", "redis")
        monkeypatch.setenv("EVOLUTION_QUEUE_BACKOFF", "1,2")
        settings = get_queue_settings()
        assert settings.backend == "redis"
        assert settings.backoff_seconds == (1, 2)
        assert settings.validate("redis://x", is_development=False) == []
