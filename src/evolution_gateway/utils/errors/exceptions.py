"""Exceções do gateway Evolution API.

Hierarquia única para que chamadores possam capturar `EvolutionApiError`
ou tipos específicos conforme a política de cada camada.
"""

from __future__ import annotations

from typing import Any


class EvolutionApiError(Exception):
    """Base para todos os erros do gateway."""


class InfrastructureError(RuntimeError):
    """Base para falhas de infraestrutura transitórias."""


class RedisConnectionError(InfrastructureError):
    """Falha de conexão/timeout ao acessar Redis."""


# ──────────────────────────────────────────────────────────────
# Conexões
# ──────────────────────────────────────────────────────────────


class ConnectionNotFoundError(EvolutionApiError):
    """Conexão nomeada não existe em runtime nem na configuração estática."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Conexão Evolution API [{name}] não configurada")
        self.name = name


class InvalidConnectionConfigError(EvolutionApiError):
    """Configuração de conexão com server_url ou api_key inválidos."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Conexão Evolution API [{name}] inválida: {reason}")
        self.name = name
        self.reason = reason


# ──────────────────────────────────────────────────────────────
# Chamadas outbound
# ──────────────────────────────────────────────────────────────


class RateLimitExceededError(EvolutionApiError):
    """Limite de chamadas da categoria atingido."""

    def __init__(self, retry_after_seconds: int, category: str = "default") -> None:
        super().__init__(
            f"rate_limit_exceeded category={category} retry_after={retry_after_seconds}s"
        )
        self.retry_after_seconds = retry_after_seconds
        self.category = category


class TransportError(EvolutionApiError):
    """Falha de transporte após esgotar as tentativas."""

    def __init__(
        self,
        message: str,
        last_cause: BaseException | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.last_cause = last_cause
        self.attempts = attempts


class ApiError(EvolutionApiError):
    """Resposta terminal não-2xx da Evolution API."""

    def __init__(
        self,
        status_code: int,
        body: dict[str, Any] | None = None,
        message: str | None = None,
        instance_name: str | None = None,
    ) -> None:
        super().__init__(message or f"Evolution API respondeu HTTP {status_code}")
        self.status_code = status_code
        self.body = body or {}
        self.instance_name = instance_name

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return self.status_code >= 500


class AuthenticationError(ApiError):
    """API key rejeitada (HTTP 401)."""


class InstanceNotFoundError(ApiError):
    """Instância ou recurso inexistente (HTTP 404)."""


# ──────────────────────────────────────────────────────────────
# Webhooks
# ──────────────────────────────────────────────────────────────


class WebhookRequestError(EvolutionApiError, ValueError):
    """Erro base para falhas de recebimento de webhook."""


class InvalidSignatureError(WebhookRequestError):
    """Assinatura ou timestamp do webhook inválidos."""


class InvalidPayloadError(WebhookRequestError):
    """Corpo do webhook não é JSON válido ou não tem o campo `event`."""


class HandlerExecutionError(EvolutionApiError):
    """Falha de um handler individual durante o despacho."""

    def __init__(self, event_type: str, handler_ref: str, cause: BaseException) -> None:
        super().__init__(
            f"Handler [{handler_ref}] falhou para {event_type}: {type(cause).__name__}"
        )
        self.event_type = event_type
        self.handler_ref = handler_ref
        self.cause = cause


class DeliveryQueueError(EvolutionApiError):
    """Falha ao entregar a task para a fila."""
