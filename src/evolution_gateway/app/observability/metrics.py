"""Métricas do gateway via structured logging.

Cada métrica é uma linha de log `metric_*` com `metric_type` e campos
agregáveis (status, categoria, estado do despacho). Agregação fica a cargo
do backend de logs.

Métricas:
- metric_latency: duração de operações por componente
- metric_api_call: chamadas outbound por conexão/status
- metric_rate_limited: chamadas barradas pelo rate limiter e a política aplicada
- metric_webhook_outcome: resultado do despacho de cada webhook
"""

from __future__ import annotations

import logging

from evolution_gateway.app.observability.correlation import get_correlation_id

logger = logging.getLogger(__name__)


def record_latency(
    component: str,
    operation: str,
    latency_ms: float,
    correlation_id: str | None = None,
) -> None:
    """Registra latência de operação.

    Args:
        component: Componente (ex: "api_gateway", "webhook_dispatcher")
        operation: Operação (ex: "call", "process")
        latency_ms: Latência em milissegundos
        correlation_id: ID de correlação (padrão: contexto atual)
    """
    logger.info(
        "metric_latency",
        extra={
            "metric_type": "latency",
            "component": component,
            "operation": operation,
            "latency_ms": round(latency_ms, 2),
            "correlation_id": correlation_id or get_correlation_id(),
        },
    )


def record_api_call(
    connection: str,
    method: str,
    category: str,
    status_code: int,
    attempts: int,
    latency_ms: float,
) -> None:
    """Registra chamada outbound concluída (status 0 = sem resposta HTTP)."""
    logger.info(
        "metric_api_call",
        extra={
            "metric_type": "api_call",
            "connection": connection,
            "method": method,
            "category": category,
            "status_code": status_code,
            "attempts": attempts,
            "latency_ms": round(latency_ms, 2),
        },
    )


def record_rate_limited(
    connection: str,
    category: str,
    policy: str,
    retry_after_seconds: int,
) -> None:
    logger.info(
        "metric_rate_limited",
        extra={
            "metric_type": "rate_limited",
            "connection": connection,
            "category": category,
            "policy": policy,
            "retry_after_seconds": retry_after_seconds,
        },
    )


def record_webhook_outcome(
    event_type: str,
    state: str,
    handlers_invoked: int = 0,
    failures: int = 0,
    instance_name: str | None = None,
) -> None:
    """Registra resultado do despacho de um webhook.

    Args:
        event_type: Tipo do evento (ex: "MESSAGES_UPSERT")
        state: Estado final (handled | queued | failed)
        handlers_invoked: Handlers executados ou enfileirados
        failures: Handlers que falharam
        instance_name: Instância de origem
    """
    logger.info(
        "metric_webhook_outcome",
        extra={
            "metric_type": "webhook_outcome",
            "event_type": event_type,
            "state": state,
            "handlers_invoked": handlers_invoked,
            "failures": failures,
            "instance": instance_name,
        },
    )
