"""Observabilidade — correlation_id e métricas via logs estruturados.

Uso:
    from evolution_gateway.app.observability import get_correlation_id, record_api_call
"""

from evolution_gateway.app.observability.correlation import (
    CORRELATION_HEADER,
    generate_correlation_id,
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from evolution_gateway.app.observability.metrics import (
    record_api_call,
    record_latency,
    record_rate_limited,
    record_webhook_outcome,
)

__all__ = [
    "CORRELATION_HEADER",
    "generate_correlation_id",
    "get_correlation_id",
    "record_api_call",
    "record_latency",
    "record_rate_limited",
    "record_webhook_outcome",
    "reset_correlation_id",
    "set_correlation_id",
]
