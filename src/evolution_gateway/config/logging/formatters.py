"""Formatter JSON dos logs do gateway.

Campos obrigatórios em todo registro:
- asctime, level, logger, message
- correlation_id, service
"""

from __future__ import annotations

from pythonjsonlogger.json import JsonFormatter

REQUIRED_LOG_FIELDS = (
    "asctime",
    "levelname",
    "name",
    "message",
    "correlation_id",
    "service",
)

FIELD_RENAME_MAP = {
    "levelname": "level",
    "name": "logger",
}


def create_json_formatter() -> JsonFormatter:
    """Cria formatter JSON com os campos padronizados.

    Exemplo de output:
        {
            "asctime": "2026-10-18 10:30:00,120",
            "level": "INFO",
            "logger": "evolution_gateway.app.webhooks.dispatcher",
            "message": "webhook_dispatched",
            "correlation_id": "abc-123",
            "service": "evolution_gateway",
            "event_type": "MESSAGES_UPSERT"
        }
    """
    format_string = " ".join(f"%({field})s" for field in REQUIRED_LOG_FIELDS)
    return JsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)
