"""Helpers de logging para chamadas à Evolution API (sem segredos)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from evolution_gateway.utils.redaction import redact_sensitive

if TYPE_CHECKING:
    from .http_base import OutboundResponse

logger = logging.getLogger(__name__)


def log_request(
    method: str,
    path: str,
    connection: str,
    payload: dict[str, Any] | None = None,
    instance_name: str | None = None,
) -> None:
    """Loga request outbound com payload mascarado."""
    logger.info(
        "evolution_api_request",
        extra={
            "method": method,
            "path": path,
            "connection": connection,
            "instance": instance_name,
            "payload": redact_sensitive(payload or {}),
        },
    )


def log_response(method: str, path: str, response: OutboundResponse) -> None:
    """Loga resumo da resposta; erro em nível ERROR."""
    level = logging.INFO if response.is_success or response.skipped else logging.ERROR
    logger.log(
        level,
        "evolution_api_response",
        extra={
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "success": response.is_success,
            "skipped": response.skipped,
            "attempts": response.attempts,
            "duration_ms": round(response.duration_ms, 2),
        },
    )
