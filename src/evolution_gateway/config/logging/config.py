"""Configuração centralizada de logging estruturado.

Uso:
    from evolution_gateway.config.logging import configure_logging, get_logger

    configure_logging(level="INFO", service_name="evolution_gateway")

    logger = get_logger(__name__)
    logger.info("api_call_completed", extra={"status_code": 200})

Logs nunca carregam api keys, secrets ou payloads brutos de webhook.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from evolution_gateway.config.logging.filters import CorrelationIdFilter
from evolution_gateway.config.logging.formatters import create_json_formatter

if TYPE_CHECKING:
    from collections.abc import Callable

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

DEFAULT_SERVICE_NAME = "evolution_gateway"


def configure_logging(
    level: str = "INFO",
    service_name: str = DEFAULT_SERVICE_NAME,
    correlation_id_getter: Callable[[], str] | None = None,
) -> None:
    """Instala handler JSON único no root logger.

    Args:
        level: Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        service_name: Nome do serviço nos registros.
        correlation_id_getter: Função que retorna o correlation_id do contexto.

    Raises:
        ValueError: Se o nível de log for inválido.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Nível de log inválido: {level}. "
            f"Válidos: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )

    handler = logging.StreamHandler()
    handler.setLevel(level_upper)
    handler.setFormatter(create_json_formatter())
    handler.addFilter(CorrelationIdFilter(service_name, correlation_id_getter))

    root = logging.getLogger()
    root.setLevel(level_upper)
    # Substitui handlers existentes para evitar duplicação
    root.handlers = [handler]


def get_logger(name: str) -> logging.Logger:
    """Retorna logger do módulo; service e correlation_id vêm do filter."""
    return logging.getLogger(name)
