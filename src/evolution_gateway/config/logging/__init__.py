"""Logging estruturado JSON (python-json-logger).

Uso:
    from evolution_gateway.config.logging import configure_logging, get_logger

    configure_logging(level="INFO")
    logger = get_logger(__name__)
"""

from evolution_gateway.config.logging.config import configure_logging, get_logger
from evolution_gateway.config.logging.filters import CorrelationIdFilter
from evolution_gateway.config.logging.formatters import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    create_json_formatter,
)

__all__ = [
    "FIELD_RENAME_MAP",
    "REQUIRED_LOG_FIELDS",
    "CorrelationIdFilter",
    "configure_logging",
    "create_json_formatter",
    "get_logger",
]
