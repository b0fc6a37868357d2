"""Agregador de settings do gateway.

Re-exporta settings e getters cacheados de cada módulo.
"""

from __future__ import annotations

from evolution_gateway.config.settings.base import (
    BaseSettings,
    Environment,
    get_base_settings,
)
from evolution_gateway.config.settings.evolution import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    EvolutionSettings,
    get_evolution_settings,
    load_connections_file,
)
from evolution_gateway.config.settings.infra import (
    QueueBackend,
    QueueSettings,
    get_queue_settings,
)
from evolution_gateway.config.settings.rate_limit import (
    DEFAULT_LIMITS,
    OnLimitReachedPolicy,
    RateLimitBackend,
    RateLimitSettings,
    get_rate_limit_settings,
)
from evolution_gateway.config.settings.webhook import (
    DEFAULT_SUBSCRIBED_EVENTS,
    ProcessingMode,
    WebhookSettings,
    get_webhook_settings,
)

__all__ = [
    "DEFAULT_LIMITS",
    "DEFAULT_RETRYABLE_STATUS_CODES",
    "DEFAULT_SUBSCRIBED_EVENTS",
    "BaseSettings",
    "Environment",
    "EvolutionSettings",
    "OnLimitReachedPolicy",
    "ProcessingMode",
    "QueueBackend",
    "QueueSettings",
    "RateLimitBackend",
    "RateLimitSettings",
    "WebhookSettings",
    "get_base_settings",
    "get_evolution_settings",
    "get_queue_settings",
    "get_rate_limit_settings",
    "get_webhook_settings",
    "load_connections_file",
]
