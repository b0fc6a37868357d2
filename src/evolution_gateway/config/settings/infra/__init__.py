"""Settings de infraestrutura."""

from evolution_gateway.config.settings.infra.queue import (
    QueueBackend,
    QueueSettings,
    get_queue_settings,
)

__all__ = ["QueueBackend", "QueueSettings", "get_queue_settings"]
