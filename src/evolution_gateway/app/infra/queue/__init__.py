"""Adaptadores de DeliveryQueue (memória e Redis)."""

from evolution_gateway.app.infra.queue.memory_queue import InMemoryDeliveryQueue
from evolution_gateway.app.infra.queue.redis_queue import RedisDeliveryQueue

__all__ = ["InMemoryDeliveryQueue", "RedisDeliveryQueue"]
