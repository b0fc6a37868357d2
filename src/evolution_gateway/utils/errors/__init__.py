"""Exceções compartilhadas."""

from .exceptions import (
    ApiError,
    AuthenticationError,
    ConnectionNotFoundError,
    DeliveryQueueError,
    EvolutionApiError,
    HandlerExecutionError,
    InfrastructureError,
    InstanceNotFoundError,
    InvalidConnectionConfigError,
    InvalidPayloadError,
    InvalidSignatureError,
    RateLimitExceededError,
    RedisConnectionError,
    TransportError,
    WebhookRequestError,
)

__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConnectionNotFoundError",
    "DeliveryQueueError",
    "EvolutionApiError",
    "HandlerExecutionError",
    "InfrastructureError",
    "InstanceNotFoundError",
    "InvalidConnectionConfigError",
    "InvalidPayloadError",
    "InvalidSignatureError",
    "RateLimitExceededError",
    "RedisConnectionError",
    "TransportError",
    "WebhookRequestError",
]
