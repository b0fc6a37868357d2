"""Conector Evolution API (WhatsApp).

Estrutura:
- Conexões nomeadas (connections)
- Rate limiting por categoria (rate_limiter)
- Transporte HTTP com retry (http_base)
- Gateway de chamadas REST (gateway)
- Recursos de mensagens/instâncias (resources)
- Webhook (signature, events, webhook/receive)
"""

from .connections import ConnectionConfig, ConnectionRegistry
from .events import WebhookEvent, WebhookEventType, build_webhook_event
from .gateway import ApiGateway, resolve_rate_limit_category
from .http_base import (
    BackoffStrategy,
    OutboundRequest,
    OutboundResponse,
    RetryingTransport,
    RetryPolicy,
    compute_backoff_delay_ms,
)
from .message_types import MessageType
from .rate_limiter import (
    MemoryRateLimitStore,
    OnLimitReached,
    RateLimit,
    RateLimitBucket,
    RateLimitDecision,
    RateLimiter,
)
from .resources import InstanceResource, MessageResource
from .signature import (
    SignatureResult,
    WebhookVerifier,
    compute_signature,
    verify_webhook_signature,
)

__all__ = [
    "ApiGateway",
    "BackoffStrategy",
    "ConnectionConfig",
    "ConnectionRegistry",
    "InstanceResource",
    "MemoryRateLimitStore",
    "MessageResource",
    "MessageType",
    "OnLimitReached",
    "OutboundRequest",
    "OutboundResponse",
    "RateLimit",
    "RateLimitBucket",
    "RateLimitDecision",
    "RateLimiter",
    "RetryPolicy",
    "RetryingTransport",
    "SignatureResult",
    "WebhookEvent",
    "WebhookEventType",
    "WebhookVerifier",
    "build_webhook_event",
    "compute_backoff_delay_ms",
    "compute_signature",
    "resolve_rate_limit_category",
    "verify_webhook_signature",
]
