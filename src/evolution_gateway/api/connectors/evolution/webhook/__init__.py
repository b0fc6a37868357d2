"""Webhook Evolution: assinatura e parsing seguro."""

from ..signature import SignatureResult, WebhookVerifier, verify_webhook_signature
from .receive import EvolutionWebhookPayload, decode_webhook_body, parse_webhook_payload

__all__ = [
    "EvolutionWebhookPayload",
    "SignatureResult",
    "WebhookVerifier",
    "decode_webhook_body",
    "parse_webhook_payload",
    "verify_webhook_signature",
]
