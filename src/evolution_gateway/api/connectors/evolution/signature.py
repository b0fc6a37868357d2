"""Verificação de assinatura HMAC-SHA256 dos webhooks Evolution.

Esquema:
- Com header de timestamp: HMAC(secret, "{timestamp}." + corpo bruto)
- Sem timestamp (esquema legado, só quando `require_timestamp` é False):
  HMAC(secret, corpo bruto)

A assinatura é hex, com prefixo opcional "sha256=". Timestamps fora da
janela ±tolerance_seconds invalidam o webhook mesmo com assinatura correta.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

SIGNATURE_HEADERS: tuple[str, ...] = (
    "x-webhook-signature",
    "x-evolution-signature",
    "x-signature",
)
TIMESTAMP_HEADERS: tuple[str, ...] = (
    "x-webhook-timestamp",
    "x-evolution-timestamp",
    "x-timestamp",
)
SIGNATURE_PREFIX = "sha256="
# SHA-256 em hex; qualquer outro formato é rejeitado antes da comparação
_HEX_DIGEST = re.compile(r"[0-9a-fA-F]{64}")


@dataclass(frozen=True)
class SignatureResult:
    """Resultado da validação.

    Attributes:
        valid: Webhook aceito
        skipped: Aceito sem verificação (secret vazio + allow_unsigned)
        error: Motivo da rejeição (sem dados sensíveis)
    """

    valid: bool
    skipped: bool = False
    error: str | None = None


def compute_signature(secret: str, raw_body: bytes, timestamp: str | int | None = None) -> str:
    """Calcula a assinatura hex esperada (útil para emissores e testes)."""
    message = raw_body if timestamp is None else f"{timestamp}.".encode() + raw_body
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _timestamp_within_tolerance(timestamp_header: str, tolerance_seconds: int, now: float) -> bool:
    try:
        timestamp = int(timestamp_header.strip())
    except ValueError:
        return False
    return abs(now - timestamp) <= tolerance_seconds


def verify_webhook_signature(
    raw_body: bytes,
    signature_header: str | None,
    timestamp_header: str | None,
    secret: str | None,
    tolerance_seconds: int,
    *,
    now: float | None = None,
    allow_unsigned: bool = False,
) -> bool:
    """Valida assinatura e janela de timestamp.

    Args:
        raw_body: Corpo bruto do request
        signature_header: Valor do header de assinatura
        timestamp_header: Valor do header de timestamp (epoch em segundos) ou None
        secret: Secret compartilhado
        tolerance_seconds: Janela anti-replay
        now: Instante atual (injetável em testes)
        allow_unsigned: Aceita quando o secret está vazio (apenas dev)

    Returns:
        True se válido.
    """
    if not secret:
        return allow_unsigned

    if not signature_header:
        return False

    if timestamp_header is not None and not _timestamp_within_tolerance(
        timestamp_header,
        tolerance_seconds,
        time.time() if now is None else now,
    ):
        return False

    provided = signature_header.strip()
    if provided.startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX):]
    if not _HEX_DIGEST.fullmatch(provided):
        return False

    expected = compute_signature(
        secret,
        raw_body,
        timestamp_header.strip() if timestamp_header is not None else None,
    )
    return hmac.compare_digest(expected.encode("ascii"), provided.lower().encode("ascii"))


def _first_header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in names:
        value = lowered.get(name)
        if value:
            return value
    return None


class WebhookVerifier:
    """Verificador configurado com secret e política do webhook.

    Args:
        secret: Secret compartilhado (vazio = sem verificação)
        tolerance_seconds: Janela anti-replay
        allow_unsigned: Aceitar webhooks quando o secret está vazio
        require_timestamp: Recusar assinaturas sem header de timestamp
    """

    def __init__(
        self,
        secret: str | None,
        tolerance_seconds: int = 300,
        *,
        allow_unsigned: bool = False,
        require_timestamp: bool = False,
    ) -> None:
        self._secret = secret or ""
        self._tolerance_seconds = tolerance_seconds
        self._allow_unsigned = allow_unsigned
        self._require_timestamp = require_timestamp

    @property
    def enforcing(self) -> bool:
        """False apenas no modo dev sem secret com `allow_unsigned`."""
        return bool(self._secret) or not self._allow_unsigned

    def verify(
        self,
        raw_body: bytes,
        headers: Mapping[str, str],
        *,
        now: float | None = None,
    ) -> SignatureResult:
        if not self._secret:
            if self._allow_unsigned:
                return SignatureResult(valid=True, skipped=True)
            return SignatureResult(valid=False, error="missing_secret")

        signature = _first_header(headers, SIGNATURE_HEADERS)
        if not signature:
            return SignatureResult(valid=False, error="missing_signature")

        timestamp = _first_header(headers, TIMESTAMP_HEADERS)
        if timestamp is None and self._require_timestamp:
            return SignatureResult(valid=False, error="missing_timestamp")

        valid = verify_webhook_signature(
            raw_body,
            signature,
            timestamp,
            self._secret,
            self._tolerance_seconds,
            now=now,
        )
        return SignatureResult(valid=valid, error=None if valid else "invalid_signature")
