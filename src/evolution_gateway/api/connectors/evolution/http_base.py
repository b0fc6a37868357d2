"""Transporte HTTP com retry para a Evolution API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

from evolution_gateway.api.connectors.evolution.api_errors import (
    build_api_error,
    extract_error_message,
)
from evolution_gateway.config.settings.evolution import DEFAULT_RETRYABLE_STATUS_CODES
from evolution_gateway.utils.errors import TransportError

if TYPE_CHECKING:
    from evolution_gateway.config.settings import EvolutionSettings

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class BackoffStrategy(str, Enum):
    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class RetryPolicy:
    """Política de retry (imutável, uma por gateway).

    Attributes:
        max_attempts: Tentativas totais, incluindo a primeira (>= 1)
        backoff_strategy: fixed | linear | exponential
        base_delay_ms: Delay base
        max_delay_ms: Teto do delay exponencial
        retryable_status_codes: Status tratados como falha transitória
    """

    max_attempts: int = 3
    backoff_strategy: BackoffStrategy = BackoffStrategy.EXPONENTIAL
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    retryable_status_codes: frozenset[int] = field(
        default_factory=lambda: frozenset(DEFAULT_RETRYABLE_STATUS_CODES)
    )

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts deve ser >= 1")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("delays de retry não podem ser negativos")
        object.__setattr__(self, "backoff_strategy", BackoffStrategy(self.backoff_strategy))
        object.__setattr__(
            self, "retryable_status_codes", frozenset(self.retryable_status_codes)
        )

    @classmethod
    def from_settings(cls, settings: EvolutionSettings) -> RetryPolicy:
        return cls(
            max_attempts=settings.effective_max_attempts,
            backoff_strategy=BackoffStrategy(settings.retry_backoff),
            base_delay_ms=settings.retry_base_delay_ms,
            max_delay_ms=settings.retry_max_delay_ms,
            retryable_status_codes=frozenset(settings.retryable_status_codes),
        )

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.retryable_status_codes


def compute_backoff_delay_ms(attempt: int, policy: RetryPolicy) -> int:
    """Delay antes da próxima tentativa, após a falha da tentativa `attempt` (1-based).

    fixed -> base; linear -> base * attempt; exponential -> min(base * 2^(attempt-1), max).
    """
    base = policy.base_delay_ms
    if policy.backoff_strategy is BackoffStrategy.FIXED:
        return base
    if policy.backoff_strategy is BackoffStrategy.LINEAR:
        return base * attempt
    return min(base * (2 ** (attempt - 1)), policy.max_delay_ms)


@dataclass(frozen=True)
class OutboundRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: dict[str, Any] | None = None
    params: dict[str, Any] | None = None
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class OutboundResponse:
    """Resposta decodificada.

    `body` é sempre um dict: respostas JSON que não são objeto viram
    {"raw": valor} e corpos não-JSON viram {"raw": texto}.
    """

    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    duration_ms: float = 0.0
    attempts: int = 1
    skipped: bool = False

    @classmethod
    def skipped_result(cls) -> OutboundResponse:
        """Resultado no-op da política `skip` de rate limit."""
        return cls(status_code=0, body={}, attempts=0, skipped=True)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300 and not self.body.get("error")

    @property
    def message(self) -> str | None:
        return extract_error_message(self.body)

    def get(self, key: str, default: Any = None) -> Any:
        """Lê valor com notação pontuada (ex.: "key.id")."""
        current: Any = self.body
        for part in key.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
                current = current[int(part)]
            else:
                return default
        return current


def decode_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {"raw": response.text}
    return data if isinstance(data, dict) else {"raw": data}


class RetryingTransport:
    """Executa requests com retry e backoff.

    Falha = exceção de transporte (httpx.TransportError, inclui timeouts) ou
    status em `retryable_status_codes`. Status não-retryable retornam direto,
    sem sleep; a decisão de erro fica com o gateway.

    Args:
        client: httpx.AsyncClient injetável (testes usam httpx.MockTransport)
        verify_ssl: Verificação TLS do client criado internamente
        sleep: Função de espera (padrão asyncio.sleep)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        verify_ssl: bool = True,
        connect_timeout_seconds: float = 10.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._verify_ssl = verify_ssl
        self._connect_timeout = connect_timeout_seconds
        self._sleep = sleep

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(verify=self._verify_ssl)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def send(self, request: OutboundRequest, policy: RetryPolicy) -> OutboundResponse:
        """Envia request aplicando a política de retry.

        Raises:
            TransportError: Última falha foi exceção de transporte
            ApiError: Última falha foi status retryable
        """
        started = time.perf_counter()
        last_exc: httpx.TransportError | None = None
        last_response: httpx.Response | None = None

        for attempt in range(1, policy.max_attempts + 1):
            try:
                response = await self._get_client().request(
                    request.method,
                    request.url,
                    headers=request.headers,
                    json=request.json,
                    params=request.params,
                    timeout=httpx.Timeout(
                        request.timeout_seconds, connect=self._connect_timeout
                    ),
                )
            except httpx.TransportError as exc:
                last_exc, last_response = exc, None
                logger.warning(
                    "http_transport_error",
                    extra={
                        "method": request.method,
                        "attempt": attempt,
                        "error_type": type(exc).__name__,
                    },
                )
            else:
                if not policy.is_retryable_status(response.status_code):
                    return _to_outbound(response, started, attempt)
                last_exc, last_response = None, response
                logger.warning(
                    "http_retryable_status",
                    extra={
                        "method": request.method,
                        "attempt": attempt,
                        "status_code": response.status_code,
                    },
                )

            if attempt < policy.max_attempts:
                await _backoff_sleep(self._sleep, compute_backoff_delay_ms(attempt, policy))

        if last_response is not None:
            raise build_api_error(last_response.status_code, decode_body(last_response))
        raise TransportError(
            f"http_retry_exhausted: {type(last_exc).__name__}",
            last_cause=last_exc,
            attempts=policy.max_attempts,
        ) from last_exc


def _to_outbound(response: httpx.Response, started: float, attempts: int) -> OutboundResponse:
    return OutboundResponse(
        status_code=response.status_code,
        body=decode_body(response),
        headers=dict(response.headers),
        duration_ms=(time.perf_counter() - started) * 1000,
        attempts=attempts,
    )


async def _backoff_sleep(sleep: SleepFn, delay_ms: int) -> None:
    logger.info("http_backoff", extra={"backoff_ms": delay_ms})
    await sleep(delay_ms / 1000)
