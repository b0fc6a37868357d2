"""Gateway único para chamadas REST à Evolution API.

Fluxo de `call()`:
1. Resolve conexão (None -> conexão ativa)
2. Reserva slot no rate limiter (scope = nome da conexão), aplicando a
   política configurada: wait | throw | skip
3. Monta URL `{server_url}/{path}` (placeholder `{instance}`) e headers
4. Envia via RetryingTransport com a RetryPolicy do gateway
5. Não-2xx (ou 2xx com `error` no corpo) -> ApiError
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import TYPE_CHECKING, Any

from evolution_gateway.api.connectors.evolution.api_errors import build_api_error
from evolution_gateway.api.connectors.evolution.connections import ConnectionRegistry
from evolution_gateway.api.connectors.evolution.http_base import (
    OutboundRequest,
    OutboundResponse,
    RetryingTransport,
    RetryPolicy,
    SleepFn,
)
from evolution_gateway.api.connectors.evolution.rate_limiter import (
    DEFAULT_CATEGORY,
    OnLimitReached,
    RateLimiter,
)
from evolution_gateway.app.observability import record_api_call, record_rate_limited
from evolution_gateway.utils.errors import ApiError, RateLimitExceededError

if TYPE_CHECKING:
    import httpx

    from evolution_gateway.api.connectors.evolution.connections import ConnectionConfig
    from evolution_gateway.config.settings import EvolutionSettings, RateLimitSettings

logger = logging.getLogger(__name__)

INSTANCE_PLACEHOLDER = "{instance}"

_MEDIA_PATH = re.compile(
    r"(^|/)(sendMedia|sendImage|sendVideo|sendAudio|sendWhatsAppAudio|sendDocument|sendSticker)",
    re.IGNORECASE,
)
_MESSAGE_PATH = re.compile(r"(^|/)(send|message)", re.IGNORECASE)
_TIMED_CATEGORIES = frozenset({"messages", "media"})
_PING_POLICY = RetryPolicy(max_attempts=1)


def resolve_rate_limit_category(path: str) -> str:
    """Infere a categoria de rate limit pelo path.

    >>> resolve_rate_limit_category("message/sendMedia/inst")
    'media'
    >>> resolve_rate_limit_category("chat/findChats/inst")
    'default'
    """
    if _MEDIA_PATH.search(path):
        return "media"
    if _MESSAGE_PATH.search(path):
        return "messages"
    return DEFAULT_CATEGORY


class ApiGateway:
    """Ponto único de chamadas outbound.

    Args:
        registry: Resolve conexões nomeadas
        transport: Transporte com retry
        retry_policy: Política de retry (imutável)
        rate_limiter: Opcional; sem limiter nenhuma chamada é barrada
        on_limit_reached: wait | throw | skip
        max_wait_seconds: Teto da espera na política wait
        timeout_seconds: Timeout por tentativa (chamadas comuns)
        message_timeout_seconds: Timeout por tentativa (messages/media)
        default_instance: Instância usada quando `instance_name` não é informado
        sleep: Função de espera da política wait
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: RetryingTransport,
        retry_policy: RetryPolicy | None = None,
        rate_limiter: RateLimiter | None = None,
        *,
        on_limit_reached: OnLimitReached | str = OnLimitReached.WAIT,
        max_wait_seconds: int = 60,
        timeout_seconds: float = 30.0,
        message_timeout_seconds: float = 60.0,
        default_instance: str | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.registry = registry
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy()
        self.rate_limiter = rate_limiter
        self.on_limit_reached = OnLimitReached(on_limit_reached)
        self._max_wait_seconds = max_wait_seconds
        self._timeout_seconds = timeout_seconds
        self._message_timeout_seconds = message_timeout_seconds
        self._default_instance = default_instance or None
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        evolution: EvolutionSettings,
        rate_limit: RateLimitSettings | None = None,
        *,
        registry: ConnectionRegistry | None = None,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> ApiGateway:
        """Monta gateway a partir das settings (registry/limiter injetáveis)."""
        if rate_limiter is None and rate_limit is not None and rate_limit.enabled:
            rate_limiter = RateLimiter.from_settings(rate_limit)

        return cls(
            registry or ConnectionRegistry.from_settings(evolution),
            RetryingTransport(
                client,
                verify_ssl=evolution.verify_ssl,
                connect_timeout_seconds=evolution.connect_timeout_seconds,
            ),
            RetryPolicy.from_settings(evolution),
            rate_limiter,
            on_limit_reached=rate_limit.on_limit_reached if rate_limit else OnLimitReached.WAIT,
            max_wait_seconds=rate_limit.max_wait_seconds if rate_limit else 60,
            timeout_seconds=evolution.timeout_seconds,
            message_timeout_seconds=evolution.message_timeout_seconds,
            default_instance=evolution.default_instance,
        )

    async def call(
        self,
        connection_name: str | None,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        category: str | None = None,
        *,
        instance_name: str | None = None,
        query: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> OutboundResponse:
        """Executa chamada REST.

        Args:
            connection_name: Conexão nomeada (None = ativa)
            method: Verbo HTTP
            path: Path relativo (pode conter `{instance}`)
            body: Corpo JSON
            category: Categoria de rate limit (None = inferida do path)
            instance_name: Substitui `{instance}` no path
            query: Query string
            headers: Headers extras

        Returns:
            OutboundResponse (skipped=True quando a política skip barrou a chamada)

        Raises:
            ConnectionNotFoundError | InvalidConnectionConfigError: Conexão inválida
            RateLimitExceededError: Política throw, ou wait ainda barrado após espera
            TransportError: Falha de transporte após retries
            ApiError: Resposta de erro (AuthenticationError, InstanceNotFoundError)
            ValueError: `{instance}` no path sem instância
        """
        connection = (
            self.registry.resolve(connection_name)
            if connection_name
            else self.registry.active()
        )
        category = category or resolve_rate_limit_category(path)
        instance = instance_name or self._default_instance
        url = self._build_url(connection, path, instance)

        if not await self._acquire_slot(connection.name, category):
            return OutboundResponse.skipped_result()

        request = OutboundRequest(
            method=method.upper(),
            url=url,
            headers=self._build_headers(connection, headers),
            json=body if method.upper() != "GET" else None,
            params=query,
            timeout_seconds=(
                self._message_timeout_seconds
                if category in _TIMED_CATEGORIES
                else self._timeout_seconds
            ),
        )

        started = time.perf_counter()
        status_code = 0
        attempts = self.retry_policy.max_attempts
        try:
            response = await self.transport.send(request, self.retry_policy)
            status_code, attempts = response.status_code, response.attempts
        except ApiError as exc:
            status_code = exc.status_code
            exc.instance_name = exc.instance_name or instance
            raise
        finally:
            record_api_call(
                connection.name,
                request.method,
                category,
                status_code,
                attempts,
                (time.perf_counter() - started) * 1000,
            )

        if not response.is_success:
            raise build_api_error(response.status_code, response.body, instance)
        return response

    async def _acquire_slot(self, connection_name: str, category: str) -> bool:
        """Aplica a política de limite. Retorna False para skip."""
        if self.rate_limiter is None:
            return True

        decision = await self.rate_limiter.acquire(category, scope=connection_name)
        if decision.allowed:
            return True

        policy = self.on_limit_reached
        record_rate_limited(
            connection_name, category, policy.value, decision.retry_after_seconds
        )

        if policy is OnLimitReached.SKIP:
            return False
        if policy is OnLimitReached.THROW:
            raise RateLimitExceededError(decision.retry_after_seconds, category)

        await self._sleep(min(decision.retry_after_seconds, self._max_wait_seconds))
        retry = await self.rate_limiter.acquire(category, scope=connection_name)
        if not retry.allowed:
            raise RateLimitExceededError(retry.retry_after_seconds, category)
        return True

    @staticmethod
    def _build_url(connection: ConnectionConfig, path: str, instance: str | None) -> str:
        endpoint = path.lstrip("/")
        if INSTANCE_PLACEHOLDER in endpoint:
            if not instance:
                raise ValueError(f"Path {path} exige instance_name")
            endpoint = endpoint.replace(INSTANCE_PLACEHOLDER, instance)
        return f"{connection.server_url}/{endpoint}"

    @staticmethod
    def _build_headers(
        connection: ConnectionConfig,
        extra: dict[str, str] | None,
    ) -> dict[str, str]:
        return {
            "apikey": connection.api_key,
            "Accept": "application/json",
            "Content-Type": "application/json",
            **(extra or {}),
        }

    # ──────────────────────────────────────────────────────────────
    # Conveniências
    # ──────────────────────────────────────────────────────────────

    async def get(
        self,
        path: str,
        query: dict[str, Any] | None = None,
        *,
        connection_name: str | None = None,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        return await self.call(
            connection_name, "GET", path, query=query, instance_name=instance_name
        )

    async def post(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        connection_name: str | None = None,
        instance_name: str | None = None,
        category: str | None = None,
    ) -> OutboundResponse:
        return await self.call(
            connection_name, "POST", path, body, category, instance_name=instance_name
        )

    async def put(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        connection_name: str | None = None,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        return await self.call(
            connection_name, "PUT", path, body, instance_name=instance_name
        )

    async def delete(
        self,
        path: str,
        body: dict[str, Any] | None = None,
        *,
        connection_name: str | None = None,
        instance_name: str | None = None,
    ) -> OutboundResponse:
        return await self.call(
            connection_name, "DELETE", path, body, instance_name=instance_name
        )

    async def info(self, connection_name: str | None = None) -> dict[str, Any]:
        """Informações do servidor (GET /)."""
        response = await self.call(connection_name, "GET", "/")
        return response.body

    async def ping(self, connection_name: str | None = None) -> bool:
        """True se o servidor responde 2xx em GET /.

        Usado pelo readiness: não consome slot do rate limiter nem faz retry.
        """
        try:
            connection = (
                self.registry.resolve(connection_name)
                if connection_name
                else self.registry.active()
            )
            response = await self.transport.send(
                OutboundRequest(
                    method="GET",
                    url=self._build_url(connection, "/", None),
                    headers=self._build_headers(connection, None),
                    timeout_seconds=self._timeout_seconds,
                ),
                _PING_POLICY,
            )
        except Exception as exc:
            logger.warning("evolution_ping_failed", extra={"error_type": type(exc).__name__})
            return False
        return response.is_success

    async def aclose(self) -> None:
        await self.transport.aclose()
