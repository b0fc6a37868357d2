"""Settings de acesso à Evolution API.

Conexões nomeadas (multi-servidor), timeouts HTTP e política de retry.

Conexões:
- Campos legados EVOLUTION_API_URL + EVOLUTION_API_KEY definem a conexão
  "default" e têm precedência sobre `connections.default`.
- EVOLUTION_CONNECTIONS_FILE aponta para YAML com conexões adicionais:

    connections:
      secondary:
        server_url: https://evo2.example.com
        api_key: xyz
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

DEFAULT_RETRYABLE_STATUS_CODES: tuple[int, ...] = (408, 429, 500, 502, 503, 504)
VALID_BACKOFF_STRATEGIES = frozenset({"fixed", "linear", "exponential"})


@dataclass(frozen=True)
class EvolutionSettings:
    """Configurações de conexão e transporte.

    Attributes:
        server_url: URL da conexão legada "default"
        api_key: API key global da conexão legada
        default_instance: Instância usada quando o chamador não informa uma
        connections: Conexões nomeadas {nome: {server_url, api_key}}
        timeout_seconds: Timeout por tentativa
        connect_timeout_seconds: Timeout de conexão TCP/TLS
        message_timeout_seconds: Timeout por tentativa para envio de mensagens/mídia
        verify_ssl: Verifica certificado TLS
        retry_enabled: Desliga retries quando False (max_attempts efetivo = 1)
        retry_max_attempts: Tentativas totais, incluindo a primeira
        retry_backoff: fixed|linear|exponential
        retry_base_delay_ms: Delay base entre tentativas
        retry_max_delay_ms: Teto do delay exponencial
        retryable_status_codes: Status HTTP tratados como falha transitória
    """

    server_url: str = ""
    api_key: str = ""
    default_instance: str = ""
    connections: dict[str, dict[str, str]] = field(default_factory=dict)

    timeout_seconds: float = 30.0
    connect_timeout_seconds: float = 10.0
    message_timeout_seconds: float = 60.0
    verify_ssl: bool = True

    retry_enabled: bool = True
    retry_max_attempts: int = 3
    retry_backoff: str = "exponential"
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 30000
    retryable_status_codes: tuple[int, ...] = DEFAULT_RETRYABLE_STATUS_CODES

    @property
    def has_legacy_connection(self) -> bool:
        return bool(self.server_url and self.api_key)

    @property
    def effective_max_attempts(self) -> int:
        return self.retry_max_attempts if self.retry_enabled else 1

    def validate(self) -> list[str]:
        """Valida configurações mínimas.

        Returns:
            Lista de erros de validação (vazia = tudo OK).
        """
        errors: list[str] = []

        if not self.has_legacy_connection and "default" not in self.connections:
            errors.append(
                "Conexão default ausente: configure EVOLUTION_API_URL e "
                "EVOLUTION_API_KEY ou connections.default"
            )

        if self.timeout_seconds <= 0:
            errors.append("EVOLUTION_HTTP_TIMEOUT deve ser > 0")

        if self.message_timeout_seconds <= 0:
            errors.append("EVOLUTION_HTTP_MESSAGE_TIMEOUT deve ser > 0")

        if self.retry_max_attempts < 1:
            errors.append("EVOLUTION_RETRY_MAX_ATTEMPTS deve ser >= 1")

        if self.retry_backoff not in VALID_BACKOFF_STRATEGIES:
            errors.append(
                "EVOLUTION_RETRY_BACKOFF deve ser 'fixed', 'linear' ou 'exponential'"
            )

        if self.retry_base_delay_ms < 0 or self.retry_max_delay_ms < 0:
            errors.append("Delays de retry não podem ser negativos")

        return errors


def load_connections_file(path: str | Path) -> dict[str, dict[str, str]]:
    """Carrega conexões nomeadas de um YAML.

    Args:
        path: Caminho do arquivo YAML

    Returns:
        Dict {nome: {"server_url": ..., "api_key": ...}}

    Raises:
        FileNotFoundError: Se o arquivo não existe
        ValueError: Se o YAML não tem o formato esperado
    """
    yaml_path = Path(path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Arquivo de conexões não encontrado: {yaml_path}")

    with yaml_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return _parse_connections(data)


def _parse_connections(data: Any) -> dict[str, dict[str, str]]:
    if not isinstance(data, dict):
        raise ValueError("Arquivo de conexões deve ser um mapeamento")

    raw_connections = data.get("connections", {}) or {}
    if not isinstance(raw_connections, dict):
        raise ValueError("`connections` deve ser um mapeamento nome -> config")

    connections: dict[str, dict[str, str]] = {}
    for name, entry in raw_connections.items():
        if not isinstance(entry, dict):
            raise ValueError(f"Conexão {name} deve ser um mapeamento")
        connections[str(name)] = {
            "server_url": str(entry.get("server_url") or ""),
            "api_key": str(entry.get("api_key") or ""),
        }
    return connections


def _parse_status_codes(raw: str | None) -> tuple[int, ...]:
    if not raw:
        return DEFAULT_RETRYABLE_STATUS_CODES
    return tuple(int(code.strip()) for code in raw.split(",") if code.strip())


def _load_from_env() -> EvolutionSettings:
    """Carrega EvolutionSettings a partir de variáveis de ambiente."""
    connections_file = os.getenv("EVOLUTION_CONNECTIONS_FILE", "")
    connections = load_connections_file(connections_file) if connections_file else {}

    return EvolutionSettings(
        server_url=os.getenv("EVOLUTION_API_URL", ""),
        api_key=os.getenv("EVOLUTION_API_KEY", ""),
        default_instance=os.getenv("EVOLUTION_DEFAULT_INSTANCE", ""),
        connections=connections,
        timeout_seconds=float(os.getenv("EVOLUTION_HTTP_TIMEOUT", "30")),
        connect_timeout_seconds=float(os.getenv("EVOLUTION_HTTP_CONNECT_TIMEOUT", "10")),
        message_timeout_seconds=float(os.getenv("EVOLUTION_HTTP_MESSAGE_TIMEOUT", "60")),
        verify_ssl=os.getenv("EVOLUTION_VERIFY_SSL", "true").lower() in ("true", "1"),
        retry_enabled=os.getenv("EVOLUTION_RETRY_ENABLED", "true").lower() in ("true", "1"),
        retry_max_attempts=int(os.getenv("EVOLUTION_RETRY_MAX_ATTEMPTS", "3")),
        retry_backoff=os.getenv("EVOLUTION_RETRY_BACKOFF", "exponential").lower(),
        retry_base_delay_ms=int(os.getenv("EVOLUTION_RETRY_BASE_DELAY_MS", "1000")),
        retry_max_delay_ms=int(os.getenv("EVOLUTION_RETRY_MAX_DELAY_MS", "30000")),
        retryable_status_codes=_parse_status_codes(
            os.getenv("EVOLUTION_RETRY_STATUS_CODES")
        ),
    )


@lru_cache(maxsize=1)
def get_evolution_settings() -> EvolutionSettings:
    """Retorna instância cacheada de EvolutionSettings."""
    return _load_from_env()
