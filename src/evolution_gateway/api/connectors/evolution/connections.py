"""Registro de conexões nomeadas com servidores Evolution API.

Resolução (em ordem):
1. Overrides de runtime (`add_runtime`), válidos pelo tempo de vida do processo
2. Conexões estáticas já resolvidas (cache)
3. Configuração estática (validada, normalizada e cacheada)

A conexão legada (EVOLUTION_API_URL + EVOLUTION_API_KEY) vira "default" e tem
precedência sobre `connections.default`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from evolution_gateway.utils.errors import (
    ConnectionNotFoundError,
    InvalidConnectionConfigError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from evolution_gateway.config.settings import EvolutionSettings

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION = "default"


@dataclass(frozen=True)
class ConnectionConfig:
    """Servidor Evolution resolvido.

    Attributes:
        name: Nome lógico da conexão
        server_url: URL absoluta http(s), sem barra final
        api_key: API key global do servidor
    """

    name: str
    server_url: str
    api_key: str

    def __repr__(self) -> str:
        return f"ConnectionConfig(name={self.name!r}, server_url={self.server_url!r})"


def normalize_connection(
    name: str,
    server_url: str | None,
    api_key: str | None,
) -> ConnectionConfig:
    """Valida e normaliza uma conexão.

    Raises:
        InvalidConnectionConfigError: server_url vazio/malformado ou api_key vazia
    """
    url = (server_url or "").strip()
    key = (api_key or "").strip()

    if not url:
        raise InvalidConnectionConfigError(name, "server_url vazio")
    if not key:
        raise InvalidConnectionConfigError(name, "api_key vazia")

    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise InvalidConnectionConfigError(name, "server_url malformado") from exc

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise InvalidConnectionConfigError(name, "server_url deve ser http(s) absoluto")

    return ConnectionConfig(name=name, server_url=url.rstrip("/"), api_key=key)


class ConnectionRegistry:
    """Resolve conexões nomeadas e mantém a conexão ativa."""

    def __init__(
        self,
        static_connections: Mapping[str, Mapping[str, str]] | None = None,
        *,
        active: str = DEFAULT_CONNECTION,
    ) -> None:
        self._static: dict[str, dict[str, str]] = {
            name: dict(entry) for name, entry in (static_connections or {}).items()
        }
        self._resolved: dict[str, ConnectionConfig] = {}
        self._runtime: dict[str, ConnectionConfig] = {}
        self._active = active

    @classmethod
    def from_settings(cls, settings: EvolutionSettings) -> ConnectionRegistry:
        """Cria registry a partir de EvolutionSettings (legado vira "default")."""
        static = {name: dict(entry) for name, entry in settings.connections.items()}
        if settings.has_legacy_connection:
            static[DEFAULT_CONNECTION] = {
                "server_url": settings.server_url,
                "api_key": settings.api_key,
            }
        return cls(static)

    @property
    def active_name(self) -> str:
        return self._active

    def active(self) -> ConnectionConfig:
        """Resolve a conexão ativa."""
        return self.resolve(self._active)

    def resolve(self, name: str) -> ConnectionConfig:
        """Resolve conexão pelo nome.

        Raises:
            ConnectionNotFoundError: Nome desconhecido
            InvalidConnectionConfigError: Configuração estática inválida
        """
        runtime = self._runtime.get(name)
        if runtime is not None:
            return runtime

        cached = self._resolved.get(name)
        if cached is not None:
            return cached

        entry = self._static.get(name)
        if entry is None:
            raise ConnectionNotFoundError(name)

        config = normalize_connection(name, entry.get("server_url"), entry.get("api_key"))
        self._resolved[name] = config
        return config

    def set_active(self, name: str) -> None:
        """Troca a conexão ativa (resolve antes, falha cedo)."""
        self.resolve(name)
        self._active = name
        logger.info("evolution_connection_activated", extra={"connection": name})

    def add_runtime(
        self,
        name: str,
        config: Mapping[str, str] | ConnectionConfig,
    ) -> ConnectionConfig:
        """Registra override de runtime; sobrepõe conexão estática de mesmo nome.

        Args:
            name: Nome lógico da conexão
            config: Mapping {server_url, api_key} ou ConnectionConfig
        """
        if isinstance(config, ConnectionConfig):
            server_url, api_key = config.server_url, config.api_key
        else:
            server_url, api_key = config.get("server_url"), config.get("api_key")
        resolved = normalize_connection(name, server_url, api_key)
        self._runtime[name] = resolved
        logger.info(
            "evolution_connection_added",
            extra={"connection": name, "shadows_static": name in self._static},
        )
        return resolved

    def remove(self, name: str) -> None:
        """Remove override de runtime. Se era a ativa, volta para "default"."""
        self._runtime.pop(name, None)
        if self._active == name:
            self._active = DEFAULT_CONNECTION

    def has(self, name: str) -> bool:
        return name in self._runtime or name in self._static

    def available_connections(self) -> list[str]:
        """Nomes resolvíveis (estáticos + runtime), ordenados."""
        return sorted(set(self._static) | set(self._runtime))

    def purge(self) -> None:
        """Limpa caches e overrides; ativa volta para "default"."""
        self._resolved.clear()
        self._runtime.clear()
        self._active = DEFAULT_CONNECTION
