"""Mascaramento de campos sensíveis antes de logar payloads.

Chaves de API, tokens e secrets nunca devem chegar aos logs.
A comparação de nomes de campo é case-insensitive e recursiva.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Final

DEFAULT_SENSITIVE_FIELDS: Final[frozenset[str]] = frozenset(
    {"apikey", "api_key", "token", "password", "secret"}
)

REDACTED: Final[str] = "[REDACTED]"


def redact_sensitive(
    data: Any,
    sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS,
) -> Any:
    """Retorna cópia de `data` com campos sensíveis mascarados.

    Args:
        data: Dict, lista ou valor escalar.
        sensitive_fields: Nomes de campos a mascarar.

    Returns:
        Estrutura equivalente com valores sensíveis trocados por ``[REDACTED]``.

    Exemplo:
        >>> redact_sensitive({"apikey": "k", "number": "5511"})
        {'apikey': '[REDACTED]', 'number': '5511'}
    """
    fields = {field.lower() for field in sensitive_fields}
    return _redact(data, fields)


def _redact(value: Any, fields: set[str]) -> Any:
    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in fields else _redact(item, fields)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [_redact(item, fields) for item in value]
    return value


def mask_key(value: str, visible: int = 4) -> str:
    """Mascara identificador mantendo apenas o prefixo (ex.: api keys em logs)."""
    if len(value) <= visible:
        return "*" * len(value)
    return value[:visible] + "..."
