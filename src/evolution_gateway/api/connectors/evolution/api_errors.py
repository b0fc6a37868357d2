"""Mapeamento de respostas de erro da Evolution API para exceções."""

from __future__ import annotations

from typing import Any

from evolution_gateway.utils.errors import (
    ApiError,
    AuthenticationError,
    InstanceNotFoundError,
)


def extract_error_message(body: dict[str, Any]) -> str | None:
    """Extrai mensagem legível do corpo de erro.

    A Evolution responde em formatos variados:
    {"message": "..."}, {"error": "..."} ou
    {"status": 400, "error": "Bad Request", "response": {"message": [...]}}.
    """
    response = body.get("response")
    if isinstance(response, dict):
        nested = response.get("message")
        if isinstance(nested, list) and nested:
            return "; ".join(str(item) for item in nested)
        if isinstance(nested, str) and nested:
            return nested

    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def build_api_error(
    status_code: int,
    body: dict[str, Any],
    instance_name: str | None = None,
) -> ApiError:
    """Cria a exceção adequada ao status.

    401 -> AuthenticationError; 404 -> InstanceNotFoundError; demais -> ApiError.
    """
    detail = extract_error_message(body)
    message = f"Evolution API HTTP {status_code}" + (f": {detail}" if detail else "")

    if status_code == 401:
        return AuthenticationError(status_code, body, message, instance_name)
    if status_code == 404:
        return InstanceNotFoundError(status_code, body, message, instance_name)
    return ApiError(status_code, body, message, instance_name)
