"""Testes de mascaramento de dados sensíveis."""

from __future__ import annotations

from evolution_gateway.utils.redaction import REDACTED, mask_key, redact_sensitive


def test_redacts_nested_fields_case_insensitive() -> None:
    data = {
        "number": "5511",
        "ApiKey": "k",
        "webhook": {"headers": [{"token": "t"}], "url": "https://x"},
    }

    result = redact_sensitive(data)

    assert result["number"] == "5511"
    assert result["ApiKey"] == REDACTED
    assert result["webhook"]["headers"][0]["token"] == REDACTED
    assert result["webhook"]["url"] == "https://x"
    assert data["ApiKey"] == "k"


def test_custom_fields() -> None:
    assert redact_sensitive({"number": "5511"}, {"number"}) == {"number": REDACTED}


def test_mask_key() -> None:
    assert mask_key("abcdef123") == "abcd..."
    assert mask_key("abc") == "***"
