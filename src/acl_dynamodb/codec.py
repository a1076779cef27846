"""
acl_dynamodb.codec — Storage-safe encoding for logical keys and value names.

Strings are percent-escaped the way a URI component is, and literal periods
are escaped as %2E because DynamoDB treats '.' as a nested-attribute path
separator. Non-string values pass through untouched.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from urllib.parse import quote, unquote

# Characters a URI component encoder leaves alone besides [A-Za-z0-9_.~-].
_URI_COMPONENT_SAFE = "!*'()"


def encode_text(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return quote(value, safe=_URI_COMPONENT_SAFE).replace(".", "%2E")


def decode_text(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return unquote(value)


def encode_all(values: Iterable[Any]) -> list[Any]:
    return [encode_text(v) for v in values]


def decode_keys(item: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a stored row with every attribute name decoded."""
    return {decode_text(name): value for name, value in item.items()}
