"""
Literal escaping for values interpolated into generated SQL.

Strings that already look like SQL expressions (function calls, template
tokens such as ``{{ String(name) }}``) pass through untouched; every other
string is single-quoted with embedded quotes doubled.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any

_EXPRESSION_CHARS = frozenset("(){}")


class UnsupportedValueType(TypeError):
    """Raised when a value has no SQL literal representation."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(
            f"Cannot escape value of type '{type(value).__name__}'. "
            f"Allowed: None, bool, int, float, Decimal, str"
        )


def looks_like_expression(text: str) -> bool:
    return any(ch in _EXPRESSION_CHARS for ch in text)


def escape(value: Any) -> str:
    """Return *value* rendered as SQL literal text."""
    if value is None:
        return "NULL"
    # bool before int: True is an int
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        if looks_like_expression(value):
            return value
        return "'" + value.replace("'", "''") + "'"
    raise UnsupportedValueType(value)
