"""
ClickHouse function shorthands and comparison operators for the query builder.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

Granularity = Literal["1m", "1h", "1d", "1w", "1M"]


# ── Comparison operators ─────────────────────────────────

@dataclass(frozen=True)
class Comparison:
    """Operator/value pair consumed by ``where(column, operator)``."""
    op: str
    value: Any


def eq(value: Any) -> Comparison:
    return Comparison("=", value)


def neq(value: Any) -> Comparison:
    return Comparison("!=", value)


def gt(value: Any) -> Comparison:
    return Comparison(">", value)


def gte(value: Any) -> Comparison:
    return Comparison(">=", value)


def lt(value: Any) -> Comparison:
    return Comparison("<", value)


def lte(value: Any) -> Comparison:
    return Comparison("<=", value)


# ── Aggregates ───────────────────────────────────────────

def count() -> str:
    return "count()"


def sum_(column: str) -> str:
    return f"sum({column})"


def avg(column: str) -> str:
    return f"avg({column})"


def min_(column: str) -> str:
    return f"min({column})"


def max_(column: str) -> str:
    return f"max({column})"


# ── Time bucketing ───────────────────────────────────────

def to_start_of_minute(column: str) -> str:
    return f"toStartOfMinute({column})"


def to_start_of_hour(column: str) -> str:
    return f"toStartOfHour({column})"


def to_start_of_day(column: str) -> str:
    return f"toStartOfDay({column})"


def to_start_of_week(column: str) -> str:
    return f"toStartOfWeek({column})"


def to_start_of_month(column: str) -> str:
    return f"toStartOfMonth({column})"


def from_unix_timestamp64_milli(column: str) -> str:
    return f"fromUnixTimestamp64Milli({column})"


def to_unix_timestamp64_milli(column: str) -> str:
    return f"toUnixTimestamp64Milli({column})"


_GRANULARITY_FUNCS = {
    "1m": to_start_of_minute,
    "1h": to_start_of_hour,
    "1d": to_start_of_day,
    "1w": to_start_of_week,
    "1M": to_start_of_month,
}


def time_granularity(column: str, granularity: Granularity | str) -> str:
    """Bucket *column* to the given granularity; unknown granularities leave it as-is."""
    fn = _GRANULARITY_FUNCS.get(granularity)
    return fn(column) if fn else column


# ── Misc ─────────────────────────────────────────────────

def conditional(condition: str, when_true: str, when_false: str) -> str:
    return f"if({condition}, {when_true}, {when_false})"


def param(name: str, type_: str = "String", required: bool = False) -> str:
    """Hand-written template token, e.g. ``{{ String(tenant_id, required=True) }}``."""
    suffix = ", required=True" if required else ""
    return f"{{{{ {type_}({name}{suffix}) }}}}"
