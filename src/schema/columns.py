"""
Column and datasource definitions.

A ``Column`` pairs a name and a ClickHouse type string with a pydantic
``TypeAdapter`` that validates Python values destined for that column.
A schema is an ordered ``{name: Column}`` dict built by ``define_schema``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as _date, datetime
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Literal, Mapping, Optional, Sequence, Union
from uuid import UUID

from pydantic import (
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    create_model,
)

Engine = Literal["MergeTree", "ReplacingMergeTree", "SummingMergeTree", "AggregatingMergeTree"]
ENGINES: tuple[str, ...] = ("MergeTree", "ReplacingMergeTree", "SummingMergeTree", "AggregatingMergeTree")

Schema = dict[str, "Column"]


# ── Type-string → Python annotation ──────────────────────

_SCALAR_TYPES: dict[str, Any] = {
    "String": StrictStr,
    "Int8": StrictInt,
    "Int16": StrictInt,
    "Int32": StrictInt,
    "Int64": StrictInt,
    "UInt8": StrictInt,
    "UInt16": StrictInt,
    "UInt32": StrictInt,
    "UInt64": StrictInt,
    "Float32": Union[StrictInt, StrictFloat],
    "Float64": Union[StrictInt, StrictFloat],
    "Boolean": StrictBool,
    "Bool": StrictBool,
    "DateTime": Union[datetime, StrictStr, StrictInt],
    "DateTime64": Union[datetime, StrictStr, StrictInt],
    "Date": Union[_date, StrictStr],
    "UUID": UUID,
    "IPv4": IPv4Address,
    "IPv6": IPv6Address,
    "JSON": Any,
}


def split_type_args(args: str) -> list[str]:
    """Split ``"String, Map(String, Int64)"`` on top-level commas only."""
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in args:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
            continue
        current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def python_type(sql_type: str) -> Any:
    """Return the annotation used to validate values of *sql_type*."""
    sql_type = sql_type.strip()
    if sql_type in _SCALAR_TYPES:
        return _SCALAR_TYPES[sql_type]

    if "(" not in sql_type or not sql_type.endswith(")"):
        return Any

    wrapper, inner = sql_type.split("(", 1)
    args = split_type_args(inner[:-1])

    if wrapper == "Nullable":
        return Optional[python_type(args[0])]
    if wrapper == "LowCardinality":
        return python_type(args[0])
    if wrapper == "Array":
        return list[python_type(args[0])]
    if wrapper == "Map" and len(args) == 2:
        return dict[python_type(args[0]), python_type(args[1])]
    if wrapper == "Tuple":
        return tuple[tuple(python_type(a) for a in args)]
    if wrapper == "Nested":
        return dict[str, Any]
    if wrapper == "DateTime64":
        return _SCALAR_TYPES["DateTime64"]
    return Any


# ── Column ───────────────────────────────────────────────

@dataclass(frozen=True)
class Column:
    name: str
    type: str
    validator: TypeAdapter = field(compare=False, repr=False)
    json_path: str | None = None
    nullable: bool = False
    comment: str | None = None

    def validate(self, value: Any) -> Any:
        """Validate *value*; raises ``pydantic.ValidationError`` on mismatch."""
        return self.validator.validate_python(value)

    def is_valid(self, value: Any) -> bool:
        try:
            self.validate(value)
        except ValidationError:
            return False
        return True


def column(
    name: str,
    sql_type: str,
    annotation: Any = None,
    *,
    json_path: str | None = None,
    nullable: bool = False,
    comment: str | None = None,
) -> Column:
    """Generic column factory; *annotation* defaults to the one implied by *sql_type*."""
    if annotation is None:
        annotation = python_type(sql_type)
    return Column(
        name=name,
        type=sql_type,
        validator=TypeAdapter(annotation),
        json_path=json_path,
        nullable=nullable,
        comment=comment,
    )


def string(name: str, **options: Any) -> Column:
    return column(name, "String", **options)


def int32(name: str, **options: Any) -> Column:
    return column(name, "Int32", **options)


def int64(name: str, **options: Any) -> Column:
    return column(name, "Int64", **options)


def float64(name: str, **options: Any) -> Column:
    return column(name, "Float64", **options)


def boolean(name: str, **options: Any) -> Column:
    return column(name, "Boolean", **options)


def date_time(name: str, **options: Any) -> Column:
    return column(name, "DateTime64", **options)


def date(name: str, **options: Any) -> Column:
    return column(name, "Date", **options)


def uuid(name: str, **options: Any) -> Column:
    return column(name, "UUID", **options)


def json(name: str, **options: Any) -> Column:
    return column(name, "JSON", **options)


def ipv4(name: str, **options: Any) -> Column:
    return column(name, "IPv4", **options)


def ipv6(name: str, **options: Any) -> Column:
    return column(name, "IPv6", **options)


def array(name: str, inner_type: str = "String", **options: Any) -> Column:
    return column(name, f"Array({inner_type})", **options)


def map_(name: str, key_type: str = "String", value_type: str = "String", **options: Any) -> Column:
    return column(name, f"Map({key_type}, {value_type})", **options)


def tuple_(name: str, types: Sequence[str] = ("String", "String"), **options: Any) -> Column:
    return column(name, f"Tuple({', '.join(types)})", **options)


def nested(name: str, fields: Mapping[str, str], **options: Any) -> Column:
    """``Nested(a T, b U)``; values are validated as objects with those fields."""
    model = create_model(
        f"{name}_nested",
        **{field_name: (python_type(field_type), ...) for field_name, field_type in fields.items()},
    )
    inner = ", ".join(f"{k} {v}" for k, v in fields.items())
    return column(name, f"Nested({inner})", model, **options)


def low_cardinality(
    name: str,
    inner_type: str = "String",
    choices: Sequence[str] | None = None,
    **options: Any,
) -> Column:
    annotation = Literal[tuple(choices)] if choices else python_type(inner_type)
    return column(name, f"LowCardinality({inner_type})", annotation, **options)


def nullable(name: str, inner_type: str = "String", **options: Any) -> Column:
    options.setdefault("nullable", True)
    return column(name, f"Nullable({inner_type})", **options)


def define_schema(*columns: Column) -> Schema:
    """Ordered ``{name: Column}`` map, preserving argument order."""
    schema: Schema = {}
    for col in columns:
        if col.name in schema:
            raise ValueError(f"Duplicate column '{col.name}' in schema.")
        schema[col.name] = col
    return schema


def validate_row(schema: Mapping[str, Column], row: Mapping[str, Any]) -> list[str]:
    """Return a list of validation error messages (empty list = row is valid)."""
    errors: list[str] = []
    for name, col in schema.items():
        if name not in row or row[name] is None:
            if not col.nullable:
                errors.append(f"Column '{name}' is required.")
            continue
        try:
            col.validate(row[name])
        except ValidationError as exc:
            errors.append(f"Column '{name}' ({col.type}): {exc.errors()[0]['msg']}")
    for name in row:
        if name not in schema:
            errors.append(
                f"Unknown column '{name}'. Allowed: {', '.join(schema)}"
            )
    return errors


# ── Datasource ───────────────────────────────────────────

@dataclass
class DataSource:
    """A named, optionally versioned table definition with engine directives."""

    name: str
    schema: Schema
    engine: str = "MergeTree"
    sorting_key: list[str] = field(default_factory=list)
    partition_by: str | None = None
    ttl: str | None = None
    version: int | None = None


def define_datasource(
    name: str,
    schema: Schema,
    engine: Engine | str = "MergeTree",
    *,
    sorting_key: Sequence[str] | None = None,
    partition_by: str | None = None,
    ttl: str | None = None,
    version: int | None = None,
) -> DataSource:
    if engine not in ENGINES:
        raise ValueError(f"Unknown engine '{engine}'. Allowed: {', '.join(ENGINES)}")
    return DataSource(
        name=name,
        schema=schema,
        engine=engine,
        sorting_key=list(sorting_key or []),
        partition_by=partition_by,
        ttl=ttl,
        version=version,
    )
