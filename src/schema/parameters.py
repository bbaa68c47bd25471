"""
Pipe parameter definitions and runtime validation of supplied values.

A parameter is one of three kinds, which decides how it is compiled into the
pipe template:

  required     -- must be supplied by the caller
  defaulted    -- has an explicit default (``None`` counts as a default)
  conditional  -- neither; the SQL fragment using it is emitted only when
                  the caller defines it
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal, Mapping, Optional, Sequence, Union

from pydantic import (
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    create_model,
)

ParameterType = Literal["String", "Int64", "Float64", "DateTime", "Date", "Boolean"]


class _Unset:
    """Sentinel for 'no default given' (``None`` is a real default)."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()

_ANNOTATIONS: dict[str, Any] = {
    "String": StrictStr,
    "Int64": StrictInt,
    "Float64": Union[StrictInt, StrictFloat],
    "DateTime": Union[datetime, StrictStr, StrictInt],
    "Date": Union[date, StrictStr],
    "Boolean": StrictBool,
}


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str
    annotation: Any = field(compare=False, repr=False)
    required: bool = False
    default: Any = UNSET
    choices: tuple[str, ...] | None = None

    @property
    def has_default(self) -> bool:
        return self.default is not UNSET

    @property
    def is_conditional(self) -> bool:
        return not self.required and not self.has_default

    @property
    def validator(self) -> TypeAdapter:
        return TypeAdapter(self.annotation)


def _param(
    name: str,
    type_: str,
    annotation: Any = None,
    required: bool = False,
    default: Any = UNSET,
    choices: Sequence[str] | None = None,
) -> Parameter:
    return Parameter(
        name=name,
        type=type_,
        annotation=annotation if annotation is not None else _ANNOTATIONS[type_],
        required=required,
        default=default,
        choices=tuple(choices) if choices is not None else None,
    )


def string_param(name: str, *, required: bool = False, default: Any = UNSET) -> Parameter:
    return _param(name, "String", required=required, default=default)


def int64_param(name: str, *, required: bool = False, default: Any = UNSET) -> Parameter:
    return _param(name, "Int64", required=required, default=default)


def float64_param(name: str, *, required: bool = False, default: Any = UNSET) -> Parameter:
    return _param(name, "Float64", required=required, default=default)


def date_time_param(name: str, *, required: bool = False, default: Any = UNSET) -> Parameter:
    return _param(name, "DateTime", required=required, default=default)


def date_param(name: str, *, required: bool = False, default: Any = UNSET) -> Parameter:
    return _param(name, "Date", required=required, default=default)


def boolean_param(name: str, *, required: bool = False, default: Any = UNSET) -> Parameter:
    return _param(name, "Boolean", required=required, default=default)


def enum_param(
    name: str,
    values: Sequence[str],
    *,
    required: bool = False,
    default: Any = UNSET,
) -> Parameter:
    """String parameter restricted to *values*; always compiled as ``String``."""
    if not values:
        raise ValueError(f"Enum parameter '{name}' needs at least one value.")
    return _param(name, "String", Literal[tuple(values)], required, default, values)


def define_parameters(*params: Parameter) -> dict[str, Parameter]:
    """Ordered ``{name: Parameter}`` map, preserving argument order."""
    result: dict[str, Parameter] = {}
    for p in params:
        if p.name in result:
            raise ValueError(f"Duplicate parameter '{p.name}'.")
        result[p.name] = p
    return result


def apply_defaults(parameters: Mapping[str, Parameter], values: Mapping[str, Any] | None) -> dict[str, Any]:
    """Fill unset values from parameter defaults."""
    result = dict(values or {})
    for key, p in parameters.items():
        if p.has_default and result.get(key) is None:
            result[key] = p.default
    return result


# ── Runtime validation ──────────────────────────────────

@dataclass
class ParameterValidation:
    success: bool
    data: dict[str, Any] | None = None
    errors: list[str] = field(default_factory=list)


def parameters_model(parameters: Mapping[str, Parameter]) -> type:
    """Build a pydantic model whose fields mirror *parameters*."""
    fields: dict[str, Any] = {}
    for key, p in parameters.items():
        if p.required:
            fields[key] = (p.annotation, ...)
        elif p.has_default:
            fields[key] = (Optional[p.annotation], p.default)
        else:
            fields[key] = (Optional[p.annotation], None)
    return create_model("PipeParameters", **fields)


def validate_parameters(
    parameters: Mapping[str, Parameter],
    values: Mapping[str, Any] | None,
) -> ParameterValidation:
    """Validate caller-supplied *values*; never raises.

    ``data`` holds only the keys the caller supplied (defaults are applied
    separately by ``apply_defaults``).
    """
    model = parameters_model(parameters)
    try:
        instance = model(**dict(values or {}))
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        return ParameterValidation(success=False, errors=errors)
    return ParameterValidation(success=True, data=instance.model_dump(exclude_unset=True))
