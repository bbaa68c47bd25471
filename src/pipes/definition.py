"""
Pipe definitions: a named, optionally versioned, parametrized query.

    pipe = define_pipe("top_events", schema=events, parameters=params).endpoint(
        lambda q, p: q.select("event").from_("events").where("tenant_id", eq(p["tenant_id"]))
    )

``pipe.template_body()`` yields the body compiled to template tokens (used for
the ``.pipe`` artifact); ``pipe.render(values)`` yields concrete SQL for one
set of caller values.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from src.pipes.template import QueryFn, compile_body, finalize_body
from src.query.builder import QueryBuilder, query
from src.schema.parameters import Parameter, apply_defaults, validate_parameters
from src.core.logging import get_logger

logger = get_logger(__name__)


class PipeParameterError(ValueError):
    """Caller-supplied values do not satisfy the pipe's parameter definitions."""

    def __init__(self, pipe_name: str, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid parameters for pipe '{pipe_name}': {'; '.join(errors)}")


@dataclass
class Pipe:
    name: str
    parameters: dict[str, Parameter] = field(default_factory=dict)
    schema: Any = None
    version: int | None = None
    query_fn: QueryFn | None = None
    raw_sql: str | None = None

    @property
    def is_raw(self) -> bool:
        return self.query_fn is None

    def template_body(self, *, strict: bool | None = None) -> str:
        if self.is_raw:
            return finalize_body(self.raw_sql or "", self.parameters, strict=strict)
        return compile_body(self.parameters, self.query_fn, self.schema, strict=strict)

    def render(self, values: Mapping[str, Any] | None = None) -> str:
        """Concrete SQL for *values*; raises ``PipeParameterError`` if they are invalid."""
        result = validate_parameters(self.parameters, values)
        if not result.success:
            raise PipeParameterError(self.name, result.errors)
        if self.is_raw:
            return self.raw_sql or ""
        params = apply_defaults(self.parameters, result.data)
        built = self.query_fn(query(self.schema), params)
        sql = built.build() if isinstance(built, QueryBuilder) else str(built)
        logger.debug("Rendered pipe %s with %d value(s)", self.name, len(params))
        return sql


class PipeBuilder:
    """Second step of ``define_pipe``: choose a builder query or raw SQL."""

    def __init__(
        self,
        name: str,
        schema: Any,
        parameters: Mapping[str, Parameter],
        version: int | None = None,
    ):
        self.name = name
        self.schema = schema
        self.parameters = dict(parameters)
        self.version = version

    def endpoint(self, query_fn: QueryFn) -> Pipe:
        return Pipe(
            name=self.name,
            parameters=self.parameters,
            schema=self.schema,
            version=self.version,
            query_fn=query_fn,
        )

    def raw(self, sql: str) -> Pipe:
        return Pipe(
            name=self.name,
            parameters=self.parameters,
            schema=self.schema,
            version=self.version,
            raw_sql=sql,
        )


def define_pipe(
    name: str,
    *,
    schema: Any = None,
    parameters: Mapping[str, Parameter] | None = None,
    version: int | None = None,
) -> PipeBuilder:
    return PipeBuilder(name, schema, parameters or {}, version)
