"""
Pipe parameter template compiler.

Turns a parameter map plus a query function into the SQL body of a pipe,
written in the platform's runtime template syntax:

  required     ->  {{ String(tenant_id, required=True) }}
  defaulted    ->  {{ Int64(limit, 100) }}
  conditional  ->  {% if defined(status) %}{{ String(status) }}{% end %}

The query function is called once with placeholder tokens instead of real
values.  Afterwards the rendered body is scanned token by token; matching is
keyed on the exact parameter name, so ``user`` never touches ``user_id``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Mapping

from src.core.config import get_settings
from src.core.logging import get_logger
from src.query.builder import QueryBuilder, query
from src.schema.parameters import Parameter

logger = get_logger(__name__)

TEMPLATE_TYPES: tuple[str, ...] = ("String", "Int64", "UInt64", "Float64", "DateTime", "Date", "Boolean")

QueryFn = Callable[[QueryBuilder, dict[str, str]], "QueryBuilder | str"]

_TOKEN_OPEN = "{{"
_TOKEN_CLOSE = "}}"
_BLOCK_END = "{% end %}"

# Applied to the inside of a single {{ ... }} span only.
_CALL_RE = re.compile(r"^\s*(?P<func>\w+)\(\s*(?P<name>\w+)\s*(?:,(?P<args>.*))?\)\s*$", re.DOTALL)


class UnknownParameterReference(ValueError):
    """A template token names a parameter the pipe does not declare."""

    def __init__(self, names: list[str], declared: list[str]):
        self.names = names
        super().__init__(
            f"Unknown parameter reference(s): {', '.join(names)}. "
            f"Declared: {', '.join(declared) or '(none)'}"
        )


# ── Type mapping / defaults ──────────────────────────────

def template_type(sql_type: str) -> str:
    """Map a column SQL type to the template function used for it."""
    sql_type = sql_type.strip()
    if sql_type.startswith("Nullable(") and sql_type.endswith(")"):
        return template_type(sql_type[len("Nullable("):-1])
    if sql_type in ("Int8", "Int16", "Int32", "Int64"):
        return "Int64"
    if sql_type in ("UInt8", "UInt16", "UInt32", "UInt64"):
        return "UInt64"
    if sql_type in ("Float32", "Float64"):
        return "Float64"
    if sql_type in ("DateTime", "DateTime64") or sql_type.startswith("DateTime64("):
        return "DateTime"
    if sql_type in ("Date", "Boolean"):
        return sql_type
    # UUID, JSON, IPs, Array/Map/Tuple/Nested/LowCardinality and unknowns
    return "String"


def _quote(text: str) -> str:
    # Template arguments are Python-style literals, not SQL ones.
    escaped = text.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def format_default(value: Any, param_type: str) -> str:
    if value is None:
        return "null"
    if param_type == "Boolean" or isinstance(value, bool):
        return "true" if value else "false"
    if param_type in ("DateTime", "Date"):
        if isinstance(value, (datetime, date)):
            return _quote(value.isoformat())
        return _quote(str(value))
    if param_type == "String":
        return _quote(str(value))
    return str(value)


def placeholder(name: str, parameter: Parameter) -> str:
    """Template token standing in for *parameter* inside the query body."""
    type_ = template_type(parameter.type)
    if parameter.required:
        return f"{{{{ {type_}({name}, required=True) }}}}"
    if parameter.has_default:
        return f"{{{{ {type_}({name}, {format_default(parameter.default, type_)}) }}}}"
    return f"{{{{ {type_}({name}) }}}}"


def template_params(parameters: Mapping[str, Parameter]) -> dict[str, str]:
    return {key: placeholder(key, p) for key, p in parameters.items()}


# ── Token scanner ────────────────────────────────────────

@dataclass(frozen=True)
class TemplateToken:
    start: int
    end: int  # exclusive
    text: str
    func: str | None = None
    name: str | None = None
    args: str | None = None

    @property
    def is_bare(self) -> bool:
        """``{{ T(name) }}`` with no extra arguments."""
        return self.name is not None and self.args is None


def scan_tokens(text: str) -> list[TemplateToken]:
    """Locate every ``{{ ... }}`` span in *text*, in order."""
    tokens: list[TemplateToken] = []
    pos = 0
    while True:
        start = text.find(_TOKEN_OPEN, pos)
        if start == -1:
            break
        close = text.find(_TOKEN_CLOSE, start + len(_TOKEN_OPEN))
        if close == -1:
            break
        end = close + len(_TOKEN_CLOSE)
        inner = text[start + len(_TOKEN_OPEN):close]
        m = _CALL_RE.match(inner)
        if m:
            args = m.group("args")
            tokens.append(TemplateToken(
                start=start,
                end=end,
                text=text[start:end],
                func=m.group("func"),
                name=m.group("name"),
                args=args.strip() if args is not None else None,
            ))
        else:
            tokens.append(TemplateToken(start=start, end=end, text=text[start:end]))
        pos = end
    return tokens


def guard(name: str) -> str:
    return f"{{% if defined({name}) %}}"


def wrap_conditionals(body: str, parameters: Mapping[str, Parameter]) -> str:
    """Wrap each bare token of a conditional parameter in an ``if defined`` block."""
    conditional = {key for key, p in parameters.items() if p.is_conditional}
    if not conditional:
        return body

    out: list[str] = []
    pos = 0
    for token in scan_tokens(body):
        if not token.is_bare or token.name not in conditional:
            continue
        opening = guard(token.name)
        already_wrapped = (
            body[:token.start].endswith(opening) and body[token.end:].startswith(_BLOCK_END)
        )
        out.append(body[pos:token.start])
        out.append(token.text if already_wrapped else f"{opening}{token.text}{_BLOCK_END}")
        pos = token.end
    out.append(body[pos:])
    return "".join(out)


def unknown_references(body: str, parameters: Mapping[str, Parameter]) -> list[str]:
    """Names used in typed tokens of *body* that are not declared parameters."""
    unknown: list[str] = []
    for token in scan_tokens(body):
        if token.func in TEMPLATE_TYPES and token.name not in parameters and token.name not in unknown:
            unknown.append(token.name)
    return unknown


# ── Compilation ──────────────────────────────────────────

def finalize_body(body: str, parameters: Mapping[str, Parameter], *, strict: bool | None = None) -> str:
    """Check token references and apply conditional wrapping to a rendered body."""
    if strict is None:
        strict = get_settings().strict_template_params
    unknown = unknown_references(body, parameters)
    if unknown:
        if strict:
            raise UnknownParameterReference(unknown, list(parameters))
        logger.warning("Template references undeclared parameters: %s", unknown)
    return wrap_conditionals(body, parameters)


def compile_body(
    parameters: Mapping[str, Parameter],
    query_fn: QueryFn,
    schema: Any = None,
    *,
    strict: bool | None = None,
) -> str:
    """Render *query_fn* against placeholder tokens and return the template body."""
    tokens = template_params(parameters)
    result = query_fn(query(schema), tokens)
    body = result.build() if isinstance(result, QueryBuilder) else str(result)
    return finalize_body(body, parameters, strict=strict)
