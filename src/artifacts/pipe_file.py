"""
Pipe artifact emitter.

Wraps a compiled template body into the ``.pipe`` text::

    VERSION 3

    NODE endpoint
    SQL >
        %
        SELECT count() AS total
        FROM events
        WHERE tenant_id = {{ String(tenant_id, required=True) }}
"""
from __future__ import annotations

import re
from typing import Any

from src.pipes.definition import Pipe
from src.schema.parameters import Parameter
from src.core.config import ARTIFACT_INDENT, PIPE_NODE_NAME
from src.core.logging import get_logger
from src.core.utils import indent_block, timer

logger = get_logger(__name__)

_TABLE_REF_RE = re.compile(r"\b(?:FROM|JOIN)\s+(\w+)", re.IGNORECASE)

_SAMPLE_VALUES: dict[str, Any] = {
    "String": "sample_string",
    "Int64": 123456789,
    "Float64": 123.456,
    "DateTime": "2024-01-01 00:00:00",
    "Date": "2024-01-01",
    "Boolean": True,
}


def generate_pipe_file(pipe: Pipe, *, strict: bool | None = None) -> str:
    with timer() as t:
        body = pipe.template_body(strict=strict)

        text = ""
        if pipe.version:
            text += f"VERSION {pipe.version}\n\n"
        text += f"NODE {PIPE_NODE_NAME}\nSQL >\n{ARTIFACT_INDENT}%\n"
        text += indent_block(body, ARTIFACT_INDENT) + "\n"

    logger.info(
        "Generated pipe %s (%d parameters, raw=%s) in %.3f ms",
        pipe.name, len(pipe.parameters), pipe.is_raw, t["elapsed_ms"],
    )
    return text


def extract_pipe_name(pipe: Pipe) -> str:
    return pipe.name


def _sample_value(p: Parameter) -> Any:
    if p.has_default and p.default is not None:
        return p.default
    if p.choices:
        return p.choices[0]
    return _SAMPLE_VALUES.get(p.type, "sample_value")


def extract_pipe_dependencies(pipe: Pipe) -> list[str]:
    """Table names referenced after FROM / JOIN, in first-seen order."""
    sample = {key: _sample_value(p) for key, p in pipe.parameters.items()}
    sql = pipe.render(sample)

    dependencies: list[str] = []
    for table in _TABLE_REF_RE.findall(sql):
        if table not in dependencies:
            dependencies.append(table)
    return dependencies
