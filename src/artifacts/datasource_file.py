"""
Datasource artifact emitter.

Produces the ``.datasource`` text read by the deployment tool::

    VERSION 1

    SCHEMA >
        `id` String `json:$.id`,
        # Unique identifier
        `ts` DateTime64 `json:$.ts`

    ENGINE "MergeTree"
    ENGINE_SORTING_KEY "ts,id"
"""
from __future__ import annotations

import re

from src.schema.columns import DataSource
from src.core.config import ARTIFACT_INDENT
from src.core.logging import get_logger
from src.core.utils import timer

logger = get_logger(__name__)

_VERSION_SUFFIX_RE = re.compile(r"__v\d+$")


def generate_datasource_file(datasource: DataSource) -> str:
    indent = ARTIFACT_INDENT
    lines: list[str] = []

    with timer() as t:
        if datasource.version:
            lines.append(f"VERSION {datasource.version}")
            lines.append("")

        lines.append("SCHEMA >")

        columns = list(datasource.schema.values())
        for idx, col in enumerate(columns):
            json_path = col.json_path or f"$.{col.name}"
            line = f"{indent}`{col.name}` {col.type} `json:{json_path}`"
            is_last = idx == len(columns) - 1
            lines.append(line if is_last else line + ",")
            if col.comment:
                lines.append(f"{indent}# {col.comment}")

        lines.append("")
        lines.append(f'ENGINE "{datasource.engine}"')

        if datasource.sorting_key:
            lines.append(f'ENGINE_SORTING_KEY "{",".join(datasource.sorting_key)}"')

        if datasource.partition_by:
            lines.append(f'ENGINE_PARTITION_KEY "{datasource.partition_by}"')

        if datasource.ttl:
            lines.append(f'ENGINE_TTL "{datasource.ttl}"')

    logger.info(
        "Generated datasource %s (%d columns) in %.3f ms",
        datasource.name, len(datasource.schema), t["elapsed_ms"],
    )
    return "\n".join(lines) + "\n"


def extract_datasource_name(datasource: DataSource) -> str:
    """Base name without a trailing ``__vN`` suffix."""
    return _VERSION_SUFFIX_RE.sub("", datasource.name)
