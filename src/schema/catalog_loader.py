"""
Loads a YAML catalog of datasources and raw-SQL pipes into typed objects.

Layout::

    version: 1
    datasources:
      - name: events__v1
        version: 1
        engine: MergeTree
        sorting_key: [timestamp, id]
        columns:
          - {name: id, type: String, json_path: $.id}
    pipes:
      - name: events_by_tenant
        datasource: events__v1
        sql: |
          SELECT ... WHERE tenant_id = {{ String(tenant_id, required=True) }}
        parameters:
          - {name: tenant_id, type: String, required: true}
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from src.pipes.definition import Pipe, define_pipe
from src.schema.columns import DataSource, column, define_datasource, define_schema
from src.schema.parameters import (
    UNSET,
    Parameter,
    boolean_param,
    date_param,
    date_time_param,
    define_parameters,
    enum_param,
    float64_param,
    int64_param,
    string_param,
)
from src.core.logging import get_logger

logger = get_logger(__name__)

_PARAM_FACTORIES = {
    "String": string_param,
    "Int64": int64_param,
    "Float64": float64_param,
    "DateTime": date_time_param,
    "Date": date_param,
    "Boolean": boolean_param,
}

_CATALOG_PATH = Path(__file__).resolve().parents[2] / "catalog" / "catalog.yml"


@dataclass
class Catalog:
    """Fully parsed catalog."""

    version: int
    datasources: dict[str, DataSource]  # keyed by name
    pipes: dict[str, Pipe]              # keyed by name

    def datasource(self, name: str) -> DataSource | None:
        return self.datasources.get(name)

    def pipe(self, name: str) -> Pipe | None:
        return self.pipes.get(name)


# ── Parsing ──────────────────────────────────────────────

def _parse_datasource(raw: dict[str, Any]) -> DataSource:
    columns = [
        column(
            c["name"],
            c["type"],
            json_path=c.get("json_path"),
            nullable=c.get("nullable", False),
            comment=c.get("comment"),
        )
        for c in raw.get("columns") or []
    ]
    return define_datasource(
        raw["name"],
        define_schema(*columns),
        raw.get("engine", "MergeTree"),
        sorting_key=raw.get("sorting_key") or [],
        partition_by=raw.get("partition_by"),
        ttl=raw.get("ttl"),
        version=raw.get("version"),
    )


def _parse_parameter(raw: dict[str, Any]) -> Parameter:
    name = raw["name"]
    required = raw.get("required", False)
    default = raw["default"] if "default" in raw else UNSET

    if raw.get("values"):
        return enum_param(name, raw["values"], required=required, default=default)

    param_type = raw.get("type", "String")
    factory = _PARAM_FACTORIES.get(param_type)
    if factory is None:
        raise ValueError(
            f"Unknown parameter type '{param_type}' for '{name}'. "
            f"Allowed: {', '.join(_PARAM_FACTORIES)}"
        )
    return factory(name, required=required, default=default)


def _parse_pipe(raw: dict[str, Any], datasources: dict[str, DataSource]) -> Pipe:
    schema = None
    ds_name = raw.get("datasource")
    if ds_name:
        ds = datasources.get(ds_name)
        if ds is None:
            raise ValueError(
                f"Pipe '{raw['name']}' references unknown datasource '{ds_name}'. "
                f"Allowed: {', '.join(datasources)}"
            )
        schema = ds.schema
    parameters = define_parameters(*(_parse_parameter(p) for p in raw.get("parameters") or []))
    builder = define_pipe(raw["name"], schema=schema, parameters=parameters, version=raw.get("version"))
    return builder.raw(raw["sql"].strip())


def parse_catalog(raw_yaml: dict[str, Any]) -> Catalog:
    datasources = {d["name"]: _parse_datasource(d) for d in raw_yaml.get("datasources") or []}
    pipes = {p["name"]: _parse_pipe(p, datasources) for p in raw_yaml.get("pipes") or []}
    logger.info("Parsed catalog: %d datasources, %d pipes", len(datasources), len(pipes))
    return Catalog(
        version=raw_yaml.get("version", 1),
        datasources=datasources,
        pipes=pipes,
    )


# ── Public API ───────────────────────────────────────────

def load_catalog(path: str | Path | None = None) -> Catalog:
    """Load a catalog from YAML; defaults to ``catalog/catalog.yml`` at the project root."""
    with open(path or _CATALOG_PATH) as f:
        raw = yaml.safe_load(f)
    return parse_catalog(raw or {})
