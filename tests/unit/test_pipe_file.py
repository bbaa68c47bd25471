"""
Unit tests -- pipe artifact emitter.
"""
import pytest
from src.artifacts.pipe_file import generate_pipe_file, extract_pipe_name, extract_pipe_dependencies
from src.core.config import get_settings
from src.pipes.definition import define_pipe
from src.pipes.template import UnknownParameterReference
from src.query.builder import query
from src.query.functions import count, eq, gte
from src.schema.columns import define_schema, string, int64
from src.schema.parameters import (
    define_parameters,
    string_param,
    int64_param,
    float64_param,
    boolean_param,
    enum_param,
)


@pytest.fixture(scope="module")
def schema():
    return define_schema(string("id"), string("tenant_id"), string("event"), int64("time"))


# ── Layout ───────────────────────────────────────────────

def test_exact_layout_with_version(schema):
    params = define_parameters(string_param("tenant_id", required=True))
    pipe = define_pipe("events_count", schema=schema, parameters=params, version=3).endpoint(
        lambda q, p: q.select_raw(f"{count()} AS total").from_("events").where("tenant_id", eq(p["tenant_id"]))
    )
    assert generate_pipe_file(pipe) == (
        "VERSION 3\n"
        "\n"
        "NODE endpoint\n"
        "SQL >\n"
        "    %\n"
        "    SELECT count() AS total\n"
        "    FROM events\n"
        "    WHERE tenant_id = {{ String(tenant_id, required=True) }}\n"
    )


def test_no_version_line(schema):
    params = define_parameters(string_param("id", required=True))
    pipe = define_pipe("by_id", schema=schema, parameters=params).endpoint(
        lambda q, p: q.from_("events").where("id", eq(p["id"]))
    )
    text = generate_pipe_file(pipe)
    assert "VERSION" not in text
    assert text.startswith("NODE endpoint\nSQL >\n    %\n")
    assert "{{ String(id, required=True) }}" in text


def test_blank_lines_stay_blank(schema):
    pipe = define_pipe("blank", parameters={}).raw("SELECT 1\n\nFROM t")
    text = generate_pipe_file(pipe)
    assert "    SELECT 1\n\n    FROM t\n" in text


def test_layout_ignores_environment(monkeypatch):
    monkeypatch.setenv("ARTIFACT_INDENT", "0")
    monkeypatch.setenv("PIPE_NODE_NAME", "other")
    get_settings.cache_clear()
    try:
        text = generate_pipe_file(define_pipe("fixed", parameters={}).raw("SELECT 1 FROM t"))
    finally:
        get_settings.cache_clear()
    assert text == "NODE endpoint\nSQL >\n    %\n    SELECT 1 FROM t\n"


# ── Parameter kinds ──────────────────────────────────────

def test_mixed_parameter_types(schema):
    params = define_parameters(
        string_param("tenant_id", required=True),
        int64_param("start_time", required=True),
        int64_param("limit", default=1000),
        float64_param("threshold", default=0.5),
        boolean_param("is_active", default=True),
        enum_param("status", ["pending", "completed"]),
    )
    pipe = define_pipe("mixed", schema=schema, parameters=params, version=1).endpoint(
        lambda q, p: (
            q.from_("analytics")
            .where("tenant_id", eq(p["tenant_id"]))
            .and_("timestamp", gte(p["start_time"]))
            .and_(f"score > {p['threshold']}")
            .and_(f"active = {p['is_active']}")
            .and_("status", eq(p["status"]))
            .limit(p["limit"])
        )
    )
    text = generate_pipe_file(pipe)
    assert "{{ String(tenant_id, required=True) }}" in text
    assert "{{ Int64(start_time, required=True) }}" in text
    assert "{{ Int64(limit, 1000) }}" in text
    assert "{{ Float64(threshold, 0.5) }}" in text
    assert "{{ Boolean(is_active, true) }}" in text
    assert "{% if defined(status) %}{{ String(status) }}{% end %}" in text


def test_required_referenced_twice_never_wrapped(schema):
    params = define_parameters(string_param("tenant_id", required=True))
    pipe = define_pipe("twice", parameters=params).endpoint(
        lambda q, p: (
            q.with_("f", f"SELECT * FROM events WHERE tenant_id = {p['tenant_id']}")
            .from_("f")
            .where(f"tenant_id = {p['tenant_id']}")
        )
    )
    text = generate_pipe_file(pipe)
    assert text.count("{{ String(tenant_id, required=True) }}") == 2
    assert "{% if" not in text


def test_conditional_referenced_twice(schema):
    params = define_parameters(string_param("event"))
    pipe = define_pipe("cond", parameters=params).endpoint(
        lambda q, p: q.from_("events").where("event", eq(p["event"])).or_("parent_event", eq(p["event"]))
    )
    text = generate_pipe_file(pipe)
    assert text.count("{% if defined(event) %}{{ String(event) }}{% end %}") == 2


def test_null_defaults(schema):
    params = define_parameters(
        string_param("optional_string", default=None),
        int64_param("optional_int", default=None),
    )
    pipe = define_pipe("nulls", parameters=params).endpoint(
        lambda q, p: q.from_("t").where(f"col1 = {p['optional_string']}").and_(f"col2 = {p['optional_int']}")
    )
    text = generate_pipe_file(pipe)
    assert "{{ String(optional_string, null) }}" in text
    assert "{{ Int64(optional_int, null) }}" in text
    assert "{% if" not in text


def test_conditional_branch_with_if(schema):
    params = define_parameters(string_param("event"))
    pipe = define_pipe("opt", parameters=params).endpoint(
        lambda q, p: q.from_("events").if_(p.get("event"), lambda b: b.where("event", eq(p["event"])))
    )
    assert "WHERE event = {% if defined(event) %}{{ String(event) }}{% end %}" in generate_pipe_file(pipe)


# ── Raw pipes ────────────────────────────────────────────

def test_raw_pipe_still_wraps_conditionals():
    params = define_parameters(string_param("status"))
    pipe = define_pipe("raw_pipe", parameters=params, version=1).raw(
        "SELECT * FROM t WHERE status = {{ String(status) }}"
    )
    text = generate_pipe_file(pipe)
    assert "    SELECT * FROM t WHERE status = {% if defined(status) %}{{ String(status) }}{% end %}\n" in text


def test_unknown_reference_raises():
    pipe = define_pipe("bad", parameters={}).raw("SELECT * FROM t WHERE a = {{ String(ghost) }}")
    with pytest.raises(UnknownParameterReference):
        generate_pipe_file(pipe, strict=True)


def test_unknown_reference_allowed_when_not_strict():
    pipe = define_pipe("lenient", parameters={}).raw("SELECT * FROM t WHERE a = {{ String(ghost) }}")
    assert "{{ String(ghost) }}" in generate_pipe_file(pipe, strict=False)


# ── Name / dependencies ──────────────────────────────────

def test_extract_pipe_name():
    pipe = define_pipe("my_pipe__v1").raw("SELECT 1")
    assert extract_pipe_name(pipe) == "my_pipe__v1"


def test_extract_dependencies(schema):
    params = define_parameters(string_param("tenant_id", required=True), int64_param("limit", default=5))
    pipe = define_pipe("deps", schema=schema, parameters=params).endpoint(
        lambda q, p: (
            q.select("e.id").from_("events")
            .join("users", "users.id = events.user_id")
            .join("events", "events.parent = events.id", "LEFT")
            .where("tenant_id", eq(p["tenant_id"]))
            .limit(p["limit"])
        )
    )
    assert extract_pipe_dependencies(pipe) == ["events", "users"]


def test_extract_dependencies_from_subquery(schema):
    pipe = define_pipe("sub", schema=schema).endpoint(
        lambda q, p: q.subquery("s", query().select("id").from_("inner_table"))
    )
    assert extract_pipe_dependencies(pipe) == ["inner_table"]
