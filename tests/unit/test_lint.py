"""
Unit tests -- artifact lint checks.
"""
from src.artifacts.datasource_file import generate_datasource_file
from src.artifacts.lint import lint_datasource_file, lint_pipe_file
from src.artifacts.pipe_file import generate_pipe_file
from src.pipes.definition import define_pipe
from src.query.functions import eq
from src.schema.columns import define_datasource, define_schema, string
from src.schema.parameters import define_parameters, string_param


# ── Datasource ───────────────────────────────────────────

def test_generated_datasource_is_clean():
    ds = define_datasource("t", define_schema(string("id")), sorting_key=["id"], version=1)
    report = lint_datasource_file(generate_datasource_file(ds))
    assert report.valid
    assert report.kind == "datasource"
    assert report.warnings == []


def test_datasource_missing_sections():
    report = lint_datasource_file("VERSION 1\n")
    assert not report.valid
    assert any("SCHEMA" in e for e in report.errors)
    assert any("ENGINE" in e for e in report.errors)
    assert any("column" in e for e in report.errors)


def test_datasource_warnings():
    ds = define_datasource("t", define_schema(string("id")))
    report = lint_datasource_file(generate_datasource_file(ds))
    assert report.valid
    assert any("VERSION" in w for w in report.warnings)
    assert any("sorting key" in w for w in report.warnings)


# ── Pipe ─────────────────────────────────────────────────

def test_generated_pipe_is_clean():
    params = define_parameters(string_param("tenant_id", required=True))
    pipe = define_pipe("p", parameters=params, version=1).endpoint(
        lambda q, p: q.from_("events").where("tenant_id", eq(p["tenant_id"]))
    )
    report = lint_pipe_file(generate_pipe_file(pipe))
    assert report.valid
    assert report.warnings == []


def test_pipe_missing_sections():
    report = lint_pipe_file("SELECT 1")
    assert not report.valid
    assert any("NODE" in e for e in report.errors)
    assert any("SQL section" in e for e in report.errors)
    assert any("FROM" in e for e in report.errors)


def test_pipe_suspicious_token():
    text = "NODE endpoint\nSQL >\n    %\n    SELECT * FROM t WHERE a = {{ Strng(a) }}\n"
    report = lint_pipe_file(text)
    assert report.valid
    assert any("Strng" in w for w in report.warnings)
    assert any("VERSION" in w for w in report.warnings)
