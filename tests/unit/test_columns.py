"""
Unit tests -- column definitions, type validators, datasources.
"""
from datetime import datetime

import pytest
from pydantic import ValidationError
from src.schema.columns import (
    Column,
    column,
    define_datasource,
    define_schema,
    python_type,
    split_type_args,
    validate_row,
    string,
    int32,
    int64,
    float64,
    boolean,
    date_time,
    date,
    uuid,
    json,
    ipv4,
    ipv6,
    array,
    map_,
    tuple_,
    nested,
    low_cardinality,
    nullable,
)


# ── Factories ────────────────────────────────────────────

@pytest.mark.parametrize("factory,sql_type", [
    (string, "String"),
    (int32, "Int32"),
    (int64, "Int64"),
    (float64, "Float64"),
    (boolean, "Boolean"),
    (date_time, "DateTime64"),
    (date, "Date"),
    (uuid, "UUID"),
    (json, "JSON"),
    (ipv4, "IPv4"),
    (ipv6, "IPv6"),
])
def test_scalar_types(factory, sql_type):
    col = factory("c")
    assert isinstance(col, Column)
    assert col.name == "c"
    assert col.type == sql_type


def test_options_carried():
    col = string("user_id", json_path="$.user.id", comment="Owner")
    assert col.json_path == "$.user.id"
    assert col.comment == "Owner"
    assert col.nullable is False


def test_composite_type_strings():
    assert array("tags", "String").type == "Array(String)"
    assert map_("attrs", "String", "Int64").type == "Map(String, Int64)"
    assert tuple_("point", ["Float64", "Float64"]).type == "Tuple(Float64, Float64)"
    assert tuple_("pair").type == "Tuple(String, String)"
    assert nested("user_info", {"name": "String", "age": "Int32"}).type == "Nested(name String, age Int32)"
    assert low_cardinality("status").type == "LowCardinality(String)"
    assert nullable("maybe", "Int64").type == "Nullable(Int64)"
    assert nullable("maybe").nullable is True


# ── Validators ───────────────────────────────────────────

def test_string_validation():
    col = string("s")
    assert col.validate("x") == "x"
    with pytest.raises(ValidationError):
        col.validate(5)


def test_int_rejects_float_and_bool():
    col = int64("n")
    assert col.is_valid(3)
    assert not col.is_valid(3.5)
    assert not col.is_valid(True)


def test_float_accepts_int():
    assert float64("f").is_valid(2)
    assert float64("f").is_valid(2.5)


def test_datetime_union():
    col = date_time("ts")
    assert col.is_valid("2024-01-01T00:00:00Z")
    assert col.is_valid(datetime(2024, 1, 1))
    assert col.is_valid(1700000000000)


def test_uuid_validation():
    col = uuid("id")
    assert col.is_valid("123e4567-e89b-12d3-a456-426614174000")
    assert not col.is_valid("not-a-uuid")


def test_ip_validation():
    assert ipv4("ip").is_valid("10.0.0.1")
    assert not ipv4("ip").is_valid("::1")
    assert ipv6("ip").is_valid("::1")


def test_array_validation():
    col = array("tags", "String")
    assert col.is_valid(["a", "b"])
    assert not col.is_valid(["a", 1])


def test_tuple_validation():
    col = tuple_("coordinates", ["Float64", "Float64"])
    assert col.is_valid([10.5, 20.3])
    assert not col.is_valid([10.5, "20.3"])


def test_nested_validation():
    col = nested("user_info", {"name": "String", "age": "Int32"})
    assert col.is_valid({"name": "John", "age": 30})
    assert not col.is_valid({"name": "John", "age": "30"})


def test_low_cardinality_choices():
    col = low_cardinality("status", choices=["active", "inactive"])
    assert col.is_valid("active")
    assert not col.is_valid("unknown")


def test_nullable_accepts_none():
    col = nullable("optional_name", "String")
    assert col.is_valid(None)
    assert col.is_valid("x")
    assert not col.is_valid(1)


def test_map_validation():
    col = map_("attrs", "String", "Int64")
    assert col.is_valid({"a": 1})
    assert not col.is_valid({"a": "1"})


# ── Type parsing ─────────────────────────────────────────

def test_split_type_args_top_level_only():
    assert split_type_args("String, Map(String, Int64), Int8") == ["String", "Map(String, Int64)", "Int8"]


def test_unknown_type_is_permissive():
    col = column("x", "AggregateFunction(sum, Int64)")
    assert col.is_valid(object())


def test_python_type_low_cardinality_unwraps():
    assert python_type("LowCardinality(String)") is python_type("String")


# ── Schema / rows / datasources ──────────────────────────

def test_define_schema_preserves_order():
    schema = define_schema(string("b"), string("a"), int64("c"))
    assert list(schema) == ["b", "a", "c"]


def test_define_schema_duplicate():
    with pytest.raises(ValueError, match="Duplicate"):
        define_schema(string("a"), string("a"))


def test_validate_row():
    schema = define_schema(string("id"), int64("n"), nullable("note"))
    assert validate_row(schema, {"id": "x", "n": 1}) == []
    errors = validate_row(schema, {"n": "1", "extra": 1})
    assert any("'id' is required" in e for e in errors)
    assert any("'n'" in e for e in errors)
    assert any("Unknown column 'extra'" in e for e in errors)


def test_define_datasource_defaults():
    ds = define_datasource("t", define_schema(string("id")))
    assert ds.engine == "MergeTree"
    assert ds.sorting_key == []
    assert ds.version is None


def test_define_datasource_unknown_engine():
    with pytest.raises(ValueError, match="Allowed"):
        define_datasource("t", define_schema(string("id")), "Log")
