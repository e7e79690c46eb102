"""Tests for flattening extracted JSON into columns and rows."""

import pandas as pd
import pytest

from doc_schema_extractor.flattening import (
    FlatTable,
    FlattenPolicy,
    JoinPolicy,
    RowExpansionPolicy,
    flatten_for_export,
    format_scalar,
    get_policy,
)
from doc_schema_extractor.schema import parse_schema


class TestFormatScalar:
    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        (True, "true"),
        (False, "false"),
        (120.0, "120"),
        (195.50, "195.5"),
        (7, "7"),
        ("texto", "texto"),
        ({"a": 1}, '{"a": 1}'),
    ])
    def test_values(self, value, expected):
        assert format_scalar(value) == expected


class TestFlattenWithoutSchema:
    def test_simple_object(self):
        table = flatten_for_export({"cliente": "Juan", "total": 195.50})
        assert table.columns == ["cliente", "total"]
        assert table.rows == [{"cliente": "Juan", "total": "195.5"}]

    def test_insertion_order_not_sorted(self):
        table = flatten_for_export({"zeta": 1, "alfa": 2})
        assert table.columns == ["zeta", "alfa"]

    def test_nested_objects_dot_joined(self):
        table = flatten_for_export({"emisor": {"nombre": "ACME", "direccion": {"ciudad": "Lima"}}})
        assert table.columns == ["emisor.nombre", "emisor.direccion.ciudad"]
        assert table.rows[0]["emisor.direccion.ciudad"] == "Lima"

    def test_null_is_empty_string(self):
        table = flatten_for_export({"cliente": None, "total": 3})
        assert table.rows[0]["cliente"] == ""

    def test_batch_columns_first_appearance(self):
        table = flatten_for_export([{"a": 1}, {"b": 2, "a": 3}])
        assert table.columns == ["a", "b"]
        assert table.rows == [{"a": "1", "b": ""}, {"a": "3", "b": "2"}]

    def test_batch_skips_non_objects(self):
        table = flatten_for_export([{"a": 1}, "junk", None])
        assert len(table.rows) == 1

    @pytest.mark.parametrize("data", [None, "text", 42, []])
    def test_no_records(self, data):
        table = flatten_for_export(data)
        assert table.columns == []
        assert table.rows == []

    def test_empty_list_is_single_empty_cell(self):
        table = flatten_for_export({"items": []}, policy="expand")
        assert table.rows == [{"items": ""}]


class TestJoinPolicy:
    def test_record_array_joined(self):
        table = flatten_for_export({"items": [{"precio": 120}, {"precio": 75.5}]}, policy="join")
        assert table.columns == ["items.precio"]
        assert table.rows == [{"items.precio": "[1] 120; [2] 75.5"}]

    def test_missing_property_skipped(self):
        data = {"items": [{"desc": "a", "precio": 1}, {"desc": "b"}, {"desc": "c", "precio": 3}]}
        row = flatten_for_export(data, policy="join").rows[0]
        assert row["items.desc"] == "[1] a; [2] b; [3] c"
        assert row["items.precio"] == "[1] 1; [3] 3"

    def test_null_element_keeps_index(self):
        row = flatten_for_export({"items": [{"x": 1}, None, {"x": 3}]}, policy="join").rows[0]
        assert row["items.x"] == "[1] 1; [3] 3"

    def test_scalar_array_joined_with_semicolon(self):
        row = flatten_for_export({"tags": ["a", "b", None]}, policy=JoinPolicy()).rows[0]
        assert row["tags"] == "a; b; "

    def test_nested_object_in_record(self):
        data = {"items": [{"prod": {"sku": "X1"}}, {"prod": {"sku": "X2"}}]}
        row = flatten_for_export(data, policy="join").rows[0]
        assert row["items.prod.sku"] == "[1] X1; [2] X2"

    def test_one_row_per_record(self, invoice_data):
        table = flatten_for_export(invoice_data, policy="join")
        assert len(table.rows) == 1
        assert table.columns == ["cliente", "fecha", "items.desc", "items.precio", "total"]
        assert table.rows[0]["items.precio"] == "[1] 120; [2] 75.5"


class TestRowExpansionPolicy:
    def test_record_array_expanded(self):
        table = flatten_for_export({"items": [{"precio": 120}, {"precio": 75.5}]}, policy="expand")
        assert [r["items.precio"] for r in table.rows] == ["120", "75.5"]

    def test_scalars_repeated_on_each_row(self, invoice_data):
        table = flatten_for_export(invoice_data, policy=RowExpansionPolicy())
        assert len(table.rows) == 2
        assert all(r["cliente"] == "Juan Pérez" and r["total"] == "195.5" for r in table.rows)
        assert [r["items.desc"] for r in table.rows] == ["Teclado Mecánico", "Ratón Gaming"]

    def test_column_order_follows_record(self, invoice_data):
        table = flatten_for_export(invoice_data, policy="expand")
        assert table.columns == ["cliente", "fecha", "items.desc", "items.precio", "total"]

    def test_parallel_arrays_pad_shorter(self):
        data = {"a": [{"x": 1}, {"x": 2}, {"x": 3}], "b": [{"y": "p"}]}
        table = flatten_for_export(data, policy="expand")
        assert len(table.rows) == 3
        assert [r["b.y"] for r in table.rows] == ["p", "", ""]

    def test_element_missing_property_is_empty(self):
        table = flatten_for_export({"items": [{"x": 1, "y": 2}, {"x": 3}]}, policy="expand")
        assert table.rows[1] == {"items.x": "3", "items.y": ""}

    def test_scalar_array_joined_with_newline(self):
        row = flatten_for_export({"tags": ["a", "b"]}, policy="expand").rows[0]
        assert row["tags"] == "a\nb"

    def test_no_record_arrays_single_row(self):
        table = flatten_for_export({"a": 1}, policy="expand")
        assert table.rows == [{"a": "1"}]

    def test_record_array_inside_nested_object(self):
        data = {"pedido": {"id": 9, "lineas": [{"q": 1}, {"q": 2}]}}
        table = flatten_for_export(data, policy="expand")
        assert table.columns == ["pedido.id", "pedido.lineas.q"]
        assert [r["pedido.lineas.q"] for r in table.rows] == ["1", "2"]

    def test_nested_record_array_inside_element_collapsed(self):
        data = {"items": [{"lotes": [{"n": "L1"}, {"n": "L2"}]}]}
        row = flatten_for_export(data, policy="expand").rows[0]
        assert row["items.lotes.n"] == "[1] L1\n[2] L2"

    def test_batch_expands_each_record(self):
        data = [{"id": 1, "it": [{"v": "a"}, {"v": "b"}]}, {"id": 2, "it": [{"v": "c"}]}]
        table = flatten_for_export(data, policy="expand")
        assert [(r["id"], r["it.v"]) for r in table.rows] == [("1", "a"), ("1", "b"), ("2", "c")]


class TestSchemaColumnOrder:
    def test_schema_order_regardless_of_data_order(self, invoice_schema):
        data = {"items": [{"precio": 1, "desc": "x"}], "total": 5, "cliente": "Ana"}
        for policy in ("join", "expand"):
            table = flatten_for_export(data, schema=invoice_schema, policy=policy)
            assert table.columns == ["cliente", "items.desc", "items.precio"]

    def test_missing_schema_columns_are_empty(self, invoice_schema):
        table = flatten_for_export({"cliente": "Ana"}, schema=invoice_schema)
        assert table.rows == [{"cliente": "Ana", "items.desc": "", "items.precio": ""}]

    def test_nested_object_paths(self):
        schema = parse_schema([
            {"name": "emisor", "type": "OBJECT", "children": [{"name": "nombre"}, {"name": "ruc"}]},
            {"name": "meta", "type": "OBJECT"},
            {"name": ""},
        ])
        table = flatten_for_export({"emisor": {"ruc": "1", "nombre": "A"}}, schema=schema)
        assert table.columns == ["emisor.nombre", "emisor.ruc", "meta"]

    def test_schema_without_named_fields_falls_back(self):
        table = flatten_for_export({"a": 1}, schema=parse_schema([{"name": ""}]))
        assert table.columns == ["a"]


class TestPolicies:
    def test_get_policy_by_name(self):
        assert isinstance(get_policy("join"), JoinPolicy)
        assert isinstance(get_policy("EXPAND"), RowExpansionPolicy)
        assert isinstance(get_policy(None), JoinPolicy)

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            get_policy("pivot")

    def test_base_policy_is_abstract(self):
        with pytest.raises(TypeError):
            FlattenPolicy()

    def test_reentrant(self, invoice_data):
        first = flatten_for_export(invoice_data, policy="expand")
        second = flatten_for_export(invoice_data, policy="expand")
        assert first == second


class TestFlatTable:
    def test_to_dataframe(self):
        table = FlatTable(["a", "b"], [{"a": "1", "b": ""}])
        df = table.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert list(df.columns) == ["a", "b"]
        assert df.iloc[0].tolist() == ["1", ""]

    def test_head(self):
        table = FlatTable(["a"], [{"a": str(i)} for i in range(10)])
        assert len(table.head(3).rows) == 3
