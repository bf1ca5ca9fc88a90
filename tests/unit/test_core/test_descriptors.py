"""Unit tests for query and stored procedure descriptors."""

import dataclasses
from unittest.mock import patch

import pytest
from sqlglot.errors import ParseError

from dbcall.core.descriptors import QueryDescriptor, StoredProcedureDescriptor, detect_operation_type
from dbcall.core.types import ParameterMode, WireType
from dbcall.exceptions import InvalidSignatureError


def test_query_descriptor_is_immutable() -> None:
    """Test descriptors are frozen and normalize argument names to a tuple."""
    query = QueryDescriptor("GET_NUM", "select num from location where addr = ?", ["addr"], "sqlite://")  # type: ignore[arg-type]

    assert query.arg_names == ("addr",)
    assert query.arg_count == 1
    with pytest.raises(dataclasses.FrozenInstanceError):
        query.sql = "select 1"  # type: ignore[misc]


def test_query_descriptor_equality_ignores_dialect() -> None:
    """Test the dialect hint does not take part in equality."""
    assert QueryDescriptor("Q", "select 1", dialect="sqlite") == QueryDescriptor("Q", "select 1")


@pytest.mark.parametrize(
    "sql,expected",
    [
        ("select num from location where addr = ?", "SELECT"),
        ("select 1 union select 2", "SELECT"),
        ("insert into location values (?, ?)", "INSERT"),
        ("update location set num = ? where addr = ?", "UPDATE"),
        ("delete from location", "DELETE"),
        ("create table location (num int, addr varchar(40))", "DDL"),
        ("drop table location", "DDL"),
    ],
    ids=["select", "union", "insert", "update", "delete", "create", "drop"],
)
def test_operation_type(sql: str, expected: str) -> None:
    """Test operation types detected from the sqlglot AST."""
    assert QueryDescriptor("Q", sql).operation_type == expected


def test_operation_type_unparseable() -> None:
    """Test parse failures are reported as UNKNOWN rather than raised."""
    with patch("dbcall.core.descriptors.sqlglot.parse_one", side_effect=ParseError("bad")):
        assert detect_operation_type("not sql") == "UNKNOWN"


def test_stored_procedure_descriptor_parse() -> None:
    """Test the descriptor parses its signature with its name as context."""
    sproc = StoredProcedureDescriptor("GET_SUPPLIER", "GET_SUPPLIER_OF_COFFEE(>, <)", [WireType.VARCHAR] * 2)  # type: ignore[arg-type]

    signature = sproc.parse()

    assert sproc.arg_types == (WireType.VARCHAR, WireType.VARCHAR)
    assert signature.name == "GET_SUPPLIER_OF_COFFEE"
    assert signature.modes == (ParameterMode.IN, ParameterMode.OUT)


def test_stored_procedure_descriptor_bad_signature() -> None:
    """Test a malformed signature reports the descriptor name."""
    sproc = StoredProcedureDescriptor("BROKEN", "BROKEN(>")

    with pytest.raises(InvalidSignatureError) as exc_info:
        sproc.parse()

    assert exc_info.value.name == "BROKEN"
