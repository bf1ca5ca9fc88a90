"""Integration tests for the query path against real SQLite databases."""

import datetime
import sqlite3
from decimal import Decimal
from typing import Any

import pytest

from dbcall.core.descriptors import QueryDescriptor, StoredProcedureDescriptor
from dbcall.core.types import WireType
from dbcall.driver import ResultSetResult
from dbcall.engine import ExecutionEngine
from dbcall.exceptions import ArityMismatchError, DriverError, HandleClosedError


class LocationQueries:
    """The location table queries, bound to one database URL."""

    def __init__(self, url: str) -> None:
        self.CREATE = QueryDescriptor("CREATE", "create table location(num int, addr varchar(40))", (), url)
        self.INSERT = QueryDescriptor("INSERT", "insert into location values (?, ?)", ("num", "addr"), url)
        self.UPDATE = QueryDescriptor(
            "UPDATE", "update location set num=?, addr=? where num=?", ("num", "addr", "whereNum"), url
        )
        self.GET_NUM = QueryDescriptor("GET_NUM", "select num from location where addr=?", ("addr",), url)
        self.GET_STR = QueryDescriptor("GET_STR", "select addr from location where num=?", ("num",), url)
        self.GET_RESULT_PACKAGE = QueryDescriptor("GET_RESULT_PACKAGE", "select * from location order by num", (), url)
        self.DROP = QueryDescriptor("DROP", "drop table location", (), url)


@pytest.fixture
def sqlite_engine() -> ExecutionEngine:
    return ExecutionEngine()


@pytest.fixture
def queries(sqlite_engine: ExecutionEngine, sqlite_url: str) -> LocationQueries:
    """Location queries over a database with the table created and two rows inserted."""
    queries = LocationQueries(sqlite_url)
    sqlite_engine.update(queries.CREATE)
    assert sqlite_engine.update(queries.INSERT, 1956, "Webster St.") == 1
    assert sqlite_engine.update(queries.INSERT, 1910, "Union St.") == 1
    return queries


def test_location_lifecycle(sqlite_engine: ExecutionEngine, queries: LocationQueries, sqlite_url: str) -> None:
    """Test create, insert, update, scalar reads, result package and drop in sequence."""
    assert sqlite_engine.update(queries.UPDATE, 180, "Grand Ave.", 1956) == 1
    assert sqlite_engine.update(queries.UPDATE, 300, "Lakeshore Ave.", 180) == 1

    assert sqlite_engine.get_int(queries.GET_NUM, "Union St.") == 1910
    assert sqlite_engine.get_string(queries.GET_STR, 1910) == "Union St."

    with sqlite_engine.get_result_package(queries.GET_RESULT_PACKAGE) as package:
        assert package.result_set is not None
        rows = package.result_set.fetchall()
        assert list(package.results()) == [ResultSetResult(package.result_set)]
    assert rows == [(300, "Lakeshore Ave."), (1910, "Union St.")]
    with pytest.raises(HandleClosedError):
        package.result_set  # noqa: B018

    sqlite_engine.update(queries.DROP)
    with pytest.raises(DriverError, match="no such table: location"):
        sqlite_engine.get_int(queries.GET_NUM, "Union St.")


def test_updates_are_committed(sqlite_engine: ExecutionEngine, queries: LocationQueries, sqlite_url: str) -> None:
    """Test each update is committed before its connection is closed."""
    sqlite_engine.update(queries.INSERT, 42, "Main St.")

    connection = sqlite3.connect(sqlite_url.removeprefix("sqlite:///"))
    try:
        assert connection.execute("select count(*) from location").fetchone() == (3,)
    finally:
        connection.close()


def test_missing_values(sqlite_engine: ExecutionEngine, queries: LocationQueries) -> None:
    """Test empty scalar queries read as -1 and None."""
    assert sqlite_engine.get_int(queries.GET_NUM, "Nowhere") == -1
    assert sqlite_engine.get_string(queries.GET_STR, 99) is None


def test_null_values(sqlite_engine: ExecutionEngine, queries: LocationQueries) -> None:
    sqlite_engine.update(queries.INSERT, None, "Unnumbered Rd.")

    assert sqlite_engine.get_int(queries.GET_NUM, "Unnumbered Rd.") == -1


def test_update_without_matches(sqlite_engine: ExecutionEngine, queries: LocationQueries) -> None:
    assert sqlite_engine.update(queries.UPDATE, 1, "Nowhere", 12345) == 0


def test_arity_is_checked(sqlite_engine: ExecutionEngine, queries: LocationQueries) -> None:
    with pytest.raises(ArityMismatchError):
        sqlite_engine.update(queries.INSERT, 1)


def test_other_result_type(sqlite_engine: ExecutionEngine, queries: LocationQueries) -> None:
    assert sqlite_engine.execute_query(float, queries.GET_NUM, "Union St.") == 1910.0


@pytest.mark.parametrize(
    "value,expected",
    [
        ("Colombian", "Colombian"),
        (42, "42"),
        (True, "1"),
        (1.5, "1.5"),
        (Decimal("19.99"), "19.99"),
        (datetime.date(2024, 1, 2), "2024-01-02"),
        (datetime.time(3, 4, 5), "03:04:05"),
        (datetime.datetime(2024, 1, 2, 3, 4, 5), "2024-01-02 03:04:05"),
        (["a", 1], '["a",1]'),
    ],
    ids=["str", "int", "bool", "float", "decimal", "date", "time", "datetime", "list"],
)
def test_echo(sqlite_engine: ExecutionEngine, sqlite_url: str, value: Any, expected: str) -> None:
    """Test bound values reach SQLite in their coerced representation."""
    assert sqlite_engine.execute_sql(str, sqlite_url, "select ?", value) == expected


def test_echo_bytes(sqlite_engine: ExecutionEngine, sqlite_url: str) -> None:
    assert sqlite_engine.execute_sql(bytes, sqlite_url, "select ?", bytearray(b"\x00\xff")) == b"\x00\xff"


def test_in_memory_database(sqlite_engine: ExecutionEngine) -> None:
    assert sqlite_engine.execute_sql(int, "sqlite://:memory:", "select 1 + 1") == 2


def test_stored_procedures_unsupported(sqlite_engine: ExecutionEngine, sqlite_url: str) -> None:
    """Test SQLite reports procedure calls as driver errors after validation."""
    sproc = StoredProcedureDescriptor("ECHO", "ECHO(>)", (WireType.INTEGER,), sqlite_url)

    with pytest.raises(DriverError, match="does not support stored procedure calls"):
        sqlite_engine.get_int(sproc, 1)
