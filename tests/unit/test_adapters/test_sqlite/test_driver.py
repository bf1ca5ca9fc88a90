"""Unit tests for the SQLite adapter.

This module tests the SqliteDriver class including:
- Connection creation from connection strings
- Type coercion of bound values
- Error handling
"""

import datetime
import sqlite3
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from dbcall.adapters.sqlite import SqliteDriver, sqlite_type_coercion_map
from dbcall.exceptions import DriverError, ImproperConfigurationError


# Initialization Tests
def test_driver_initialization() -> None:
    """Test the adapter's dialect, error types and default coercion map."""
    driver = SqliteDriver()

    assert driver.dialect == "sqlite"
    assert driver.database_error == (sqlite3.Error,)
    assert driver.type_coercion_map == sqlite_type_coercion_map
    assert driver.call_escape_syntax is False


def test_custom_type_coercion_map() -> None:
    """Test a custom coercion map replaces the default."""
    driver = SqliteDriver(type_coercion_map={Decimal: float})

    assert driver.coerce_parameter(Decimal("1.5")) == 1.5
    assert driver.coerce_parameter(True) is True


# Connection Tests
def test_connect_passes_parsed_params() -> None:
    """Test connect hands the parsed URL to sqlite3.connect."""
    with patch("dbcall.adapters.sqlite.driver.sqlite3.connect") as mock_connect:
        mock_connect.return_value = MagicMock(spec=sqlite3.Connection)

        connection = SqliteDriver().connect("sqlite:///app.db?timeout=2.5")

    mock_connect.assert_called_once_with(database="app.db", timeout=2.5)
    assert connection is mock_connect.return_value


def test_connect_rejects_bad_url() -> None:
    """Test configuration errors surface before any connection attempt."""
    with patch("dbcall.adapters.sqlite.driver.sqlite3.connect") as mock_connect:
        with pytest.raises(ImproperConfigurationError):
            SqliteDriver().connect("sqlite:///app.db?bogus=1")

    mock_connect.assert_not_called()


def test_connect_failure_is_wrapped() -> None:
    """Test sqlite3 errors while connecting become DriverError."""
    with patch("dbcall.adapters.sqlite.driver.sqlite3.connect", side_effect=sqlite3.OperationalError("unable to open")):
        with pytest.raises(DriverError, match="SQLite database error: unable to open"):
            SqliteDriver().connect("sqlite:///missing/dir/app.db")


def test_in_memory_connection() -> None:
    """Test a real in-memory connection."""
    connection = SqliteDriver().connect("sqlite://:memory:")
    try:
        assert connection.execute("select 1").fetchone() == (1,)
    finally:
        connection.close()


# Type Coercion Tests
@pytest.mark.parametrize(
    "value,expected",
    [
        (True, 1),
        (False, 0),
        (Decimal("19.99"), "19.99"),
        (datetime.datetime(2024, 1, 2, 3, 4, 5), "2024-01-02 03:04:05"),
        (datetime.date(2024, 1, 2), "2024-01-02"),
        (datetime.time(3, 4, 5), "03:04:05"),
        (bytearray(b"ab"), b"ab"),
        ({"a": 1}, '{"a":1}'),
        ([1, 2], "[1,2]"),
        ((1, 2), "[1,2]"),
        ("text", "text"),
        (7, 7),
        (None, None),
    ],
    ids=[
        "true",
        "false",
        "decimal",
        "datetime",
        "date",
        "time",
        "bytearray",
        "dict",
        "list",
        "tuple",
        "str",
        "int",
        "none",
    ],
)
def test_type_coercion(value: Any, expected: Any) -> None:
    """Test values are converted into types sqlite3 binds natively."""
    assert SqliteDriver().coerce_parameter(value) == expected


def test_exception_handling() -> None:
    """Test sqlite3 errors are wrapped and dbcall errors pass through."""
    driver = SqliteDriver()

    with pytest.raises(DriverError, match="SQLite database error: no such table: t") as exc_info:
        with driver.handle_database_exceptions():
            raise sqlite3.OperationalError("no such table: t")
    assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)

    with pytest.raises(ImproperConfigurationError):
        with driver.handle_database_exceptions():
            raise ImproperConfigurationError("bad")


def test_procedure_calls_unsupported() -> None:
    """Test sqlite3 cursors cannot run stored procedure calls."""
    driver = SqliteDriver()
    connection = driver.connect("sqlite://:memory:")
    try:
        statement = MagicMock(procedure_name="P", out_parameters={})
        statement.bound_parameters.return_value = []
        with pytest.raises(DriverError, match="does not support stored procedure calls"):
            driver.execute_call(connection.cursor(), statement)
    finally:
        connection.close()
