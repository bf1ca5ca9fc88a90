"""Unit tests for prepared and callable statements over a DB-API cursor."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from dbcall.adapters import DBAPIDriver, OutParameter
from dbcall.core.types import WireType
from dbcall.driver import NO_UPDATE_COUNT, CallableStatement, PreparedStatement
from dbcall.exceptions import DriverError


def _connection_with(cursor: Any) -> MagicMock:
    connection = MagicMock(name="connection")
    connection.cursor.return_value = cursor
    return connection


# -- Binding --
def test_set_object_applies_driver_coercion(cursor: Any) -> None:
    """Test bound values pass through the adapter's type coercion map."""
    driver = DBAPIDriver(type_coercion_map={bool: int})
    statement = PreparedStatement(driver, _connection_with(cursor), "insert into t values (?, ?)")

    statement.set_object(1, True)
    statement.set_object(2, "x", WireType.VARCHAR)

    assert statement.bound_parameters() == [1, "x"]
    assert statement.parameters[2].wire_type is WireType.VARCHAR


def test_bound_parameters_reports_gaps(driver: DBAPIDriver, connection: MagicMock) -> None:
    """Test an unbound index below the highest bound one is an error."""
    statement = PreparedStatement(driver, connection, "select ?, ?")
    statement.set_object(2, "b")

    with pytest.raises(DriverError, match="No value specified for parameter 1"):
        statement.bound_parameters()


def test_set_null(driver: DBAPIDriver, connection: MagicMock) -> None:
    statement = PreparedStatement(driver, connection, "select ?")
    statement.set_null(1, WireType.INTEGER)

    assert statement.bound_parameters() == [None]


# -- Execution --
def test_execute_update_returns_rowcount(driver: DBAPIDriver, connection: MagicMock, cursor: Any) -> None:
    """Test the row count reported by the cursor is returned."""
    cursor.results = [3]
    statement = PreparedStatement(driver, connection, "update t set a = ?")
    statement.set_object(1, 1)

    assert statement.execute_update() == 3
    assert cursor.executed == [("update t set a = ?", [1])]


def test_execute_reports_result_kind(driver: DBAPIDriver, connection: MagicMock, cursor: Any) -> None:
    """Test ``execute`` is True only when the first result is a result set."""
    statement = PreparedStatement(driver, connection, "select 1")

    cursor.results = [[(1,)]]
    assert statement.execute() is True
    assert statement.get_result_set() is cursor
    assert statement.get_update_count() == NO_UPDATE_COUNT

    cursor.results = [2]
    assert statement.execute() is False
    assert statement.get_result_set() is None
    assert statement.get_update_count() == 2


def test_driver_errors_are_wrapped(cursor: Any) -> None:
    """Test driver exceptions surface as DriverError chained to the driver exception."""
    driver = DBAPIDriver(database_error=(ValueError,))
    statement = PreparedStatement(driver, _connection_with(cursor), "select 1")
    cursor.error = ValueError("no such table")

    with pytest.raises(DriverError, match="Database error: no such table") as exc_info:
        statement.execute_query()

    assert isinstance(exc_info.value.__cause__, ValueError)


def test_get_more_results_without_nextset(driver: DBAPIDriver) -> None:
    """Test cursors without ``nextset`` expose exactly one result."""
    cursor = MagicMock(spec=["execute", "description", "rowcount", "fetchone", "close"])
    cursor.description = (("a",),)
    statement = PreparedStatement(driver, _connection_with(cursor), "select 1")

    assert statement.get_more_results() is False
    assert statement.get_result_set() is None
    assert statement.get_update_count() == NO_UPDATE_COUNT


def test_get_more_results_walks_nextset(driver: DBAPIDriver, connection: MagicMock, cursor: Any) -> None:
    """Test advancing through a result set, an update count and the end of results."""
    cursor.results = [[(1,)], 5]
    statement = PreparedStatement(driver, connection, "exec multi")
    statement.execute()

    assert statement.get_more_results() is False
    assert statement.get_update_count() == 5
    assert statement.get_more_results() is False
    assert statement.get_update_count() == NO_UPDATE_COUNT
    assert statement.get_more_results() is False


def test_close_is_idempotent(driver: DBAPIDriver, connection: MagicMock, cursor: Any) -> None:
    """Test the cursor is closed once however often the statement is closed."""
    statement = PreparedStatement(driver, connection, "select 1")

    statement.close()
    statement.close()

    assert statement.closed
    assert cursor.close_count == 1


# -- Callable statements --
def test_out_parameter_registration(driver: DBAPIDriver, connection: MagicMock) -> None:
    """Test OUT slots bind their holders and INOUT holders are seeded with the input."""
    statement = CallableStatement(driver, connection, "{call P(?,?,?)}", "P")
    statement.set_object(1, "in")
    statement.register_out_parameter(2, WireType.INTEGER)
    statement.set_object(3, 7)
    statement.register_out_parameter(3, WireType.INTEGER)

    holders = statement.out_parameters

    assert holders[2] == OutParameter(WireType.INTEGER)
    assert holders[3].value == 7
    assert statement.parameter_count() == 3
    assert statement.bound_parameters() == ["in", None, 7]


def test_callproc_copies_out_values(driver: DBAPIDriver, connection: MagicMock, cursor: Any) -> None:
    """Test values returned by ``callproc`` are readable by index after execution."""
    cursor.out_values = {2: "Acme, Inc."}
    statement = CallableStatement(driver, connection, "{call GET_SUPPLIER_OF_COFFEE(?,?)}", "GET_SUPPLIER_OF_COFFEE")
    statement.set_object(1, "Colombian", WireType.VARCHAR)
    statement.register_out_parameter(2, WireType.VARCHAR)

    assert statement.execute() is False
    assert cursor.called == [("GET_SUPPLIER_OF_COFFEE", ["Colombian", None])]
    assert statement.get_string(2) == "Acme, Inc."
    assert statement.get_object(2) == "Acme, Inc."


def test_get_object_requires_output_index(driver: DBAPIDriver, connection: MagicMock) -> None:
    """Test reading a non-output index is an error and NULL outputs read as None."""
    statement = CallableStatement(driver, connection, "{call P(?,?)}", "P")
    statement.set_object(1, "x")
    statement.register_out_parameter(2, WireType.INTEGER)

    with pytest.raises(DriverError, match="Parameter 1 of .* is not an output parameter"):
        statement.get_object(1)
    assert statement.get_int(2) is None
    assert statement.get_string(2) is None


def test_call_escape_syntax(connection: MagicMock, cursor: Any) -> None:
    """Test adapters flagged for escape syntax execute the call text."""
    driver = DBAPIDriver(call_escape_syntax=True)
    statement = CallableStatement(driver, connection, "{call P(?)}", "P")
    statement.set_object(1, 1)

    statement.execute()

    assert cursor.executed == [("{call P(?)}", [1])]
    assert cursor.called == []


def test_cursor_without_callproc(driver: DBAPIDriver) -> None:
    """Test a cursor lacking ``callproc`` cannot run procedure calls."""
    cursor = MagicMock(spec=["execute", "description", "rowcount", "fetchone", "close"])
    statement = CallableStatement(driver, _connection_with(cursor), "{call P()}", "P")

    with pytest.raises(DriverError, match="does not support stored procedure calls"):
        statement.execute()


def test_set_array_skips_coercion(connection: MagicMock) -> None:
    """Test driver array objects are bound as built."""
    driver = DBAPIDriver(type_coercion_map={list: str})
    statement = CallableStatement(driver, connection, "{call P(?)}", "P")

    statement.set_array(1, statement.create_array("INTEGER", (1, 2)))

    assert statement.bound_parameters() == [[1, 2]]
