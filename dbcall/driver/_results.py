"""Execution outcomes, multi-result iteration and the open result package."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from dbcall.driver._statement import NO_UPDATE_COUNT, close_quietly
from dbcall.exceptions import HandleClosedError
from dbcall.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from dbcall.driver._statement import PreparedStatement
    from dbcall.protocols import DBAPIConnection, DBAPICursor

__all__ = (
    "ExecutionOutcome",
    "ExecutionResultIterator",
    "ResultPackage",
    "ResultSetResult",
    "UpdateCountResult",
    "release_resources",
)

logger = get_logger("driver.results")


@dataclass(frozen=True)
class UpdateCountResult:
    """An update count produced by one step of the multi-result protocol."""

    update_count: int


@dataclass(frozen=True)
class ResultSetResult:
    """A result set produced by one step of the multi-result protocol."""

    result_set: Any


ExecutionOutcome = Union[UpdateCountResult, ResultSetResult]


def release_resources(
    connection: "Optional[DBAPIConnection]",
    statement: "Optional[PreparedStatement]" = None,
    result_set: "Optional[DBAPICursor]" = None,
) -> None:
    """Close result set and statement, then commit and close the connection.

    Every step runs even when an earlier one fails; failures are logged at
    debug level and suppressed.
    """
    close_quietly(result_set, "result set")
    close_quietly(statement, "statement")
    if connection is None:
        return
    try:
        connection.commit()
    except Exception:
        logger.debug("Suppressed failure committing connection", exc_info=True)
    close_quietly(connection, "connection")


class _IteratorState(Enum):
    HAS_INITIAL = "has_initial"
    ADVANCING = "advancing"
    EXHAUSTED = "exhausted"


class ExecutionResultIterator:
    """Forward-only, single-pass walk over a statement's results.

    A stored procedure may produce any mix of result sets and update counts;
    each step yields either a :class:`ResultSetResult` or an
    :class:`UpdateCountResult` in execution order. Driver failures surface as
    :class:`~dbcall.exceptions.DriverError` and end the walk.

    Args:
        statement: An executed statement.
        initial_result_set: The result set returned by the execution, if any.
    """

    __slots__ = ("_pending", "_state", "_statement")

    def __init__(self, statement: "PreparedStatement", initial_result_set: "Optional[DBAPICursor]" = None) -> None:
        self._statement = statement
        self._pending: Optional[ExecutionOutcome] = None
        self._state = _IteratorState.HAS_INITIAL
        if initial_result_set is not None:
            self._pending = ResultSetResult(initial_result_set)
            self._state = _IteratorState.ADVANCING

    def __iter__(self) -> "ExecutionResultIterator":
        return self

    def __next__(self) -> ExecutionOutcome:
        if self._pending is not None:
            outcome, self._pending = self._pending, None
            return outcome
        if self._state is _IteratorState.EXHAUSTED:
            raise StopIteration

        try:
            if self._state is _IteratorState.HAS_INITIAL:
                self._state = _IteratorState.ADVANCING
            else:
                self._statement.get_more_results()
            result_set = self._statement.get_result_set()
            if result_set is not None:
                return ResultSetResult(result_set)
            update_count = self._statement.get_update_count()
            if update_count != NO_UPDATE_COUNT:
                return UpdateCountResult(update_count)
        except Exception:
            self._state = _IteratorState.EXHAUSTED
            raise
        self._state = _IteratorState.EXHAUSTED
        raise StopIteration

    def close(self) -> None:
        """Nothing to release; the owning result package closes the statement."""

    def __enter__(self) -> "ExecutionResultIterator":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()


class ResultPackage:
    """Live connection, statement and result set handed to the caller.

    The caller owns the package and must close it; use it as a context
    manager to release it on every exit path. For procedure calls
    ``statement`` is the :class:`~dbcall.driver.CallableStatement`, so output
    parameters can be read by index.
    """

    __slots__ = ("_closed", "_connection", "_result_set", "_statement")

    def __init__(
        self,
        connection: "DBAPIConnection",
        statement: "PreparedStatement",
        result_set: "Optional[DBAPICursor]" = None,
    ) -> None:
        self._connection: Optional[DBAPIConnection] = connection
        self._statement: Optional[PreparedStatement] = statement
        self._result_set = result_set
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def connection(self) -> "DBAPIConnection":
        if self._closed or self._connection is None:
            raise HandleClosedError
        return self._connection

    @property
    def statement(self) -> "PreparedStatement":
        if self._closed or self._statement is None:
            raise HandleClosedError
        return self._statement

    @property
    def result_set(self) -> "Optional[DBAPICursor]":
        """The open result set, ``None`` when the execution produced none."""
        if self._closed:
            raise HandleClosedError
        return self._result_set

    def get_out_parameter(self, index: int) -> Any:
        """Output parameter value of a procedure call; see ``CallableStatement.get_object``."""
        return self.statement.get_object(index)  # type: ignore[attr-defined]

    def results(self) -> ExecutionResultIterator:
        """Iterate over every result the statement produced, starting with the current one."""
        return ExecutionResultIterator(self.statement, self.result_set)

    def close(self) -> None:
        """Release result set, statement and connection in that order.

        The connection is committed before it is closed. Failures at each step
        are suppressed so later steps still run; calling ``close`` again does
        nothing.
        """
        if self._closed:
            return
        self._closed = True
        result_set, self._result_set = self._result_set, None
        statement, self._statement = self._statement, None
        connection, self._connection = self._connection, None
        release_resources(connection, statement, result_set)

    def __enter__(self) -> "ResultPackage":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()
