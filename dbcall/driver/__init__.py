"""Driver boundary: statements over DB-API cursors and their results."""

from dbcall.driver._results import (
    ExecutionOutcome,
    ExecutionResultIterator,
    ResultPackage,
    ResultSetResult,
    UpdateCountResult,
    release_resources,
)
from dbcall.driver._statement import NO_UPDATE_COUNT, BoundParameter, CallableStatement, PreparedStatement

__all__ = (
    "NO_UPDATE_COUNT",
    "BoundParameter",
    "CallableStatement",
    "ExecutionOutcome",
    "ExecutionResultIterator",
    "PreparedStatement",
    "ResultPackage",
    "ResultSetResult",
    "UpdateCountResult",
    "release_resources",
)
