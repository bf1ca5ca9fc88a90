"""dbcall: declarative execution of SQL queries and stored procedures over DB-API drivers."""

from dbcall import adapters, core, driver, exceptions, loader, utils
from dbcall.__metadata__ import __version__
from dbcall.adapters import DBAPIDriver
from dbcall.adapters.sqlite import SqliteDriver
from dbcall.config import DriverRegistry
from dbcall.core import (
    Parameter,
    ParameterMode,
    ProcedureSignature,
    QueryDescriptor,
    StoredProcedureDescriptor,
    WireType,
    parse_signature,
)
from dbcall.driver import ExecutionResultIterator, ResultPackage, ResultSetResult, UpdateCountResult
from dbcall.engine import ExecutionEngine, build_call_string, build_parameters
from dbcall.exceptions import (
    ArgumentCountError,
    ArityMismatchError,
    DbCallError,
    DriverError,
    HandleClosedError,
    ImproperConfigurationError,
    InsufficientArgumentsError,
    InvalidSignatureError,
    ParameterBindingError,
    SignatureTypeMismatchError,
)
from dbcall.loader import QueryFileLoader

__all__ = (
    "ArgumentCountError",
    "ArityMismatchError",
    "DBAPIDriver",
    "DbCallError",
    "DriverError",
    "DriverRegistry",
    "ExecutionEngine",
    "ExecutionResultIterator",
    "HandleClosedError",
    "ImproperConfigurationError",
    "InsufficientArgumentsError",
    "InvalidSignatureError",
    "Parameter",
    "ParameterBindingError",
    "ParameterMode",
    "ProcedureSignature",
    "QueryDescriptor",
    "QueryFileLoader",
    "ResultPackage",
    "ResultSetResult",
    "SignatureTypeMismatchError",
    "SqliteDriver",
    "StoredProcedureDescriptor",
    "UpdateCountResult",
    "WireType",
    "__version__",
    "adapters",
    "build_call_string",
    "build_parameters",
    "core",
    "driver",
    "exceptions",
    "loader",
    "parse_signature",
    "utils",
)
