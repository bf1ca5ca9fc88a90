"""Execution of declared queries and stored procedures.

Queries and procedures are described once as static metadata
(:class:`~dbcall.core.descriptors.QueryDescriptor` /
:class:`~dbcall.core.descriptors.StoredProcedureDescriptor`) and executed
through :class:`ExecutionEngine` with only their arguments::

    GET_NUM = QueryDescriptor("GET_NUM", "select num from location where addr = ?", ("addr",), DB)
    RAISE_PRICE = StoredProcedureDescriptor(
        "RAISE_PRICE", "RAISE_PRICE(>, >, =)", (WireType.VARCHAR, WireType.REAL, WireType.NUMERIC), DB
    )

    engine = ExecutionEngine(DriverRegistry.default())
    num = engine.get_int(GET_NUM, "Union St.")
    with engine.get_result_package(RAISE_PRICE, "Colombian", 0.1, Decimal("19.99")) as package:
        new_price = package.get_out_parameter(3)

The requested result type selects how the outcome is returned:

- ``None``: the update count.
- ``int``: first column of the first row (queries) or output parameter 1
  (procedures); ``-1`` when there is no value.
- ``str``: as ``int``, ``None`` when there is no value.
- :class:`~dbcall.driver.ResultPackage`: the live connection, statement and
  result set, which the caller must close.
- any other type: the value converted to that type, or ``None``.

For every result type except ``ResultPackage`` the result set and statement
are closed and the connection committed and closed before returning, whether
or not execution succeeded.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from dbcall.config import DriverRegistry
from dbcall.core.descriptors import QueryDescriptor, StoredProcedureDescriptor
from dbcall.core.parameters import Parameter
from dbcall.core.types import WireType
from dbcall.driver import CallableStatement, PreparedStatement, ResultPackage, release_resources
from dbcall.exceptions import (
    ArityMismatchError,
    DriverError,
    InsufficientArgumentsError,
    SignatureTypeMismatchError,
)
from dbcall.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from dbcall.core.descriptors import Descriptor
    from dbcall.protocols import DBAPIConnection, DBAPICursor

__all__ = ("ExecutionEngine", "build_call_string", "build_parameters", "check_query_arguments")

logger = get_logger("engine")

MISSING_INT: Final = -1

ResultType = Optional[type]


def _type_name(code: "Union[int, WireType]") -> str:
    try:
        return WireType(code).name
    except ValueError:
        return str(code)


def _type_names(arg_types: "Sequence[Union[int, WireType]]") -> str:
    return "[" + ", ".join(_type_name(code) for code in arg_types) + "]"


def check_query_arguments(query: QueryDescriptor, args: "Sequence[Any]") -> None:
    """Check the caller's arguments against the query's declared argument names.

    Raises:
        ArityMismatchError: The number of arguments differs from the declaration.
    """
    expected = len(query.arg_names)
    actual = len(args)
    if actual == expected:
        return
    if expected == 0:
        msg = f"No arguments expected for {query.name}"
    else:
        msg = (
            f"Incorrect argument count for {query.name}[{', '.join(query.arg_names)}]: "
            f"expect: {expected}; actual: {actual}"
        )
    raise ArityMismatchError(msg, expected, actual, query.name)


def build_parameters(sproc: StoredProcedureDescriptor, args: "Sequence[Any]") -> "tuple[str, list[Parameter]]":
    """Parse the procedure's signature and build one parameter per argument.

    For a variadic signature every argument past the fixed ones takes the mode
    and wire type of the last declared slot; the caller may supply zero or
    more of them.

    Raises:
        InvalidSignatureError: The signature is malformed.
        SignatureTypeMismatchError: Signature and type list declare different counts.
        InsufficientArgumentsError: Too few arguments for a variadic procedure.
        ArityMismatchError: Wrong argument count for a fixed-arity procedure.

    Returns:
        The procedure name and its parameters in call order.
    """
    signature = sproc.parse()
    arg_types = sproc.arg_types
    args_count = signature.fixed_count
    types_count = len(arg_types)
    parms_count = len(args)
    min_count = types_count

    if args_count != types_count:
        msg = (
            f"Signature argument count differs from declared type count for {sproc.name}{_type_names(arg_types)}: "
            f"signature: {args_count}; declared: {types_count}"
        )
        raise SignatureTypeMismatchError(msg, args_count, types_count, sproc.name)
    if signature.is_variadic:
        min_count -= 1
        if parms_count < min_count:
            msg = (
                f"Insufficient arguments count for {sproc.name}{_type_names(arg_types)}: "
                f"minimum: {min_count}; actual: {parms_count}"
            )
            raise InsufficientArgumentsError(msg, min_count, parms_count, sproc.name)
    elif parms_count != types_count:
        if types_count == 0:
            msg = f"No arguments expected for {sproc.name}"
        else:
            msg = (
                f"Incorrect arguments count for {sproc.name}{_type_names(arg_types)}: "
                f"expect: {types_count}; actual: {parms_count}"
            )
        raise ArityMismatchError(msg, types_count, parms_count, sproc.name)

    parameters = [Parameter.create(signature.modes[i], arg_types[i], args[i]) for i in range(min_count)]
    if signature.is_variadic:
        mode = signature.modes[min_count]
        wire_type = arg_types[min_count]
        parameters.extend(Parameter.create(mode, wire_type, value) for value in args[min_count:])
    return signature.name, parameters


def build_call_string(procedure_name: str, parameter_count: int) -> str:
    """Call escape text with one placeholder per parameter, e.g. ``{call NAME(?,?)}``."""
    return f"{{call {procedure_name}({','.join('?' * parameter_count)})}}"


def _first_column(row: Any) -> Any:
    if row is None:
        return None
    if isinstance(row, Mapping):
        return next(iter(row.values()), None)
    return row[0]


def _convert(result_type: type, value: Any) -> Any:
    """Convert a driver value to ``result_type``.

    Raises:
        DriverError: The value has no representation as ``result_type``.
    """
    if value is None:
        return MISSING_INT if result_type is int else None
    if result_type is str:
        return str(value)
    try:
        if result_type is int:
            return int(value)
        return value if isinstance(value, result_type) else result_type(value)
    except (TypeError, ValueError, ArithmeticError) as e:
        msg = f"Cannot convert {type(value).__name__} value {value!r} to {result_type.__name__}"
        raise DriverError(msg) from e


class ExecutionEngine:
    """Runs descriptors against the connections named by their connection strings.

    Args:
        registry: Driver registry resolving connection string schemes.
            Defaults to :meth:`DriverRegistry.default`.
    """

    __slots__ = ("registry",)

    def __init__(self, registry: Optional[DriverRegistry] = None) -> None:
        self.registry = registry if registry is not None else DriverRegistry.default()

    # -- Convenience --
    def update(self, descriptor: "Descriptor", *args: Any) -> int:
        """Execute a data-modifying query or procedure.

        Returns:
            The update count, ``-1`` when the driver reports none.
        """
        result = self._execute(None, descriptor, args)
        return MISSING_INT if result is None else int(result)

    def get_int(self, descriptor: "Descriptor", *args: Any) -> int:
        """Integer result; ``-1`` when there is no value."""
        result = self._execute(int, descriptor, args)
        return MISSING_INT if result is None else int(result)

    def get_string(self, descriptor: "Descriptor", *args: Any) -> Optional[str]:
        """String result; ``None`` when there is no value."""
        return self._execute(str, descriptor, args)  # type: ignore[no-any-return]

    def get_result_package(self, descriptor: "Descriptor", *args: Any) -> ResultPackage:
        """Open result package; close it when done, preferably with ``with``."""
        return self._execute(ResultPackage, descriptor, args)  # type: ignore[no-any-return]

    def _execute(self, result_type: ResultType, descriptor: "Descriptor", args: "Sequence[Any]") -> Any:
        if isinstance(descriptor, StoredProcedureDescriptor):
            return self.execute_stored_procedure(result_type, descriptor, *args)
        return self.execute_query(result_type, descriptor, *args)

    # -- Queries --
    def execute_query(self, result_type: ResultType, query: QueryDescriptor, *args: Any) -> Any:
        """Check the arguments against ``query`` and execute it.

        Raises:
            ArityMismatchError: Wrong number of arguments.
            DriverError: The driver failed.
        """
        check_query_arguments(query, args)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Executing query %s",
                query.name,
                extra=log_fields(
                    descriptor=query.name, operation_type=query.operation_type, parameter_count=len(args)
                ),
            )
        return self.execute_sql(result_type, query.connection, query.sql, *args)

    def execute_sql(self, result_type: ResultType, connection_string: str, sql: str, *params: Any) -> Any:
        """Execute ``sql`` with positional ``params`` bound as opaque values."""
        driver, connection = self.registry.connect(connection_string)
        statement: Optional[PreparedStatement] = None
        try:
            statement = PreparedStatement(driver, connection, sql)
            for index, value in enumerate(params, start=1):
                statement.set_object(index, value)
        except Exception:
            release_resources(connection, statement)
            raise
        return self._execute_statement(result_type, connection, statement)

    # -- Stored procedures --
    def execute_stored_procedure(self, result_type: ResultType, sproc: StoredProcedureDescriptor, *args: Any) -> Any:
        """Check the arguments against ``sproc``'s signature and call it.

        Raises:
            InvalidSignatureError: The signature is malformed.
            ArgumentCountError: The arguments do not fit the declaration.
            ParameterBindingError: A value does not fit its wire type.
            DriverError: The driver failed.
        """
        procedure_name, parameters = build_parameters(sproc, args)
        logger.debug(
            "Calling procedure %s",
            procedure_name,
            extra=log_fields(descriptor=sproc.name, operation_type="CALL", parameter_count=len(parameters)),
        )
        return self.call_procedure(result_type, sproc.connection, procedure_name, *parameters)

    def call_procedure(
        self, result_type: ResultType, connection_string: str, procedure_name: str, *parameters: Parameter
    ) -> Any:
        """Call ``procedure_name`` with fully specified parameters."""
        call_string = build_call_string(procedure_name, len(parameters))
        driver, connection = self.registry.connect(connection_string)
        statement: Optional[CallableStatement] = None
        try:
            statement = CallableStatement(driver, connection, call_string, procedure_name)
            for index, parameter in enumerate(parameters, start=1):
                parameter.bind(statement, index)
        except Exception:
            release_resources(connection, statement)
            raise
        return self._execute_statement(result_type, connection, statement)

    # -- Execution --
    def _execute_statement(
        self, result_type: ResultType, connection: "DBAPIConnection", statement: PreparedStatement
    ) -> Any:
        result_set: Optional[DBAPICursor] = None
        handed_off = False
        try:
            with statement.driver.handle_database_exceptions():
                if result_type is None:
                    return statement.execute_update()
                if isinstance(statement, CallableStatement):
                    if statement.execute():
                        result_set = statement.get_result_set()
                    if result_type is ResultPackage:
                        handed_off = True
                        return ResultPackage(connection, statement, result_set)
                    if result_type is str:
                        return statement.get_string(1)
                    return _convert(result_type, statement.get_object(1))
                result_set = statement.execute_query()
                if result_type is ResultPackage:
                    handed_off = True
                    return ResultPackage(connection, statement, result_set)
                return _convert(result_type, _first_column(result_set.fetchone()))
        except DriverError:
            logger.debug("Execution of %r failed", statement, exc_info=True, extra=log_fields(sql=statement.sql))
            raise
        finally:
            if not handed_off:
                release_resources(connection, statement, result_set)
