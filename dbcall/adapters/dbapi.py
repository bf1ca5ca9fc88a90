"""Generic adapter for PEP 249 (DB-API 2.0) drivers.

This class also serves as the base class for the bundled adapters. Each hook
covers one piece of the driver boundary that PEP 249 leaves open: how a
connection string turns into a connection, how output parameters are
registered and read back, how arrays are built, and how a procedure call is
sent to the database.
"""

from collections.abc import Generator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from mypy_extensions import mypyc_attr

from dbcall.exceptions import DbCallError, DriverError
from dbcall.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from dbcall.core.types import WireType
    from dbcall.driver import CallableStatement
    from dbcall.protocols import DBAPIConnection, DBAPICursor

__all__ = ("DBAPIDriver", "OutParameter")

logger = get_logger("adapters.dbapi")


@dataclass
class OutParameter:
    """Holder for an output parameter on drivers without native output variables."""

    wire_type: "Union[int, WireType]"
    type_name: Optional[str] = None
    value: Any = None


@mypyc_attr(allow_interpreted_subclasses=True)
class DBAPIDriver:
    """Adapter for any DB-API compliant connect callable.

    Args:
        connect: Callable returning a DB-API connection for a connection string.
        database_error: Exception types raised by the driver; these are wrapped
            in :class:`~dbcall.exceptions.DriverError`.
        type_coercion_map: Native type to driver representation converters,
            applied to every bound value.
        call_escape_syntax: Execute procedure calls as ``{call NAME(?,...)}``
            text instead of through ``cursor.callproc``.
        dialect: sqlglot dialect name used when describing statements.
    """

    dialect: Optional[str] = None
    call_escape_syntax: bool = False

    def __init__(
        self,
        connect: "Optional[Callable[[str], DBAPIConnection]]" = None,
        *,
        database_error: "tuple[type[Exception], ...]" = (Exception,),
        type_coercion_map: "Optional[dict[type, Callable[[Any], Any]]]" = None,
        call_escape_syntax: Optional[bool] = None,
        dialect: Optional[str] = None,
    ) -> None:
        self._connect = connect
        self.database_error = database_error
        self.type_coercion_map = dict(type_coercion_map or {})
        if call_escape_syntax is not None:
            self.call_escape_syntax = call_escape_syntax
        if dialect is not None:
            self.dialect = dialect

    def connect(self, connection_string: str) -> "DBAPIConnection":
        """Open a new connection for ``connection_string``."""
        if self._connect is None:
            msg = f"{type(self).__name__} has no connect callable"
            raise DriverError(msg)
        with self.handle_database_exceptions():
            return self._connect(connection_string)

    def create_cursor(self, connection: "DBAPIConnection") -> "DBAPICursor":
        with self.handle_database_exceptions():
            return connection.cursor()

    @contextmanager
    def handle_database_exceptions(self) -> "Generator[None, None, None]":
        """Wrap driver exceptions in :class:`~dbcall.exceptions.DriverError`."""
        try:
            yield
        except DbCallError:
            raise
        except self.database_error as e:
            msg = f"Database error: {e}"
            raise DriverError(msg) from e

    def coerce_parameter(self, value: Any) -> Any:
        """Convert a native value into the representation the driver accepts."""
        if value is None or not self.type_coercion_map:
            return value
        converter = self.type_coercion_map.get(type(value))
        if converter is None:
            for base in type(value).__mro__[1:]:
                converter = self.type_coercion_map.get(base)
                if converter is not None:
                    break
        return value if converter is None else converter(value)

    # -- Output parameters --
    def create_out_parameter(
        self, cursor: "DBAPICursor", wire_type: "Union[int, WireType]", type_name: Optional[str] = None
    ) -> Any:
        """Create the object bound in place of an output parameter.

        ``wire_type`` may be a vendor code with no :class:`~dbcall.core.types.WireType` member.
        """
        return OutParameter(wire_type, type_name)

    def set_out_parameter_value(self, holder: Any, value: Any) -> None:
        """Seed an INOUT holder with its input value."""
        holder.value = value

    def get_out_parameter_value(self, holder: Any) -> Any:
        return holder.value

    def bind_out_parameter(self, holder: Any) -> Any:
        """Value placed in the parameter sequence for an output parameter."""
        return self.coerce_parameter(holder.value)

    # -- Arrays --
    def create_array(self, connection: "DBAPIConnection", type_name: str, elements: "Sequence[Any]") -> Any:
        """Build the driver's array object from homogeneous ``elements``.

        Most drivers adapt Python lists to SQL arrays themselves; drivers with
        named collection types override this hook.
        """
        return list(elements)

    # -- Procedure calls --
    def execute_call(self, cursor: "DBAPICursor", statement: "CallableStatement") -> None:
        """Send a procedure call and store returned output values on the statement.

        Raises:
            DriverError: The cursor supports neither ``callproc`` nor call escape syntax.
        """
        parameters = statement.bound_parameters()
        if self.call_escape_syntax:
            cursor.execute(statement.sql, parameters)
            return
        callproc = getattr(cursor, "callproc", None)
        if callproc is None:
            msg = f"{type(cursor).__name__} does not support stored procedure calls"
            raise DriverError(msg)
        returned = callproc(statement.procedure_name, parameters)
        if returned is None:
            return
        for index, holder in statement.out_parameters.items():
            self.set_out_parameter_value(holder, returned[index - 1])
        logger.debug(
            "Read %d output parameters from %s",
            len(statement.out_parameters),
            statement.procedure_name,
            extra=log_fields(procedure=statement.procedure_name, out_parameters=sorted(statement.out_parameters)),
        )
