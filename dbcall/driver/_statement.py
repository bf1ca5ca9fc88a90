"""Statement objects over a DB-API cursor.

PEP 249 binds a whole parameter sequence at execution time. These classes
collect parameters by 1-based index first, so binding can be validated and
logged per parameter, and expose the multi-result protocol of the cursor as
``get_result_set`` / ``get_update_count`` / ``get_more_results``.
"""

from typing import TYPE_CHECKING, Any, Final, NamedTuple, Optional, Union

from dbcall.core.types import WireType
from dbcall.exceptions import DriverError
from dbcall.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from dbcall.adapters.dbapi import DBAPIDriver
    from dbcall.protocols import DBAPIConnection, DBAPICursor

__all__ = ("NO_UPDATE_COUNT", "BoundParameter", "CallableStatement", "PreparedStatement", "close_quietly")

logger = get_logger("driver.statement")

NO_UPDATE_COUNT: Final = -1


class BoundParameter(NamedTuple):
    """Input value bound at one parameter index."""

    value: Any
    wire_type: "Optional[Union[int, WireType]]"


class PreparedStatement:
    """Positional (``?``) statement executed through one DB-API cursor."""

    __slots__ = ("_closed", "_cursor", "_exhausted", "_parameters", "connection", "driver", "sql")

    def __init__(self, driver: "DBAPIDriver", connection: "DBAPIConnection", sql: str) -> None:
        self.driver = driver
        self.connection = connection
        self.sql = sql
        self._cursor = driver.create_cursor(connection)
        self._parameters: dict[int, BoundParameter] = {}
        self._closed = False
        self._exhausted = False

    @property
    def cursor(self) -> "DBAPICursor":
        return self._cursor

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def parameters(self) -> "dict[int, BoundParameter]":
        """Bound input parameters keyed by 1-based index."""
        return dict(self._parameters)

    # -- Binding --
    def set_object(self, index: int, value: Any, wire_type: Optional[WireType] = None) -> None:
        """Bind ``value`` at ``index`` after the driver's type coercion."""
        self._parameters[index] = BoundParameter(self.driver.coerce_parameter(value), wire_type)

    def set_null(self, index: int, wire_type: "Union[int, WireType]") -> None:
        self._parameters[index] = BoundParameter(None, wire_type)

    def parameter_count(self) -> int:
        return max(self._parameters, default=0)

    def bound_parameters(self) -> "list[Any]":
        """Parameter sequence in index order.

        Raises:
            DriverError: An index below the highest bound index has no value.
        """
        values = []
        for index in range(1, self.parameter_count() + 1):
            bound = self._parameters.get(index)
            if bound is None:
                msg = f"No value specified for parameter {index} of {self.sql}"
                raise DriverError(msg)
            values.append(bound.value)
        return values

    # -- Execution --
    def execute_update(self) -> int:
        """Execute a data-modifying statement.

        Returns:
            The affected row count reported by the driver.
        """
        with self.driver.handle_database_exceptions():
            self._cursor.execute(self.sql, self.bound_parameters())
            return self._cursor.rowcount

    def execute_query(self) -> "DBAPICursor":
        """Execute a row-returning statement; the cursor is the result set."""
        with self.driver.handle_database_exceptions():
            self._cursor.execute(self.sql, self.bound_parameters())
        return self._cursor

    def execute(self) -> bool:
        """Execute any statement.

        Returns:
            ``True`` when the first result is a result set.
        """
        with self.driver.handle_database_exceptions():
            self._cursor.execute(self.sql, self.bound_parameters())
            return self._cursor.description is not None

    # -- Multi-result protocol --
    def get_result_set(self) -> "Optional[DBAPICursor]":
        """Current result as a result set, ``None`` for an update count."""
        if self._exhausted or self._cursor.description is None:
            return None
        return self._cursor

    def get_update_count(self) -> int:
        """Current result as an update count, ``-1`` for a result set or no more results."""
        if self._exhausted or self._cursor.description is not None:
            return NO_UPDATE_COUNT
        return self._cursor.rowcount

    def get_more_results(self) -> bool:
        """Advance to the next result.

        Returns:
            ``True`` when the new current result is a result set; ``False``
            for an update count or when the results are exhausted.
        """
        if self._exhausted:
            return False
        nextset = getattr(self._cursor, "nextset", None)
        if nextset is None:
            self._exhausted = True
            return False
        with self.driver.handle_database_exceptions():
            if not nextset():
                self._exhausted = True
                return False
            return self._cursor.description is not None

    def close(self) -> None:
        """Close the underlying cursor; repeated calls do nothing."""
        if self._closed:
            return
        self._closed = True
        with self.driver.handle_database_exceptions():
            self._cursor.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.sql!r})"


class CallableStatement(PreparedStatement):
    """Procedure call statement with output parameter registration."""

    __slots__ = ("_out_parameters", "procedure_name")

    def __init__(self, driver: "DBAPIDriver", connection: "DBAPIConnection", sql: str, procedure_name: str) -> None:
        super().__init__(driver, connection, sql)
        self.procedure_name = procedure_name
        self._out_parameters: dict[int, Any] = {}

    @property
    def out_parameters(self) -> "dict[int, Any]":
        """Driver holders of registered output parameters keyed by 1-based index."""
        return dict(self._out_parameters)

    def register_out_parameter(
        self, index: int, wire_type: "Union[int, WireType]", type_name: Optional[str] = None
    ) -> None:
        """Register ``index`` as an output parameter of ``wire_type``.

        Vendor codes outside :class:`WireType` are passed to the driver unchanged.

        Args:
            index: 1-based parameter index.
            wire_type: Wire type code of the returned value.
            type_name: Database type name, used for ``ARRAY`` parameters.
        """
        holder = self.driver.create_out_parameter(self._cursor, wire_type, type_name)
        self._out_parameters[index] = holder
        bound = self._parameters.get(index)
        if bound is not None:
            self.driver.set_out_parameter_value(holder, bound.value)

    def set_object(self, index: int, value: Any, wire_type: Optional[WireType] = None) -> None:
        super().set_object(index, value, wire_type)
        holder = self._out_parameters.get(index)
        if holder is not None:
            self.driver.set_out_parameter_value(holder, value)

    def set_array(self, index: int, array: Any) -> None:
        """Bind a driver array object built by :meth:`create_array`; no coercion is applied."""
        self._parameters[index] = BoundParameter(array, WireType.ARRAY)
        holder = self._out_parameters.get(index)
        if holder is not None:
            self.driver.set_out_parameter_value(holder, array)

    def create_array(self, type_name: str, elements: "Sequence[Any]") -> Any:
        with self.driver.handle_database_exceptions():
            return self.driver.create_array(self.connection, type_name, elements)

    def parameter_count(self) -> int:
        return max((*self._parameters, *self._out_parameters), default=0)

    def bound_parameters(self) -> "list[Any]":
        values = []
        for index in range(1, self.parameter_count() + 1):
            holder = self._out_parameters.get(index)
            if holder is not None:
                values.append(self.driver.bind_out_parameter(holder))
                continue
            bound = self._parameters.get(index)
            if bound is None:
                msg = f"No value specified for parameter {index} of {self.sql}"
                raise DriverError(msg)
            values.append(bound.value)
        return values

    def execute(self) -> bool:
        with self.driver.handle_database_exceptions():
            self.driver.execute_call(self._cursor, self)
            return self._cursor.description is not None

    def execute_update(self) -> int:
        self.execute()
        return self.get_update_count()

    def execute_query(self) -> "DBAPICursor":
        self.execute()
        return self._cursor

    # -- Output values --
    def get_object(self, index: int) -> Any:
        """Value of the output parameter at ``index`` after execution.

        Raises:
            DriverError: ``index`` was not registered as an output parameter.
        """
        holder = self._out_parameters.get(index)
        if holder is None:
            msg = f"Parameter {index} of {self.sql} is not an output parameter"
            raise DriverError(msg)
        return self.driver.get_out_parameter_value(holder)

    def get_int(self, index: int) -> Optional[int]:
        value = self.get_object(index)
        return None if value is None else int(value)

    def get_string(self, index: int) -> Optional[str]:
        value = self.get_object(index)
        return None if value is None else str(value)


def close_quietly(resource: Any, what: str) -> None:
    """Close ``resource`` suppressing and logging any failure."""
    if resource is None:
        return
    try:
        resource.close()
    except Exception:
        logger.debug("Suppressed failure closing %s", what, exc_info=True)
