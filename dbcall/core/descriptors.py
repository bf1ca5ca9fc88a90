"""Static metadata describing queries and stored procedures."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from dbcall.core.signature import parse_signature

if TYPE_CHECKING:
    from dbcall.core.signature import ProcedureSignature
    from dbcall.core.types import WireType

__all__ = ("Descriptor", "QueryDescriptor", "StoredProcedureDescriptor", "detect_operation_type")


def detect_operation_type(sql: str, dialect: Optional[str] = None) -> str:
    """AST-based operation type detection.

    Args:
        sql: Query text.
        dialect: Optional sqlglot dialect name.

    Returns:
        One of ``SELECT``, ``INSERT``, ``UPDATE``, ``DELETE``, ``DDL``,
        ``PRAGMA``, ``EXECUTE`` or ``UNKNOWN`` when the text does not parse.
    """
    try:
        expression = sqlglot.parse_one(sql, read=dialect)
    except SqlglotError:
        return "UNKNOWN"
    if isinstance(expression, (exp.Select, exp.Union)):
        return "SELECT"
    if isinstance(expression, exp.Insert):
        return "INSERT"
    if isinstance(expression, exp.Update):
        return "UPDATE"
    if isinstance(expression, exp.Delete):
        return "DELETE"
    if isinstance(expression, (exp.Create, exp.Drop, exp.Alter)):
        return "DDL"
    if isinstance(expression, exp.Pragma):
        return "PRAGMA"
    if isinstance(expression, exp.Command):
        return "EXECUTE"
    return "UNKNOWN"


@dataclass(frozen=True)
class QueryDescriptor:
    """A query with positional (``?``) placeholders.

    Attributes:
        name: Identifying name used in diagnostics.
        sql: Query text sent to the database.
        arg_names: Names of the positional arguments, in placeholder order.
        connection: Connection string; its scheme selects the driver adapter.
        dialect: Optional sqlglot dialect of ``sql``.
    """

    name: str
    sql: str
    arg_names: "tuple[str, ...]" = ()
    connection: str = ""
    dialect: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "arg_names", tuple(self.arg_names))

    @property
    def arg_count(self) -> int:
        return len(self.arg_names)

    @property
    def operation_type(self) -> str:
        return detect_operation_type(self.sql, self.dialect)


@dataclass(frozen=True)
class StoredProcedureDescriptor:
    """A stored procedure call.

    Attributes:
        name: Identifying name used in diagnostics.
        signature: Signature text, e.g. ``RAISE_PRICE(>, >, =)``.
        arg_types: Wire type of each declared argument; for a variadic
            signature the last entry types every repeated argument.
        connection: Connection string; its scheme selects the driver adapter.
    """

    name: str
    signature: str
    arg_types: "tuple[Union[int, WireType], ...]" = ()
    connection: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "arg_types", tuple(self.arg_types))

    def parse(self) -> "ProcedureSignature":
        """Parse the signature; nothing is cached between calls."""
        return parse_signature(self.signature, self.name)


Descriptor = Union[QueryDescriptor, StoredProcedureDescriptor]
