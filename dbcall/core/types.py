"""Vendor-neutral SQL wire types and the native Python values bound to them.

Codes follow the widely used ``java.sql.Types`` / ODBC numbering so that
descriptors can be shared with tools that speak the same codes.
"""

import datetime
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Final, Optional, Union

from dbcall.exceptions import InvalidSignatureError, UnsupportedParameterTypeError

__all__ = (
    "NATIVE_CLASSES",
    "WIRE_TYPE_KINDS",
    "BindKind",
    "ParameterMode",
    "WireType",
    "bind_kind_for",
    "native_class_for",
)


class WireType(IntEnum):
    """SQL type codes understood by the parameter binder."""

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    OBJECT = 2000
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    BOOLEAN = 16

    @classmethod
    def coerce(cls, code: "Union[int, WireType]") -> "WireType":
        """Resolve a raw integer code.

        Raises:
            UnsupportedParameterTypeError: The code is not a known wire type.
        """
        try:
            return cls(code)
        except ValueError:
            raise UnsupportedParameterTypeError(int(code)) from None


class BindKind(Enum):
    """Closed set of binding variants, one typed setter each."""

    STRING = "string"
    NSTRING = "nstring"
    BYTES = "bytes"
    BOOLEAN = "boolean"
    SHORT = "short"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    OBJECT = "object"
    ARRAY = "array"


WIRE_TYPE_KINDS: "Final[dict[WireType, BindKind]]" = {
    WireType.CHAR: BindKind.STRING,
    WireType.VARCHAR: BindKind.STRING,
    WireType.LONGVARCHAR: BindKind.STRING,
    WireType.NCHAR: BindKind.NSTRING,
    WireType.NVARCHAR: BindKind.NSTRING,
    WireType.LONGNVARCHAR: BindKind.NSTRING,
    WireType.BINARY: BindKind.BYTES,
    WireType.VARBINARY: BindKind.BYTES,
    WireType.LONGVARBINARY: BindKind.BYTES,
    WireType.BIT: BindKind.BOOLEAN,
    WireType.BOOLEAN: BindKind.BOOLEAN,
    WireType.SMALLINT: BindKind.SHORT,
    WireType.INTEGER: BindKind.INT,
    WireType.BIGINT: BindKind.LONG,
    WireType.REAL: BindKind.FLOAT,
    WireType.DOUBLE: BindKind.DOUBLE,
    WireType.FLOAT: BindKind.DOUBLE,
    WireType.DECIMAL: BindKind.DECIMAL,
    WireType.NUMERIC: BindKind.DECIMAL,
    WireType.DATE: BindKind.DATE,
    WireType.TIME: BindKind.TIME,
    WireType.TIMESTAMP: BindKind.TIMESTAMP,
    WireType.OTHER: BindKind.OBJECT,
    WireType.OBJECT: BindKind.OBJECT,
    WireType.ARRAY: BindKind.ARRAY,
}

# Element classes used when an array parameter declares no explicit value class.
NATIVE_CLASSES: "Final[dict[WireType, type]]" = {
    WireType.CHAR: str,
    WireType.VARCHAR: str,
    WireType.LONGVARCHAR: str,
    WireType.NCHAR: str,
    WireType.NVARCHAR: str,
    WireType.LONGNVARCHAR: str,
    WireType.BINARY: bytes,
    WireType.VARBINARY: bytes,
    WireType.LONGVARBINARY: bytes,
    WireType.BIT: bool,
    WireType.BOOLEAN: bool,
    WireType.SMALLINT: int,
    WireType.INTEGER: int,
    WireType.BIGINT: int,
    WireType.REAL: float,
    WireType.DOUBLE: float,
    WireType.FLOAT: float,
    WireType.DECIMAL: Decimal,
    WireType.NUMERIC: Decimal,
    WireType.DATE: datetime.date,
    WireType.TIME: datetime.time,
    WireType.TIMESTAMP: datetime.datetime,
    WireType.OTHER: object,
    WireType.OBJECT: object,
}


def bind_kind_for(code: "Union[int, WireType]") -> BindKind:
    """Select the binding variant for a wire type code.

    Raises:
        UnsupportedParameterTypeError: No binding exists for the code.
    """
    wire_type = WireType.coerce(code)
    kind = WIRE_TYPE_KINDS.get(wire_type)
    if kind is None:
        raise UnsupportedParameterTypeError(int(wire_type))
    return kind


def native_class_for(code: "Union[int, WireType]") -> type:
    """Native element class for an array of the given wire type."""
    wire_type = WireType.coerce(code)
    native_class = NATIVE_CLASSES.get(wire_type)
    if native_class is None:
        raise UnsupportedParameterTypeError(int(wire_type))
    return native_class


_INPUT: Final = 1
_OUTPUT: Final = 2


class ParameterMode(Enum):
    """Direction of a stored procedure argument, keyed by its signature marker."""

    IN = (">", _INPUT)
    OUT = ("<", _OUTPUT)
    INOUT = ("=", _INPUT | _OUTPUT)

    def __init__(self, marker: str, flags: int) -> None:
        self.marker = marker
        self.flags = flags

    @property
    def is_input(self) -> bool:
        return bool(self.flags & _INPUT)

    @property
    def is_output(self) -> bool:
        return bool(self.flags & _OUTPUT)

    @classmethod
    def from_char(cls, marker: str, signature: Optional[str] = None) -> "ParameterMode":
        """Resolve a signature direction marker.

        Raises:
            InvalidSignatureError: The marker is not one of ``>``, ``<`` or ``=``.
        """
        for mode in cls:
            if mode.marker == marker:
                return mode
        msg = f"Specified parameter mode placeholder '{marker}' is unsupported"
        raise InvalidSignatureError(msg, signature or marker)

    def __str__(self) -> str:
        return self.name
