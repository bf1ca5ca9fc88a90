"""Typed stored procedure parameters.

A :class:`Parameter` carries the direction, wire type and value of one call
argument and binds itself into a :class:`~dbcall.driver.CallableStatement`:
output directions are registered at their wire type, input directions are
validated against the native representation of their wire type and bound.
"""

import datetime
from collections.abc import Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Final, NamedTuple, Optional, Union

from dbcall.core.types import BindKind, ParameterMode, WireType, bind_kind_for, native_class_for
from dbcall.exceptions import ArrayElementMismatchError, TypeMismatchError

if TYPE_CHECKING:
    from dbcall.driver import CallableStatement

__all__ = ("BINDERS", "Parameter")

_SHORT_RANGE: Final = (-(2**15), 2**15 - 1)
_INT_RANGE: Final = (-(2**31), 2**31 - 1)
_LONG_RANGE: Final = (-(2**63), 2**63 - 1)


def _is_integer(value: Any, bounds: "tuple[int, int]") -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and bounds[0] <= value <= bounds[1]


class _Binder(NamedTuple):
    accepts: "Callable[[Any], bool]"
    expected_kind: str


BINDERS: "Final[dict[BindKind, _Binder]]" = {
    BindKind.STRING: _Binder(lambda v: isinstance(v, str), "a string"),
    BindKind.NSTRING: _Binder(lambda v: isinstance(v, str), "a string"),
    BindKind.BYTES: _Binder(lambda v: isinstance(v, (bytes, bytearray)), "a byte string"),
    BindKind.BOOLEAN: _Binder(lambda v: isinstance(v, bool), "a boolean"),
    BindKind.SHORT: _Binder(lambda v: _is_integer(v, _SHORT_RANGE), "a small integer (16-bit)"),
    BindKind.INT: _Binder(lambda v: _is_integer(v, _INT_RANGE), "an integer (32-bit)"),
    BindKind.LONG: _Binder(lambda v: _is_integer(v, _LONG_RANGE), "a big integer (64-bit)"),
    BindKind.FLOAT: _Binder(lambda v: isinstance(v, float), "a single-precision float"),
    BindKind.DOUBLE: _Binder(lambda v: isinstance(v, float), "a double-precision float"),
    BindKind.DECIMAL: _Binder(lambda v: isinstance(v, Decimal), "a decimal (Decimal)"),
    BindKind.DATE: _Binder(
        lambda v: isinstance(v, datetime.date) and not isinstance(v, datetime.datetime), "a date (datetime.date)"
    ),
    BindKind.TIME: _Binder(lambda v: isinstance(v, datetime.time), "a time (datetime.time)"),
    BindKind.TIMESTAMP: _Binder(lambda v: isinstance(v, datetime.datetime), "a timestamp (datetime.datetime)"),
    BindKind.OBJECT: _Binder(lambda v: True, "an object"),
    BindKind.ARRAY: _Binder(lambda v: isinstance(v, (list, tuple)), "an array (list or tuple)"),
}


class Parameter:
    """One argument of a stored procedure call.

    Use the factory methods rather than the constructor::

        Parameter.in_(WireType.VARCHAR, "Acme, Inc.")
        Parameter.out(WireType.INTEGER)
        Parameter.in_out(WireType.DECIMAL, Decimal("10.00"))
        Parameter.array(ParameterMode.IN, WireType.INTEGER, 1, 2, 3)
    """

    __slots__ = ("mode", "value", "value_class", "value_type", "value_type_name", "wire_type")

    def __init__(
        self,
        mode: ParameterMode,
        wire_type: "Union[int, WireType]",
        value: Any = None,
        *,
        value_type: "Optional[Union[int, WireType]]" = None,
        value_class: Optional[type] = None,
        value_type_name: Optional[str] = None,
    ) -> None:
        self.mode = mode
        self.wire_type = wire_type
        self.value = value
        self.value_type = value_type
        self.value_class = value_class
        self.value_type_name = value_type_name

    @classmethod
    def in_(cls, wire_type: "Union[int, WireType]", value: Any) -> "Parameter":
        return cls(ParameterMode.IN, wire_type, value)

    @classmethod
    def out(cls, wire_type: "Union[int, WireType]") -> "Parameter":
        return cls(ParameterMode.OUT, wire_type)

    @classmethod
    def in_out(cls, wire_type: "Union[int, WireType]", value: Any) -> "Parameter":
        return cls(ParameterMode.INOUT, wire_type, value)

    @classmethod
    def create(cls, mode: ParameterMode, wire_type: "Union[int, WireType]", value: Any = None) -> "Parameter":
        """Create a parameter of ``mode``; the value of a pure OUT parameter is dropped."""
        if mode is ParameterMode.OUT:
            return cls.out(wire_type)
        if mode is ParameterMode.INOUT:
            return cls.in_out(wire_type, value)
        return cls.in_(wire_type, value)

    @classmethod
    def array(cls, mode: ParameterMode, value_type: "Union[int, WireType]", *values: Any) -> "Parameter":
        """Create an ``ARRAY`` parameter whose elements have wire type ``value_type``."""
        return cls(mode, WireType.ARRAY, list(values), value_type=value_type)

    def with_value_class(self, value_class: type) -> "Parameter":
        """Override the element class array values are checked against."""
        self.value_class = value_class
        return self

    def with_value_type_name(self, value_type_name: str) -> "Parameter":
        """Override the database type name used to build and register the array."""
        self.value_type_name = value_type_name
        return self

    @property
    def is_input(self) -> bool:
        return self.mode.is_input

    @property
    def is_output(self) -> bool:
        return self.mode.is_output

    @property
    def is_array(self) -> bool:
        return self.wire_type == WireType.ARRAY

    def bind(self, statement: "CallableStatement", index: int) -> None:
        """Register and/or bind this parameter at 1-based ``index``.

        Raises:
            TypeMismatchError: The value is not the native representation of the wire type.
            UnsupportedParameterTypeError: A non-null input value has a wire type without binding.
            ArrayElementMismatchError: An array element is not of the element class.
        """
        if self.is_output:
            type_name = self.value_type_name if self.is_array else None
            statement.register_out_parameter(index, self.wire_type, type_name)
        if not self.is_input:
            return
        if self.value is None:
            statement.set_null(index, self.wire_type)
            return
        wire_type = WireType.coerce(self.wire_type)
        kind = bind_kind_for(wire_type)
        binder = BINDERS[kind]
        if not binder.accepts(self.value):
            raise TypeMismatchError(index, binder.expected_kind)
        if kind is BindKind.ARRAY:
            statement.set_array(index, statement.create_array(self.array_type_name(), self.typed_elements()))
        elif kind is BindKind.BYTES:
            statement.set_object(index, bytes(self.value), wire_type)
        else:
            statement.set_object(index, self.value, wire_type)

    # -- Arrays --
    def element_class(self) -> type:
        """Element class of an array parameter: the override, else the native class of ``value_type``."""
        if self.value_class is not None:
            return self.value_class
        return native_class_for(self.value_type if self.value_type is not None else WireType.OTHER)

    def array_type_name(self) -> str:
        if self.value_type_name is not None:
            return self.value_type_name
        return WireType.coerce(self.value_type if self.value_type is not None else WireType.OTHER).name

    def typed_elements(self) -> "tuple[Any, ...]":
        """Copy the array value, checking each non-null element against :meth:`element_class`.

        Raises:
            ArrayElementMismatchError: An element is of another class.
        """
        value_class = self.element_class()
        elements: Sequence[Any] = self.value
        for index, item in enumerate(elements):
            if item is not None and not isinstance(item, value_class):
                raise ArrayElementMismatchError(index, value_class, type(item))
        return tuple(elements)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Parameter):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in self.__slots__)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        wire_type = getattr(self.wire_type, "name", self.wire_type)
        return f"Parameter({self.mode}, {wire_type}, {self.value!r})"
