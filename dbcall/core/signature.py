"""Stored procedure signature parsing.

A signature names the procedure and the direction of each argument::

    RAISE_PRICE(>, >, =)    three fixed arguments: IN, IN, INOUT
    IN_VARARGS(<, >:)       one OUT argument followed by zero or more IN arguments
    SHOW_ADDRESSES()        no arguments

A trailing ``:`` marks the last declared argument as variadic.
"""

import re
from typing import Final, NamedTuple, Optional

from dbcall.core.types import ParameterMode
from dbcall.exceptions import InvalidSignatureError

__all__ = ("SIGNATURE_PATTERN", "ProcedureSignature", "parse_signature")

SIGNATURE_PATTERN: Final = re.compile(
    r"(?P<name>[^\W\d][\w@$#]*)(?:\((?P<args>[<>=](?:,\s*[<>=])*)?(?P<varargs>:)?\))?"
)
_ARG_SEPARATOR: Final = re.compile(r",\s*")


class ProcedureSignature(NamedTuple):
    """Parsed form of a stored procedure signature."""

    name: str
    modes: "tuple[ParameterMode, ...]"
    is_variadic: bool

    @property
    def fixed_count(self) -> int:
        """Number of declared slots, including the variadic template slot."""
        return len(self.modes)


def parse_signature(signature: str, name: Optional[str] = None) -> ProcedureSignature:
    """Parse a signature string.

    Args:
        signature: Signature text, e.g. ``GET_SUPPLIER_OF_COFFEE(>, <)``.
        name: Diagnostic name of the owning descriptor.

    Raises:
        InvalidSignatureError: The text does not match the grammar, or a
            variadic marker has no argument to apply to.

    Returns:
        The procedure name, argument modes and variadic flag.
    """
    match = SIGNATURE_PATTERN.fullmatch(signature)
    if match is None:
        msg = f"Unsupported stored procedure signature for {name}: {signature}"
        raise InvalidSignatureError(msg, signature, name)

    is_variadic = match.group("varargs") is not None
    args = match.group("args")
    if args is None:
        if is_variadic:
            msg = f"VarArgs indicated with no placeholder in signature for {name}: {signature}"
            raise InvalidSignatureError(msg, signature, name)
        return ProcedureSignature(match.group("name"), (), False)

    modes = tuple(ParameterMode.from_char(marker, signature) for marker in _ARG_SEPARATOR.split(args))
    return ProcedureSignature(match.group("name"), modes, is_variadic)
