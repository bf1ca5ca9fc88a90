from collections.abc import Sequence
from typing import Any, Optional

__all__ = (
    "ArgumentCountError",
    "ArityMismatchError",
    "ArrayElementMismatchError",
    "DbCallError",
    "DriverError",
    "HandleClosedError",
    "ImproperConfigurationError",
    "InsufficientArgumentsError",
    "InvalidSignatureError",
    "ParameterBindingError",
    "SQLFileNotFoundError",
    "SQLFileParseError",
    "SignatureTypeMismatchError",
    "TypeMismatchError",
    "UnsupportedParameterTypeError",
)


class DbCallError(Exception):
    """Base exception class from which all dbcall exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``DbCallError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(DbCallError):
    """Improper Configuration error.

    Raised for unknown connection string schemes, malformed connection strings
    and descriptors that cannot be executed as defined.
    """


class InvalidSignatureError(DbCallError):
    """Stored procedure signature does not match the signature grammar."""

    signature: str
    name: Optional[str]

    def __init__(self, message: str, signature: str, name: Optional[str] = None) -> None:
        super().__init__(detail=message)
        self.signature = signature
        self.name = name


# -- Argument Count Errors --
class ArgumentCountError(DbCallError):
    """Base class for disagreements between caller arguments and declared metadata."""

    name: Optional[str]

    def __init__(self, message: str, name: Optional[str] = None) -> None:
        super().__init__(detail=message)
        self.name = name


class ArityMismatchError(ArgumentCountError):
    """Raised when the caller supplies a different number of arguments than declared."""

    expected: int
    actual: int

    def __init__(self, message: str, expected: int, actual: int, name: Optional[str] = None) -> None:
        super().__init__(message, name)
        self.expected = expected
        self.actual = actual


class InsufficientArgumentsError(ArgumentCountError):
    """Raised when a variadic procedure receives fewer than its fixed arguments."""

    minimum: int
    actual: int

    def __init__(self, message: str, minimum: int, actual: int, name: Optional[str] = None) -> None:
        super().__init__(message, name)
        self.minimum = minimum
        self.actual = actual


class SignatureTypeMismatchError(ArgumentCountError):
    """Raised when a signature declares a different number of slots than the type list."""

    signature_count: int
    declared_count: int

    def __init__(self, message: str, signature_count: int, declared_count: int, name: Optional[str] = None) -> None:
        super().__init__(message, name)
        self.signature_count = signature_count
        self.declared_count = declared_count


# -- Parameter Binding Errors --
class ParameterBindingError(DbCallError):
    """Base class for failures binding a parameter into a statement."""


class TypeMismatchError(ParameterBindingError):
    """Parameter value does not have the native representation of its wire type."""

    index: int
    expected_kind: str

    def __init__(self, index: int, expected_kind: str) -> None:
        super().__init__(f"Specified value for parameter {index} is not {expected_kind}")
        self.index = index
        self.expected_kind = expected_kind


class UnsupportedParameterTypeError(ParameterBindingError):
    """Wire type code has no binding."""

    code: int

    def __init__(self, code: int) -> None:
        super().__init__(f"Specified parameter type [{code}] is unsupported")
        self.code = code


class ArrayElementMismatchError(ParameterBindingError):
    """Array element does not match the resolved element class."""

    index: int
    expected_class: type
    actual_class: type

    def __init__(self, index: int, expected_class: type, actual_class: type) -> None:
        super().__init__(
            f"Array element mismatch at index {index}: "
            f"expected {expected_class.__name__}, found {actual_class.__name__}"
        )
        self.index = index
        self.expected_class = expected_class
        self.actual_class = actual_class


# -- Driver Errors --
class DriverError(DbCallError):
    """Failure reported by the underlying database driver."""


class HandleClosedError(DbCallError):
    """A result package was used after it was closed."""

    detail = "The result package has been closed"


# -- SQL File Errors --
class SQLFileNotFoundError(DbCallError):
    """SQL file or directory could not be found."""

    path: str

    def __init__(self, path: str, message: Optional[str] = None) -> None:
        if message is None:
            message = f"SQL file not found: {path}"
        super().__init__(message)
        self.path = path


class SQLFileParseError(DbCallError):
    """SQL file content could not be split into named queries."""

    path: str
    names: "Sequence[str]"

    def __init__(self, path: str, message: str, names: "Sequence[str]" = ()) -> None:
        super().__init__(f"Failed to parse {path}: {message}")
        self.path = path
        self.names = tuple(names)

