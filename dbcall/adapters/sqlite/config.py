"""SQLite connection string parsing."""

from typing import Any, Callable, TypedDict
from urllib.parse import parse_qsl, unquote, urlsplit

from typing_extensions import NotRequired

from dbcall.exceptions import ImproperConfigurationError

__all__ = ("SqliteConnectionParams", "parse_connection_string")

MEMORY_DATABASE = ":memory:"


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    database: NotRequired[str]
    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    isolation_level: "NotRequired[str | None]"
    check_same_thread: NotRequired[bool]
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]


def _to_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    msg = f"Invalid boolean value: {value!r}"
    raise ValueError(msg)


def _to_isolation_level(value: str) -> "str | None":
    return None if value.strip().lower() in {"none", "autocommit"} else value.upper()


_OPTION_PARSERS: "dict[str, Callable[[str], Any]]" = {
    "timeout": float,
    "detect_types": int,
    "isolation_level": _to_isolation_level,
    "check_same_thread": _to_bool,
    "cached_statements": int,
    "uri": _to_bool,
}


def parse_connection_string(connection_string: str) -> SqliteConnectionParams:
    """Translate a ``sqlite:`` URL into :func:`sqlite3.connect` keyword arguments.

    ``sqlite:///relative.db`` and ``sqlite:////absolute/path.db`` name files,
    ``sqlite://:memory:`` (or ``sqlite://``) an in-memory database. Query
    parameters set the remaining connection options, e.g.
    ``sqlite:///app.db?timeout=5&isolation_level=none``.

    Raises:
        ImproperConfigurationError: The URL is not a ``sqlite`` URL or carries
            an unknown or malformed option.
    """
    parts = urlsplit(connection_string)
    if parts.scheme.split("+", 1)[0].lower() != "sqlite":
        msg = f"Not a SQLite connection string: {connection_string!r}"
        raise ImproperConfigurationError(msg)

    if parts.path:
        database = unquote(parts.path[1:] if parts.path.startswith("/") else parts.path)
    else:
        database = unquote(parts.netloc) or MEMORY_DATABASE
    params: SqliteConnectionParams = {"database": database or MEMORY_DATABASE}

    for key, raw_value in parse_qsl(parts.query, keep_blank_values=True):
        parser = _OPTION_PARSERS.get(key)
        if parser is None:
            msg = f"Unknown SQLite connection option {key!r} in {connection_string!r}"
            raise ImproperConfigurationError(msg)
        try:
            params[key] = parser(raw_value)  # type: ignore[literal-required]
        except ValueError as e:
            msg = f"Invalid value for SQLite connection option {key!r}: {raw_value!r}"
            raise ImproperConfigurationError(msg) from e

    if params["database"].startswith("file:"):
        params.setdefault("uri", True)
    return params
