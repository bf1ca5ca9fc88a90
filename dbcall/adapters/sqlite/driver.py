import datetime
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Callable, Final, Optional

from dbcall._serialization import encode_json
from dbcall.adapters.dbapi import DBAPIDriver
from dbcall.adapters.sqlite.config import parse_connection_string
from dbcall.exceptions import DbCallError, DriverError

__all__ = ("SqliteDriver", "sqlite_type_coercion_map")

sqlite_type_coercion_map: "Final[dict[type, Callable[[Any], Any]]]" = {
    bool: int,
    datetime.datetime: lambda v: v.isoformat(sep=" "),
    datetime.date: lambda v: v.isoformat(),
    datetime.time: lambda v: v.isoformat(),
    Decimal: str,
    bytearray: bytes,
    dict: encode_json,
    list: encode_json,
    tuple: lambda v: encode_json(list(v)),
}


class SqliteDriver(DBAPIDriver):
    """Reference adapter for the standard library ``sqlite3`` module.

    SQLite has no stored procedures; procedure calls fail with
    :class:`~dbcall.exceptions.DriverError`. The query path is fully supported.
    """

    dialect = "sqlite"

    def __init__(self, type_coercion_map: "Optional[dict[type, Callable[[Any], Any]]]" = None) -> None:
        super().__init__(
            database_error=(sqlite3.Error,),
            type_coercion_map=sqlite_type_coercion_map if type_coercion_map is None else type_coercion_map,
        )

    def connect(self, connection_string: str) -> sqlite3.Connection:
        params = parse_connection_string(connection_string)
        with self.handle_database_exceptions():
            return sqlite3.connect(**params)

    @contextmanager
    def handle_database_exceptions(self) -> "Generator[None, None, None]":
        """Handle SQLite-specific exceptions and wrap them appropriately."""
        try:
            yield
        except DbCallError:
            raise
        except sqlite3.Error as e:
            msg = f"SQLite database error: {e}"
            raise DriverError(msg) from e
