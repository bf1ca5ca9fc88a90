"""SQLite adapter for dbcall."""

from dbcall.adapters.sqlite.config import SqliteConnectionParams, parse_connection_string
from dbcall.adapters.sqlite.driver import SqliteDriver, sqlite_type_coercion_map

__all__ = ("SqliteConnectionParams", "SqliteDriver", "parse_connection_string", "sqlite_type_coercion_map")
