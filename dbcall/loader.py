"""Query file loader.

Reads aiosql-style ``.sql`` files into :class:`~dbcall.core.descriptors.QueryDescriptor`
objects, so query text lives beside the application instead of in string
constants::

    -- name: get-location-num
    -- args: addr
    -- dialect: sqlite
    SELECT num FROM location WHERE addr = ?

Names are normalized to Python identifiers (``get-location-num`` becomes
``get_location_num``). Directories are searched recursively and queries in
subdirectories are namespaced by their relative path (``reports.daily_total``).
"""

import hashlib
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from difflib import get_close_matches
from pathlib import Path
from typing import Any, Optional, Union

from dbcall.core.descriptors import QueryDescriptor
from dbcall.exceptions import SQLFileNotFoundError, SQLFileParseError
from dbcall.utils.logging import get_logger, log_fields

__all__ = ("QueryFileLoader", "SQLFile")

logger = get_logger("loader")

# Matches: -- name: query_name (supports hyphens and aiosql suffixes like ! or $)
QUERY_NAME_PATTERN = re.compile(r"^\s*--\s*name\s*:\s*([\w-]+[^\w\s]*)\s*$", re.MULTILINE | re.IGNORECASE)
TRIM_SPECIAL_CHARS = re.compile(r"[^\w-]")

ARGS_PATTERN = re.compile(r"^\s*--\s*args\s*:\s*(?P<args>.*?)\s*$", re.IGNORECASE)
DIALECT_PATTERN = re.compile(r"^\s*--\s*dialect\s*:\s*(?P<dialect>[a-zA-Z0-9_]+)\s*$", re.IGNORECASE)

DIALECT_ALIASES = {
    "postgresql": "postgres",
    "pg": "postgres",
    "plsql": "oracle",
    "oracledb": "oracle",
    "mssql": "tsql",
    "sqlserver": "tsql",
}


def _normalize_query_name(name: str) -> str:
    """Normalize query name to be a valid Python identifier.

    Strips aiosql special characters (``$``, ``!``, ...) and replaces hyphens
    with underscores.
    """
    return TRIM_SPECIAL_CHARS.sub("", name).replace("-", "_")


def _normalize_dialect(dialect: str) -> str:
    normalized = dialect.lower().strip()
    return DIALECT_ALIASES.get(normalized, normalized)


def _parse_args(text: str) -> "tuple[str, ...]":
    return tuple(arg.strip() for arg in text.split(",") if arg.strip())


@dataclass
class SQLFile:
    """A loaded SQL file with metadata."""

    content: str
    """The raw SQL content from the file."""

    path: str
    """Path the file was loaded from."""

    checksum: str = field(init=False)
    """MD5 checksum of the content."""

    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        self.checksum = hashlib.md5(self.content.encode(), usedforsecurity=False).hexdigest()


class QueryFileLoader:
    """Loads named queries from SQL files and builds descriptors for them.

    Args:
        connection: Connection string stored on every descriptor this loader builds.
        encoding: Text encoding of the SQL files.

    Example:
        ```python
        loader = QueryFileLoader("sqlite:///app.db")
        loader.load("queries/")
        num = engine.get_int(loader.get("get_location_num"), "Union St.")
        ```
    """

    __slots__ = ("_files", "_queries", "_query_to_file", "connection", "encoding")

    def __init__(self, connection: str, *, encoding: str = "utf-8") -> None:
        self.connection = connection
        self.encoding = encoding
        self._queries: dict[str, QueryDescriptor] = {}
        self._files: dict[str, SQLFile] = {}
        self._query_to_file: dict[str, str] = {}

    # -- Parsing --
    @staticmethod
    def _strip_leading_comments(sql_text: str) -> str:
        """Remove leading comment lines from a SQL string."""
        lines = sql_text.strip().split("\n")
        for i, line in enumerate(lines):
            if line.strip() and not line.strip().startswith("--"):
                return "\n".join(lines[i:]).strip()
        return ""

    def _parse_sql_content(self, content: str, file_path: str) -> "dict[str, QueryDescriptor]":
        """Split file content into descriptors keyed by normalized name.

        ``-- args:`` and ``-- dialect:`` directives are honoured in any order
        directly below the ``-- name:`` line.

        Raises:
            SQLFileParseError: No named statements, or a duplicate name.
        """
        name_matches = list(QUERY_NAME_PATTERN.finditer(content))
        if not name_matches:
            raise SQLFileParseError(file_path, "No named SQL statements found (-- name: statement_name)")

        queries: dict[str, QueryDescriptor] = {}
        for i, match in enumerate(name_matches):
            raw_name = match.group(1).strip()
            end_pos = name_matches[i + 1].start() if i + 1 < len(name_matches) else len(content)
            lines = [line for line in content[match.end() : end_pos].strip().split("\n") if line.strip()]

            arg_names: tuple[str, ...] = ()
            dialect: Optional[str] = None
            while lines:
                args_match = ARGS_PATTERN.match(lines[0])
                dialect_match = DIALECT_PATTERN.match(lines[0])
                if args_match:
                    arg_names = _parse_args(args_match.group("args"))
                elif dialect_match:
                    dialect = _normalize_dialect(dialect_match.group("dialect"))
                else:
                    break
                lines.pop(0)

            sql = self._strip_leading_comments("\n".join(lines))
            if not sql:
                continue
            name = _normalize_query_name(raw_name)
            if name in queries:
                raise SQLFileParseError(file_path, f"Duplicate statement name: {raw_name}", (name,))
            queries[name] = QueryDescriptor(name, sql, arg_names, self.connection, dialect)

        if not queries:
            raise SQLFileParseError(file_path, "No valid SQL statements found after parsing")
        return queries

    # -- Loading --
    def load(self, *paths: Union[str, Path]) -> None:
        """Load SQL files or directories of ``*.sql`` files.

        Raises:
            SQLFileNotFoundError: A path does not exist.
            SQLFileParseError: A file has no named statements or a duplicate name.
        """
        start_time = time.perf_counter()
        loaded_count = 0
        query_count_before = len(self._queries)

        try:
            for path in paths:
                path_obj = Path(path)
                if path_obj.is_dir():
                    loaded_count += self._load_directory(path_obj)
                elif path_obj.is_file():
                    self._load_single_file(path_obj, None)
                    loaded_count += 1
                else:
                    raise SQLFileNotFoundError(str(path))
        except Exception as e:
            logger.debug(
                "Failed to load SQL files after %.3fms",
                (time.perf_counter() - start_time) * 1000,
                extra=log_fields(error_type=type(e).__name__, files_loaded=loaded_count),
            )
            raise

        duration = time.perf_counter() - start_time
        new_queries = len(self._queries) - query_count_before
        logger.debug(
            "Loaded %d SQL files with %d new queries in %.3fms",
            loaded_count,
            new_queries,
            duration * 1000,
            extra=log_fields(
                files_loaded=loaded_count, new_queries=new_queries, duration_ms=round(duration * 1000, 3)
            ),
        )

    def _load_directory(self, dir_path: Path) -> int:
        """Load all SQL files below a directory, namespaced by subdirectory."""
        sql_files = sorted(dir_path.rglob("*.sql"))
        for file_path in sql_files:
            namespace_parts = file_path.relative_to(dir_path).parent.parts
            self._load_single_file(file_path, ".".join(namespace_parts) or None)
        return len(sql_files)

    def _load_single_file(self, file_path: Path, namespace: Optional[str]) -> None:
        path_str = str(file_path)
        if path_str in self._files:
            return

        try:
            content = file_path.read_text(encoding=self.encoding)
        except FileNotFoundError as e:
            raise SQLFileNotFoundError(path_str) from e
        except (OSError, UnicodeDecodeError) as e:
            raise SQLFileParseError(path_str, str(e)) from e

        queries = self._parse_sql_content(content, path_str)
        for name, query in queries.items():
            namespaced_name = f"{namespace}.{name}" if namespace else name
            existing_file = self._query_to_file.get(namespaced_name)
            if existing_file is not None and existing_file != path_str:
                msg = f"Query name '{namespaced_name}' already exists in file: {existing_file}"
                raise SQLFileParseError(path_str, msg, (namespaced_name,))
            if namespace:
                query = QueryDescriptor(namespaced_name, query.sql, query.arg_names, query.connection, query.dialect)
            self._queries[namespaced_name] = query
            self._query_to_file[namespaced_name] = path_str
        self._files[path_str] = SQLFile(content=content, path=path_str)

    def add(self, name: str, sql: str, arg_names: "tuple[str, ...]" = (), dialect: Optional[str] = None) -> None:
        """Register a query directly without a file.

        Raises:
            ValueError: The name is already taken.
        """
        if name in self._queries:
            msg = f"Query name '{name}' already exists (source: {self._query_to_file[name]})"
            raise ValueError(msg)
        self._queries[name] = QueryDescriptor(
            name, sql.strip(), arg_names, self.connection, _normalize_dialect(dialect) if dialect else None
        )
        self._query_to_file[name] = "<directly added>"

    # -- Lookup --
    def get(self, name: str) -> QueryDescriptor:
        """Descriptor of the query ``name`` (hyphens are converted to underscores).

        Raises:
            KeyError: Unknown name; the message lists close matches.
        """
        safe_name = _normalize_query_name(name) if "." not in name else name
        query = self._queries.get(safe_name)
        if query is None:
            suggestions = get_close_matches(safe_name, list(self._queries), n=3, cutoff=0.6)
            msg = f"Query {name!r} not found"
            if suggestions:
                msg += f". Did you mean: {', '.join(suggestions)}?"
            raise KeyError(msg)
        return query

    def get_file(self, path: Union[str, Path]) -> Optional[SQLFile]:
        return self._files.get(str(path))

    def get_file_for_query(self, name: str) -> Optional[SQLFile]:
        file_path = self._query_to_file.get(name)
        return None if file_path is None else self._files.get(file_path)

    def list_queries(self) -> "list[str]":
        return sorted(self._queries)

    def list_files(self) -> "list[str]":
        return sorted(self._files)

    def has_query(self, name: str) -> bool:
        return (_normalize_query_name(name) if "." not in name else name) in self._queries

    def clear(self) -> None:
        """Forget all loaded files and queries."""
        self._files.clear()
        self._queries.clear()
        self._query_to_file.clear()

    def __contains__(self, name: Any) -> bool:
        return isinstance(name, str) and self.has_query(name)

    def __len__(self) -> int:
        return len(self._queries)
