from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from dbcall.adapters import DBAPIDriver
from dbcall.config import DriverRegistry
from dbcall.engine import ExecutionEngine

here = Path(__file__).parent
root_path = here.parent

FAKE_URL = "fake://db"

_COLUMN = (("col", None, None, None, None, None, None),)


class ScriptedCursor:
    """DB-API cursor replaying a fixed chain of results.

    Each entry of ``results`` is either a list of rows (a result set) or an
    int (an update count). ``callproc`` echoes its parameters back, with
    ``out_values`` (1-based) written over them.
    """

    def __init__(self) -> None:
        self.results: list[Any] = []
        self.out_values: dict[int, Any] = {}
        self.error: Exception | None = None
        self.position = 0
        self.executed: list[tuple[str, list[Any]]] = []
        self.called: list[tuple[str, list[Any]]] = []
        self.close_count = 0

    @property
    def _current(self) -> Any:
        return self.results[self.position] if self.position < len(self.results) else None

    @property
    def description(self) -> Any:
        return _COLUMN if isinstance(self._current, list) else None

    @property
    def rowcount(self) -> int:
        current = self._current
        return current if isinstance(current, int) else -1

    def execute(self, sql: str, parameters: Any = ()) -> None:
        if self.error is not None:
            raise self.error
        self.executed.append((sql, list(parameters)))
        self.position = 0

    def callproc(self, procname: str, parameters: Any = ()) -> list[Any]:
        if self.error is not None:
            raise self.error
        self.called.append((procname, list(parameters)))
        self.position = 0
        returned = list(parameters)
        for index, value in self.out_values.items():
            returned[index - 1] = value
        return returned

    def fetchone(self) -> Any:
        current = self._current
        if not isinstance(current, list) or not current:
            return None
        return current.pop(0)

    def fetchall(self) -> list[Any]:
        rows = list(self._current)
        self._current.clear()
        return rows

    def nextset(self) -> bool | None:
        self.position += 1
        return True if self.position < len(self.results) else None

    def close(self) -> None:
        self.close_count += 1


@pytest.fixture
def cursor() -> ScriptedCursor:
    return ScriptedCursor()


@pytest.fixture
def connection(cursor: ScriptedCursor) -> MagicMock:
    connection = MagicMock(name="connection")
    connection.cursor.return_value = cursor
    return connection


@pytest.fixture
def connect(connection: MagicMock) -> MagicMock:
    return MagicMock(name="connect", return_value=connection)


@pytest.fixture
def driver(connect: MagicMock) -> DBAPIDriver:
    return DBAPIDriver(connect)


@pytest.fixture
def engine(driver: DBAPIDriver) -> ExecutionEngine:
    return ExecutionEngine(DriverRegistry({"fake": driver}))


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite database file (absolute path, hence four slashes)."""
    return f"sqlite:///{tmp_path / 'dbcall.db'}"
