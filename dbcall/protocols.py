"""Runtime-checkable protocols for the PEP 249 surface dbcall drives.

Only the members the execution engine touches are listed; optional PEP 249
extensions (``callproc``, ``nextset``) are looked up at call time.
"""

from collections.abc import Sequence
from typing import Any, Optional, Protocol, runtime_checkable

__all__ = ("DBAPIConnection", "DBAPICursor")


@runtime_checkable
class DBAPICursor(Protocol):
    """Protocol for DB-API 2.0 cursors."""

    @property
    def description(self) -> Optional[Sequence[Any]]:
        """Column metadata of the current result set, ``None`` when there is none."""
        ...

    @property
    def rowcount(self) -> int:
        """Rows affected by the last statement, ``-1`` when not applicable."""
        ...

    def execute(self, operation: str, parameters: Sequence[Any] = ...) -> Any:
        """Execute a statement."""
        ...

    def fetchone(self) -> Optional[Sequence[Any]]:
        """Fetch the next row of the current result set."""
        ...

    def close(self) -> None:
        """Close the cursor."""
        ...


@runtime_checkable
class DBAPIConnection(Protocol):
    """Protocol for DB-API 2.0 connections."""

    def cursor(self) -> Any:
        """Open a new cursor."""
        ...

    def commit(self) -> None:
        """Commit the current transaction."""
        ...

    def close(self) -> None:
        """Close the connection."""
        ...
