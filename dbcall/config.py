"""Driver registration.

Connection strings are URLs whose scheme names a driver adapter. The
application builds one :class:`DriverRegistry` at startup, registers the
adapters it needs, and hands the registry to the execution engine::

    registry = DriverRegistry.default()
    registry.register("postgresql", DBAPIDriver(psycopg.connect, database_error=(psycopg.Error,)))
    engine = ExecutionEngine(registry)
"""

import threading
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlsplit

from mypy_extensions import mypyc_attr

from dbcall.exceptions import ImproperConfigurationError
from dbcall.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from collections.abc import Iterator

    from dbcall.adapters.dbapi import DBAPIDriver
    from dbcall.protocols import DBAPIConnection

__all__ = ("DriverRegistry", "connection_scheme")

logger = get_logger("config")


def connection_scheme(connection_string: str) -> str:
    """Scheme of a connection string, lower-cased.

    A ``+driver`` suffix is ignored, so ``postgresql+psycopg://...``
    resolves to ``postgresql``.

    Raises:
        ImproperConfigurationError: The string has no scheme.
    """
    scheme = urlsplit(connection_string).scheme
    if not scheme:
        msg = f"Connection string has no scheme: {connection_string!r}"
        raise ImproperConfigurationError(msg)
    return scheme.split("+", 1)[0].lower()


@mypyc_attr(allow_interpreted_subclasses=True)
class DriverRegistry:
    """Thread-safe map from connection string scheme to driver adapter."""

    __slots__ = ("_drivers", "_lock")

    def __init__(self, drivers: "Optional[dict[str, DBAPIDriver]]" = None) -> None:
        self._lock = threading.Lock()
        self._drivers: dict[str, DBAPIDriver] = {}
        for scheme, driver in (drivers or {}).items():
            self.register(scheme, driver)

    @classmethod
    def default(cls) -> "DriverRegistry":
        """Registry with the bundled SQLite adapter registered under ``sqlite``."""
        from dbcall.adapters.sqlite import SqliteDriver

        return cls({"sqlite": SqliteDriver()})

    def register(self, scheme: str, driver: "DBAPIDriver") -> None:
        """Register ``driver`` for connection strings starting with ``scheme:``."""
        with self._lock:
            self._drivers[scheme.lower()] = driver
        logger.debug(
            "Registered %s for scheme %r", type(driver).__name__, scheme, extra=log_fields(scheme=scheme.lower())
        )

    def unregister(self, scheme: str) -> None:
        with self._lock:
            self._drivers.pop(scheme.lower(), None)

    def resolve(self, connection_string: str) -> "DBAPIDriver":
        """Driver adapter responsible for ``connection_string``.

        Raises:
            ImproperConfigurationError: No adapter is registered for the scheme.
        """
        scheme = connection_scheme(connection_string)
        with self._lock:
            driver = self._drivers.get(scheme)
        if driver is None:
            msg = f"No driver registered for scheme {scheme!r}; registered: {', '.join(sorted(self)) or 'none'}"
            raise ImproperConfigurationError(msg)
        return driver

    def connect(self, connection_string: str) -> "tuple[DBAPIDriver, DBAPIConnection]":
        """Resolve the adapter and open a new connection through it."""
        driver = self.resolve(connection_string)
        return driver, driver.connect(connection_string)

    def __contains__(self, scheme: object) -> bool:
        return isinstance(scheme, str) and scheme.lower() in self._drivers

    def __iter__(self) -> "Iterator[str]":
        with self._lock:
            return iter(list(self._drivers))

    def __len__(self) -> int:
        return len(self._drivers)
