"""Logging for dbcall.

Loggers from :func:`get_logger` live under the ``dbcall`` namespace and stamp
every record with the correlation ID of the current context. Structured
fields travel in ``extra`` under a single key, built by :func:`log_fields`::

    logger.debug("Executing query %s", query.name, extra=log_fields(descriptor=query.name, parameter_count=2))

:class:`StructuredFormatter` renders a record and its fields as one JSON
object; the plain text format shows the message only.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Callable, Final

from dbcall._serialization import encode_json
from dbcall.exceptions import ImproperConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from logging import LogRecord

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "log_fields",
    "set_correlation_id",
)

ROOT_LOGGER_NAME: Final = "dbcall"
EXTRA_FIELDS_KEY: Final = "extra_fields"
SIMPLE_FORMAT: Final = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_correlation_id: ContextVar[str | None] = ContextVar("dbcall_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Tag records logged from the current context with ``correlation_id``; ``None`` clears it."""
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def log_fields(**fields: Any) -> dict[str, dict[str, Any]]:
    """``extra`` mapping carrying structured fields. ``None`` values are left out."""
    return {EXTRA_FIELDS_KEY: {key: value for key, value in fields.items() if value is not None}}


class CorrelationIDFilter(logging.Filter):
    """Stamps records with the current correlation ID."""

    def filter(self, record: LogRecord) -> bool:
        record.correlation_id = get_correlation_id()  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter: level, logger, message, correlation ID, then the record's structured fields."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is not None:
            entry["correlation_id"] = correlation_id
        entry.update(getattr(record, EXTRA_FIELDS_KEY, None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the ``dbcall`` namespace with the correlation filter attached.

    ``get_logger("engine")`` and ``get_logger("dbcall.engine")`` return the
    same logger; ``get_logger()`` returns the namespace root.
    """
    if name is None:
        name = ROOT_LOGGER_NAME
    elif name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


_FORMATTERS: Final[dict[str, Callable[[], logging.Formatter]]] = {
    "structured": StructuredFormatter,
    "simple": lambda: logging.Formatter(SIMPLE_FORMAT),
}


def configure_logging(
    level: str = "INFO", format_style: str = "structured", extra_handlers: Iterable[logging.Handler] = ()
) -> None:
    """Send the ``dbcall`` namespace to stderr, replacing handlers installed earlier.

    Args:
        level: Level name, e.g. ``"DEBUG"`` to see every executed statement.
        format_style: ``"structured"`` for JSON lines, ``"simple"`` for text.
        extra_handlers: Further handlers, kept with their own formatters.

    Raises:
        ImproperConfigurationError: Unknown level or format style.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        msg = f"Unknown log level: {level!r}"
        raise ImproperConfigurationError(msg)
    formatter_factory = _FORMATTERS.get(format_style)
    if formatter_factory is None:
        msg = f"Unknown log format style {format_style!r}; expected one of: {', '.join(_FORMATTERS)}"
        raise ImproperConfigurationError(msg)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter_factory())
    root_logger = get_logger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers[:] = [handler, *extra_handlers]
    root_logger.propagate = False
    root_logger.debug(
        "dbcall logging configured",
        extra=log_fields(level=logging.getLevelName(numeric_level), format_style=format_style),
    )
