"""
Structured logging for the inventory kernel.

Every record under the ``inventory_kernel`` logger hierarchy is written as
one JSON object per line.  Request-scoped fields (who is acting, which
operation, which SKU or bulk batch) live in LogContext and are merged into
every record emitted while they are bound.

Usage:
    configure_logging(level=logging.INFO)
    logger = get_logger("services.transfer")
    with LogContext.bind(operation="transfer", sku="SKU-1"):
        logger.info("transfer_completed", extra={"quantity": 10})

Output envelope (always present): ``ts``, ``level``, ``logger``,
``message``.  Then bound context fields, then ``extra`` fields that do not
clash with either.  Records logged with ``exc_info`` gain ``exc_type``,
``exc_message``, ``exc_code`` (kernel errors), one ``exc_<attr>`` per
structured exception attribute and ``traceback``.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any

_LOGGER_PREFIX = "inventory_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "operation",
    "sku",
    "batch_id",
    "trace_id",
)


# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_EMPTY_CONTEXT: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar(
    "inventory_log_context", default=_EMPTY_CONTEXT
)


def _context_fields(fields: Mapping[str, Any]) -> dict[str, str]:
    """Keep known, non-None fields; values are stored as strings."""
    return {
        name: str(value)
        for name, value in fields.items()
        if name in CONTEXT_FIELDS and value is not None
    }


class LogContext:
    """
    Request-scoped log fields, isolated per thread and per asyncio task.

    The context is a single read-only mapping held in a ContextVar, so
    ``bind()`` can restore exactly what was there before.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        """Merge fields into the current context.  None values are skipped."""
        updates = _context_fields(fields)
        if updates:
            _context.set(MappingProxyType({**_context.get(), **updates}))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY_CONTEXT)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block."""
        token = _context.set(
            MappingProxyType({**_context.get(), **_context_fields(fields)})
        )
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # UUID, Decimal and anything else: their string form
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record))

        return json.dumps(payload, default=_json_default)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # Kernel errors keep their data as public instance attributes
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


# ---------------------------------------------------------------------------
# Logger factory and setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """``get_logger("services.transfer")`` -> ``inventory_kernel.services.transfer``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_setup_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``inventory_kernel`` logger.

    Only the first call takes effect until ``reset_logging()``; later calls
    (``init_engine_from_url`` makes one) leave the existing setup alone.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        _installed_handler = (
            handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        )
        _installed_handler.setFormatter(StructuredFormatter())

        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.addHandler(_installed_handler)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False


def reset_logging() -> None:
    """Undo ``configure_logging()``.  Used by the test suite."""
    global _installed_handler
    with _setup_lock:
        _installed_handler = None
        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.handlers.clear()
        kernel_logger.setLevel(logging.WARNING)
        kernel_logger.propagate = True
