"""
Structured JSON logging for portfolio reporting runs.

Every module logs through ``get_logger(__name__-ish)`` into the
``portfolio_kernel`` hierarchy.  One handler is attached at the top of
that hierarchy and renders each record as a single JSON object.

Run-scoped fields:
    ``run_id``, ``snapshot_id`` and ``source`` are held in context
    variables and merged into every record emitted while they are set.
    ``LogContext.bind`` scopes them to a ``with`` block so a report run
    over one snapshot does not leak its identity into the next.

Record layout:
    ts, level, logger, message, then the run-scoped fields, then every
    ``extra=`` key.  When a record carries an exception, ``exc_type``,
    ``exc_message``, ``exc_code`` (for typed portfolio errors), one
    ``exc_<attr>`` per public exception attribute, and ``traceback``
    are appended.  Decimal, date and Enum values are written as strings.
"""

__all__ = [
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

_LOGGER_PREFIX = "portfolio_kernel"

_CONTEXT_FIELDS = ("run_id", "snapshot_id", "source")

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"portfolio_log_{name}", default=None)
    for name in _CONTEXT_FIELDS
}


class LogContext:
    """Run-scoped log fields, isolated per thread and per asyncio task."""

    @staticmethod
    def set(
        *,
        run_id: str | None = None,
        snapshot_id: str | None = None,
        source: str | None = None,
    ) -> None:
        """Update the given fields; None leaves a field as it is."""
        LogContext._apply(run_id=run_id, snapshot_id=snapshot_id, source=source)

    @staticmethod
    def get_all() -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @staticmethod
    def clear() -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        """
        Set fields for the duration of a ``with`` block.

        Unknown names and None values are ignored.  On exit each field
        is returned to the value it had before the block.
        """
        tokens = LogContext._apply(**fields)
        try:
            yield LogContext
        finally:
            for name, token in reversed(tokens):
                _CONTEXT_VARS[name].reset(token)

    @staticmethod
    def _apply(**fields: str | None) -> list[tuple[str, Any]]:
        tokens = []
        for name, value in fields.items():
            if value is None or name not in _CONTEXT_VARS:
                continue
            tokens.append((name, _CONTEXT_VARS[name].set(value)))
        return tokens


# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    # Decimal and anything else unexpected
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    fields.update(
        (f"exc_{attr}", value)
        for attr, value in vars(exc).items()
        if attr != "code" and not attr.startswith("_")
    )
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Logger ``portfolio_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach the JSON handler to the ``portfolio_kernel`` logger.

    Only the first call in a process takes effect; later calls return
    without touching the logger until ``reset_logging`` runs.  Records
    do not propagate to the root logger.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())

    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(handler)


def reset_logging() -> None:
    """Detach all handlers and allow ``configure_logging`` to run again. Tests only."""
    global _configured
    with _lock:
        _configured = False
    logger = logging.getLogger(_LOGGER_PREFIX)
    logger.handlers.clear()
    logger.setLevel(logging.WARNING)
