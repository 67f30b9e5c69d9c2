"""
Structured JSON logging for the cashplan packages.

Every logger lives under the ``cashplan`` namespace and writes one JSON
object per line. Run-scoped identifiers (user, planner run, plan) travel in
``LogContext`` and are stamped onto every record emitted while they are
bound, so engine and service code never has to repeat them in ``extra``.
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
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "cashplan"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "user_id",
    "run_id",
    "plan_id",
    "trace_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"cashplan_log_{name}", default=None) for name in _CONTEXT_FIELDS
}


class LogContext:
    """
    Async-safe holder for run-scoped log fields.

    Backed by one ContextVar per field, so concurrent planner runs in
    different threads or tasks never see each other's identifiers.
    """

    FIELDS = _CONTEXT_FIELDS

    @classmethod
    def set(
        cls,
        *,
        correlation_id: str | None = None,
        user_id: str | None = None,
        run_id: str | None = None,
        plan_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        """Set context fields. None leaves a field unchanged."""
        values = {
            "correlation_id": correlation_id,
            "user_id": user_id,
            "run_id": run_id,
            "plan_id": plan_id,
            "trace_id": trace_id,
        }
        for name, value in values.items():
            if value is not None:
                _context_vars[name].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Bound fields only; unset fields are omitted."""
        return {
            name: value
            for name, var in _context_vars.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_BoundContext":
        """
        Bind fields for the duration of a ``with`` block.

        Unknown field names and None values are ignored. Previous values are
        restored on exit, including "unset".
        """
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, str | None]):
        self._fields = {
            name: value
            for name, value in fields.items()
            if name in _context_vars and value is not None
        }
        self._tokens: list[tuple[str, Token]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            self._tokens.append((name, _context_vars[name].set(value)))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        while self._tokens:
            name, token = self._tokens.pop()
            _context_vars[name].reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Key order: ts, level, logger, message, bound context, ``extra`` fields,
    then exception details. An exception's ``code`` and public attributes
    are flattened to ``exc_code`` / ``exc_<name>``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
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
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


# ---------------------------------------------------------------------------
# Logger factory and initialization
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """``get_logger("engines.payoff")`` -> ``cashplan.engines.payoff``."""
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
    Attach one structured handler to the ``cashplan`` logger.

    Only the first call has any effect; later calls return immediately
    until ``reset_logging``.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False
    root.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
