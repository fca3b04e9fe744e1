"""
Structured JSON logging for the stock ledger.

Every line is one JSON object::

    {"ts": ..., "level": "INFO", "logger": "stock_kernel.services.ledger_store",
     "message": "movement_appended",
     "ledger": {"company_id": "1", "report": "aging", "snapshot_id": "9f..."},
     "movement_id": 42, ...}

``ledger`` holds the report scope bound by ``StockLedgerService`` through
``LogContext.bind``; it is omitted when nothing is bound.  Fields passed in
``extra=`` are emitted at the top level.  A logged ledger exception becomes
an ``error`` object carrying its code and, for validation failures, the
violated rules.
"""

__all__ = [
    "LEDGER_CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import dataclasses
import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

LEDGER_CONTEXT_FIELDS = ("company_id", "report", "snapshot_id")

_EMPTY: Mapping[str, str] = MappingProxyType({})
_ledger_scope: ContextVar[Mapping[str, str]] = ContextVar("ledger_scope", default=_EMPTY)


class LogContext:
    """Report scope attached to every log line of the current task or thread."""

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_ledger_scope.get())

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """
        Add ledger fields for the duration of the block.

        Values are stored as strings; ``None`` leaves an outer value in
        place.  Only ``LEDGER_CONTEXT_FIELDS`` are accepted.
        """
        unknown = set(fields) - set(LEDGER_CONTEXT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown log context field(s): {sorted(unknown)}")
        merged = dict(_ledger_scope.get())
        merged.update({k: str(v) for k, v in fields.items() if v is not None})
        token = _ledger_scope.set(MappingProxyType(merged))
        try:
            yield
        finally:
            _ledger_scope.reset(token)

    @staticmethod
    def clear() -> None:
        _ledger_scope.set(_EMPTY)


_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return value


def _error_payload(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        error["code"] = code
    violations = getattr(exc, "violations", None)
    if violations:
        error["violations"] = [v.code for v in violations]
    for name, val in vars(exc).items():
        if not name.startswith("_") and name not in ("code", "violations"):
            error[name] = _jsonable(val)
    return error


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; see the module docstring for the shape."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        scope = _ledger_scope.get()
        if scope:
            payload["ledger"] = dict(scope)

        for key, val in vars(record).items():
            if key not in _RESERVED and key not in payload:
                payload[key] = _jsonable(val)

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _error_payload(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


_ROOT = "stock_kernel"


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` under the ``stock_kernel`` hierarchy."""
    return logging.getLogger(f"{_ROOT}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``stock_kernel`` logger.

    Only the first call has any effect until ``reset_logging``.  ``level``
    may be a name such as ``"DEBUG"`` as read from the ledger config.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_ROOT)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.propagate = False

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    root.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_ROOT)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
    root.propagate = True
