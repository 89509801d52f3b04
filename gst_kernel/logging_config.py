"""
Structured JSON logging for the GST kernel.

Every record under the ``gst_kernel`` logger namespace is written as one
JSON object per line:

    {"ts": ..., "level": "INFO", "logger": "gst_kernel.engines.gst",
     "message": "gst_calculation_completed", "document_number": "INV-7",
     "transaction_kind": "b2b_intrastate", ...}

Envelope:
    ts, level, logger and message are always present.  Request-scoped
    fields bound through LogContext follow, then the ``extra`` mapping
    passed at the call site.  Exceptions logged with ``exc_info`` add
    exc_type, exc_message, exc_code and every public attribute of a
    GstKernelError as ``exc_<name>``.

Serialization:
    Decimal values are written as strings so that amounts keep their
    scale.  Money is written as {"amount": "90.00", "currency": "INR"}.
    Enums are written by value.

Invariants:
    - configure_logging() is idempotent and never touches the root logger.
    - Context fields are contextvars, safe across threads and tasks.
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
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from gst_kernel.domain.values import Currency, Money

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------


class LogContext:
    """
    Request-scoped fields merged into every record.

    Services bind ``document_number`` and ``seller_gstin`` while preparing
    a document, so engine records can be joined back to the invoice.
    """

    _correlation_id: ContextVar[str | None] = ContextVar(
        "log_correlation_id", default=None
    )
    _organization_id: ContextVar[str | None] = ContextVar(
        "log_organization_id", default=None
    )
    _actor_id: ContextVar[str | None] = ContextVar(
        "log_actor_id", default=None
    )
    _document_number: ContextVar[str | None] = ContextVar(
        "log_document_number", default=None
    )
    _seller_gstin: ContextVar[str | None] = ContextVar(
        "log_seller_gstin", default=None
    )
    _trace_id: ContextVar[str | None] = ContextVar(
        "log_trace_id", default=None
    )

    _FIELD_NAMES = (
        "correlation_id",
        "organization_id",
        "actor_id",
        "document_number",
        "seller_gstin",
        "trace_id",
    )

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set context fields. Only non-None values are updated."""
        for name, value in fields.items():
            if name not in cls._FIELD_NAMES:
                raise TypeError(f"Unknown log context field: {name}")
            if value is not None:
                getattr(cls, f"_{name}").set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Return all non-None context fields as a dict."""
        ctx: dict[str, str] = {}
        for name in cls._FIELD_NAMES:
            val = getattr(cls, f"_{name}").get()
            if val is not None:
                ctx[name] = val
        return ctx

    @classmethod
    def clear(cls) -> None:
        """Reset all context fields to None."""
        for name in cls._FIELD_NAMES:
            getattr(cls, f"_{name}").set(None)

    @classmethod
    def bind(cls, **fields: str | None) -> "_LogContextManager":
        """Context manager that sets fields on entry and restores on exit."""
        unknown = set(fields) - set(cls._FIELD_NAMES)
        if unknown:
            raise TypeError(f"Unknown log context field: {', '.join(sorted(unknown))}")
        return _LogContextManager(fields)


class _LogContextManager:
    """Context manager for LogContext.bind()."""

    def __init__(self, fields: dict[str, str | None]):
        self._fields = fields
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is not None:
                self._tokens[name] = getattr(LogContext, f"_{name}").set(value)
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for name, token in self._tokens.items():
            getattr(LogContext, f"_{name}").reset(token)


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


class _JSONEncoder(json.JSONEncoder):
    """Handle Money, Decimal, enums and dates in log payloads; str() for the rest."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Money):
            return {"amount": str(obj.amount), "currency": obj.currency.code}
        if isinstance(obj, Currency):
            return obj.code
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        # UUIDs, bytes and anything else
        return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, cls=_JSONEncoder)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # GstKernelError subclasses carry their details as public attributes
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


# ---------------------------------------------------------------------------
# Logger factory
# ---------------------------------------------------------------------------

_LOGGER_PREFIX = "gst_kernel"


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the gst_kernel namespace, e.g. ``engines.gst``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the gst_kernel logger (idempotent).

    Records do not propagate to the root logger; host applications that
    want them elsewhere pass their own handler.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(h)


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
