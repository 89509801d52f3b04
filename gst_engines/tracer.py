"""
gst_engines.tracer -- Engine invocation tracer emitting GST_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging.  The trace captures
    engine_name, engine_version, input_fingerprint (deterministic SHA-256
    hash of selected inputs), and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits a log record only; never mutates inputs or results.

Invariants enforced:
    - Fingerprint computation is deterministic: _canonicalize produces
      stable string representations, dict keys are sorted, and the hash
      is SHA-256 truncated to 16 hex chars.
    - Fingerprinted arguments are bound through the wrapped function's
      signature, so positional and keyword calls hash identically.

Failure modes:
    - Fingerprint fields that are not parameters of the wrapped function
      are recorded as "null".
    - Exceptions raised by the engine propagate unchanged; no trace
      record is emitted for a failed invocation.

Usage:
    from gst_engines.tracer import traced_engine

    @traced_engine("gst", "1.0", fingerprint_fields=("items",))
    def calculate_breakdown(self, items, seller_gstin, buyer_gstin=None):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import fields, is_dataclass
from enum import Enum
from typing import Any

_logger = logging.getLogger("gst_kernel.engines.tracer")


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting.

    Dataclasses are expanded field by field so that two equal snapshots
    hash identically regardless of identity.  Unknown types fall back to
    ``str(value)``.
    """
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (bool, int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    if is_dataclass(value) and not isinstance(value, type):
        parts = (f"{f.name}:{_canonicalize(getattr(value, f.name))}" for f in fields(value))
        return type(value).__name__ + "(" + ",".join(parts) + ")"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """Compute a deterministic SHA-256 fingerprint of selected input fields.

    Only the fields listed in fingerprint_fields are included. Missing
    fields are recorded as "null". The result is a 16-char hex prefix.
    """
    parts: list[str] = []
    for field_name in fingerprint_fields:
        val = arguments.get(field_name)
        parts.append(f"{field_name}={_canonicalize(val)}")
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits GST_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "gst").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names to include in the input
            fingerprint hash.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                try:
                    bound = signature.bind_partial(*args, **kwargs)
                    arguments = dict(bound.arguments)
                except TypeError:
                    # Let the real call raise the signature error.
                    arguments = dict(kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, arguments)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                "GST_ENGINE_TRACE",
                extra={
                    "trace_type": "GST_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
