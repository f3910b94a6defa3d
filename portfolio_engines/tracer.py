"""
portfolio_engines.tracer -- Engine invocation tracer emitting PORTFOLIO_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging.  The trace captures
    engine_name, engine_version, input_fingerprint (deterministic SHA-256
    hash of selected inputs), result size and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Does NOT introduce I/O into engines; emits a log record only.
    Uses its own logger namespace (``portfolio_kernel.engines.tracer``).

Invariants enforced:
    - Fingerprint computation is deterministic: ``_canonicalize`` produces
      stable string representations, dict keys are sorted, and an
      ``EntityStore`` is represented by its content ``snapshot_id``.
    - A parameter left at its default fingerprints the same as the default
      value passed explicitly.
    - Engine purity: the decorator only reads arguments and emits a log
      record; it does not mutate inputs or inject side effects.

Failure modes:
    - Fingerprint fields that are not parameters of the wrapped function
      are recorded as "null".
    - Exceptions from the wrapped function propagate unchanged; no trace
      record is emitted for a failed invocation.

Usage:
    from portfolio_engines.tracer import traced_engine

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def budget_variance(self, store):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Sized
from datetime import date
from decimal import Decimal
from typing import Any

_logger = logging.getLogger("portfolio_kernel.engines.tracer")


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting.

    Unknown types fall back to ``str(value)``.
    """
    if value is None:
        return "null"
    snapshot_id = getattr(value, "snapshot_id", None)
    if isinstance(snapshot_id, str):
        return f"snapshot:{snapshot_id}"
    if isinstance(value, (bool, int, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        items = sorted(value.items())
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """Compute a deterministic SHA-256 fingerprint of selected input fields.

    Returns a 16-character hex prefix.  Missing fields are recorded as
    "null".
    """
    parts: list[str] = []
    for field in fingerprint_fields:
        val = arguments.get(field)
        parts.append(f"{field}={_canonicalize(val)}")
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _result_size(result: Any) -> int | None:
    if isinstance(result, Sized) and not isinstance(result, (str, bytes)):
        return len(result)
    return None


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits PORTFOLIO_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "integrity").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names to include in the input
            fingerprint hash.  Positional and keyword arguments are both
            resolved against the wrapped function's signature.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                bound.apply_defaults()
                fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                "PORTFOLIO_ENGINE_TRACE",
                extra={
                    "trace_type": "PORTFOLIO_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "result_size": _result_size(result),
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
