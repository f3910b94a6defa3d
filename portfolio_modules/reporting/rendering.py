"""
Pure presentation helpers for portfolio reports.

Converts report objects to JSON-safe primitives and formats amounts and
ratios for text output.  ZERO I/O.  Engines never round; rounding to the
configured display precision happens only here.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report object to plain JSON-safe primitives.

    Handles:
    - Decimal -> str (preserving precision)
    - date/datetime -> ISO format string
    - Enum -> .value
    - Frozen dataclasses and read-only mappings -> dicts
    - Tuples -> lists
    - None preserved
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, Mapping):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)


def _quantum(precision: int) -> Decimal:
    return Decimal(1).scaleb(-precision)


def format_money(amount: Decimal | None, currency: str = "USD", precision: int = 2) -> str:
    """``Decimal("1234.5")`` -> ``"$1,234.50"``; negatives as ``"-$200.00"``."""
    if amount is None:
        return "-"
    rounded = amount.quantize(_quantum(precision), rounding=ROUND_HALF_UP)
    symbol = _SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.{precision}f}"


def format_percent(ratio: Decimal | None, precision: int = 2) -> str:
    """``Decimal("-0.2")`` -> ``"-20.00%"``; None -> ``"n/a"``."""
    if ratio is None:
        return "n/a"
    pct = (ratio * 100).quantize(_quantum(precision), rounding=ROUND_HALF_UP)
    return f"{pct:,.{precision}f}%"


def format_value(value: Any) -> str:
    """Generic cell formatter for values with no column-specific format."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, tuple):
        return ", ".join(format_value(v) for v in value)
    return str(value)


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Left-aligned text table with a dashed rule under the header."""
    if not rows:
        return "(no rows)"
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    lines = [
        "  ".join(h.ljust(w) for h, w in zip(headers, widths)).rstrip(),
        "  ".join("-" * w for w in widths),
    ]
    for row in rows:
        lines.append("  ".join(c.ljust(w) for c, w in zip(row, widths)).rstrip())
    return "\n".join(lines)
