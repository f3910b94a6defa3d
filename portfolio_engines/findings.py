"""
Diagnostic record types for the portfolio engines.

Pure frozen dataclasses and enums shared by the IntegrityChecker, the
QualityScanner and the AggregationEngine.  None of these are exceptions:
a dirty snapshot yields records, and callers decide remediation.

Architecture: portfolio_engines -- pure domain, zero I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any


# =============================================================================
# Enums
# =============================================================================


class Severity(str, Enum):
    """Severity level of an integrity violation."""

    ERROR = "error"
    INFO = "info"


class ViolationKind(str, Enum):
    """Rule that produced an integrity violation."""

    ORPHAN_REFERENCE = "orphan_reference"
    INVALID_ENUM = "invalid_enum"
    NEGATIVE_VALUE = "negative_value"
    INVALID_DATE_RANGE = "invalid_date_range"
    DUPLICATE_COMPLETION = "duplicate_completion"
    DUPLICATE_ID = "duplicate_id"
    ACCURACY_GAP = "accuracy_gap"  # Informational

    @property
    def severity(self) -> Severity:
        if self is ViolationKind.ACCURACY_GAP:
            return Severity.INFO
        return Severity.ERROR


# =============================================================================
# Output types
# =============================================================================


@dataclass(frozen=True)
class Violation:
    """One referential or value-range rule broken by one row.

    ``entity`` is the relational table name; ``id`` is the offending row's
    identifier (``project_id`` for completions).  ``field`` and ``value``
    name the column at fault where a single column is involved.
    """

    kind: ViolationKind
    entity: str
    id: str | None
    detail: str
    severity: Severity
    field: str | None = None
    value: Any = None
    project_id: str | None = None

    @classmethod
    def of(cls, kind: ViolationKind, entity: str, id: str | None, detail: str, **context: Any) -> Violation:
        """Build a violation whose severity follows from its kind."""
        return cls(kind=kind, entity=entity, id=id, detail=detail, severity=kind.severity, **context)


@dataclass(frozen=True)
class Finding:
    """Result of one data-quality check.

    ``rows`` are read-only mappings of column name to value.  Zero rows
    means the dataset currently passes the check.
    """

    number: int
    check_name: str
    description: str
    rows: tuple[Mapping[str, Any], ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def is_clean(self) -> bool:
        return not self.rows


@dataclass(frozen=True)
class RowExclusion:
    """A row left out of an aggregation because a field its formula needs is null."""

    entity: str
    id: str | None
    computation: str
    missing_fields: tuple[str, ...]


def frozen_row(**values: Any) -> Mapping[str, Any]:
    """Read-only mapping for a finding row, preserving column order."""
    return MappingProxyType(dict(values))
