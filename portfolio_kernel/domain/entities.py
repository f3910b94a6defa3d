"""
Portfolio Domain Entities (``portfolio_kernel.domain.entities``).

Responsibility
--------------
Frozen dataclass value objects for the eight nouns of the reporting
dataset: managers, projects, spend entries, milestones, forecasts,
purchase orders, project completions and KPI definitions.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Built by the
loaders in ``portfolio_ingestion`` and consumed read-only by every engine.

Invariants enforced
-------------------
* All entities are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``Milestone.status`` is the closed ``MilestoneStatus`` enum; text that
  does not parse is kept in ``raw_status`` with ``status=None``.

Failure modes
-------------
* None at construction.  Nullable fields model the dirty input the
  checkers are meant to find (null budgets, null categories, dangling
  references); they are reported, not rejected.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class MilestoneStatus(str, Enum):
    """Lifecycle state of a milestone."""

    COMPLETED = "Completed"
    DELAYED = "Delayed"
    ON_TRACK = "On Track"

    @classmethod
    def parse(cls, value: object) -> MilestoneStatus | None:
        """
        Parse a status string, tolerating case and separator differences.

        "On Track", "OnTrack" and "on_track" all map to ``ON_TRACK``.
        Returns None for None, blank or unknown text.
        """
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        key = "".join(ch for ch in str(value) if ch.isalnum()).casefold()
        if not key:
            return None
        return _STATUS_KEYS.get(key)


_STATUS_KEYS: dict[str, MilestoneStatus] = {
    "".join(ch for ch in s.value if ch.isalnum()).casefold(): s
    for s in MilestoneStatus
}


@dataclass(frozen=True)
class Manager:
    """A person accountable for one or more projects."""
    id: str
    name: str
    email: str


@dataclass(frozen=True)
class Project:
    """A funded initiative with a planned schedule."""
    id: str
    name: str
    budget: Decimal | None
    start_date: date | None
    end_date: date | None
    manager_id: str | None


@dataclass(frozen=True)
class SpendEntry:
    """One line of actual spend recorded against a project."""
    id: str
    project_id: str | None
    date: date | None
    category: str | None
    amount: Decimal | None


@dataclass(frozen=True)
class Milestone:
    """A schedule checkpoint for a project."""
    id: str
    project_id: str | None
    name: str | None
    due_date: date | None
    status: MilestoneStatus | None
    raw_status: str | None = None

    @property
    def status_label(self) -> str | None:
        """Status as displayed: the enum value, or the unparsed source text."""
        if self.status is not None:
            return self.status.value
        return self.raw_status


@dataclass(frozen=True)
class Forecast:
    """Forecast vs actual spend for one project period."""
    id: str
    project_id: str | None
    forecast_date: date | None
    forecast_amount: Decimal | None
    actual_amount: Decimal | None


@dataclass(frozen=True)
class PurchaseOrder:
    """A procurement commitment raised before spend is recorded."""
    id: str
    project_id: str | None
    po_date: date | None
    po_amount: Decimal | None


@dataclass(frozen=True)
class ProjectCompletion:
    """Actual finish date of a project (at most one per project)."""
    project_id: str
    actual_end_date: date | None


@dataclass(frozen=True)
class KpiDefinition:
    """A named metric with a free-form target threshold."""
    kpi_name: str
    description: str
    target_threshold: str
