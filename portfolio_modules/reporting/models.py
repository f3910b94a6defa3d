"""
Portfolio Reporting Models (``portfolio_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for a complete reporting run: report
metadata, the three KPI views bundled together, and the full
``PortfolioReport`` carrying every diagnostic stream and analytic result
set computed from one snapshot.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``PortfolioReportingService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.

Audit relevance
---------------
* ``ReportMetadata`` carries the generation timestamp, the snapshot id
  and the thresholds in force, so a report can be reproduced.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from portfolio_engines.aggregation_types import (
    BudgetUtilizationRow,
    BudgetVarianceRow,
    ForecastVarianceRow,
    MilestoneHealthRow,
    MilestoneHealthSummary,
    MonthlyBurnRow,
    PoVsActualRow,
    PortfolioOnBudget,
    PortfolioOnTime,
)
from portfolio_engines.findings import Finding, RowExclusion, Severity, Violation
from portfolio_kernel.domain.entities import KpiDefinition


# =========================================================================
# Enums
# =========================================================================


class ReportSection(str, Enum):
    """Sections of a portfolio report, in display order."""

    INTEGRITY = "integrity"
    QUALITY = "quality"
    BUDGET = "budget"
    PO = "po"
    FORECAST = "forecast"
    BURN = "burn"
    MILESTONES = "milestones"
    VIEWS = "views"
    KPIS = "kpis"


# =========================================================================
# Report Metadata
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every portfolio report."""

    entity_name: str
    currency: str
    generated_at: str  # ISO format timestamp from injected clock
    snapshot_id: str
    row_counts: tuple[tuple[str, int], ...]
    forecast_accuracy_tolerance: Decimal
    forecast_deviation_threshold: Decimal
    spend_outlier_multiplier: Decimal
    source: str | None = None


# =========================================================================
# KPI views
# =========================================================================


@dataclass(frozen=True)
class KpiViews:
    """The three named KPI views, computed from one snapshot."""

    budget_utilization: tuple[BudgetUtilizationRow, ...]
    projects_on_budget: PortfolioOnBudget
    projects_on_time: PortfolioOnTime


# =========================================================================
# Portfolio Report
# =========================================================================


@dataclass(frozen=True)
class PortfolioReport:
    """Every diagnostic stream, analytic result set and view for one snapshot."""

    metadata: ReportMetadata

    # Diagnostics
    violations: tuple[Violation, ...]
    findings: tuple[Finding, ...]
    exclusions: tuple[RowExclusion, ...]

    # Analytic result sets
    budget_variance: tuple[BudgetVarianceRow, ...]
    po_vs_actual: tuple[PoVsActualRow, ...]
    forecast_variance: tuple[ForecastVarianceRow, ...]
    monthly_burn_rate: tuple[MonthlyBurnRow, ...]
    milestone_health: tuple[MilestoneHealthRow, ...]
    milestone_summary: tuple[MilestoneHealthSummary, ...]

    # KPI views and catalog
    views: KpiViews
    kpi_definitions: tuple[KpiDefinition, ...] = ()

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.ERROR)

    @property
    def info_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == Severity.INFO)

    @property
    def quality_row_count(self) -> int:
        return sum(f.row_count for f in self.findings)

    @property
    def is_clean(self) -> bool:
        """True if there are no integrity errors and every quality check is empty."""
        return self.error_count == 0 and self.quality_row_count == 0
