"""
Aggregation result types.

Pure frozen dataclasses returned by ``AggregationEngine``.  Field names
are the stable column names exposed to BI consumers.  Every ratio is an
unrounded ``Decimal`` or ``None`` when its denominator is zero; rounding
happens only at display time.

Architecture: portfolio_engines -- pure domain, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_kernel.domain.entities import MilestoneStatus

SCHEDULE_DELAYED = "Delayed"
SCHEDULE_ON_TIME = "On-Time/Upcoming"


# =============================================================================
# Analytic result sets
# =============================================================================


@dataclass(frozen=True)
class BudgetVarianceRow:
    """Budget vs actual spend for one project."""

    project_id: str
    project_name: str
    budget_amount: Decimal
    actual_spend_amount: Decimal
    variance_amount: Decimal
    variance_percent: Decimal | None

    @property
    def is_over_budget(self) -> bool:
        return self.variance_amount < 0


@dataclass(frozen=True)
class PoVsActualRow:
    """Purchase-order commitments vs recorded spend for one project."""

    project_id: str
    project_name: str
    total_purchase_orders: Decimal
    total_actual_spend: Decimal
    open_commitments: Decimal
    invoice_conversion_ratio: Decimal | None
    first_po_date: date | None
    latest_po_date: date | None
    first_spend_date: date | None
    latest_spend_date: date | None


@dataclass(frozen=True)
class ForecastVarianceRow:
    """Forecast vs actual for one (project, forecast_date) period."""

    project_id: str
    project_name: str
    forecast_date: date
    forecast_amount: Decimal
    actual_amount: Decimal
    variance_amount: Decimal
    variance_percent: Decimal | None


@dataclass(frozen=True)
class MonthlyBurnRow:
    """Spend for one calendar month of one project, with running totals."""

    project_id: str
    project_name: str
    month_start: date
    month_end: date
    month_spend: Decimal
    cumulative_spend: Decimal
    burn_rate_per_day: Decimal | None


@dataclass(frozen=True)
class MilestoneHealthSummary:
    """Milestone counts for one project.

    In-flight (On Track) milestones are excluded from the on-time
    percentage until they close.
    """

    project_id: str
    project_name: str
    completed_count: int
    delayed_count: int
    inflight_count: int
    on_time_completion_percent: Decimal | None


@dataclass(frozen=True)
class MilestoneHealthRow:
    """One milestone with its schedule flag and its project's summary."""

    project_id: str
    project_name: str
    milestone_id: str
    milestone_name: str | None
    due_date: date | None
    status: MilestoneStatus | None
    schedule_flag: str
    completed_count: int
    delayed_count: int
    inflight_count: int
    on_time_completion_percent: Decimal | None


# =============================================================================
# KPI views
# =============================================================================


@dataclass(frozen=True)
class BudgetUtilizationRow:
    """Budget utilization for one project."""

    project_id: str
    project_name: str
    budget_amount: Decimal
    actual_spend_amount: Decimal
    budget_utilization_percent: Decimal | None
    cost_variance_amount: Decimal


@dataclass(frozen=True)
class PortfolioOnBudget:
    """Portfolio rollup of projects at or under budget.

    Projects without a budget cannot be compared; they are counted in
    ``excluded_projects`` and nowhere else.
    """

    total_projects: int
    projects_on_budget: int
    projects_over_budget: int
    percent_projects_on_budget: Decimal | None
    excluded_projects: int = 0


@dataclass(frozen=True)
class PortfolioOnTime:
    """Portfolio rollup of projects delivered by their planned end date.

    A project without a completion record counts as delivered late.
    """

    total_projects: int
    projects_on_time: int
    projects_delivered_late: int
    percent_projects_on_time: Decimal | None
