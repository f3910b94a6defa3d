"""
portfolio_engines.aggregation -- Spend, variance, burn-rate and KPI rollups.

Responsibility:
    Derive per-project and portfolio-level metrics from one EntityStore
    snapshot: spend totals, budget variance, PO-vs-actual, forecast
    variance, monthly burn rate, milestone health, budget utilization and
    the on-budget / on-time rollups.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by the KPI view builder and the reporting service.

Invariants enforced:
    - Every output is recomputed from the snapshot on each call; the
      engine holds no state between calls.
    - Money is summed in Decimal from Decimal("0"); nothing is rounded.
    - Every ratio is None when its denominator is zero or unknown; no
      call can raise a division error.
    - ``cumulative_spend`` is a prefix sum over months in ascending order,
      so it never decreases for a project with non-negative spend.

Failure modes:
    - Structural gaps (a null grouping key or a null amount) exclude the
      row from the computation that needs it.  ``structural_exclusions``
      reports every such row; nothing is raised.
    - A project without a budget is left out of the budget-based outputs
      and out of the on-budget rollup.

Audit relevance:
    The three KPI views are the figures published to the BI layer; each
    is traced with the snapshot fingerprint so a published number can be
    tied back to its input rows.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date
from decimal import Decimal

from portfolio_engines.aggregation_types import (
    SCHEDULE_DELAYED,
    SCHEDULE_ON_TIME,
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
from portfolio_engines.findings import RowExclusion
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.entities import MilestoneStatus, Project
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")

_ZERO = Decimal("0")

# Computations that need Project.budget
_BUDGET_COMPUTATIONS = ("budget_variance", "budget_utilization", "portfolio_on_budget")


def _ratio(numerator: Decimal, denominator: Decimal | None) -> Decimal | None:
    """numerator / denominator, or None when the denominator is zero or unknown."""
    if denominator is None or denominator == 0:
        return None
    return numerator / denominator


def _project_index(store: EntityStore) -> dict[str, Project]:
    """Projects by id; the first row wins for a duplicated id."""
    index: dict[str, Project] = {}
    for project in store.projects:
        index.setdefault(project.id, project)
    return index


def _month_end(month_start: date) -> date:
    last_day = calendar.monthrange(month_start.year, month_start.month)[1]
    return month_start.replace(day=last_day)


def _missing(row, field_names: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(name for name in field_names if getattr(row, name) is None)


class AggregationEngine:
    """
    Pure calculator for portfolio metrics.

    Contract:
        No I/O, no database access, fully deterministic.  Every method
        takes the snapshot as its only required input.
    Guarantees:
        - Per-project outputs are ordered by project id.
        - Rows whose formula inputs are null are skipped, never guessed.
    Non-goals:
        - Does not validate references; orphan rows simply match no
          project.  See IntegrityChecker.
    """

    # -----------------------------------------------------------------
    # Spend totals
    # -----------------------------------------------------------------

    def _spend_totals(self, store: EntityStore) -> dict[str, Decimal]:
        totals = {project.id: _ZERO for project in store.projects}
        for entry in store.spend_entries:
            if entry.amount is None or entry.project_id not in totals:
                continue
            totals[entry.project_id] += entry.amount
        return totals

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def spend_by_project(self, store: EntityStore) -> dict[str, Decimal]:
        """Total recorded spend per project; 0 for a project with no entries."""
        return self._spend_totals(store)

    # -----------------------------------------------------------------
    # Budget vs actual
    # -----------------------------------------------------------------

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def budget_variance(self, store: EntityStore) -> tuple[BudgetVarianceRow, ...]:
        """
        Budget minus actual spend for each budgeted project.

        variance_amount = budget - spend; variance_percent is
        variance_amount / budget, None when the budget is zero.
        """
        spend = self._spend_totals(store)
        rows = []
        for project in sorted(store.projects, key=lambda p: p.id):
            if project.budget is None:
                continue
            actual = spend[project.id]
            variance = project.budget - actual
            rows.append(BudgetVarianceRow(
                project_id=project.id,
                project_name=project.name,
                budget_amount=project.budget,
                actual_spend_amount=actual,
                variance_amount=variance,
                variance_percent=_ratio(variance, project.budget),
            ))
        return tuple(rows)

    # -----------------------------------------------------------------
    # Purchase orders vs actual
    # -----------------------------------------------------------------

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def po_vs_actual(self, store: EntityStore) -> tuple[PoVsActualRow, ...]:
        """Committed spend (purchase orders) against recorded spend per project."""
        spend = self._spend_totals(store)

        po_totals: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        po_dates: dict[str, list[date]] = defaultdict(list)
        for po in store.purchase_orders:
            if po.project_id is None:
                continue
            if po.po_amount is not None:
                po_totals[po.project_id] += po.po_amount
            if po.po_date is not None:
                po_dates[po.project_id].append(po.po_date)

        spend_dates: dict[str, list[date]] = defaultdict(list)
        for entry in store.spend_entries:
            if entry.project_id is not None and entry.date is not None:
                spend_dates[entry.project_id].append(entry.date)

        rows = []
        for project in sorted(store.projects, key=lambda p: p.id):
            total_po = po_totals.get(project.id, _ZERO)
            total_spend = spend[project.id]
            pos = po_dates.get(project.id, [])
            spends = spend_dates.get(project.id, [])
            rows.append(PoVsActualRow(
                project_id=project.id,
                project_name=project.name,
                total_purchase_orders=total_po,
                total_actual_spend=total_spend,
                open_commitments=total_po - total_spend,
                invoice_conversion_ratio=_ratio(total_spend, total_po),
                first_po_date=min(pos, default=None),
                latest_po_date=max(pos, default=None),
                first_spend_date=min(spends, default=None),
                latest_spend_date=max(spends, default=None),
            ))
        return tuple(rows)

    # -----------------------------------------------------------------
    # Forecast vs actual
    # -----------------------------------------------------------------

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def forecast_variance(self, store: EntityStore) -> tuple[ForecastVarianceRow, ...]:
        """
        Forecast against actual per (project, forecast_date).

        Rows of the same period are summed first.  Forecasts of unknown
        projects are dropped (inner join).
        """
        index = _project_index(store)
        periods: dict[tuple[str, date], list[Decimal]] = {}
        for f in store.forecasts:
            if f.project_id not in index or _missing(
                f, ("forecast_date", "forecast_amount", "actual_amount"),
            ):
                continue
            totals = periods.setdefault((f.project_id, f.forecast_date), [_ZERO, _ZERO])
            totals[0] += f.forecast_amount
            totals[1] += f.actual_amount

        rows = []
        for (project_id, forecast_date), (planned, actual) in sorted(periods.items()):
            variance = actual - planned
            rows.append(ForecastVarianceRow(
                project_id=project_id,
                project_name=index[project_id].name,
                forecast_date=forecast_date,
                forecast_amount=planned,
                actual_amount=actual,
                variance_amount=variance,
                variance_percent=_ratio(variance, planned),
            ))
        return tuple(rows)

    # -----------------------------------------------------------------
    # Monthly burn rate
    # -----------------------------------------------------------------

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def monthly_burn_rate(self, store: EntityStore) -> tuple[MonthlyBurnRow, ...]:
        """
        Monthly spend with a running total and burn rate per project.

        burn_rate_per_day = cumulative_spend / (days from project start to
        month end + 1); None when that day count is not positive or the
        project has no start date.
        """
        index = _project_index(store)
        months: dict[tuple[str, date], Decimal] = defaultdict(lambda: _ZERO)
        for entry in store.spend_entries:
            if entry.project_id not in index or entry.date is None or entry.amount is None:
                continue
            months[(entry.project_id, entry.date.replace(day=1))] += entry.amount

        rows = []
        running: dict[str, Decimal] = {}
        for (project_id, month_start), month_spend in sorted(months.items()):
            cumulative = running.get(project_id, _ZERO) + month_spend
            running[project_id] = cumulative

            month_end = _month_end(month_start)
            start = index[project_id].start_date
            burn_rate = None
            if start is not None:
                days = (month_end - start).days + 1
                if days > 0:
                    burn_rate = cumulative / Decimal(days)

            rows.append(MonthlyBurnRow(
                project_id=project_id,
                project_name=index[project_id].name,
                month_start=month_start,
                month_end=month_end,
                month_spend=month_spend,
                cumulative_spend=cumulative,
                burn_rate_per_day=burn_rate,
            ))
        return tuple(rows)

    # -----------------------------------------------------------------
    # Milestone health
    # -----------------------------------------------------------------

    def _milestone_summaries(self, store: EntityStore) -> dict[str, MilestoneHealthSummary]:
        index = _project_index(store)
        counts: dict[str, dict[MilestoneStatus, int]] = {}
        for milestone in store.milestones:
            if milestone.project_id not in index:
                continue
            per_status = counts.setdefault(milestone.project_id, defaultdict(int))
            if milestone.status is not None:
                per_status[milestone.status] += 1

        summaries = {}
        for project_id in sorted(counts):
            per_status = counts[project_id]
            completed = per_status[MilestoneStatus.COMPLETED]
            delayed = per_status[MilestoneStatus.DELAYED]
            summaries[project_id] = MilestoneHealthSummary(
                project_id=project_id,
                project_name=index[project_id].name,
                completed_count=completed,
                delayed_count=delayed,
                inflight_count=per_status[MilestoneStatus.ON_TRACK],
                on_time_completion_percent=_ratio(
                    Decimal(completed), Decimal(completed + delayed),
                ),
            )
        return summaries

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def milestone_summary(self, store: EntityStore) -> tuple[MilestoneHealthSummary, ...]:
        """One summary per project that has milestones, ordered by project id."""
        return tuple(self._milestone_summaries(store).values())

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def milestone_health(self, store: EntityStore) -> tuple[MilestoneHealthRow, ...]:
        """
        One row per milestone of a known project, carrying the project summary.

        Ordered by project, due date, milestone id; a milestone without a
        due date sorts first within its project.
        """
        summaries = self._milestone_summaries(store)
        milestones = [m for m in store.milestones if m.project_id in summaries]
        milestones.sort(key=lambda m: (
            m.project_id, m.due_date is not None, m.due_date or date.min, m.id,
        ))

        rows = []
        for milestone in milestones:
            summary = summaries[milestone.project_id]
            delayed = milestone.status is MilestoneStatus.DELAYED
            rows.append(MilestoneHealthRow(
                project_id=milestone.project_id,
                project_name=summary.project_name,
                milestone_id=milestone.id,
                milestone_name=milestone.name,
                due_date=milestone.due_date,
                status=milestone.status,
                schedule_flag=SCHEDULE_DELAYED if delayed else SCHEDULE_ON_TIME,
                completed_count=summary.completed_count,
                delayed_count=summary.delayed_count,
                inflight_count=summary.inflight_count,
                on_time_completion_percent=summary.on_time_completion_percent,
            ))
        return tuple(rows)

    # -----------------------------------------------------------------
    # KPI views
    # -----------------------------------------------------------------

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def budget_utilization(self, store: EntityStore) -> tuple[BudgetUtilizationRow, ...]:
        """Share of budget consumed per project; None when the budget is zero."""
        spend = self._spend_totals(store)
        rows = []
        for project in sorted(store.projects, key=lambda p: p.id):
            if project.budget is None:
                continue
            actual = spend[project.id]
            rows.append(BudgetUtilizationRow(
                project_id=project.id,
                project_name=project.name,
                budget_amount=project.budget,
                actual_spend_amount=actual,
                budget_utilization_percent=_ratio(actual, project.budget),
                cost_variance_amount=actual - project.budget,
            ))
        return tuple(rows)

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def portfolio_on_budget(self, store: EntityStore) -> PortfolioOnBudget:
        """Count of projects whose spend is at or under budget."""
        spend = self._spend_totals(store)
        comparable = [p for p in store.projects if p.budget is not None]
        on_budget = sum(1 for p in comparable if spend[p.id] <= p.budget)
        total = len(comparable)
        return PortfolioOnBudget(
            total_projects=total,
            projects_on_budget=on_budget,
            projects_over_budget=total - on_budget,
            percent_projects_on_budget=_ratio(Decimal(on_budget), Decimal(total)),
            excluded_projects=len(store.projects) - total,
        )

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def portfolio_on_time(self, store: EntityStore) -> PortfolioOnTime:
        """
        Count of projects finished by their planned end date.

        A project is on time only if it has a completion record and
        actual_end_date <= end_date.  No completion record means late.
        """
        completions = store.completion_by_project_id
        on_time = 0
        for project in store.projects:
            completion = completions.get(project.id)
            if (
                completion is not None
                and completion.actual_end_date is not None
                and project.end_date is not None
                and completion.actual_end_date <= project.end_date
            ):
                on_time += 1
        total = len(store.projects)
        return PortfolioOnTime(
            total_projects=total,
            projects_on_time=on_time,
            projects_delivered_late=total - on_time,
            percent_projects_on_time=_ratio(Decimal(on_time), Decimal(total)),
        )

    # -----------------------------------------------------------------
    # Structural exclusions
    # -----------------------------------------------------------------

    @traced_engine("aggregation", "1.0", fingerprint_fields=("store",))
    def structural_exclusions(self, store: EntityStore) -> tuple[RowExclusion, ...]:
        """Every row skipped by a computation because a field it needs is null."""
        exclusions: list[RowExclusion] = []

        for project in store.projects:
            if project.budget is None:
                exclusions.extend(
                    RowExclusion("project", project.id, computation, ("budget",))
                    for computation in _BUDGET_COMPUTATIONS
                )

        for entry in store.spend_entries:
            missing = _missing(entry, ("project_id", "amount"))
            if missing:
                exclusions.append(
                    RowExclusion("spend_log", entry.id, "spend_by_project", missing),
                )
            elif entry.date is None:
                exclusions.append(
                    RowExclusion("spend_log", entry.id, "monthly_burn_rate", ("date",)),
                )

        for milestone in store.milestones:
            if milestone.project_id is None:
                exclusions.append(
                    RowExclusion("milestone", milestone.id, "milestone_health", ("project_id",)),
                )

        for f in store.forecasts:
            missing = _missing(
                f, ("project_id", "forecast_date", "forecast_amount", "actual_amount"),
            )
            if missing:
                exclusions.append(
                    RowExclusion("forecast", f.id, "forecast_variance", missing),
                )

        for po in store.purchase_orders:
            missing = _missing(po, ("project_id", "po_amount"))
            if missing:
                exclusions.append(
                    RowExclusion("purchase_order", po.id, "po_vs_actual", missing),
                )

        for exclusion in exclusions:
            logger.debug("row_excluded", extra={
                "entity": exclusion.entity,
                "row_id": exclusion.id,
                "computation": exclusion.computation,
                "missing_fields": list(exclusion.missing_fields),
            })
        if exclusions:
            logger.warning("structural_exclusions_found", extra={
                "exclusion_count": len(exclusions),
            })
        return tuple(exclusions)
