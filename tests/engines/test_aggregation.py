"""
Tests for the AggregationEngine.

Covers:
- Spend totals and budget variance (including zero and null budgets)
- Purchase orders vs actual
- Forecast variance per period
- Monthly burn rate with running totals
- Milestone health and on-time completion
- KPI views: budget utilization, projects on budget, projects on time
- Structural exclusions
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_engines.aggregation import AggregationEngine
from portfolio_engines.aggregation_types import SCHEDULE_DELAYED, SCHEDULE_ON_TIME
from portfolio_engines.findings import RowExclusion
from portfolio_kernel.domain.entities import MilestoneStatus, ProjectCompletion, PurchaseOrder
from portfolio_kernel.domain.store import EntityStore
from tests.conftest import make_forecast, make_milestone, make_project, make_spend


@pytest.fixture
def engine() -> AggregationEngine:
    return AggregationEngine()


class TestSpendAndBudget:
    """Spend totals and budget vs actual."""

    def test_spend_by_project_includes_zero(self, engine, small_store):
        totals = engine.spend_by_project(small_store)

        assert totals == {
            "P1": Decimal("1200"),
            "P2": Decimal("200"),
            "P3": Decimal("0"),
        }

    def test_over_budget_project(self, engine, small_store):
        """Budget 1000, spend 300 + 900: variance -200, -20%."""
        row = engine.budget_variance(small_store)[0]

        assert row.project_id == "P1"
        assert row.actual_spend_amount == Decimal("1200")
        assert row.variance_amount == Decimal("-200")
        assert row.variance_percent == Decimal("-0.2")
        assert row.is_over_budget is True

    def test_zero_budget_has_null_percent(self, engine, small_store):
        row = engine.budget_variance(small_store)[2]

        assert row.project_id == "P3"
        assert row.variance_amount == Decimal("0")
        assert row.variance_percent is None

    def test_null_budget_project_skipped(self, engine):
        store = EntityStore(projects=(make_project("P1", budget=None), make_project("P2")))

        rows = engine.budget_variance(store)

        assert [r.project_id for r in rows] == ["P2"]

    def test_orphan_spend_ignored(self, engine):
        store = EntityStore(
            projects=(make_project("P1"),),
            spend_entries=(make_spend("E1", "P1", "10"), make_spend("E2", "PX", "99")),
        )
        assert engine.spend_by_project(store) == {"P1": Decimal("10")}


class TestPoVsActual:
    """Commitments against recorded spend."""

    def test_totals_and_dates(self, engine, small_store):
        row = engine.po_vs_actual(small_store)[0]

        assert row.total_purchase_orders == Decimal("600")
        assert row.total_actual_spend == Decimal("1200")
        assert row.open_commitments == Decimal("-600")
        assert row.invoice_conversion_ratio == Decimal("2")
        assert row.first_po_date == date(2025, 1, 5)
        assert row.first_spend_date == date(2025, 1, 10)
        assert row.latest_spend_date == date(2025, 2, 10)

    def test_project_without_pos(self, engine, small_store):
        row = engine.po_vs_actual(small_store)[2]

        assert row.project_id == "P3"
        assert row.total_purchase_orders == Decimal("0")
        assert row.invoice_conversion_ratio is None
        assert row.first_po_date is None
        assert row.latest_spend_date is None

    def test_null_po_amount_keeps_date(self, engine):
        store = EntityStore(
            projects=(make_project("P1"),),
            purchase_orders=(PurchaseOrder("PO1", "P1", date(2025, 3, 1), None),),
        )

        row = engine.po_vs_actual(store)[0]

        assert row.total_purchase_orders == Decimal("0")
        assert row.first_po_date == date(2025, 3, 1)


class TestForecastVariance:
    """Forecast vs actual per project period."""

    def test_variance_sign_and_percent(self, engine):
        store = EntityStore(
            projects=(make_project("P1"),),
            forecasts=(make_forecast("F1", "P1", "100", "160"),),
        )

        (row,) = engine.forecast_variance(store)

        assert row.variance_amount == Decimal("60")
        assert row.variance_percent == Decimal("0.6")

    def test_same_period_rows_summed(self, engine):
        day = date(2025, 5, 25)
        store = EntityStore(
            projects=(make_project("P1"),),
            forecasts=(
                make_forecast("F1", "P1", "100", "90", day=day),
                make_forecast("F2", "P1", "50", "70", day=day),
            ),
        )

        (row,) = engine.forecast_variance(store)

        assert row.forecast_amount == Decimal("150")
        assert row.actual_amount == Decimal("160")

    def test_unknown_project_and_incomplete_rows_dropped(self, engine):
        store = EntityStore(
            projects=(make_project("P1"),),
            forecasts=(
                make_forecast("F1", "PX"),
                make_forecast("F2", "P1", actual=None),
                make_forecast("F3", "P1", forecast="0", actual="5"),
            ),
        )

        (row,) = engine.forecast_variance(store)

        assert row.forecast_amount == Decimal("0")
        assert row.variance_percent is None


class TestMonthlyBurnRate:
    """Monthly spend with running totals."""

    def test_running_total_and_burn_rate(self, engine, small_store):
        rows = [r for r in engine.monthly_burn_rate(small_store) if r.project_id == "P1"]

        assert [(r.month_start, r.month_end) for r in rows] == [
            (date(2025, 1, 1), date(2025, 1, 31)),
            (date(2025, 2, 1), date(2025, 2, 28)),
        ]
        assert [r.cumulative_spend for r in rows] == [Decimal("300"), Decimal("1200")]
        # 1200 over the 59 days from 1 Jan to 28 Feb
        assert rows[1].burn_rate_per_day == Decimal("1200") / Decimal("59")

    def test_spend_dated_before_start_has_null_rate(self, engine):
        store = EntityStore(
            projects=(make_project("P1", start_date=date(2025, 3, 1)),),
            spend_entries=(make_spend("E1", "P1", "50", date(2025, 1, 10)),),
        )

        (row,) = engine.monthly_burn_rate(store)

        assert row.burn_rate_per_day is None

    def test_cumulative_is_non_decreasing(self, engine):
        store = EntityStore(
            projects=(make_project("P1"),),
            spend_entries=tuple(
                make_spend(f"E{m}", "P1", str(m * 10), date(2025, m, 3))
                for m in (5, 1, 3, 2)
            ),
        )

        cumulative = [r.cumulative_spend for r in engine.monthly_burn_rate(store)]

        assert cumulative == sorted(cumulative)
        assert cumulative[-1] == Decimal("110")


class TestMilestoneHealth:
    """Milestone counts and on-time completion."""

    def test_two_completed_one_delayed_three_inflight(self, engine):
        statuses = [MilestoneStatus.COMPLETED] * 2 + [MilestoneStatus.DELAYED] + \
            [MilestoneStatus.ON_TRACK] * 3
        store = EntityStore(
            projects=(make_project("P1"),),
            milestones=tuple(
                make_milestone(f"MS{i}", "P1", status) for i, status in enumerate(statuses)
            ),
        )

        (summary,) = engine.milestone_summary(store)

        assert summary.completed_count == 2
        assert summary.delayed_count == 1
        assert summary.inflight_count == 3
        assert summary.on_time_completion_percent == Decimal(2) / Decimal(3)

    def test_only_inflight_has_null_percent(self, engine, small_store):
        summaries = {s.project_id: s for s in engine.milestone_summary(small_store)}

        assert summaries["P2"].on_time_completion_percent is None

    def test_rows_carry_schedule_flag(self, engine, small_store):
        rows = [r for r in engine.milestone_health(small_store) if r.project_id == "P1"]

        assert [(r.milestone_id, r.schedule_flag) for r in rows] == [
            ("MS1", SCHEDULE_ON_TIME),
            ("MS2", SCHEDULE_DELAYED),
        ]
        assert all(r.on_time_completion_percent == Decimal("0.5") for r in rows)

    def test_undated_milestone_sorts_first(self, engine):
        store = EntityStore(
            projects=(make_project("P1"),),
            milestones=(
                make_milestone("MS1", due=date(2025, 3, 1)),
                make_milestone("MS2", due=None),
                make_milestone("MS3", due=date(2025, 1, 15)),
                make_milestone("MS0", due=None),
            ),
        )

        rows = engine.milestone_health(store)

        assert [r.milestone_id for r in rows] == ["MS0", "MS2", "MS3", "MS1"]


class TestKpiViews:
    """Budget utilization and portfolio rollups."""

    def test_budget_utilization(self, engine, small_store):
        rows = {r.project_id: r for r in engine.budget_utilization(small_store)}

        assert rows["P1"].budget_utilization_percent == Decimal("1.2")
        assert rows["P1"].cost_variance_amount == Decimal("200")
        assert rows["P3"].budget_utilization_percent is None

    def test_portfolio_on_budget(self, engine, small_store):
        """P1 is over budget; P2 and P3 (0 spend on 0 budget) are on budget."""
        result = engine.portfolio_on_budget(small_store)

        assert result.total_projects == 3
        assert result.projects_on_budget == 2
        assert result.projects_over_budget == 1
        assert result.percent_projects_on_budget == Decimal(2) / Decimal(3)
        assert result.excluded_projects == 0

    def test_null_budget_excluded_from_on_budget(self, engine):
        store = EntityStore(projects=(make_project("P1", budget=None), make_project("P2")))

        result = engine.portfolio_on_budget(store)

        assert result.total_projects == 1
        assert result.excluded_projects == 1

    def test_empty_portfolio_has_null_percentages(self, engine):
        assert engine.portfolio_on_budget(EntityStore()).percent_projects_on_budget is None
        assert engine.portfolio_on_time(EntityStore()).percent_projects_on_time is None

    def test_portfolio_on_time(self, engine, small_store):
        """P2 finished early; P1 finished late; P3 has no completion."""
        result = engine.portfolio_on_time(small_store)

        assert result.total_projects == 3
        assert result.projects_on_time == 1
        assert result.projects_delivered_late == 2

    def test_missing_completion_counts_as_late(self, engine):
        store = EntityStore(projects=(make_project("P1"),))

        result = engine.portfolio_on_time(store)

        assert result.projects_on_time == 0
        assert result.projects_delivered_late == 1

    def test_first_completion_wins(self, engine):
        store = EntityStore(
            projects=(make_project("P1", end_date=date(2025, 12, 31)),),
            completions=(
                ProjectCompletion("P1", date(2025, 12, 1)),
                ProjectCompletion("P1", date(2026, 2, 1)),
            ),
        )
        assert engine.portfolio_on_time(store).projects_on_time == 1


class TestStructuralExclusions:
    """Rows skipped because a formula input is null."""

    def test_clean_store_has_none(self, engine, small_store):
        assert engine.structural_exclusions(small_store) == ()

    def test_each_exclusion_kind(self, engine, captured_logs):
        store = EntityStore(
            projects=(make_project("P1", budget=None),),
            spend_entries=(
                make_spend("E1", None),
                make_spend("E2", "P1", day=None),
            ),
            milestones=(make_milestone("MS1", None),),
            forecasts=(make_forecast("F1", "P1", forecast=None),),
            purchase_orders=(PurchaseOrder("PO1", "P1", date(2025, 1, 1), None),),
        )

        exclusions = engine.structural_exclusions(store)

        assert exclusions == (
            RowExclusion("project", "P1", "budget_variance", ("budget",)),
            RowExclusion("project", "P1", "budget_utilization", ("budget",)),
            RowExclusion("project", "P1", "portfolio_on_budget", ("budget",)),
            RowExclusion("spend_log", "E1", "spend_by_project", ("project_id",)),
            RowExclusion("spend_log", "E2", "monthly_burn_rate", ("date",)),
            RowExclusion("milestone", "MS1", "milestone_health", ("project_id",)),
            RowExclusion("forecast", "F1", "forecast_variance", ("forecast_amount",)),
            RowExclusion("purchase_order", "PO1", "po_vs_actual", ("po_amount",)),
        )
        messages = [r["message"] for r in captured_logs()]
        assert messages.count("row_excluded") == 8
        assert "structural_exclusions_found" in messages
