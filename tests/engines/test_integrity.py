"""
Tests for the IntegrityChecker.

Covers:
- Orphan references from every child table and from projects to managers
- Null and unknown milestone statuses
- Negative budgets, spend, forecast, actual and PO amounts
- Forecast accuracy gaps (informational) with exact tolerance boundaries
- Project date ranges, duplicate completions and duplicate primary keys
- Aggregate ordering and logging
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_engines.findings import Severity, ViolationKind
from portfolio_engines.integrity import IntegrityChecker
from portfolio_kernel.domain.entities import (
    KpiDefinition,
    Manager,
    ProjectCompletion,
    PurchaseOrder,
)
from portfolio_kernel.domain.store import EntityStore
from tests.conftest import make_forecast, make_milestone, make_project, make_spend

MANAGER = Manager("M1", "Ada Park", "ada.park@example.com")
KPI = KpiDefinition("On-Time Delivery", "Share of projects delivered by end date", ">= 90%")


@pytest.fixture
def checker() -> IntegrityChecker:
    return IntegrityChecker()


class TestOrphanReferences:
    """Child rows pointing at projects or managers that do not exist."""

    def test_clean_store_has_no_orphans(self, checker, small_store):
        """Every reference in the small store resolves."""
        assert checker.check_orphan_references(small_store) == ()

    def test_orphan_manager_reported_once(self, checker):
        """A project whose manager is missing yields exactly one violation."""
        store = EntityStore(projects=(make_project("P1", manager_id="M9"),))

        violations = checker.check_orphan_references(store)

        assert len(violations) == 1
        v = violations[0]
        assert v.kind == ViolationKind.ORPHAN_REFERENCE
        assert v.entity == "project"
        assert v.id == "P1"
        assert v.field == "manager_id"
        assert v.value == "M9"
        assert v.severity == Severity.ERROR

    def test_orphan_manager_resolves_when_manager_added(self, checker):
        """Adding the manager clears the violation."""
        store = EntityStore(
            managers=(Manager("M9", "Late Add", "late.add@example.com"),),
            projects=(make_project("P1", manager_id="M9"),),
        )
        assert checker.check_orphan_references(store) == ()

    def test_null_manager_is_not_an_orphan(self, checker):
        """A null manager_id is a quality issue, not an integrity violation."""
        store = EntityStore(projects=(make_project("P1", manager_id=None),))
        assert checker.check_orphan_references(store) == ()

    def test_orphans_reported_per_child_table_in_order(self, checker):
        """Spend, milestone, forecast, PO and completion orphans, then projects."""
        store = EntityStore(
            managers=(MANAGER,),
            projects=(make_project("P1"), make_project("P2", manager_id="MX")),
            spend_entries=(make_spend("E1", "PX"),),
            milestones=(make_milestone("MS1", "PX"),),
            forecasts=(make_forecast("F1", "PX"),),
            purchase_orders=(PurchaseOrder("PO1", "PX", date(2025, 1, 1), Decimal("5")),),
            completions=(ProjectCompletion("PX", date(2025, 12, 1)),),
        )

        violations = checker.check_orphan_references(store)

        assert [(v.entity, v.id) for v in violations] == [
            ("spend_log", "E1"),
            ("milestone", "MS1"),
            ("forecast", "F1"),
            ("purchase_order", "PO1"),
            ("project_completion", "PX"),
            ("project", "P2"),
        ]

    def test_null_child_project_is_not_an_orphan(self, checker):
        """Spend with no project_id is excluded from aggregation, not orphaned."""
        store = EntityStore(
            projects=(make_project("P1", manager_id=None),),
            spend_entries=(make_spend("E1", None),),
        )
        assert checker.check_orphan_references(store) == ()


class TestMilestoneStatus:
    """Milestone status must be one of the three allowed values."""

    def test_valid_statuses_pass(self, checker, small_store):
        assert checker.check_milestone_status(small_store) == ()

    def test_unknown_status_keeps_raw_text(self, checker):
        """Unparseable status text is reported with the original value."""
        store = EntityStore(milestones=(
            make_milestone("MS1", status=None, raw_status="Paused"),
        ))

        (violation,) = checker.check_milestone_status(store)

        assert violation.kind == ViolationKind.INVALID_ENUM
        assert violation.value == "Paused"
        assert "'Paused'" in violation.detail

    def test_null_status_reported(self, checker):
        store = EntityStore(milestones=(make_milestone("MS1", status=None),))

        (violation,) = checker.check_milestone_status(store)

        assert violation.value is None
        assert "null" in violation.detail


class TestNegativeValues:
    """Amounts below zero on any money column."""

    def test_every_money_column_checked(self, checker):
        """Budget, spend, forecast, actual and PO amounts are all covered."""
        store = EntityStore(
            projects=(make_project("P1", budget="-1"),),
            spend_entries=(make_spend("E1", amount="-2"),),
            forecasts=(make_forecast("F1", forecast="-3", actual="-4"),),
            purchase_orders=(PurchaseOrder("PO1", "P1", date(2025, 1, 1), Decimal("-5")),),
        )

        violations = checker.check_negative_values(store)

        assert [(v.entity, v.field, v.value) for v in violations] == [
            ("project", "budget", Decimal("-1")),
            ("spend_log", "amount", Decimal("-2")),
            ("forecast", "forecast_amount", Decimal("-3")),
            ("forecast", "actual_amount", Decimal("-4")),
            ("purchase_order", "po_amount", Decimal("-5")),
        ]
        assert all(v.kind == ViolationKind.NEGATIVE_VALUE for v in violations)

    def test_zero_and_null_are_not_negative(self, checker):
        store = EntityStore(
            projects=(make_project("P1", budget="0"), make_project("P2", budget=None)),
            spend_entries=(make_spend("E1", amount=None),),
        )
        assert checker.check_negative_values(store) == ()


class TestForecastAccuracy:
    """Forecast vs actual beyond the accuracy tolerance is informational."""

    def test_large_gap_is_info(self, checker):
        """Forecast 100, actual 160 is a 60% gap."""
        store = EntityStore(forecasts=(make_forecast("F1", forecast="100", actual="160"),))

        (violation,) = checker.check_forecast_accuracy(store)

        assert violation.kind == ViolationKind.ACCURACY_GAP
        assert violation.severity == Severity.INFO
        assert violation.value == Decimal("0.6")

    def test_gap_exactly_at_tolerance_not_flagged(self, checker):
        """|100 - 110| == 0.10 * 100 is within tolerance."""
        store = EntityStore(forecasts=(make_forecast("F1", forecast="100", actual="110"),))
        assert checker.check_forecast_accuracy(store) == ()

    def test_gap_just_over_tolerance_flagged(self, checker):
        store = EntityStore(forecasts=(make_forecast("F1", forecast="100", actual="110.01"),))
        assert len(checker.check_forecast_accuracy(store)) == 1

    def test_custom_tolerance(self, checker):
        store = EntityStore(forecasts=(make_forecast("F1", forecast="100", actual="106"),))
        assert checker.check_forecast_accuracy(store) == ()
        assert len(checker.check_forecast_accuracy(store, tolerance=Decimal("0.05"))) == 1

    def test_zero_or_missing_forecast_skipped(self, checker):
        store = EntityStore(forecasts=(
            make_forecast("F1", forecast="0", actual="50"),
            make_forecast("F2", forecast=None, actual="50"),
            make_forecast("F3", forecast="50", actual=None),
        ))
        assert checker.check_forecast_accuracy(store) == ()


class TestDateRangesAndDuplicates:
    """Schedule sanity, completion uniqueness and primary key uniqueness."""

    def test_end_not_after_start(self, checker):
        store = EntityStore(projects=(
            make_project("P1", start_date=date(2025, 5, 1), end_date=date(2025, 5, 1)),
            make_project("P2", start_date=date(2025, 5, 1), end_date=date(2025, 4, 1)),
            make_project("P3"),
        ))

        violations = checker.check_date_ranges(store)

        assert [v.id for v in violations] == ["P1", "P2"]
        assert all(v.kind == ViolationKind.INVALID_DATE_RANGE for v in violations)

    def test_missing_dates_not_checked(self, checker):
        store = EntityStore(projects=(make_project("P1", start_date=None),))
        assert checker.check_date_ranges(store) == ()

    def test_duplicate_completion_one_violation_per_project(self, checker):
        store = EntityStore(
            projects=(make_project("P1"),),
            completions=(
                ProjectCompletion("P1", date(2025, 12, 1)),
                ProjectCompletion("P1", date(2025, 12, 5)),
                ProjectCompletion("P1", date(2025, 12, 9)),
            ),
        )

        (violation,) = checker.check_duplicate_completions(store)

        assert violation.kind == ViolationKind.DUPLICATE_COMPLETION
        assert violation.id == "P1"
        assert violation.value == 3

    def test_duplicate_ids_one_violation_per_key(self, checker):
        store = EntityStore(
            managers=(MANAGER, MANAGER),
            projects=(make_project("P1"), make_project("P2"), make_project("P1")),
            milestones=(make_milestone("MS1"), make_milestone("MS1"), make_milestone("MS1")),
            spend_entries=(make_spend("E1", "P1"), make_spend("E1", "P1")),
        )

        violations = checker.check_duplicate_ids(store)

        assert [(v.entity, v.id, v.value) for v in violations] == [
            ("manager", "M1", 2),
            ("project", "P1", 2),
            ("milestone", "MS1", 3),
        ]
        assert all(v.kind == ViolationKind.DUPLICATE_ID for v in violations)
        assert all(v.severity == Severity.ERROR for v in violations)
        assert violations[1].project_id == "P1"
        assert violations[0].project_id is None

    def test_unique_ids_pass(self, checker, small_store):
        assert checker.check_duplicate_ids(small_store) == ()


class TestRunAllChecks:
    """The aggregate runs every rule and keeps check order."""

    def test_clean_store_no_errors(self, checker, small_store):
        assert checker.run_all_checks(small_store) == ()

    def test_order_is_check_order(self, checker):
        store = EntityStore(
            projects=(make_project(
                "P1", budget="-1", manager_id=None,
                start_date=date(2025, 2, 1), end_date=date(2025, 1, 1),
            ),),
            milestones=(make_milestone("MS1", "P1", status=None, raw_status="??"),),
            forecasts=(make_forecast("F1", "PX", forecast="100", actual="200"),),
            completions=(
                ProjectCompletion("P1", date(2025, 3, 1)),
                ProjectCompletion("P1", date(2025, 3, 2)),
            ),
            kpi_definitions=(KPI, KPI),
        )

        kinds = [v.kind for v in checker.run_all_checks(store)]

        assert kinds == [
            ViolationKind.ORPHAN_REFERENCE,
            ViolationKind.INVALID_ENUM,
            ViolationKind.NEGATIVE_VALUE,
            ViolationKind.ACCURACY_GAP,
            ViolationKind.INVALID_DATE_RANGE,
            ViolationKind.DUPLICATE_COMPLETION,
            ViolationKind.DUPLICATE_ID,
        ]

    def test_logs_completion_and_engine_traces(self, checker, small_store, captured_logs):
        checker.run_all_checks(small_store)

        logs = captured_logs()
        completed = [r for r in logs if r["message"] == "integrity_check_completed"]
        assert len(completed) == 1
        assert completed[0]["violation_count"] == 0
        assert completed[0]["accuracy_tolerance"] == "0.10"

        traces = [r for r in logs if r["message"] == "PORTFOLIO_ENGINE_TRACE"]
        assert {t["engine_name"] for t in traces} == {"integrity"}
        # One trace per rule plus the aggregate
        assert len(traces) == 8
