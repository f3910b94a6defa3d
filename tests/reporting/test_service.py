"""
Tests for PortfolioReportingService.

Covers:
- A complete report from one snapshot
- Metadata stamping from the injected clock and configuration
- Thresholds flowing from configuration into the engines
- Reporting from a database session
- Run logging with bound context
"""

from decimal import Decimal

import pytest

from portfolio_config.schema import ReportingConfig, ReportingThresholds
from portfolio_engines.findings import ViolationKind
from portfolio_ingestion.seed import build_demo_store, seed_database
from portfolio_kernel.domain.store import EntityStore
from portfolio_modules.reporting import PortfolioReportingService
from tests.conftest import make_forecast, make_project


@pytest.fixture
def service(deterministic_clock) -> PortfolioReportingService:
    return PortfolioReportingService(clock=deterministic_clock)


class TestBuildReport:
    """Every section is computed from the same snapshot."""

    def test_small_store_report(self, service, small_store):
        report = service.build_report(small_store, source="test")

        assert report.violations == ()
        assert len(report.findings) == 10
        assert report.quality_row_count == 1
        assert report.is_clean is False
        assert [r.project_id for r in report.budget_variance] == ["P1", "P2", "P3"]
        assert report.views.projects_on_budget.projects_on_budget == 2
        assert report.views.projects_on_time.projects_on_time == 1
        assert report.kpi_definitions == small_store.kpi_definitions

    def test_metadata(self, service, small_store):
        meta = service.build_report(small_store, source="test").metadata

        assert meta.entity_name == "Finance Reporting"
        assert meta.currency == "USD"
        assert meta.generated_at == "2025-01-01T12:00:00+00:00"
        assert meta.snapshot_id == small_store.snapshot_id
        assert dict(meta.row_counts)["project"] == 3
        assert meta.forecast_accuracy_tolerance == Decimal("0.10")
        assert meta.source == "test"

    def test_empty_store(self, service):
        report = service.build_report(EntityStore())

        assert report.violations == ()
        assert report.is_clean is True
        assert report.views.projects_on_time.percent_projects_on_time is None


class TestConfiguredThresholds:
    """Thresholds come from configuration, never from the engines."""

    def test_tolerance_changes_accuracy_gaps(self, deterministic_clock):
        store = EntityStore(
            projects=(make_project("P1", manager_id=None),),
            forecasts=(make_forecast("F1", "P1", "100", "107"),),
        )
        lenient = PortfolioReportingService(clock=deterministic_clock)
        strict = PortfolioReportingService(
            config=ReportingConfig(thresholds=ReportingThresholds(
                forecast_accuracy_tolerance=Decimal("0.05"),
            )),
            clock=deterministic_clock,
        )

        assert lenient.build_report(store).info_count == 0
        report = strict.build_report(store)
        assert report.info_count == 1
        assert report.error_count == 0
        assert report.violations[0].kind == ViolationKind.ACCURACY_GAP
        assert report.metadata.forecast_accuracy_tolerance == Decimal("0.05")


class TestDemoDataset:
    """The bundled demo data is clean apart from forecast deviations."""

    def test_demo_report(self, service):
        report = service.build_report(build_demo_store(), source="demo")

        assert report.error_count == 0
        assert report.info_count == 0
        assert report.exclusions == ()
        for finding in report.findings:
            if finding.number != 8:
                assert finding.is_clean, finding.check_name
        assert len(report.budget_variance) == 50
        assert report.views.projects_on_budget.projects_on_budget == 50


class TestFromSession:
    """Reporting straight from the database."""

    def test_build_report_from_session(self, service, session):
        store = build_demo_store()
        seed_database(session, store)

        report = service.build_report_from_session(session)

        assert report.metadata.source == "db"
        assert dict(report.metadata.row_counts) == store.row_counts()
        assert len(report.forecast_variance) == len(build_demo_store().forecasts)


class TestLogging:
    """Start and completion events carry the run context."""

    def test_run_events(self, service, small_store, captured_logs):
        service.build_report(small_store, source="test")

        logs = captured_logs()
        started = [r for r in logs if r["message"] == "portfolio_report_started"]
        completed = [r for r in logs if r["message"] == "portfolio_report_completed"]
        assert len(started) == 1
        assert len(completed) == 1
        assert completed[0]["snapshot_id"] == small_store.snapshot_id
        assert completed[0]["source"] == "test"
        assert completed[0]["run_id"] == started[0]["run_id"]
        assert completed[0]["project_count"] == 3
