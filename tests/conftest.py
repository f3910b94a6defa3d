"""
Pytest fixtures for the portfolio reporting test suite.

Provides:
- Structured logging configured once per session
- ``captured_logs`` for asserting on JSON log events
- SQLite database sessions (in-memory, tables created per test)
- A small hand-built snapshot covering the common report paths
- Row factories for building dirty snapshots inline
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from portfolio_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from portfolio_kernel.domain.clock import DeterministicClock
from portfolio_kernel.domain.entities import (
    Forecast,
    KpiDefinition,
    Manager,
    Milestone,
    MilestoneStatus,
    Project,
    ProjectCompletion,
    PurchaseOrder,
    SpendEntry,
)
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture portfolio_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            IntegrityChecker().run_all_checks(store)
            logs = captured_logs()
            assert any(r["message"] == "integrity_check_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("portfolio_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite database with every reporting table."""
    engine = init_engine_from_url("sqlite://", pool_pre_ping=False)
    create_tables()
    yield engine
    reset_engine()


@pytest.fixture
def session(db_engine):
    """A session on the in-memory database; rolled back and closed after the test."""
    s = get_session()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Snapshot fixtures
# =============================================================================


def make_project(
    id="P1",
    name=None,
    budget="1000",
    start_date=date(2025, 1, 1),
    end_date=date(2025, 12, 31),
    manager_id="M1",
) -> Project:
    return Project(
        id=id,
        name=name or f"Project {id}",
        budget=None if budget is None else Decimal(budget),
        start_date=start_date,
        end_date=end_date,
        manager_id=manager_id,
    )


def make_spend(id, project_id="P1", amount="100", day=date(2025, 1, 15), category="Labor") -> SpendEntry:
    return SpendEntry(
        id=id,
        project_id=project_id,
        date=day,
        category=category,
        amount=None if amount is None else Decimal(amount),
    )


def make_forecast(id, project_id="P1", forecast="100", actual="100", day=date(2025, 2, 25)) -> Forecast:
    return Forecast(
        id=id,
        project_id=project_id,
        forecast_date=day,
        forecast_amount=None if forecast is None else Decimal(forecast),
        actual_amount=None if actual is None else Decimal(actual),
    )


def make_milestone(id, project_id="P1", status=MilestoneStatus.ON_TRACK, name=None,
                   due=date(2025, 6, 1), raw_status=None) -> Milestone:
    return Milestone(
        id=id,
        project_id=project_id,
        name=name or f"Milestone {id}",
        due_date=due,
        status=status,
        raw_status=raw_status,
    )


@pytest.fixture
def small_store() -> EntityStore:
    """
    Two managers, three projects, clean data.

    P1: budget 1000, spend 300 + 900 (over budget), completed late.
    P2: budget 500, spend 200, completed early.
    P3: budget 0, no spend, no completion.
    """
    return EntityStore(
        managers=(
            Manager("M1", "Ada Park", "ada.park@example.com"),
            Manager("M2", "Ben Ode", "ben.ode@example.com"),
        ),
        projects=(
            make_project("P1", budget="1000"),
            make_project("P2", budget="500", manager_id="M2"),
            make_project("P3", budget="0", manager_id="M2"),
        ),
        spend_entries=(
            make_spend("E1", "P1", "300", date(2025, 1, 10)),
            make_spend("E2", "P1", "900", date(2025, 2, 10), category="Equipment"),
            make_spend("E3", "P2", "200", date(2025, 1, 20)),
        ),
        milestones=(
            make_milestone("MS1", "P1", MilestoneStatus.COMPLETED, due=date(2025, 2, 1)),
            make_milestone("MS2", "P1", MilestoneStatus.DELAYED, due=date(2025, 4, 1)),
            make_milestone("MS3", "P2", MilestoneStatus.ON_TRACK),
            make_milestone("MS4", "P3", MilestoneStatus.ON_TRACK),
        ),
        forecasts=(
            make_forecast("F1", "P1", "500", "520"),
            make_forecast("F2", "P2", "200", "190", day=date(2025, 3, 25)),
        ),
        purchase_orders=(
            PurchaseOrder("PO1", "P1", date(2025, 1, 5), Decimal("600")),
            PurchaseOrder("PO2", "P2", date(2025, 1, 6), Decimal("250")),
        ),
        completions=(
            ProjectCompletion("P1", date(2026, 1, 7)),
            ProjectCompletion("P2", date(2025, 12, 26)),
        ),
        kpi_definitions=(
            KpiDefinition("Burn Rate", "Average spend per day.", "Monitor trend"),
        ),
    )
