"""
Demonstration dataset and idempotent database seeding.

Responsibility:
    Build the demo portfolio -- 10 managers, 50 projects and the spend,
    milestone, forecast, purchase-order and completion rows derived from
    them -- and insert it into the reporting database without creating
    duplicates.

Architecture position:
    Ingestion -- the external data-loading collaborator.  Reference
    patterns are immutable module-level tuples passed explicitly to the
    row builders; nothing here is process-wide mutable state.

Invariants enforced:
    - Derived dates are ``start_date + months + days`` (calendar-month
      arithmetic) clamped to the project's end date.
    - Derived amounts are ``budget * fraction`` rounded half-up to cents.
    - Identifiers are numbered in (project, pattern sequence) order:
      ``E0001``, ``MS001``, ``F00001``, ``PO00001``.
    - ``seed_database`` inserts only rows whose primary key is absent, so
      seeding twice inserts nothing the second time.

Failure modes:
    - Database errors propagate; the caller's ``session_scope`` rolls back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.orm import Session

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
from portfolio_kernel.logging_config import get_logger
from portfolio_kernel.models import ORM_MODELS

logger = get_logger("ingestion.seed")

_CENT = Decimal("0.01")


# =============================================================================
# Reference patterns
# =============================================================================


@dataclass(frozen=True)
class SpendPattern:
    sequence_no: int
    category: str
    month_offset: int
    day_offset: int
    spend_fraction: Decimal


@dataclass(frozen=True)
class MilestoneStage:
    stage_number: int
    milestone_name: str
    month_offset: int
    day_offset: int
    default_status: MilestoneStatus


@dataclass(frozen=True)
class ForecastPattern:
    sequence_no: int
    month_offset: int
    day_offset: int
    forecast_fraction: Decimal
    actual_multiplier: Decimal


@dataclass(frozen=True)
class PurchaseOrderPattern:
    sequence_no: int
    month_offset: int
    day_offset: int
    po_fraction: Decimal


@dataclass(frozen=True)
class ProjectSeed:
    """A demo project with its position in the portfolio (drives completion shifts)."""

    project_seq: int
    project: Project


# Five spend events over the first five months; fractions sum to 90%
SPEND_PATTERNS: tuple[SpendPattern, ...] = (
    SpendPattern(1, "Planning & Design", 0, 14, Decimal("0.08")),
    SpendPattern(2, "Labor", 1, 18, Decimal("0.22")),
    SpendPattern(3, "Equipment", 2, 12, Decimal("0.28")),
    SpendPattern(4, "Software", 3, 16, Decimal("0.18")),
    SpendPattern(5, "Professional Services", 4, 20, Decimal("0.14")),
)

MILESTONE_STAGES: tuple[MilestoneStage, ...] = (
    MilestoneStage(1, "Project Kick-off Complete", 0, 7, MilestoneStatus.COMPLETED),
    MilestoneStage(2, "Midpoint Health Review", 3, 0, MilestoneStatus.ON_TRACK),
    MilestoneStage(3, "Final Delivery Preparation", 6, 0, MilestoneStatus.ON_TRACK),
)

# Actuals stay within 10% of forecast
FORECAST_PATTERNS: tuple[ForecastPattern, ...] = (
    ForecastPattern(1, 1, 25, Decimal("0.18"), Decimal("0.95")),
    ForecastPattern(2, 3, 25, Decimal("0.32"), Decimal("1.05")),
    ForecastPattern(3, 5, 25, Decimal("0.27"), Decimal("0.92")),
    ForecastPattern(4, 7, 25, Decimal("0.21"), Decimal("1.08")),
)

PURCHASE_ORDER_PATTERNS: tuple[PurchaseOrderPattern, ...] = (
    PurchaseOrderPattern(1, 0, 5, Decimal("0.30")),
    PurchaseOrderPattern(2, 1, 12, Decimal("0.35")),
    PurchaseOrderPattern(3, 2, 20, Decimal("0.25")),
)

# project_seq % 6 -> days between planned and actual end date
COMPLETION_SHIFT_DAYS: tuple[int, ...] = (7, -5, 0, 14, -10, 3)


# =============================================================================
# Demo master data
# =============================================================================


DEMO_MANAGERS: tuple[Manager, ...] = (
    Manager("M001", "Arun Acharya", "arun.acharya@proman.com"),
    Manager("M002", "Emily Chen", "emily.chen@proman.com"),
    Manager("M003", "David Lin", "david.lin@proman.com"),
    Manager("M004", "Sarah Johnson", "sarah.johnson@proman.com"),
    Manager("M005", "Michael Brown", "michael.brown@proman.com"),
    Manager("M006", "Mahoro Lilian", "mahoro.lilian@proman.com"),
    Manager("M007", "Lucas Martinez", "lucas.martinez@proman.com"),
    Manager("M008", "Hannah Weiss", "hannah.weiss@proman.com"),
    Manager("M009", "Jamal Carter", "jamal.carter@proman.com"),
    Manager("M010", "Sofia Petrova", "sofia.petrova@proman.com"),
)

# (name, budget, start, end); five consecutive projects per manager
_PROJECT_ROWS: tuple[tuple[str, int, str, str], ...] = (
    ("5G Tower Deployment - East Region", 650000, "2025-01-01", "2025-12-15"),
    ("5G Tower Deployment - North Region", 600000, "2025-02-01", "2026-01-31"),
    ("Urban Small Cell Rollout", 320000, "2025-03-01", "2025-11-30"),
    ("Microwave Backhaul Upgrade", 280000, "2025-04-01", "2025-12-01"),
    ("Fiber Backbone Expansion", 450000, "2025-05-01", "2026-03-31"),
    ("Legacy System Modernization", 370000, "2025-01-01", "2025-10-31"),
    ("Data Warehouse Refresh", 290000, "2025-02-01", "2025-09-30"),
    ("ERP Integration Wave 1", 410000, "2025-03-01", "2026-02-28"),
    ("ERP Integration Wave 2", 430000, "2025-06-01", "2026-05-31"),
    ("Finance Automation Toolkit", 220000, "2025-04-01", "2025-12-31"),
    ("AI Network Optimization Pilot", 180000, "2025-01-01", "2025-09-30"),
    ("Predictive Maintenance Platform", 260000, "2025-02-01", "2025-12-31"),
    ("Chatbot Customer Support", 140000, "2025-03-01", "2025-10-31"),
    ("Traffic Analytics Dashboard", 200000, "2025-04-01", "2025-12-31"),
    ("Robotic Process Automation", 240000, "2025-05-01", "2026-01-31"),
    ("Cybersecurity Hardening Sprint", 310000, "2025-01-01", "2025-11-30"),
    ("Identity Access Overhaul", 270000, "2025-02-01", "2025-12-15"),
    ("Zero Trust Pilot Program", 330000, "2025-03-01", "2026-01-31"),
    ("Incident Response Automation", 190000, "2025-04-01", "2025-12-01"),
    ("Security Awareness Campaign", 150000, "2025-05-01", "2025-10-31"),
    ("Rural Coverage Expansion - North", 520000, "2025-01-01", "2025-12-31"),
    ("Rural Coverage Expansion - West", 540000, "2025-02-01", "2026-01-31"),
    ("Satellite Backhaul Pilot", 380000, "2025-03-01", "2026-02-28"),
    ("Emergency Network Upgrade", 260000, "2025-04-01", "2025-12-31"),
    ("Disaster Recovery Readiness", 300000, "2025-05-01", "2026-03-31"),
    ("Customer Analytics Platform", 275000, "2025-01-01", "2025-11-30"),
    ("Marketing Automation Revamp", 195000, "2025-02-01", "2025-09-30"),
    ("Omnichannel Experience Launch", 335000, "2025-03-01", "2026-01-31"),
    ("Loyalty Program Redesign", 180000, "2025-04-01", "2025-12-15"),
    ("Brand Intelligence Dashboard", 210000, "2025-05-01", "2025-12-31"),
    ("Edge Computing Lab Setup", 265000, "2025-01-01", "2025-10-31"),
    ("MEC Customer Pilot Series", 295000, "2025-02-01", "2025-12-31"),
    ("Smart City Sensor Grid", 410000, "2025-03-01", "2026-02-28"),
    ("Autonomous Vehicle Trials", 360000, "2025-04-01", "2026-03-31"),
    ("Industrial IoT Partnerships", 340000, "2025-05-01", "2026-01-31"),
    ("Cloud Migration Foundation", 300000, "2025-01-01", "2025-10-31"),
    ("Multi-Cloud Governance Framework", 280000, "2025-02-01", "2025-11-30"),
    ("Container Platform Build-out", 320000, "2025-03-01", "2026-01-15"),
    ("DevOps Automation Wave", 240000, "2025-04-01", "2025-12-31"),
    ("Continuous Testing Framework", 210000, "2025-05-01", "2025-12-01"),
    ("Data Privacy Compliance Program", 230000, "2025-01-01", "2025-09-30"),
    ("Regulatory Reporting Suite", 260000, "2025-02-01", "2025-12-15"),
    ("ESG Reporting Platform", 280000, "2025-03-01", "2025-12-31"),
    ("Risk Scoring Modernization", 250000, "2025-04-01", "2026-01-31"),
    ("Audit Workflow Automation", 190000, "2025-05-01", "2025-11-30"),
    ("HR Talent Analytics", 185000, "2025-01-01", "2025-09-30"),
    ("Learning Experience Refresh", 175000, "2025-02-01", "2025-10-31"),
    ("Workplace Collaboration Suite", 260000, "2025-03-01", "2025-12-31"),
    ("Facilities IoT Monitoring", 225000, "2025-04-01", "2026-01-31"),
    ("Sustainability Innovation Lab", 315000, "2025-05-01", "2026-03-31"),
)

DEMO_PROJECTS: tuple[ProjectSeed, ...] = tuple(
    ProjectSeed(
        project_seq=seq,
        project=Project(
            id=f"P{seq:03d}",
            name=name,
            budget=Decimal(budget),
            start_date=date.fromisoformat(start),
            end_date=date.fromisoformat(end),
            manager_id=DEMO_MANAGERS[(seq - 1) // 5].id,
        ),
    )
    for seq, (name, budget, start, end) in enumerate(_PROJECT_ROWS, start=1)
)

DEMO_KPIS: tuple[KpiDefinition, ...] = (
    KpiDefinition(
        "Budget Variance (Cost Variance)",
        "Difference between approved budget and actual spend recorded to date.",
        "Aim for variance within ±5%",
    ),
    KpiDefinition(
        "Budget Utilization",
        "Portion of the approved budget that has been consumed by actual spend.",
        "Stay below 95% until final month",
    ),
    KpiDefinition(
        "Forecast Accuracy",
        "How closely forecasts align with actual costs for each period.",
        "Maintain ±5% difference",
    ),
    KpiDefinition(
        "On-Time Milestone Completion Rate",
        "Percent of completed milestones delivered on or before their due dates.",
        "≥ 90% of milestones on time",
    ),
    KpiDefinition(
        "On-Time Project Delivery",
        "Percent of projects where the actual end date met or beat the planned end date.",
        "≥ 85% projects delivered on schedule",
    ),
    KpiDefinition(
        "Projects On Budget",
        "Percent of projects where cumulative spend is within approved budget.",
        "≥ 80% projects within budget",
    ),
    KpiDefinition(
        "Burn Rate",
        "Average spend per day based on cumulative spend and elapsed time.",
        "Contextual target – monitor trending above plan",
    ),
    KpiDefinition(
        "Cost Performance Index (CPI)",
        "Requires earned value (EV) data to compare EV to Actual Cost.",
        "Pending earned_value_tracking table",
    ),
    KpiDefinition(
        "Schedule Performance Index (SPI)",
        "Requires earned value schedule data to compare EV to Planned Value.",
        "Pending earned_value_tracking table",
    ),
    KpiDefinition(
        "Return on Investment (ROI)",
        "Requires benefit realization amounts after project completion.",
        "Pending project_benefits table",
    ),
)


# =============================================================================
# Derivation (pure)
# =============================================================================


def offset_date(project: Project, month_offset: int, day_offset: int) -> date:
    """Project start shifted by months then days, clamped to the project end."""
    shifted = project.start_date + relativedelta(months=month_offset, days=day_offset)
    return min(shifted, project.end_date)


def round_cents(amount: Decimal) -> Decimal:
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def build_spend_entries(
    projects: tuple[ProjectSeed, ...],
    patterns: tuple[SpendPattern, ...] = SPEND_PATTERNS,
) -> tuple[SpendEntry, ...]:
    entries = []
    for seed in projects:
        p = seed.project
        for pattern in patterns:
            entries.append(SpendEntry(
                id=f"E{len(entries) + 1:04d}",
                project_id=p.id,
                date=offset_date(p, pattern.month_offset, pattern.day_offset),
                category=pattern.category,
                amount=round_cents(p.budget * pattern.spend_fraction),
            ))
    return tuple(entries)


def build_milestones(
    projects: tuple[ProjectSeed, ...],
    stages: tuple[MilestoneStage, ...] = MILESTONE_STAGES,
) -> tuple[Milestone, ...]:
    milestones = []
    for seed in projects:
        p = seed.project
        for stage in stages:
            milestones.append(Milestone(
                id=f"MS{len(milestones) + 1:03d}",
                project_id=p.id,
                name=stage.milestone_name,
                due_date=offset_date(p, stage.month_offset, stage.day_offset),
                status=stage.default_status,
            ))
    return tuple(milestones)


def build_forecasts(
    projects: tuple[ProjectSeed, ...],
    patterns: tuple[ForecastPattern, ...] = FORECAST_PATTERNS,
) -> tuple[Forecast, ...]:
    forecasts = []
    for seed in projects:
        p = seed.project
        for pattern in patterns:
            planned = p.budget * pattern.forecast_fraction
            forecasts.append(Forecast(
                id=f"F{len(forecasts) + 1:05d}",
                project_id=p.id,
                forecast_date=offset_date(p, pattern.month_offset, pattern.day_offset),
                forecast_amount=round_cents(planned),
                actual_amount=round_cents(planned * pattern.actual_multiplier),
            ))
    return tuple(forecasts)


def build_purchase_orders(
    projects: tuple[ProjectSeed, ...],
    patterns: tuple[PurchaseOrderPattern, ...] = PURCHASE_ORDER_PATTERNS,
) -> tuple[PurchaseOrder, ...]:
    orders = []
    for seed in projects:
        p = seed.project
        for pattern in patterns:
            orders.append(PurchaseOrder(
                id=f"PO{len(orders) + 1:05d}",
                project_id=p.id,
                po_date=offset_date(p, pattern.month_offset, pattern.day_offset),
                po_amount=round_cents(p.budget * pattern.po_fraction),
            ))
    return tuple(orders)


def build_completions(
    projects: tuple[ProjectSeed, ...],
    shifts: tuple[int, ...] = COMPLETION_SHIFT_DAYS,
) -> tuple[ProjectCompletion, ...]:
    return tuple(
        ProjectCompletion(
            project_id=seed.project.id,
            actual_end_date=seed.project.end_date
            + relativedelta(days=shifts[seed.project_seq % len(shifts)]),
        )
        for seed in projects
    )


def build_demo_store() -> EntityStore:
    """The full demonstration dataset as an EntityStore."""
    projects = DEMO_PROJECTS
    return EntityStore(
        managers=DEMO_MANAGERS,
        projects=tuple(seed.project for seed in projects),
        spend_entries=build_spend_entries(projects),
        milestones=build_milestones(projects),
        forecasts=build_forecasts(projects),
        purchase_orders=build_purchase_orders(projects),
        completions=build_completions(projects),
        kpi_definitions=DEMO_KPIS,
    )


# =============================================================================
# Seeding (idempotent)
# =============================================================================


def seed_database(session: Session, store: EntityStore | None = None) -> dict[str, int]:
    """
    Insert every row of ``store`` whose primary key is not yet in the database.

    Tables are filled parents first.  Existing rows are left untouched.

    Returns:
        Rows inserted per table.
    """
    store = store or build_demo_store()
    inserted: dict[str, int] = {}

    for table, model in ORM_MODELS.items():
        pk = model.__mapper__.primary_key[0]
        existing = set(session.scalars(select(pk)).all())
        new_rows = []
        for dto in store.rows(table):
            row = model.from_dto(dto)
            key = getattr(row, pk.key)
            if key in existing:
                continue
            existing.add(key)
            new_rows.append(row)
        session.add_all(new_rows)
        session.flush()
        inserted[table] = len(new_rows)

        logger.info("table_seeded", extra={
            "table": table,
            "inserted": len(new_rows),
            "skipped": len(store.rows(table)) - len(new_rows),
        })

    logger.info("database_seeded", extra={
        "snapshot_id": store.snapshot_id,
        "inserted": inserted,
    })
    return inserted
