"""
portfolio_engines.integrity -- Referential and value-range rules.

Responsibility:
    Validate the links and value ranges of one EntityStore snapshot and
    return every broken rule as a ``Violation`` record.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import portfolio_kernel.domain and portfolio_engines types.
    Consumed by the reporting service.

Invariants enforced:
    - Checks are independent and all of them run; a violation never
      halts later checks.
    - Output order is check order, then input row order within a check.
    - A null reference is not an orphan.  Missing managers are reported
      by the QualityScanner instead.
    - Purity: no clock access, no I/O, the snapshot is never mutated.

Failure modes:
    - None.  Dirty data produces violations; nothing is raised.

Audit relevance:
    The violation list is the "all clear" signal for a data load: an
    empty result of ERROR severity means every reference resolves and
    every amount is in range.  Accuracy gaps are INFO only.

Usage:
    checker = IntegrityChecker()
    violations = checker.run_all_checks(store)
"""

from __future__ import annotations

from collections import Counter
from decimal import Decimal

from portfolio_engines.findings import Violation, ViolationKind
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.integrity")

DEFAULT_ACCURACY_TOLERANCE = Decimal("0.10")

# Child tables whose rows must reference an existing project, in report order
_PROJECT_CHILDREN = (
    "spend_log",
    "milestone",
    "forecast",
    "purchase_order",
    "project_completion",
)

# (table, primary key column) checked for repeated keys
_KEYED_TABLES = (
    ("manager", "id"),
    ("project", "id"),
    ("milestone", "id"),
    ("forecast", "id"),
    ("purchase_order", "id"),
    ("kpi_reference", "kpi_name"),
)


def _row_id(row) -> str | None:
    # ProjectCompletion is keyed by its project
    return getattr(row, "id", None) or getattr(row, "project_id", None)


class IntegrityChecker:
    """Pure engine for referential and value-range validation.

    All methods receive an EntityStore and return tuples of Violation.
    No I/O, no database access.
    """

    # -----------------------------------------------------------------
    # Orphan references
    # -----------------------------------------------------------------

    @traced_engine("integrity", "1.0", fingerprint_fields=("store",))
    def check_orphan_references(self, store: EntityStore) -> tuple[Violation, ...]:
        """Child rows whose project is missing; projects whose manager is missing."""
        violations: list[Violation] = []
        project_ids = store.project_ids

        for table in _PROJECT_CHILDREN:
            for row in store.rows(table):
                if row.project_id is None or row.project_id in project_ids:
                    continue
                violations.append(Violation.of(
                    ViolationKind.ORPHAN_REFERENCE,
                    table,
                    _row_id(row),
                    f"project_id {row.project_id} does not exist in project",
                    field="project_id",
                    value=row.project_id,
                    project_id=row.project_id,
                ))

        manager_ids = store.manager_ids
        for project in store.projects:
            if project.manager_id is None or project.manager_id in manager_ids:
                continue
            violations.append(Violation.of(
                ViolationKind.ORPHAN_REFERENCE,
                "project",
                project.id,
                f"manager_id {project.manager_id} does not exist in manager",
                field="manager_id",
                value=project.manager_id,
                project_id=project.id,
            ))

        return tuple(violations)

    # -----------------------------------------------------------------
    # Milestone status
    # -----------------------------------------------------------------

    @traced_engine("integrity", "1.0", fingerprint_fields=("store",))
    def check_milestone_status(self, store: EntityStore) -> tuple[Violation, ...]:
        """Milestones whose status is null or outside the three allowed values."""
        violations: list[Violation] = []
        for milestone in store.milestones:
            if milestone.status is not None:
                continue
            shown = "null" if milestone.raw_status is None else repr(milestone.raw_status)
            violations.append(Violation.of(
                ViolationKind.INVALID_ENUM,
                "milestone",
                milestone.id,
                f"status {shown} is not one of Completed, Delayed, On Track",
                field="status",
                value=milestone.raw_status,
                project_id=milestone.project_id,
            ))
        return tuple(violations)

    # -----------------------------------------------------------------
    # Negative amounts
    # -----------------------------------------------------------------

    @traced_engine("integrity", "1.0", fingerprint_fields=("store",))
    def check_negative_values(self, store: EntityStore) -> tuple[Violation, ...]:
        """Budgets, spend, forecast, actual and PO amounts below zero."""
        checked = (
            ("project", store.projects, ("budget",)),
            ("spend_log", store.spend_entries, ("amount",)),
            ("forecast", store.forecasts, ("forecast_amount", "actual_amount")),
            ("purchase_order", store.purchase_orders, ("po_amount",)),
        )
        violations: list[Violation] = []
        for entity, rows, field_names in checked:
            for row in rows:
                for field_name in field_names:
                    value = getattr(row, field_name)
                    if value is None or value >= 0:
                        continue
                    violations.append(Violation.of(
                        ViolationKind.NEGATIVE_VALUE,
                        entity,
                        row.id,
                        f"{field_name} is negative ({value})",
                        field=field_name,
                        value=value,
                        project_id=row.id if entity == "project" else row.project_id,
                    ))
        return tuple(violations)

    # -----------------------------------------------------------------
    # Forecast accuracy
    # -----------------------------------------------------------------

    @traced_engine(
        "integrity", "1.0",
        fingerprint_fields=("store", "tolerance"),
    )
    def check_forecast_accuracy(
        self,
        store: EntityStore,
        tolerance: Decimal = DEFAULT_ACCURACY_TOLERANCE,
    ) -> tuple[Violation, ...]:
        """Forecasts where |forecast - actual| / forecast exceeds ``tolerance``.

        Only rows with a positive forecast and a known actual are compared.
        The comparison is made without division so no rounding is involved.
        """
        violations: list[Violation] = []
        for forecast in store.forecasts:
            planned = forecast.forecast_amount
            actual = forecast.actual_amount
            if planned is None or actual is None or planned <= 0:
                continue
            gap = abs(planned - actual)
            if gap <= tolerance * planned:
                continue
            ratio = gap / planned
            violations.append(Violation.of(
                ViolationKind.ACCURACY_GAP,
                "forecast",
                forecast.id,
                f"actual {actual} deviates from forecast {planned} by more than {tolerance}",
                field="actual_amount",
                value=ratio,
                project_id=forecast.project_id,
            ))
        return tuple(violations)

    # -----------------------------------------------------------------
    # Schedule and uniqueness rules
    # -----------------------------------------------------------------

    @traced_engine("integrity", "1.0", fingerprint_fields=("store",))
    def check_date_ranges(self, store: EntityStore) -> tuple[Violation, ...]:
        """Projects whose end date is not strictly after the start date."""
        violations: list[Violation] = []
        for project in store.projects:
            if project.start_date is None or project.end_date is None:
                continue
            if project.end_date > project.start_date:
                continue
            violations.append(Violation.of(
                ViolationKind.INVALID_DATE_RANGE,
                "project",
                project.id,
                f"end_date {project.end_date.isoformat()} is not after "
                f"start_date {project.start_date.isoformat()}",
                field="end_date",
                value=project.end_date,
                project_id=project.id,
            ))
        return tuple(violations)

    @traced_engine("integrity", "1.0", fingerprint_fields=("store",))
    def check_duplicate_completions(self, store: EntityStore) -> tuple[Violation, ...]:
        """Projects with more than one completion record."""
        counts = Counter(c.project_id for c in store.completions)
        violations: list[Violation] = []
        for project_id, count in counts.items():
            if count < 2:
                continue
            violations.append(Violation.of(
                ViolationKind.DUPLICATE_COMPLETION,
                "project_completion",
                project_id,
                f"{count} completion records for project {project_id}",
                field="project_id",
                value=count,
                project_id=project_id,
            ))
        return tuple(violations)

    @traced_engine("integrity", "1.0", fingerprint_fields=("store",))
    def check_duplicate_ids(self, store: EntityStore) -> tuple[Violation, ...]:
        """Primary keys that appear on more than one row of a table.

        One violation per repeated key, in first-occurrence order.  Spend
        entry ids are covered by quality check 1 and completions by
        ``check_duplicate_completions``.
        """
        violations: list[Violation] = []
        for table, key in _KEYED_TABLES:
            counts = Counter(getattr(row, key) for row in store.rows(table))
            for value, count in counts.items():
                if count < 2 or value is None:
                    continue
                violations.append(Violation.of(
                    ViolationKind.DUPLICATE_ID,
                    table,
                    value,
                    f"{key} {value} appears on {count} rows of {table}",
                    field=key,
                    value=count,
                    project_id=value if table == "project" else None,
                ))
        return tuple(violations)

    # -----------------------------------------------------------------
    # Aggregate
    # -----------------------------------------------------------------

    @traced_engine(
        "integrity", "1.0",
        fingerprint_fields=("store", "accuracy_tolerance"),
    )
    def run_all_checks(
        self,
        store: EntityStore,
        accuracy_tolerance: Decimal = DEFAULT_ACCURACY_TOLERANCE,
    ) -> tuple[Violation, ...]:
        """Run every integrity rule and return the violations in check order."""
        violations: list[Violation] = []
        violations.extend(self.check_orphan_references(store))
        violations.extend(self.check_milestone_status(store))
        violations.extend(self.check_negative_values(store))
        violations.extend(self.check_forecast_accuracy(store, tolerance=accuracy_tolerance))
        violations.extend(self.check_date_ranges(store))
        violations.extend(self.check_duplicate_completions(store))
        violations.extend(self.check_duplicate_ids(store))

        by_kind = Counter(v.kind.value for v in violations)
        logger.info("integrity_check_completed", extra={
            "violation_count": len(violations),
            "error_count": sum(1 for v in violations if v.severity.value == "error"),
            "by_kind": dict(sorted(by_kind.items())),
            "accuracy_tolerance": str(accuracy_tolerance),
        })
        return tuple(violations)
