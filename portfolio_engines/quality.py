"""
portfolio_engines.quality -- Data-quality scan: duplicates, gaps and outliers.

Responsibility:
    Run the ten data-hygiene checks over one EntityStore snapshot and
    return one ``Finding`` per check.  Findings are informational; they go
    beyond the strict relational rules of ``portfolio_engines.integrity``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Thresholds arrive as plain Decimal parameters; this module never reads
    configuration.

Invariants enforced:
    - ``run_all_checks`` always returns exactly ten findings, numbered 1-10,
      in check order.  An empty finding is the expected steady state.
    - Finding rows are read-only mappings.
    - Ratio tests use cross-multiplication so Decimal comparisons are
      exact (``amount * n > k * total`` rather than ``amount > k * mean``).

Failure modes:
    - None.  Null keys sort last; nothing is raised.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Any

from portfolio_engines.findings import Finding, frozen_row
from portfolio_engines.tracer import traced_engine
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import get_logger

logger = get_logger("engines.quality")

DEFAULT_DEVIATION_THRESHOLD = Decimal("0.50")
DEFAULT_OUTLIER_MULTIPLIER = Decimal("3")

# (number, check_name, description) in report order
QUALITY_CHECKS: tuple[tuple[int, str, str], ...] = (
    (1, "duplicate_spend_ids", "Duplicate spend_log entry_id values"),
    (2, "duplicate_milestone_names", "Duplicate milestone names per project"),
    (3, "duplicate_forecast_dates", "Duplicate forecast dates for a single project"),
    (4, "missing_values", "Rows missing budget, amount, category or forecast values"),
    (5, "projects_without_manager", "Projects without a manager_id"),
    (6, "blank_spend_categories", "Spend entries missing valid category labels"),
    (7, "spend_outliers", "Spend entries that exceed the outlier multiple of the project average"),
    (8, "forecast_deviations", "Forecast rows deviating beyond the deviation threshold"),
    (9, "projects_without_milestones", "Projects that do not yet have milestones"),
    (10, "projects_without_spend", "Projects that have no spend_log entries"),
)


def _nulls_last(*values: Any) -> tuple:
    return tuple((v is None, v) for v in values)


def _finding(number: int, rows: list) -> Finding:
    _, check_name, description = QUALITY_CHECKS[number - 1]
    return Finding(
        number=number,
        check_name=check_name,
        description=description,
        rows=tuple(frozen_row(**row) for row in rows),
    )


class QualityScanner:
    """Pure engine for data-quality findings.

    Contract:
        Each ``check_*`` method is independent and returns one Finding.
        No I/O, no database access, the snapshot is never mutated.
    """

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_duplicate_spend_ids(self, store: EntityStore) -> Finding:
        counts = Counter(e.id for e in store.spend_entries)
        rows = [
            {"entry_id": entry_id, "duplicate_count": count}
            for entry_id, count in counts.items()
            if count > 1
        ]
        rows.sort(key=lambda r: (-r["duplicate_count"], _nulls_last(r["entry_id"])))
        return _finding(1, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_duplicate_milestone_names(self, store: EntityStore) -> Finding:
        counts = Counter((m.project_id, m.name) for m in store.milestones)
        rows = [
            {"project_id": project_id, "milestone_name": name, "duplicate_count": count}
            for (project_id, name), count in counts.items()
            if count > 1
        ]
        rows.sort(key=lambda r: _nulls_last(r["project_id"], r["milestone_name"]))
        return _finding(2, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_duplicate_forecast_dates(self, store: EntityStore) -> Finding:
        counts = Counter((f.project_id, f.forecast_date) for f in store.forecasts)
        rows = [
            {"project_id": project_id, "forecast_date": forecast_date, "duplicate_count": count}
            for (project_id, forecast_date), count in counts.items()
            if count > 1
        ]
        rows.sort(key=lambda r: _nulls_last(r["project_id"], r["forecast_date"]))
        return _finding(3, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_missing_values(self, store: EntityStore) -> Finding:
        """Null budgets; spend without amount or category; forecasts without values."""
        rows: list[dict[str, Any]] = []
        for project in store.projects:
            if project.budget is None:
                rows.append({
                    "entity": "project",
                    "id": project.id,
                    "project_id": project.id,
                    "missing_fields": ("budget",),
                })
        for entry in store.spend_entries:
            missing = tuple(
                name for name in ("category", "amount") if getattr(entry, name) is None
            )
            if missing:
                rows.append({
                    "entity": "spend_log",
                    "id": entry.id,
                    "project_id": entry.project_id,
                    "missing_fields": missing,
                })
        for forecast in store.forecasts:
            missing = tuple(
                name for name in ("forecast_amount", "actual_amount")
                if getattr(forecast, name) is None
            )
            if missing:
                rows.append({
                    "entity": "forecast",
                    "id": forecast.id,
                    "project_id": forecast.project_id,
                    "missing_fields": missing,
                })
        return _finding(4, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_projects_without_manager(self, store: EntityStore) -> Finding:
        rows = [
            {"project_id": p.id, "project_name": p.name}
            for p in store.projects
            if p.manager_id is None
        ]
        return _finding(5, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_blank_spend_categories(self, store: EntityStore) -> Finding:
        rows = [
            {"entry_id": e.id, "project_id": e.project_id, "category": e.category}
            for e in store.spend_entries
            if e.category is None or not e.category.strip()
        ]
        return _finding(6, rows)

    @traced_engine(
        "quality", "1.0",
        fingerprint_fields=("store", "multiplier"),
    )
    def check_spend_outliers(
        self,
        store: EntityStore,
        multiplier: Decimal = DEFAULT_OUTLIER_MULTIPLIER,
    ) -> Finding:
        """Spend above ``multiplier`` times the mean of the project's non-null amounts.

        Projects whose mean is zero (or that have no amounts) are skipped.
        """
        amounts: dict[str, list] = defaultdict(list)
        for entry in store.spend_entries:
            if entry.project_id is not None and entry.amount is not None:
                amounts[entry.project_id].append(entry)

        rows: list[dict[str, Any]] = []
        for project_id, entries in amounts.items():
            count = len(entries)
            total = sum((e.amount for e in entries), Decimal("0"))
            if total <= 0:
                continue
            for entry in entries:
                if entry.amount * count > multiplier * total:
                    rows.append({
                        "project_id": project_id,
                        "entry_id": entry.id,
                        "amount": entry.amount,
                        "avg_amount": total / count,
                    })
        rows.sort(key=lambda r: (_nulls_last(r["project_id"]), -r["amount"]))
        return _finding(7, rows)

    @traced_engine(
        "quality", "1.0",
        fingerprint_fields=("store", "threshold"),
    )
    def check_forecast_deviations(
        self,
        store: EntityStore,
        threshold: Decimal = DEFAULT_DEVIATION_THRESHOLD,
    ) -> Finding:
        """Forecasts where |forecast - actual| / forecast exceeds ``threshold``."""
        rows: list[dict[str, Any]] = []
        for f in store.forecasts:
            planned = f.forecast_amount
            actual = f.actual_amount
            if planned is None or actual is None or planned <= 0:
                continue
            gap = abs(planned - actual)
            if gap > threshold * planned:
                rows.append({
                    "forecast_id": f.id,
                    "project_id": f.project_id,
                    "forecast_date": f.forecast_date,
                    "forecast_amount": planned,
                    "actual_amount": actual,
                    "deviation": gap / planned,
                })
        rows.sort(key=lambda r: _nulls_last(r["project_id"], r["forecast_date"]))
        return _finding(8, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_projects_without_milestones(self, store: EntityStore) -> Finding:
        with_milestones = store.milestones_by_project_id
        rows = [
            {"project_id": p.id, "project_name": p.name}
            for p in sorted(store.projects, key=lambda p: p.id)
            if p.id not in with_milestones
        ]
        return _finding(9, rows)

    @traced_engine("quality", "1.0", fingerprint_fields=("store",))
    def check_projects_without_spend(self, store: EntityStore) -> Finding:
        with_spend = store.spend_by_project_id
        rows = [
            {"project_id": p.id, "project_name": p.name}
            for p in sorted(store.projects, key=lambda p: p.id)
            if p.id not in with_spend
        ]
        return _finding(10, rows)

    # -----------------------------------------------------------------
    # Aggregate
    # -----------------------------------------------------------------

    @traced_engine(
        "quality", "1.0",
        fingerprint_fields=("store", "deviation_threshold", "outlier_multiplier"),
    )
    def run_all_checks(
        self,
        store: EntityStore,
        deviation_threshold: Decimal = DEFAULT_DEVIATION_THRESHOLD,
        outlier_multiplier: Decimal = DEFAULT_OUTLIER_MULTIPLIER,
    ) -> tuple[Finding, ...]:
        """Run all ten checks and return their findings in check order."""
        findings = (
            self.check_duplicate_spend_ids(store),
            self.check_duplicate_milestone_names(store),
            self.check_duplicate_forecast_dates(store),
            self.check_missing_values(store),
            self.check_projects_without_manager(store),
            self.check_blank_spend_categories(store),
            self.check_spend_outliers(store, multiplier=outlier_multiplier),
            self.check_forecast_deviations(store, threshold=deviation_threshold),
            self.check_projects_without_milestones(store),
            self.check_projects_without_spend(store),
        )
        logger.info("quality_scan_completed", extra={
            "checks_run": len(findings),
            "checks_with_rows": [f.check_name for f in findings if not f.is_clean],
            "total_rows": sum(f.row_count for f in findings),
        })
        return findings
