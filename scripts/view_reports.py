#!/usr/bin/env python3
"""
View portfolio reports from the demo dataset, a database or a CSV directory.

Builds one snapshot, runs every integrity check, quality check, analytic
result set and KPI view against it, and prints the requested sections as
aligned text tables (or JSON with ``--json``).

Usage:
    python3 scripts/view_reports.py
    python3 scripts/view_reports.py --source db --database-url sqlite:///portfolio.db --seed
    python3 scripts/view_reports.py --source csv --csv-dir ./extract --section budget
    python3 scripts/view_reports.py --config strict --section integrity --json

Exit codes:
    0  report printed
    1  snapshot or configuration could not be loaded
    2  invalid arguments
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import yaml  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from portfolio_config import get_active_config  # noqa: E402
from portfolio_config.loader import load_config  # noqa: E402
from portfolio_config.schema import ReportingConfig  # noqa: E402
from portfolio_ingestion import (  # noqa: E402
    build_demo_store,
    load_directory,
    load_snapshot,
    seed_database,
)
from portfolio_kernel.db.engine import (  # noqa: E402
    create_tables,
    init_engine_from_url,
    session_scope,
)
from portfolio_kernel.domain.store import EntityStore  # noqa: E402
from portfolio_kernel.exceptions import PortfolioReportingError  # noqa: E402
from portfolio_kernel.logging_config import configure_logging, get_logger  # noqa: E402
from portfolio_modules.reporting import (  # noqa: E402
    PortfolioReport,
    PortfolioReportingService,
    ReportSection,
    format_money,
    format_percent,
    render_table,
    render_to_dict,
)
from portfolio_modules.reporting.rendering import format_value  # noqa: E402
from portfolio_modules.reporting.views import (  # noqa: E402
    BUDGET_UTILIZATION,
    PROJECTS_ON_BUDGET,
    PROJECTS_ON_TIME,
)

logger = get_logger("scripts.view_reports")

DEFAULT_DB_URL = "sqlite:///portfolio.db"
W = 72  # banner width

SECTION_CHOICES = [s.value for s in ReportSection] + ["all"]


class LoadFailure(Exception):
    """Snapshot or configuration could not be loaded (exit code 1)."""


# ===================================================================
# Argument parsing
# ===================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="view_reports",
        description="Print portfolio integrity, quality and KPI reports.",
    )
    parser.add_argument(
        "--source", choices=("demo", "db", "csv"), default="demo",
        help="Where to read the snapshot from (default: demo)",
    )
    parser.add_argument(
        "--database-url", default=DEFAULT_DB_URL,
        help=f"SQLAlchemy URL for --source db (default: {DEFAULT_DB_URL})",
    )
    parser.add_argument(
        "--csv-dir", type=Path,
        help="Directory of <table>.csv / <table>.xlsx files for --source csv",
    )
    parser.add_argument(
        "--config", default="default",
        help="Configuration set name or path to a YAML file (default: default)",
    )
    parser.add_argument(
        "--section", action="append", choices=SECTION_CHOICES,
        help="Section to print; repeatable (default: all)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print machine-readable JSON instead of text tables",
    )
    parser.add_argument(
        "--seed", action="store_true",
        help="Create tables and seed the demo dataset before reporting (--source db)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Emit structured INFO logs on stderr",
    )
    return parser


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.source == "csv" and args.csv_dir is None:
        parser.error("--source csv requires --csv-dir")
    if args.seed and args.source != "db":
        parser.error("--seed requires --source db")
    return args


def selected_sections(args: argparse.Namespace) -> list[ReportSection]:
    if not args.section or "all" in args.section:
        return list(ReportSection)
    # Display order, duplicates dropped
    return [s for s in ReportSection if s.value in args.section]


# ===================================================================
# Loading
# ===================================================================


def resolve_config(name_or_path: str) -> ReportingConfig:
    path = Path(name_or_path)
    try:
        if path.suffix in (".yaml", ".yml"):
            if not path.is_file():
                raise LoadFailure(f"Configuration file not found: {path}")
            config, _ = load_config(path)
            return config
        return get_active_config(name_or_path)
    except (FileNotFoundError, yaml.YAMLError) as exc:
        raise LoadFailure(str(exc)) from exc
    except PortfolioReportingError as exc:
        raise LoadFailure(f"[{exc.code}] {exc}") from exc


def load_store(args: argparse.Namespace) -> EntityStore:
    if args.source == "demo":
        return build_demo_store()

    if args.source == "csv":
        try:
            result = load_directory(args.csv_dir)
        except PortfolioReportingError as exc:
            raise LoadFailure(f"[{exc.code}] {exc}") from exc
        for rejection in result.rejected:
            print(
                f"  REJECTED {rejection.source or rejection.entity} row "
                f"{rejection.source_row}: {rejection.field}: {rejection.message}",
                file=sys.stderr,
            )
        return result.store

    try:
        init_engine_from_url(args.database_url)
        if args.seed:
            create_tables()
            with session_scope() as session:
                inserted = seed_database(session, build_demo_store())
            print(f"  Seeded {sum(inserted.values())} rows.", file=sys.stderr)
        with session_scope() as session:
            return load_snapshot(session)
    except SQLAlchemyError as exc:
        raise LoadFailure(f"Database error: {exc}") from exc
    except PortfolioReportingError as exc:
        raise LoadFailure(f"[{exc.code}] {exc}") from exc


# ===================================================================
# Text rendering
# ===================================================================


def _hdr(title: str, subtitle: str = "") -> str:
    lines = ["", "=" * W, title.center(W)]
    if subtitle:
        lines.append(subtitle.center(W))
    lines.append("=" * W)
    return "\n".join(lines)


class TextRenderer:
    """Formats report sections using the configured currency and precision."""

    def __init__(self, config: ReportingConfig):
        self._currency = config.currency
        self._precision = config.display_precision

    def money(self, amount) -> str:
        return format_money(amount, self._currency, self._precision)

    def pct(self, ratio) -> str:
        return format_percent(ratio, self._precision)

    def integrity(self, report: PortfolioReport) -> str:
        rows = [
            [v.severity.value, v.kind.value, v.entity, format_value(v.id),
             format_value(v.field), format_value(v.value), v.detail]
            for v in report.violations
        ]
        exclusions = [
            [e.entity, format_value(e.id), e.computation, format_value(e.missing_fields)]
            for e in report.exclusions
        ]
        return "\n".join([
            _hdr("INTEGRITY VIOLATIONS",
                 f"{report.error_count} errors, {report.info_count} info"),
            render_table(
                ["Severity", "Kind", "Entity", "Id", "Field", "Value", "Detail"], rows,
            ),
            "",
            "Structural exclusions:",
            render_table(["Entity", "Id", "Computation", "Missing"], exclusions),
        ])

    def quality(self, report: PortfolioReport) -> str:
        parts = [_hdr("DATA QUALITY CHECKS", f"{report.quality_row_count} rows flagged")]
        for finding in report.findings:
            parts.append("")
            parts.append(
                f"  {finding.number:>2}. {finding.check_name}: {finding.description} "
                f"({finding.row_count} rows)"
            )
            if finding.rows:
                headers = list(finding.rows[0].keys())
                parts.append(render_table(
                    headers,
                    [[format_value(row.get(h)) for h in headers] for row in finding.rows],
                ))
        return "\n".join(parts)

    def budget(self, report: PortfolioReport) -> str:
        rows = [
            [r.project_id, r.project_name, self.money(r.budget_amount),
             self.money(r.actual_spend_amount), self.money(r.variance_amount),
             self.pct(r.variance_percent), "OVER" if r.is_over_budget else ""]
            for r in report.budget_variance
        ]
        return "\n".join([
            _hdr("BUDGET VS ACTUAL"),
            render_table(
                ["Project", "Name", "Budget", "Actual", "Variance", "Variance %", ""], rows,
            ),
        ])

    def po(self, report: PortfolioReport) -> str:
        rows = [
            [r.project_id, r.project_name, self.money(r.total_purchase_orders),
             self.money(r.total_actual_spend), self.money(r.open_commitments),
             self.pct(r.invoice_conversion_ratio),
             format_value(r.first_po_date), format_value(r.latest_spend_date)]
            for r in report.po_vs_actual
        ]
        return "\n".join([
            _hdr("PURCHASE ORDERS VS ACTUAL"),
            render_table(
                ["Project", "Name", "PO Total", "Spend", "Open", "Converted",
                 "First PO", "Last Spend"],
                rows,
            ),
        ])

    def forecast(self, report: PortfolioReport) -> str:
        rows = [
            [r.project_id, format_value(r.forecast_date), self.money(r.forecast_amount),
             self.money(r.actual_amount), self.money(r.variance_amount),
             self.pct(r.variance_percent)]
            for r in report.forecast_variance
        ]
        return "\n".join([
            _hdr("FORECAST VARIANCE"),
            render_table(
                ["Project", "Date", "Forecast", "Actual", "Variance", "Variance %"], rows,
            ),
        ])

    def burn(self, report: PortfolioReport) -> str:
        rows = [
            [r.project_id, r.month_start.strftime("%Y-%m"), self.money(r.month_spend),
             self.money(r.cumulative_spend), self.money(r.burn_rate_per_day)]
            for r in report.monthly_burn_rate
        ]
        return "\n".join([
            _hdr("MONTHLY BURN RATE"),
            render_table(["Project", "Month", "Spend", "Cumulative", "Per Day"], rows),
        ])

    def milestones(self, report: PortfolioReport) -> str:
        summary = [
            [s.project_id, s.project_name, str(s.completed_count), str(s.delayed_count),
             str(s.inflight_count), self.pct(s.on_time_completion_percent)]
            for s in report.milestone_summary
        ]
        detail = [
            [r.project_id, r.milestone_id, format_value(r.milestone_name),
             format_value(r.due_date), format_value(r.status), r.schedule_flag]
            for r in report.milestone_health
        ]
        return "\n".join([
            _hdr("MILESTONE HEALTH"),
            render_table(
                ["Project", "Name", "Completed", "Delayed", "In Flight", "On Time %"],
                summary,
            ),
            "",
            render_table(["Project", "Milestone", "Name", "Due", "Status", "Schedule"], detail),
        ])

    def views(self, report: PortfolioReport) -> str:
        views = report.views
        utilization = [
            [r.project_id, r.project_name, self.money(r.budget_amount),
             self.money(r.actual_spend_amount), self.pct(r.budget_utilization_percent),
             self.money(r.cost_variance_amount)]
            for r in views.budget_utilization
        ]
        on_budget = views.projects_on_budget
        on_time = views.projects_on_time
        return "\n".join([
            _hdr("KPI VIEWS"),
            f"  {BUDGET_UTILIZATION}",
            render_table(
                ["Project", "Name", "Budget", "Actual", "Utilization", "Cost Variance"],
                utilization,
            ),
            "",
            f"  {PROJECTS_ON_BUDGET}: {on_budget.projects_on_budget} of "
            f"{on_budget.total_projects} on budget, {on_budget.projects_over_budget} over "
            f"({self.pct(on_budget.percent_projects_on_budget)}); "
            f"{on_budget.excluded_projects} excluded",
            f"  {PROJECTS_ON_TIME}: {on_time.projects_on_time} of "
            f"{on_time.total_projects} on time, {on_time.projects_delivered_late} late "
            f"({self.pct(on_time.percent_projects_on_time)})",
        ])

    def kpis(self, report: PortfolioReport) -> str:
        rows = [
            [k.kpi_name, k.target_threshold, k.description]
            for k in report.kpi_definitions
        ]
        return "\n".join([
            _hdr("KPI DEFINITIONS"),
            render_table(["KPI", "Target", "Description"], rows),
        ])

    def section(self, section: ReportSection) -> Callable[[PortfolioReport], str]:
        return getattr(self, section.value)

    def header(self, report: PortfolioReport) -> str:
        meta = report.metadata
        return "\n".join([
            "=" * W,
            meta.entity_name.center(W),
            f"snapshot {meta.snapshot_id} ({meta.source}) generated {meta.generated_at}".center(W),
            "=" * W,
        ])


# ===================================================================
# JSON rendering
# ===================================================================

_JSON_FIELDS: dict[ReportSection, tuple[str, ...]] = {
    ReportSection.INTEGRITY: ("violations", "exclusions"),
    ReportSection.QUALITY: ("findings",),
    ReportSection.BUDGET: ("budget_variance",),
    ReportSection.PO: ("po_vs_actual",),
    ReportSection.FORECAST: ("forecast_variance",),
    ReportSection.BURN: ("monthly_burn_rate",),
    ReportSection.MILESTONES: ("milestone_summary", "milestone_health"),
    ReportSection.VIEWS: ("views",),
    ReportSection.KPIS: ("kpi_definitions",),
}


def report_to_json(report: PortfolioReport, sections: Sequence[ReportSection]) -> str:
    payload: dict = {"metadata": render_to_dict(report.metadata)}
    for section in sections:
        for field_name in _JSON_FIELDS[section]:
            payload[field_name] = render_to_dict(getattr(report, field_name))
    payload["summary"] = {
        "error_count": report.error_count,
        "info_count": report.info_count,
        "quality_row_count": report.quality_row_count,
        "is_clean": report.is_clean,
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


# ===================================================================
# Entry point
# ===================================================================


def main(argv: Sequence[str] | None = None) -> int:
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        # argparse exits 0 for --help and 2 for usage errors
        return exc.code if isinstance(exc.code, int) else 2

    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        config = resolve_config(args.config)
        store = load_store(args)
    except LoadFailure as exc:
        logger.error("report_load_failed", extra={"reason": str(exc)})
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1

    service = PortfolioReportingService(config=config)
    report = service.build_report(store, source=args.source)
    sections = selected_sections(args)

    if args.json:
        print(report_to_json(report, sections))
        return 0

    renderer = TextRenderer(config)
    print(renderer.header(report))
    for section in sections:
        print(renderer.section(section)(report))
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
