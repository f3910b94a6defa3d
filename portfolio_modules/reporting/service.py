"""
Portfolio Reporting Service (``portfolio_modules.reporting.service``).

Responsibility
--------------
Orchestrates a complete reporting run over one snapshot: integrity
checks, the quality scan, the five analytic result sets, structural
exclusions and the three KPI views.  This is a **read-only** service:
the snapshot is never modified and nothing is written back.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``PortfolioReportingService`` is the sole
public entry point for report generation.  It is the only place where
configuration meets the engines: thresholds are read from
``ReportingConfig`` and passed to the engines as plain arguments.
Constructor: ``config`` + ``clock``.

Invariants enforced
-------------------
* Every section of a report is computed from the same snapshot.
* Report metadata carries generation timestamp, snapshot id and
  thresholds for reproducibility.

Failure modes
-------------
* Snapshot load failure (``build_report_from_session``)  -> exception
  propagates; nothing is partially reported.
* Dirty data never raises; it surfaces as violations, findings and
  exclusions on the report.

Audit relevance
---------------
``portfolio_report_started`` / ``portfolio_report_completed`` log events
bracket every run and carry the snapshot id and result counts.
"""

from __future__ import annotations

import time
import uuid

from sqlalchemy.orm import Session

from portfolio_config.schema import ReportingConfig
from portfolio_engines.aggregation import AggregationEngine
from portfolio_engines.integrity import IntegrityChecker
from portfolio_engines.quality import QualityScanner
from portfolio_ingestion.db_loader import load_snapshot
from portfolio_kernel.domain.clock import Clock, SystemClock
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import LogContext, get_logger
from portfolio_modules.reporting.models import PortfolioReport, ReportMetadata
from portfolio_modules.reporting.views import KpiViewBuilder

logger = get_logger("modules.reporting.service")


class PortfolioReportingService:
    """
    Portfolio report generation service.

    Contract
    --------
    * ``build_report`` returns a ``PortfolioReport`` DTO.
    * All methods are **read-only**.

    Guarantees
    ----------
    * No financial logic lives in this class; it delegates to the engines.
    * Clock is injectable for deterministic testing.

    Non-goals
    ---------
    * Does NOT load or seed data beyond reading a session snapshot.
    * Does NOT format output; see ``rendering``.
    """

    def __init__(
        self,
        config: ReportingConfig | None = None,
        clock: Clock | None = None,
    ):
        self._config = config or ReportingConfig.with_defaults()
        self._clock = clock or SystemClock()
        self._integrity = IntegrityChecker()
        self._quality = QualityScanner()
        self._aggregation = AggregationEngine()
        self._views = KpiViewBuilder(self._aggregation)

        logger.info(
            "portfolio_reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "currency": self._config.currency,
            },
        )

    @property
    def config(self) -> ReportingConfig:
        return self._config

    def _build_metadata(self, store: EntityStore, source: str | None) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        thresholds = self._config.thresholds
        return ReportMetadata(
            entity_name=self._config.entity_name,
            currency=self._config.currency,
            generated_at=self._clock.now().isoformat(),
            snapshot_id=store.snapshot_id,
            row_counts=tuple(store.row_counts().items()),
            forecast_accuracy_tolerance=thresholds.forecast_accuracy_tolerance,
            forecast_deviation_threshold=thresholds.forecast_deviation_threshold,
            spend_outlier_multiplier=thresholds.spend_outlier_multiplier,
            source=source,
        )

    def build_report(self, store: EntityStore, source: str | None = None) -> PortfolioReport:
        """
        Run every check, result set and view against one snapshot.

        Args:
            store: The snapshot to report on.
            source: Optional label for where the snapshot came from
                (``demo``, ``db``, ``csv``); recorded on the metadata.
        """
        thresholds = self._config.thresholds
        with LogContext.bind(
            run_id=str(uuid.uuid4()),
            snapshot_id=store.snapshot_id,
            source=source,
        ):
            t0 = time.monotonic()
            logger.info("portfolio_report_started", extra={
                "row_counts": store.row_counts(),
            })

            report = PortfolioReport(
                metadata=self._build_metadata(store, source),
                violations=self._integrity.run_all_checks(
                    store,
                    accuracy_tolerance=thresholds.forecast_accuracy_tolerance,
                ),
                findings=self._quality.run_all_checks(
                    store,
                    deviation_threshold=thresholds.forecast_deviation_threshold,
                    outlier_multiplier=thresholds.spend_outlier_multiplier,
                ),
                exclusions=self._aggregation.structural_exclusions(store),
                budget_variance=self._aggregation.budget_variance(store),
                po_vs_actual=self._aggregation.po_vs_actual(store),
                forecast_variance=self._aggregation.forecast_variance(store),
                monthly_burn_rate=self._aggregation.monthly_burn_rate(store),
                milestone_health=self._aggregation.milestone_health(store),
                milestone_summary=self._aggregation.milestone_summary(store),
                views=self._views.build_all(store),
                kpi_definitions=store.kpi_definitions,
            )

            logger.info("portfolio_report_completed", extra={
                "violation_count": len(report.violations),
                "error_count": report.error_count,
                "quality_row_count": report.quality_row_count,
                "exclusion_count": len(report.exclusions),
                "project_count": len(store.projects),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
        return report

    def build_report_from_session(self, session: Session) -> PortfolioReport:
        """Load a snapshot from the database session and report on it."""
        store = load_snapshot(session)
        return self.build_report(store, source="db")
