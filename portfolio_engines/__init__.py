"""
Module: portfolio_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    higher layers (portfolio_modules, scripts).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import portfolio_kernel.domain (and sibling engine modules).
    MUST NOT import portfolio_config, portfolio_ingestion or
    portfolio_modules.

Invariants enforced:
    - Purity: engines never read the clock or configuration.  Thresholds
      are passed in as explicit Decimal parameters by the caller.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical snapshots always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via the ``@traced_engine`` decorator
    (see ``portfolio_engines.tracer``), emitting PORTFOLIO_ENGINE_TRACE log
    records with engine name, version, input fingerprint and duration.

Usage:
    from portfolio_engines import AggregationEngine, IntegrityChecker, QualityScanner
"""

from portfolio_engines.aggregation import AggregationEngine
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
from portfolio_engines.findings import (
    Finding,
    RowExclusion,
    Severity,
    Violation,
    ViolationKind,
)
from portfolio_engines.integrity import DEFAULT_ACCURACY_TOLERANCE, IntegrityChecker
from portfolio_engines.quality import (
    DEFAULT_DEVIATION_THRESHOLD,
    DEFAULT_OUTLIER_MULTIPLIER,
    QUALITY_CHECKS,
    QualityScanner,
)
from portfolio_engines.tracer import traced_engine

__all__ = [
    "AggregationEngine",
    "BudgetUtilizationRow",
    "BudgetVarianceRow",
    "DEFAULT_ACCURACY_TOLERANCE",
    "DEFAULT_DEVIATION_THRESHOLD",
    "DEFAULT_OUTLIER_MULTIPLIER",
    "Finding",
    "ForecastVarianceRow",
    "IntegrityChecker",
    "MilestoneHealthRow",
    "MilestoneHealthSummary",
    "MonthlyBurnRow",
    "PoVsActualRow",
    "PortfolioOnBudget",
    "PortfolioOnTime",
    "QUALITY_CHECKS",
    "QualityScanner",
    "RowExclusion",
    "SCHEDULE_DELAYED",
    "SCHEDULE_ON_TIME",
    "Severity",
    "Violation",
    "ViolationKind",
    "traced_engine",
]
