"""
KPI View Builder.

Exposes the aggregation engine's rollups as the three named views the BI
layer consumes.  Views are pure functions of a snapshot: asking for a view
twice on the same snapshot gives equal results, and nothing is cached or
materialized between calls.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from portfolio_engines.aggregation import AggregationEngine
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import get_logger
from portfolio_modules.reporting.models import KpiViews

logger = get_logger("modules.reporting.views")

BUDGET_UTILIZATION = "v_BudgetUtilization"
PROJECTS_ON_BUDGET = "v_ProjectsOnBudget"
PROJECTS_ON_TIME = "v_ProjectsOnTime"

VIEW_NAMES: tuple[str, ...] = (BUDGET_UTILIZATION, PROJECTS_ON_BUDGET, PROJECTS_ON_TIME)


class KpiViewBuilder:
    """Named, recomputable KPI views over an EntityStore."""

    def __init__(self, engine: AggregationEngine | None = None):
        self._engine = engine or AggregationEngine()
        self._views: dict[str, Callable[[EntityStore], Any]] = {
            BUDGET_UTILIZATION: self._engine.budget_utilization,
            PROJECTS_ON_BUDGET: self._engine.portfolio_on_budget,
            PROJECTS_ON_TIME: self._engine.portfolio_on_time,
        }

    @property
    def view_names(self) -> tuple[str, ...]:
        return VIEW_NAMES

    def build(self, name: str, store: EntityStore) -> Any:
        """Compute one view by name.

        Raises:
            KeyError: if ``name`` is not one of ``VIEW_NAMES``.
        """
        try:
            view = self._views[name]
        except KeyError:
            raise KeyError(
                f"Unknown view {name!r}; expected one of {', '.join(VIEW_NAMES)}"
            ) from None
        logger.debug("kpi_view_requested", extra={"view_name": name})
        return view(store)

    def build_all(self, store: EntityStore) -> KpiViews:
        """Compute all three views against the same snapshot."""
        return KpiViews(
            budget_utilization=self.build(BUDGET_UTILIZATION, store),
            projects_on_budget=self.build(PROJECTS_ON_BUDGET, store),
            projects_on_time=self.build(PROJECTS_ON_TIME, store),
        )
