"""Pure domain types for the portfolio kernel: entities, the snapshot store, clocks."""

from portfolio_kernel.domain.clock import Clock, DeterministicClock, SystemClock
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
from portfolio_kernel.domain.store import ENTITY_TABLES, EntityStore

__all__ = [
    "Clock",
    "DeterministicClock",
    "ENTITY_TABLES",
    "EntityStore",
    "Forecast",
    "KpiDefinition",
    "Manager",
    "Milestone",
    "MilestoneStatus",
    "Project",
    "ProjectCompletion",
    "PurchaseOrder",
    "SpendEntry",
    "SystemClock",
]
