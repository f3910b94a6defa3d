"""
Entity Store -- immutable snapshot of the reporting dataset.

Responsibility:
    Hold one consistent, read-only snapshot of every entity collection for
    the duration of a reporting run, plus a few derived lookups that every
    engine needs (project ids, manager ids, rows grouped by project).

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Built by the loaders in
    ``portfolio_ingestion``; consumed by ``portfolio_engines`` and
    ``portfolio_modules``.

Invariants enforced:
    - Collections are tuples in source order; nothing mutates them.
    - Duplicate ids are preserved, so lookups return groups, never a
      single row.  The IntegrityChecker reports repeated primary keys;
      repeated spend entry ids are quality check 1.
    - ``snapshot_id`` is a deterministic digest of the content, so two
      stores with the same rows share an id.
"""

from __future__ import annotations

import hashlib
from collections import defaultdict
from dataclasses import astuple, dataclass, field, fields
from functools import cached_property
from typing import Any

from portfolio_kernel.domain.entities import (
    Forecast,
    KpiDefinition,
    Manager,
    Milestone,
    Project,
    ProjectCompletion,
    PurchaseOrder,
    SpendEntry,
)
from portfolio_kernel.exceptions import UnknownEntityError

# Table name -> (store attribute, entity class).  Table names follow the
# relational schema so loaders and exporters share one vocabulary.
ENTITY_TABLES: dict[str, tuple[str, type]] = {
    "manager": ("managers", Manager),
    "project": ("projects", Project),
    "spend_log": ("spend_entries", SpendEntry),
    "milestone": ("milestones", Milestone),
    "forecast": ("forecasts", Forecast),
    "purchase_order": ("purchase_orders", PurchaseOrder),
    "project_completion": ("completions", ProjectCompletion),
    "kpi_reference": ("kpi_definitions", KpiDefinition),
}


def entity_for_table(table: str) -> tuple[str, type]:
    """Return ``(attribute, entity_class)`` for a table name."""
    try:
        return ENTITY_TABLES[table]
    except KeyError:
        raise UnknownEntityError(table) from None


@dataclass(frozen=True)
class EntityStore:
    """
    Immutable snapshot of all eight entity collections.

    Contract:
        Engines receive an EntityStore and never write to it.  Each
        reporting run works on exactly one snapshot.
    Guarantees:
        - Row order is the order supplied by the loader.
        - Derived lookups are computed once per snapshot and cached.
    Non-goals:
        - Does not validate references or values; see IntegrityChecker.
    """

    managers: tuple[Manager, ...] = ()
    projects: tuple[Project, ...] = ()
    spend_entries: tuple[SpendEntry, ...] = ()
    milestones: tuple[Milestone, ...] = ()
    forecasts: tuple[Forecast, ...] = ()
    purchase_orders: tuple[PurchaseOrder, ...] = ()
    completions: tuple[ProjectCompletion, ...] = ()
    kpi_definitions: tuple[KpiDefinition, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable from callers; store tuples.
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, tuple):
                object.__setattr__(self, f.name, tuple(value))

    # -----------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------

    @cached_property
    def project_ids(self) -> frozenset[str]:
        return frozenset(p.id for p in self.projects)

    @cached_property
    def manager_ids(self) -> frozenset[str]:
        return frozenset(m.id for m in self.managers)

    @cached_property
    def spend_by_project_id(self) -> dict[str, tuple[SpendEntry, ...]]:
        return _group_by_project(self.spend_entries)

    @cached_property
    def milestones_by_project_id(self) -> dict[str, tuple[Milestone, ...]]:
        return _group_by_project(self.milestones)

    @cached_property
    def purchase_orders_by_project_id(self) -> dict[str, tuple[PurchaseOrder, ...]]:
        return _group_by_project(self.purchase_orders)

    @cached_property
    def completion_by_project_id(self) -> dict[str, ProjectCompletion]:
        """First completion per project; extra rows are an integrity issue."""
        result: dict[str, ProjectCompletion] = {}
        for c in self.completions:
            result.setdefault(c.project_id, c)
        return result

    def rows(self, table: str) -> tuple[Any, ...]:
        """Return the collection backing a relational table name."""
        attr, _ = entity_for_table(table)
        return getattr(self, attr)

    def row_counts(self) -> dict[str, int]:
        """Number of rows per table, in schema order."""
        return {table: len(self.rows(table)) for table in ENTITY_TABLES}

    @cached_property
    def snapshot_id(self) -> str:
        """Deterministic content digest (SHA-256, 16 hex chars)."""
        digest = hashlib.sha256()
        for table in ENTITY_TABLES:
            digest.update(table.encode())
            for row in self.rows(table):
                digest.update(repr(astuple(row)).encode())
        return digest.hexdigest()[:16]

    @classmethod
    def from_tables(cls, tables: dict[str, Any]) -> EntityStore:
        """Build a store from ``{table_name: rows}``; missing tables are empty."""
        kwargs: dict[str, tuple] = {}
        for table, rows in tables.items():
            attr, _ = entity_for_table(table)
            kwargs[attr] = tuple(rows)
        return cls(**kwargs)


def _group_by_project(rows) -> dict[str, tuple]:
    grouped: dict[str, list] = defaultdict(list)
    for row in rows:
        if row.project_id is not None:
            grouped[row.project_id].append(row)
    return {k: tuple(v) for k, v in grouped.items()}
