"""
Column layout of the reporting tables as they appear in source files.

One ``ColumnSpec`` per source column, mapping the relational column name
(``spend_date``, ``milestone_name``...) to the entity attribute it fills
and the type it is coerced to.  Shared by the snapshot builder (reading)
and the exporter (writing), so an export always loads back.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FieldType(str, Enum):
    """Target type of a source column."""

    STRING = "string"
    DECIMAL = "decimal"
    DATE = "date"
    STATUS = "status"  # MilestoneStatus with raw-text fallback


@dataclass(frozen=True)
class ColumnSpec:
    """One source column.

    ``required`` columns reject the row when blank; all others become None.
    """

    column: str
    attr: str
    field_type: FieldType = FieldType.STRING
    required: bool = False


_S, _D, _T = FieldType.STRING, FieldType.DECIMAL, FieldType.DATE

TABLE_COLUMNS: dict[str, tuple[ColumnSpec, ...]] = {
    "manager": (
        ColumnSpec("manager_id", "id", required=True),
        ColumnSpec("manager_name", "name", required=True),
        ColumnSpec("email", "email", required=True),
    ),
    "project": (
        ColumnSpec("project_id", "id", required=True),
        ColumnSpec("project_name", "name", required=True),
        ColumnSpec("budget", "budget", _D),
        ColumnSpec("start_date", "start_date", _T),
        ColumnSpec("end_date", "end_date", _T),
        ColumnSpec("manager_id", "manager_id"),
    ),
    "spend_log": (
        ColumnSpec("entry_id", "id", required=True),
        ColumnSpec("project_id", "project_id"),
        ColumnSpec("spend_date", "date", _T),
        ColumnSpec("category", "category"),
        ColumnSpec("amount", "amount", _D),
    ),
    "milestone": (
        ColumnSpec("milestone_id", "id", required=True),
        ColumnSpec("project_id", "project_id"),
        ColumnSpec("milestone_name", "name"),
        ColumnSpec("due_date", "due_date", _T),
        ColumnSpec("status", "status", FieldType.STATUS),
    ),
    "forecast": (
        ColumnSpec("forecast_id", "id", required=True),
        ColumnSpec("project_id", "project_id"),
        ColumnSpec("forecast_date", "forecast_date", _T),
        ColumnSpec("forecast_amount", "forecast_amount", _D),
        ColumnSpec("actual_amount", "actual_amount", _D),
    ),
    "purchase_order": (
        ColumnSpec("po_id", "id", required=True),
        ColumnSpec("project_id", "project_id"),
        ColumnSpec("po_date", "po_date", _T),
        ColumnSpec("po_amount", "po_amount", _D),
    ),
    "project_completion": (
        ColumnSpec("project_id", "project_id", required=True),
        ColumnSpec("actual_end_date", "actual_end_date", _T),
    ),
    "kpi_reference": (
        ColumnSpec("kpi_name", "kpi_name", required=True),
        ColumnSpec("description", "description", required=True),
        ColumnSpec("target_threshold", "target_threshold", required=True),
    ),
}


def column_names(table: str) -> tuple[str, ...]:
    """Source column names of a table, in file order."""
    return tuple(spec.column for spec in TABLE_COLUMNS[table])
