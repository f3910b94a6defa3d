"""
CSV export of an EntityStore.

Writes one ``<table>.csv`` per table with the relational column names, so
``load_directory`` reads an export back into an equal store.
"""

from __future__ import annotations

import csv
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any

from portfolio_ingestion.columns import TABLE_COLUMNS, FieldType, column_names
from portfolio_kernel.domain.store import ENTITY_TABLES, EntityStore
from portfolio_kernel.logging_config import get_logger

logger = get_logger("ingestion.exporter")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, date):
        return value.isoformat()
    # Decimal str() keeps the exact digits
    return str(value)


def export_directory(store: EntityStore, path: Path | str) -> dict[str, Path]:
    """Write every table of ``store`` as CSV under ``path``; return table -> file."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)

    written: dict[str, Path] = {}
    for table in ENTITY_TABLES:
        file_path = directory / f"{table}.csv"
        specs = TABLE_COLUMNS[table]
        with file_path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(column_names(table))
            for row in store.rows(table):
                writer.writerow([
                    # Unparsed milestone status text is written back verbatim
                    _cell(row.status_label if spec.field_type is FieldType.STATUS
                          else getattr(row, spec.attr))
                    for spec in specs
                ])
        written[table] = file_path

    logger.info("snapshot_exported", extra={
        "directory": str(directory),
        "snapshot_id": store.snapshot_id,
        "row_counts": store.row_counts(),
    })
    return written
