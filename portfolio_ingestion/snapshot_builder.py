"""
Snapshot builder: raw source records -> typed entities -> EntityStore.

Responsibility:
    Coerce raw record dicts (strings from CSV, native cell values from
    XLSX) into the frozen entities of ``portfolio_kernel.domain`` and
    assemble them into one ``EntityStore``.  Rows that cannot be coerced
    are collected as ``RejectedRecord`` entries instead of aborting the
    load.

Architecture position:
    Ingestion -- the external data-loading collaborator.  Imports the
    kernel domain and the source adapters; never imports engines.

Invariants enforced:
    - Blank values become None; the checkers report them later.
    - Amounts are Decimal (floats pass through ``str`` first).
    - Dates are ISO (YYYY-MM-DD) or native date/datetime cells.
    - Milestone status text that does not parse is kept in ``raw_status``
      and is not a rejection; the IntegrityChecker reports it.
    - Source row order is preserved.

Failure modes:
    - ``RecordParseError`` from ``parse_record`` for an unparseable field
      or a blank required field; ``add_records`` turns it into a
      ``RejectedRecord``.
    - ``SourceFormatError`` from ``load_directory`` when a directory or
      file cannot be read.
"""

from __future__ import annotations

import csv
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from openpyxl.utils.exceptions import InvalidFileException

from portfolio_ingestion.adapters import ADAPTERS
from portfolio_ingestion.columns import TABLE_COLUMNS, ColumnSpec, FieldType
from portfolio_kernel.domain.entities import MilestoneStatus
from portfolio_kernel.domain.store import ENTITY_TABLES, EntityStore, entity_for_table
from portfolio_kernel.exceptions import RecordParseError, SourceFormatError
from portfolio_kernel.logging_config import LogContext, get_logger

logger = get_logger("ingestion.snapshot_builder")

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y")


# -----------------------------------------------------------------------------
# Result types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RejectedRecord:
    """A source row that could not be turned into an entity."""

    entity: str
    source_row: int  # 1-based data row number (header excluded)
    field: str
    message: str
    source: str | None = None


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading a directory of table files."""

    store: EntityStore
    rejected: tuple[RejectedRecord, ...] = ()
    sources: tuple[str, ...] = field(default=())

    @property
    def is_clean(self) -> bool:
        return not self.rejected


# -----------------------------------------------------------------------------
# Coercion (pure)
# -----------------------------------------------------------------------------


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("boolean is not an amount")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    else:
        # float cells go through str so 0.1 stays 0.1
        result = Decimal(str(value).strip().replace(",", ""))
    if not result.is_finite():
        raise ValueError("amount must be finite")
    return result


def _to_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    # ISO datetimes such as "2024-01-15T00:00:00"
    return datetime.fromisoformat(s).date()


def coerce_value(table: str, spec: ColumnSpec, value: Any) -> Any:
    """Coerce one raw value according to its column spec.

    Raises:
        RecordParseError: if the value is blank but required, or cannot
            be converted to the column's type.
    """
    if _blank(value):
        if spec.required:
            raise RecordParseError(table, spec.column, value, "required value is blank")
        return None
    try:
        if spec.field_type is FieldType.DECIMAL:
            return _to_decimal(value)
        if spec.field_type is FieldType.DATE:
            return _to_date(value)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise RecordParseError(table, spec.column, value, str(exc) or type(exc).__name__) from None
    # STRING and STATUS keep the trimmed text
    return str(value).strip()


def parse_record(table: str, record: dict[str, Any]) -> Any:
    """Build one entity from a raw record keyed by source column names."""
    _, entity_class = entity_for_table(table)
    kwargs: dict[str, Any] = {}
    for spec in TABLE_COLUMNS[table]:
        value = coerce_value(table, spec, record.get(spec.column))
        if spec.field_type is FieldType.STATUS:
            status = MilestoneStatus.parse(value)
            kwargs[spec.attr] = status
            kwargs["raw_status"] = value if status is None else None
        else:
            kwargs[spec.attr] = value
    return entity_class(**kwargs)


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------


class SnapshotBuilder:
    """
    Accumulates entities table by table and builds one EntityStore.

    Usage:
        builder = SnapshotBuilder()
        builder.add_records("project", rows, source="project.csv")
        store = builder.build()
        problems = builder.rejected
    """

    def __init__(self) -> None:
        self._rows: dict[str, list[Any]] = {table: [] for table in ENTITY_TABLES}
        self._rejected: list[RejectedRecord] = []

    @property
    def rejected(self) -> tuple[RejectedRecord, ...]:
        return tuple(self._rejected)

    def add_entities(self, table: str, entities: Iterable[Any]) -> None:
        """Add already-typed entities (e.g. from the ORM) to a table."""
        entity_for_table(table)
        self._rows[table].extend(entities)

    def add_records(
        self,
        table: str,
        records: Iterable[dict[str, Any]],
        source: str | None = None,
    ) -> int:
        """Parse raw records into ``table``; return the number accepted."""
        entity_for_table(table)
        accepted = 0
        for row_number, record in enumerate(records, start=1):
            try:
                entity = parse_record(table, record)
            except RecordParseError as exc:
                rejection = RejectedRecord(
                    entity=table,
                    source_row=row_number,
                    field=exc.field,
                    message=exc.reason,
                    source=source,
                )
                self._rejected.append(rejection)
                logger.warning("record_rejected", extra={
                    "entity": table,
                    "source_row": row_number,
                    "field": exc.field,
                    "reason": exc.reason,
                })
                continue
            self._rows[table].append(entity)
            accepted += 1
        return accepted

    def build(self) -> EntityStore:
        return EntityStore.from_tables(self._rows)


# -----------------------------------------------------------------------------
# Directory loading
# -----------------------------------------------------------------------------


def _find_table_file(directory: Path, table: str) -> Path | None:
    for suffix in ADAPTERS:
        candidate = directory / f"{table}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def load_directory(path: Path | str, options: dict[str, Any] | None = None) -> LoadResult:
    """
    Load ``<table>.csv`` (or ``<table>.xlsx``) for every table present in a directory.

    Tables without a file are empty in the resulting store.

    Raises:
        SourceFormatError: if ``path`` is not a directory or a file cannot
            be read.
    """
    directory = Path(path)
    if not directory.is_dir():
        raise SourceFormatError(str(directory), "not a directory")

    options = options or {}
    builder = SnapshotBuilder()
    sources: list[str] = []

    with LogContext.bind(source=str(directory)):
        for table in ENTITY_TABLES:
            file_path = _find_table_file(directory, table)
            if file_path is None:
                continue
            adapter = ADAPTERS[file_path.suffix]
            try:
                accepted = builder.add_records(
                    table, adapter.read(file_path, options), source=file_path.name,
                )
            except (OSError, UnicodeDecodeError, csv.Error,
                    zipfile.BadZipFile, InvalidFileException) as exc:
                raise SourceFormatError(str(file_path), str(exc)) from exc
            sources.append(file_path.name)
            logger.info("source_file_loaded", extra={
                "entity": table,
                "file": file_path.name,
                "accepted": accepted,
            })

        result = LoadResult(
            store=builder.build(),
            rejected=builder.rejected,
            sources=tuple(sources),
        )
        logger.info("snapshot_loaded", extra={
            "snapshot_id": result.store.snapshot_id,
            "row_counts": result.store.row_counts(),
            "rejected_count": len(result.rejected),
        })
    return result
