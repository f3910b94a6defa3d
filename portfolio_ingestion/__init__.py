"""
portfolio_ingestion -- loading reporting snapshots from files and databases.

Reads CSV/XLSX table files or the reporting database into one immutable
``EntityStore``, exports a store back to CSV, and seeds the demo dataset.

Architecture:
    portfolio_ingestion/ is a top-level package.  Nothing in kernel/ or
    engines/ imports from ingestion.
"""

from portfolio_ingestion.db_loader import load_snapshot
from portfolio_ingestion.exporter import export_directory
from portfolio_ingestion.seed import build_demo_store, seed_database
from portfolio_ingestion.snapshot_builder import (
    LoadResult,
    RejectedRecord,
    SnapshotBuilder,
    load_directory,
    parse_record,
)

__all__ = [
    "LoadResult",
    "RejectedRecord",
    "SnapshotBuilder",
    "build_demo_store",
    "export_directory",
    "load_directory",
    "load_snapshot",
    "parse_record",
    "seed_database",
]
