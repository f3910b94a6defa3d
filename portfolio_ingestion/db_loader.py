"""
Database snapshot loader.

Reads every reporting table through the ORM into one EntityStore.  Rows
are ordered by primary key so two loads of the same database produce the
same snapshot id.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from portfolio_ingestion.snapshot_builder import SnapshotBuilder
from portfolio_kernel.domain.store import EntityStore
from portfolio_kernel.logging_config import get_logger
from portfolio_kernel.models import ORM_MODELS

logger = get_logger("ingestion.db_loader")


def load_snapshot(session: Session) -> EntityStore:
    """Read all eight tables into an immutable EntityStore."""
    builder = SnapshotBuilder()
    for table, model in ORM_MODELS.items():
        stmt = select(model).order_by(*model.__mapper__.primary_key)
        rows = session.scalars(stmt).all()
        builder.add_entities(table, (row.to_dto() for row in rows))

    store = builder.build()
    logger.info("snapshot_loaded", extra={
        "snapshot_source": "db",
        "snapshot_id": store.snapshot_id,
        "row_counts": store.row_counts(),
    })
    return store
