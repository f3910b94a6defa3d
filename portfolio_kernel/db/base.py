"""
Module: portfolio_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.
    Provides the type annotation map for consistent column types and the
    TimestampedBase mixin for load-time audit columns.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, domain/, or outer layers.

Invariants enforced:
    - Natural string keys: every table is keyed by the business identifier
      used in source data (``P001``, ``E0001``), never a surrogate.
    - Decimal precision: type_annotation_map maps Python Decimal to
      Numeric(12, 2), the precision of every amount in the dataset.
      NEVER use float for monetary amounts.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - Decimal maps to Numeric(12, 2).
        - date maps to Date; datetime to timezone-aware DateTime.
        - str maps to String(100) unless a column overrides it.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(12, 2),
        date: Date,
        datetime: DateTime(timezone=True),
        str: String(100),
    }


class TimestampedBase(Base):
    """
    Abstract base recording when a row was loaded and last touched.

    These columns are load metadata, not reporting data: they never reach
    the domain entities produced by ``to_dto()``.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
