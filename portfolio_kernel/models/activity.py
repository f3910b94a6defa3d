"""
SQLAlchemy ORM persistence models for project activity.

Responsibility
--------------
Relational tables ``spend_log``, ``milestone``, ``forecast`` and
``purchase_order`` -- every row belongs to exactly one project.

Invariants enforced
-------------------
* Every table references ``project.project_id``.
* Amounts are non-negative (CHECK constraints).
* ``milestone.status`` is one of the three ``MilestoneStatus`` values.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_kernel.db.base import TimestampedBase
from portfolio_kernel.domain.entities import (
    Forecast,
    Milestone,
    MilestoneStatus,
    PurchaseOrder,
    SpendEntry,
)

_STATUS_LIST = ", ".join(f"'{s.value}'" for s in MilestoneStatus)


def _project_fk() -> Mapped[str]:
    return mapped_column(String(10), ForeignKey("project.project_id"), nullable=False)


# ---------------------------------------------------------------------------
# SpendEntryModel
# ---------------------------------------------------------------------------


class SpendEntryModel(TimestampedBase):
    """One line of actual spend.  Maps to ``SpendEntry``."""

    __tablename__ = "spend_log"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_spend_log_amount_non_negative"),
        Index("idx_spend_log_project", "project_id"),
        Index("idx_spend_log_date", "spend_date"),
    )

    entry_id: Mapped[str] = mapped_column(String(10), primary_key=True)
    project_id: Mapped[str] = _project_fk()
    spend_date: Mapped[date] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self) -> SpendEntry:
        return SpendEntry(
            id=self.entry_id,
            project_id=self.project_id,
            date=self.spend_date,
            category=self.category,
            amount=self.amount,
        )

    @classmethod
    def from_dto(cls, dto: SpendEntry) -> "SpendEntryModel":
        return cls(
            entry_id=dto.id,
            project_id=dto.project_id,
            spend_date=dto.date,
            category=dto.category,
            amount=dto.amount,
        )

    def __repr__(self) -> str:
        return f"<SpendEntryModel {self.entry_id} project={self.project_id} {self.amount}>"


# ---------------------------------------------------------------------------
# MilestoneModel
# ---------------------------------------------------------------------------


class MilestoneModel(TimestampedBase):
    """A project checkpoint.  Maps to ``Milestone``."""

    __tablename__ = "milestone"

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUS_LIST})", name="ck_milestone_status"),
        Index("idx_milestone_project", "project_id"),
    )

    milestone_id: Mapped[str] = mapped_column(String(10), primary_key=True)
    project_id: Mapped[str] = _project_fk()
    milestone_name: Mapped[str] = mapped_column(String(100), nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    def to_dto(self) -> Milestone:
        status = MilestoneStatus.parse(self.status)
        return Milestone(
            id=self.milestone_id,
            project_id=self.project_id,
            name=self.milestone_name,
            due_date=self.due_date,
            status=status,
            raw_status=None if status is not None else self.status,
        )

    @classmethod
    def from_dto(cls, dto: Milestone) -> "MilestoneModel":
        return cls(
            milestone_id=dto.id,
            project_id=dto.project_id,
            milestone_name=dto.name,
            due_date=dto.due_date,
            status=dto.status_label,
        )

    def __repr__(self) -> str:
        return f"<MilestoneModel {self.milestone_id}: {self.milestone_name} [{self.status}]>"


# ---------------------------------------------------------------------------
# ForecastModel
# ---------------------------------------------------------------------------


class ForecastModel(TimestampedBase):
    """Forecast vs actual for one project period.  Maps to ``Forecast``."""

    __tablename__ = "forecast"

    __table_args__ = (
        CheckConstraint("forecast_amount >= 0", name="ck_forecast_amount_non_negative"),
        CheckConstraint("actual_amount >= 0", name="ck_forecast_actual_non_negative"),
        Index("idx_forecast_project_date", "project_id", "forecast_date"),
    )

    forecast_id: Mapped[str] = mapped_column(String(10), primary_key=True)
    project_id: Mapped[str] = _project_fk()
    forecast_date: Mapped[date] = mapped_column(nullable=False)
    forecast_amount: Mapped[Decimal] = mapped_column(nullable=False)
    actual_amount: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self) -> Forecast:
        return Forecast(
            id=self.forecast_id,
            project_id=self.project_id,
            forecast_date=self.forecast_date,
            forecast_amount=self.forecast_amount,
            actual_amount=self.actual_amount,
        )

    @classmethod
    def from_dto(cls, dto: Forecast) -> "ForecastModel":
        return cls(
            forecast_id=dto.id,
            project_id=dto.project_id,
            forecast_date=dto.forecast_date,
            forecast_amount=dto.forecast_amount,
            actual_amount=dto.actual_amount,
        )

    def __repr__(self) -> str:
        return f"<ForecastModel {self.forecast_id} project={self.project_id}>"


# ---------------------------------------------------------------------------
# PurchaseOrderModel
# ---------------------------------------------------------------------------


class PurchaseOrderModel(TimestampedBase):
    """A procurement commitment.  Maps to ``PurchaseOrder``."""

    __tablename__ = "purchase_order"

    __table_args__ = (
        CheckConstraint("po_amount >= 0", name="ck_purchase_order_amount_non_negative"),
        Index("idx_purchase_order_project", "project_id"),
    )

    po_id: Mapped[str] = mapped_column(String(12), primary_key=True)
    project_id: Mapped[str] = _project_fk()
    po_date: Mapped[date] = mapped_column(nullable=False)
    po_amount: Mapped[Decimal] = mapped_column(nullable=False)

    def to_dto(self) -> PurchaseOrder:
        return PurchaseOrder(
            id=self.po_id,
            project_id=self.project_id,
            po_date=self.po_date,
            po_amount=self.po_amount,
        )

    @classmethod
    def from_dto(cls, dto: PurchaseOrder) -> "PurchaseOrderModel":
        return cls(
            po_id=dto.id,
            project_id=dto.project_id,
            po_date=dto.po_date,
            po_amount=dto.po_amount,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_id} project={self.project_id} {self.po_amount}>"
