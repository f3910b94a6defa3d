"""SQLAlchemy ORM model for the KPI reference catalog (``kpi_reference``)."""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_kernel.db.base import TimestampedBase
from portfolio_kernel.domain.entities import KpiDefinition


class KpiReferenceModel(TimestampedBase):
    """A named KPI with its description and target.  Maps to ``KpiDefinition``."""

    __tablename__ = "kpi_reference"

    kpi_name: Mapped[str] = mapped_column(String(50), primary_key=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    target_threshold: Mapped[str] = mapped_column(String(60), nullable=False)

    def to_dto(self) -> KpiDefinition:
        return KpiDefinition(
            kpi_name=self.kpi_name,
            description=self.description,
            target_threshold=self.target_threshold,
        )

    @classmethod
    def from_dto(cls, dto: KpiDefinition) -> "KpiReferenceModel":
        return cls(
            kpi_name=dto.kpi_name,
            description=dto.description,
            target_threshold=dto.target_threshold,
        )

    def __repr__(self) -> str:
        return f"<KpiReferenceModel {self.kpi_name}>"
