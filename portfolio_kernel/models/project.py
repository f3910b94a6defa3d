"""
SQLAlchemy ORM persistence models for managers, projects and completions.

Responsibility
--------------
Relational tables ``manager``, ``project`` and ``project_completion``.
Column names follow the reporting database so existing extracts and BI
connectors keep working.

Invariants enforced
-------------------
* ``manager.email`` is unique.
* ``project.budget >= 0`` and ``project.end_date > project.start_date``
  (CHECK constraints).
* ``project.manager_id`` references ``manager``.
* At most one ``project_completion`` row per project (primary key).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portfolio_kernel.db.base import TimestampedBase
from portfolio_kernel.domain.entities import Manager, Project, ProjectCompletion

# ---------------------------------------------------------------------------
# ManagerModel
# ---------------------------------------------------------------------------


class ManagerModel(TimestampedBase):
    """A person accountable for projects.  Maps to ``Manager``."""

    __tablename__ = "manager"

    manager_id: Mapped[str] = mapped_column(String(10), primary_key=True)
    manager_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    projects: Mapped[list["ProjectModel"]] = relationship(
        "ProjectModel",
        back_populates="manager",
    )

    def to_dto(self) -> Manager:
        return Manager(
            id=self.manager_id,
            name=self.manager_name,
            email=self.email,
        )

    @classmethod
    def from_dto(cls, dto: Manager) -> "ManagerModel":
        return cls(
            manager_id=dto.id,
            manager_name=dto.name,
            email=dto.email,
        )

    def __repr__(self) -> str:
        return f"<ManagerModel {self.manager_id}: {self.manager_name}>"


# ---------------------------------------------------------------------------
# ProjectModel
# ---------------------------------------------------------------------------


class ProjectModel(TimestampedBase):
    """
    A funded project.  Maps to ``Project``.

    Guarantees:
        - ``budget`` is non-negative.
        - ``end_date`` is strictly after ``start_date``.
    """

    __tablename__ = "project"

    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_project_budget_non_negative"),
        CheckConstraint("end_date > start_date", name="ck_project_date_range"),
        Index("idx_project_manager", "manager_id"),
    )

    project_id: Mapped[str] = mapped_column(String(10), primary_key=True)
    project_name: Mapped[str] = mapped_column(String(100), nullable=False)
    budget: Mapped[Decimal] = mapped_column(nullable=False)
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date] = mapped_column(nullable=False)
    manager_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("manager.manager_id"), nullable=False,
    )

    manager: Mapped["ManagerModel"] = relationship(
        "ManagerModel",
        back_populates="projects",
    )

    def to_dto(self) -> Project:
        return Project(
            id=self.project_id,
            name=self.project_name,
            budget=self.budget,
            start_date=self.start_date,
            end_date=self.end_date,
            manager_id=self.manager_id,
        )

    @classmethod
    def from_dto(cls, dto: Project) -> "ProjectModel":
        return cls(
            project_id=dto.id,
            project_name=dto.name,
            budget=dto.budget,
            start_date=dto.start_date,
            end_date=dto.end_date,
            manager_id=dto.manager_id,
        )

    def __repr__(self) -> str:
        return f"<ProjectModel {self.project_id}: {self.project_name}>"


# ---------------------------------------------------------------------------
# ProjectCompletionModel
# ---------------------------------------------------------------------------


class ProjectCompletionModel(TimestampedBase):
    """Actual finish date of a project.  Maps to ``ProjectCompletion``."""

    __tablename__ = "project_completion"

    project_id: Mapped[str] = mapped_column(
        String(10), ForeignKey("project.project_id"), primary_key=True,
    )
    actual_end_date: Mapped[date] = mapped_column(nullable=False)

    def to_dto(self) -> ProjectCompletion:
        return ProjectCompletion(
            project_id=self.project_id,
            actual_end_date=self.actual_end_date,
        )

    @classmethod
    def from_dto(cls, dto: ProjectCompletion) -> "ProjectCompletionModel":
        return cls(
            project_id=dto.project_id,
            actual_end_date=dto.actual_end_date,
        )

    def __repr__(self) -> str:
        return f"<ProjectCompletionModel {self.project_id} {self.actual_end_date}>"
