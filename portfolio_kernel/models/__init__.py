"""ORM models for the reporting database."""

from portfolio_kernel.models.activity import (
    ForecastModel,
    MilestoneModel,
    PurchaseOrderModel,
    SpendEntryModel,
)
from portfolio_kernel.models.kpi import KpiReferenceModel
from portfolio_kernel.models.project import (
    ManagerModel,
    ProjectCompletionModel,
    ProjectModel,
)

# Table name -> ORM model, in foreign-key dependency order (parents first).
ORM_MODELS = {
    "manager": ManagerModel,
    "project": ProjectModel,
    "spend_log": SpendEntryModel,
    "milestone": MilestoneModel,
    "forecast": ForecastModel,
    "purchase_order": PurchaseOrderModel,
    "project_completion": ProjectCompletionModel,
    "kpi_reference": KpiReferenceModel,
}

__all__ = [
    "ORM_MODELS",
    "ForecastModel",
    "KpiReferenceModel",
    "ManagerModel",
    "MilestoneModel",
    "ProjectCompletionModel",
    "ProjectModel",
    "PurchaseOrderModel",
    "SpendEntryModel",
]
