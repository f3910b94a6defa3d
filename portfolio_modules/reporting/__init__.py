"""
Portfolio Reporting Module.

Builds the complete portfolio report -- diagnostics, analytic result
sets and KPI views -- from one EntityStore snapshot, and renders it for
JSON or text output.
"""

from portfolio_modules.reporting.models import (
    KpiViews,
    PortfolioReport,
    ReportMetadata,
    ReportSection,
)
from portfolio_modules.reporting.rendering import (
    format_money,
    format_percent,
    render_table,
    render_to_dict,
)
from portfolio_modules.reporting.service import PortfolioReportingService
from portfolio_modules.reporting.views import VIEW_NAMES, KpiViewBuilder

__all__ = [
    "KpiViewBuilder",
    "KpiViews",
    "PortfolioReport",
    "PortfolioReportingService",
    "ReportMetadata",
    "ReportSection",
    "VIEW_NAMES",
    "format_money",
    "format_percent",
    "render_table",
    "render_to_dict",
]
