"""
Portfolio Modules.

Thin orchestration layers over the portfolio kernel and engines.

Modules:
- Reporting: report service, KPI view builder, presentation helpers
"""
