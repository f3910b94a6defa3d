"""
Portfolio Kernel

Read-only reporting foundation for the project portfolio:
- Immutable entity snapshots (projects, spend, milestones, forecasts, POs)
- Structured JSON logging
- Typed exception hierarchy
- SQLAlchemy schema and session wiring for the backing store
"""

__version__ = "0.1.0"
