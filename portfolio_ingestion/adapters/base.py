"""
Source adapter protocol.

Contract:
    SourceAdapter.read() yields one dict per source record (streaming),
    keyed by the header row's column names.

Architecture: portfolio_ingestion/adapters. File I/O only, no DB or engine imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading tabular source files into record dicts."""

    suffix: str

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """Yield one dict per source record. Streams; does not load entire file."""
        ...
