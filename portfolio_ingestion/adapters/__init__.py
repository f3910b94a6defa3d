"""Source adapters for file ingestion (file I/O only, no DB)."""

from portfolio_ingestion.adapters.base import SourceAdapter
from portfolio_ingestion.adapters.csv_adapter import CsvSourceAdapter
from portfolio_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

# Suffix -> adapter, in lookup preference order
ADAPTERS: dict[str, SourceAdapter] = {
    CsvSourceAdapter.suffix: CsvSourceAdapter(),
    XlsxSourceAdapter.suffix: XlsxSourceAdapter(),
}

__all__ = [
    "ADAPTERS",
    "CsvSourceAdapter",
    "SourceAdapter",
    "XlsxSourceAdapter",
]
