"""
XLSX source adapter for spreadsheet exports of the reporting tables.

Layout: one table per workbook; the first non-skipped row of the sheet is
the header.  Cell values keep their openpyxl types (numbers, datetimes);
empty cells become None and fully empty rows are skipped.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterator

import openpyxl


def _normalize_header_cell(value: Any) -> str:
    """Normalize a header cell for use as a record key."""
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _normalize_value(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class XlsxSourceAdapter:
    """
    Read .xlsx files as one dict per row, using the first row as column names.

    source options:
      sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
      skip_rows: number of rows to skip at top of sheet before the header. Default: 0.
    """

    suffix = ".xlsx"

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            rows = sheet.iter_rows(min_row=1 + skip_rows, values_only=True)

            header = next(rows, None)
            if header is None:
                return
            headers = []
            for c, v in enumerate(header):
                key = _normalize_header_cell(v) or f"Column_{c+1}"
                # Dedupe duplicate headers
                base = key
                cnt = 0
                while key in headers:
                    cnt += 1
                    key = f"{base}_{cnt}"
                headers.append(key)

            for row in rows:
                vals = [_normalize_value(v) for v in row]
                if all(v is None for v in vals):
                    continue
                yield dict(zip(headers, vals))
        finally:
            wb.close()

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]
