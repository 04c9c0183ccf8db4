"""Spreadsheet ingestion: .xlsx via openpyxl, .csv via the csv module.

Every sheet is normalised to a header row plus rectangular data rows so the
analysis code never has to deal with ragged input.
"""

import csv
import io
import logging
import math
import re
from pathlib import PurePath
from typing import Any

from openpyxl import load_workbook
from pydantic import BaseModel

log = logging.getLogger(__name__)

EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
CSV_EXTENSIONS = {".csv"}

# Leading number, same leniency as a JS parseFloat: "12.5 mg/dL" -> 12.5
_LEADING_NUMBER = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class WorkbookError(ValueError):
    """Raised when an upload cannot be read as a spreadsheet."""


class Worksheet(BaseModel):
    name: str
    headers: list[str]
    rows: list[list[Any]]  # padded to len(headers), None = empty cell


def parse_float(value: Any) -> float | None:
    """Parse a cell as a number, or None if it does not start with one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return None if math.isnan(f) else f
    if isinstance(value, str):
        m = _LEADING_NUMBER.match(value)
        if m:
            return float(m.group())
    return None


def is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _coerce_csv_cell(cell: str) -> Any:
    text = cell.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        f = float(text)
    except ValueError:
        return cell
    return cell if math.isnan(f) else f


def _unique_headers(raw: list[Any]) -> list[str]:
    headers: list[str] = []
    seen: set[str] = set()
    for i, cell in enumerate(raw):
        base = str(cell).strip() if not is_empty(cell) else f"Column {i + 1}"
        name, n = base, 1
        # suffixed names can collide with literal headers ("A", "A", "A_2")
        while name in seen:
            n += 1
            name = f"{base}_{n}"
        seen.add(name)
        headers.append(name)
    return headers


def _used_width(row: list[Any]) -> int:
    for i in range(len(row) - 1, -1, -1):
        if not is_empty(row[i]):
            return i + 1
    return 0


def build_worksheet(name: str, table: list[list[Any]]) -> Worksheet | None:
    """Turn raw rows into a Worksheet. Returns None for an empty sheet."""
    rows = [list(r) for r in table]
    while rows and all(is_empty(c) for c in rows[-1]):
        rows.pop()
    while rows and all(is_empty(c) for c in rows[0]):
        rows.pop(0)
    if not rows:
        return None

    # Sheets are padded to their max column; width is the last non-empty cell
    width = max(_used_width(r) for r in rows)
    header_row = rows[0][:width]
    header_row = header_row + [None] * (width - len(header_row))
    headers = _unique_headers(header_row)

    data_rows = []
    for r in rows[1:]:
        cells = [None if is_empty(c) else c for c in r[:width]]
        data_rows.append(cells + [None] * (width - len(cells)))
    return Worksheet(name=name, headers=headers, rows=data_rows)


def _read_excel(content: bytes) -> list[Worksheet]:
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise WorkbookError(f"Could not read workbook: {exc}") from exc
    sheets = []
    try:
        for ws in wb.worksheets:
            # read-only sheets are parsed lazily, so corrupt XML surfaces here
            try:
                table = [list(row) for row in ws.iter_rows(values_only=True)]
            except Exception as exc:
                raise WorkbookError(f"Could not read worksheet {ws.title!r}: {exc}") from exc
            sheet = build_worksheet(ws.title, table)
            if sheet is None:
                log.info("Skipping empty worksheet: %s", ws.title)
                continue
            sheets.append(sheet)
    finally:
        wb.close()
    return sheets


def _read_csv(content: bytes, name: str) -> list[Worksheet]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    try:
        table = [[_coerce_csv_cell(c) for c in row] for row in csv.reader(io.StringIO(text))]
    except csv.Error as exc:
        raise WorkbookError(f"Could not read CSV file: {exc}") from exc
    sheet = build_worksheet(name, table)
    return [sheet] if sheet else []


def read_workbook(content: bytes, filename: str) -> list[Worksheet]:
    """Read an uploaded spreadsheet into worksheets, in workbook order."""
    path = PurePath(filename or "")
    ext = path.suffix.lower()
    if ext in EXCEL_EXTENSIONS:
        sheets = _read_excel(content)
    elif ext in CSV_EXTENSIONS:
        sheets = _read_csv(content, path.stem or "Sheet1")
    else:
        raise WorkbookError("Please upload a valid Excel file (.xlsx) or CSV file.")
    log.info("Read %s: %d worksheet(s)", filename, len(sheets))
    return sheets
