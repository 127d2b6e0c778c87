from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Mapping

from openpyxl import load_workbook
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .config import (
    COLUMN_PATTERNS,
    HEADER_FALLBACK_SCAN_ROWS,
    HEADER_MIN_CELLS,
    HEADER_SCAN_ROWS,
    HEADER_TERMS,
)
from .models import DetectedColumn, HeaderDetection


def open_workbook(path: Path | str) -> Workbook:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")
    # Merged ranges are only exposed outside read-only mode.
    return load_workbook(filename=str(path), data_only=True, rich_text=True)


def workbook_sheet_names(path: Path | str) -> list[str]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")
    wb = load_workbook(filename=str(path), read_only=True)
    try:
        return list(wb.sheetnames)
    finally:
        wb.close()


def describe_load_error(exc: BaseException) -> str:
    message = str(exc).strip()
    if not message:
        return exc.__class__.__name__
    return message


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, CellRichText):
        return "".join(
            block.text if isinstance(block, TextBlock) else str(block) for block in value
        )
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def _merge_master_map(sheet: Worksheet) -> dict[tuple[int, int], tuple[int, int]]:
    masters: dict[tuple[int, int], tuple[int, int]] = {}
    for merged in sheet.merged_cells.ranges:
        anchor = (merged.min_row, merged.min_col)
        for row in range(merged.min_row, merged.max_row + 1):
            for col in range(merged.min_col, merged.max_col + 1):
                if (row, col) != anchor:
                    masters[(row, col)] = anchor
    return masters


class CellReader:
    def __init__(self, sheet: Worksheet) -> None:
        self.sheet = sheet
        self.max_row = int(sheet.max_row or 0)
        self.max_column = int(sheet.max_column or 0)
        self._merge_masters = _merge_master_map(sheet)

    def is_merge_slave(self, row: int, col: int) -> bool:
        return (row, col) in self._merge_masters

    def read(self, row: int, col: int) -> str:
        if row < 1 or col < 1 or row > self.max_row or col > self.max_column:
            return ""
        row, col = self._merge_masters.get((row, col), (row, col))
        try:
            return cell_text(self.sheet.cell(row=row, column=col).value)
        except (AttributeError, TypeError, ValueError):
            return ""

    def row_cells(self, row: int) -> list[DetectedColumn]:
        cells: list[DetectedColumn] = []
        for col in range(1, self.max_column + 1):
            if self.is_merge_slave(row, col):
                continue
            text = self.read(row, col)
            if text.strip():
                cells.append(DetectedColumn(name=text, index=col))
        return cells


def read_cell(sheet: Worksheet, row: int, col: int) -> str:
    return CellReader(sheet).read(row, col)


def _has_header_term(cells: list[DetectedColumn]) -> bool:
    for cell in cells:
        lowered = cell.name.lower()
        if any(term in lowered for term in HEADER_TERMS):
            return True
    return False


def detect_header(sheet: Worksheet | CellReader) -> HeaderDetection | None:
    reader = sheet if isinstance(sheet, CellReader) else CellReader(sheet)

    for row in range(1, min(HEADER_SCAN_ROWS, reader.max_row) + 1):
        cells = reader.row_cells(row)
        if len(cells) >= HEADER_MIN_CELLS and _has_header_term(cells):
            return HeaderDetection(header_row=row, columns=cells)

    for row in range(1, min(HEADER_FALLBACK_SCAN_ROWS, reader.max_row) + 1):
        cells = reader.row_cells(row)
        if len(cells) >= HEADER_MIN_CELLS:
            return HeaderDetection(header_row=row, columns=cells)

    return None


def find_column_index(columns: list[DetectedColumn], patterns: tuple[str, ...]) -> int | None:
    for column in columns:
        name = column.name.lower().strip()
        for pattern in patterns:
            if pattern.lower() in name:
                return column.index
    return None


def map_columns(
    columns: list[DetectedColumn],
    field_patterns: Mapping[str, tuple[str, ...]] = COLUMN_PATTERNS,
) -> dict[str, int]:
    mapping: dict[str, int] = {}
    for field_name, patterns in field_patterns.items():
        index = find_column_index(columns, patterns)
        if index is not None:
            mapping[field_name] = index
    return mapping
