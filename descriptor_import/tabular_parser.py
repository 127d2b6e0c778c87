from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .config import MAX_CATEGORY_LENGTH, PREFERRED_SHEET_NAMES, SHEET_NAME_HINTS
from .ingest import CellReader, describe_load_error, detect_header, map_columns, open_workbook
from .models import ParseResult, RawDescriptor
from .normalization import (
    detect_encoding_issues,
    extract_skill_name_from_filename,
    merge_warnings,
    normalize_descriptor_text,
)

logger = logging.getLogger(__name__)

SCORE_FIELDS: tuple[str, ...] = ("excellent", "good", "pass", "below_pass")
MIN_CRITERION_LENGTH = 2
MIN_CONTENT_LENGTH = 5


@dataclass(slots=True)
class _RowState:
    current_category: str = ""


def select_marking_sheet(workbook: Workbook) -> Worksheet | None:
    for name in PREFERRED_SHEET_NAMES:
        if name in workbook.sheetnames:
            return workbook[name]
    for sheet in workbook.worksheets:
        lowered = sheet.title.lower()
        if any(hint in lowered for hint in SHEET_NAME_HINTS):
            return sheet
    if workbook.worksheets:
        return workbook.worksheets[0]
    return None


def _read_field(reader: CellReader, row: int, mapping: dict[str, int], field_name: str) -> str:
    col = mapping.get(field_name)
    if col is None:
        return ""
    return normalize_descriptor_text(reader.read(row, col))


def _parse_row(
    reader: CellReader,
    row: int,
    mapping: dict[str, int],
    state: _RowState,
    skill_name: str,
) -> RawDescriptor | None:
    category_col = mapping.get("category")
    if category_col is not None:
        raw_category = reader.read(row, category_col)
        category_text = normalize_descriptor_text(raw_category)
        if category_text and len(raw_category) < MAX_CATEGORY_LENGTH:
            state.current_category = category_text

    criterion_col = mapping.get("criterion_name") or mapping.get("code")
    if criterion_col is None:
        return None

    criterion_name = normalize_descriptor_text(reader.read(row, criterion_col))
    if len(criterion_name) < MIN_CRITERION_LENGTH:
        return None

    code = _read_field(reader, row, mapping, "code") or f"R{row}"
    excellent, good, pass_, below_pass = (
        _read_field(reader, row, mapping, field_name) for field_name in SCORE_FIELDS
    )

    if len(criterion_name) < MIN_CONTENT_LENGTH and not any((excellent, good, pass_, below_pass)):
        return None

    warnings = merge_warnings(
        *(detect_encoding_issues(text) for text in (criterion_name, excellent, good, pass_, below_pass))
    )
    return RawDescriptor(
        code=code,
        criterion_name=criterion_name,
        excellent=excellent,
        good=good,
        pass_=pass_,
        below_pass=below_pass,
        skill_name=skill_name,
        category=state.current_category or None,
        warnings=warnings,
    )


def _parse_workbook(workbook: Workbook, skill_name: str, result: ParseResult) -> None:
    sheet = select_marking_sheet(workbook)
    if sheet is None:
        result.errors.append("No worksheet found")
        return

    reader = CellReader(sheet)
    header = detect_header(reader)
    if header is None:
        result.errors.append("Could not detect header row")
        return

    mapping = map_columns(header.columns)
    if "criterion_name" not in mapping and "code" not in mapping:
        found = ", ".join(column.name for column in header.columns)
        result.errors.append(f"Could not find criterion/code columns. Found: {found}")
        return

    logger.debug(
        "Sheet %r: header row %d, columns %s", sheet.title, header.header_row, mapping
    )

    state = _RowState()
    for row in range(header.header_row + 1, reader.max_row + 1):
        descriptor = _parse_row(reader, row, mapping, state, skill_name)
        if descriptor is not None:
            result.descriptors.append(descriptor)


def parse_marking_scheme(file_path: Path | str) -> ParseResult:
    path = Path(file_path)
    result = ParseResult()
    skill_name = extract_skill_name_from_filename(path.name)

    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")

    try:
        workbook = open_workbook(path)
    except Exception as exc:
        result.errors.append(describe_load_error(exc))
        return result

    try:
        _parse_workbook(workbook, skill_name, result)
    except Exception as exc:
        logger.exception("Unexpected failure while parsing %s", path.name)
        result.descriptors.clear()
        result.errors.append(describe_load_error(exc))
    finally:
        workbook.close()

    if not result.errors and not result.descriptors:
        result.warnings.append("No descriptors extracted from file")
    return result
