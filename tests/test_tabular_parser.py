from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from descriptor_import.tabular_parser import parse_marking_scheme, select_marking_sheet

HEADER = ["Category", "Code", "Criterion", "Excellent", "Good", "Pass", "Below Pass"]


def _write_scheme(
    tmp_path: Path,
    rows: list[list],
    name: str = "07_Welding_Marking_Scheme.xlsx",
    title: str = "Marking Scheme",
) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(row)
    path = tmp_path / name
    wb.save(path)
    return path


def test_parses_rows_with_sticky_category_and_row_codes(tmp_path: Path) -> None:
    path = _write_scheme(
        tmp_path,
        [
            HEADER,
            ["Safety", "A1", "Wears PPE at all times", "Always", "Mostly", "Sometimes", "Never"],
            [None, "A2", "Keeps workspace tidy", "Spotless", None, None, None],
            [None, None, "Labels", None, None, None, None],
            [None, None, None, None, None, None, None],
            ["Quality", None, "Tiny", None, None, None, None],
            [None, "B1", "Finish meets tolerance", "Within \ufffd 0.1mm", None, None, None],
        ],
    )

    result = parse_marking_scheme(path)

    assert result.errors == []
    assert result.warnings == []
    assert [d.code for d in result.descriptors] == ["A1", "A2", "R4", "B1"]

    first = result.descriptors[0]
    assert first.criterion_name == "Wears PPE at all times"
    assert (first.excellent, first.good, first.pass_, first.below_pass) == ("Always", "Mostly", "Sometimes", "Never")
    assert first.skill_name == "Welding"
    assert first.category == "Safety"

    assert result.descriptors[1].category == "Safety"
    assert result.descriptors[1].good == ""
    assert result.descriptors[2].criterion_name == "Labels"
    assert result.descriptors[3].category == "Quality"
    assert result.descriptors[3].warnings == ["Unicode replacement character found (encoding failure)"]


def test_normalizes_cell_text(tmp_path: Path) -> None:
    path = _write_scheme(
        tmp_path,
        [
            HEADER,
            [None, "A1", "Uses \u2018safe\u2019 practice", "\u2022 Always\u00a0 checks", None, None, None],
        ],
    )

    descriptor = parse_marking_scheme(path).descriptors[0]
    assert descriptor.criterion_name == "Uses 'safe' practice"
    assert descriptor.excellent == "- Always checks"
    assert descriptor.category is None


def test_header_found_below_title_rows(tmp_path: Path) -> None:
    path = _write_scheme(
        tmp_path,
        [
            ["Welding marking scheme"],
            [],
            ["Aspect", "Excellent", "Good", "Pass"],
            ["Joint preparation", "Clean", "Mostly clean", "Dirty"],
        ],
    )

    result = parse_marking_scheme(path)
    assert len(result.descriptors) == 1
    descriptor = result.descriptors[0]
    # "Aspect" serves as both code and criterion column.
    assert descriptor.code == "Joint preparation"
    assert descriptor.criterion_name == "Joint preparation"
    assert descriptor.pass_ == "Dirty"


def test_missing_criterion_and_code_columns_is_an_error(tmp_path: Path) -> None:
    path = _write_scheme(tmp_path, [["Excellent", "Good", "Pass"], ["a", "b", "c"]])

    result = parse_marking_scheme(path)
    assert result.descriptors == []
    assert result.errors == ["Could not find criterion/code columns. Found: Excellent, Good, Pass"]


def test_no_header_row_is_an_error(tmp_path: Path) -> None:
    path = _write_scheme(tmp_path, [["Code", "Criterion"], ["A1", "Something long"]])

    result = parse_marking_scheme(path)
    assert result.descriptors == []
    assert result.errors == ["Could not detect header row"]


def test_header_only_sheet_warns_about_empty_result(tmp_path: Path) -> None:
    path = _write_scheme(tmp_path, [HEADER])

    result = parse_marking_scheme(path)
    assert result.errors == []
    assert result.descriptors == []
    assert result.warnings == ["No descriptors extracted from file"]


def test_unreadable_workbook_is_reported_not_raised(tmp_path: Path) -> None:
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"not a zip archive")

    result = parse_marking_scheme(path)
    assert result.descriptors == []
    assert len(result.errors) == 1


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        parse_marking_scheme(tmp_path / "missing.xlsx")


def test_select_marking_sheet_preference_order() -> None:
    wb = Workbook()
    wb.active.title = "Cover"
    wb.create_sheet("Assessment Criteria")
    assert select_marking_sheet(wb).title == "Assessment Criteria"

    wb.create_sheet("MS")
    assert select_marking_sheet(wb).title == "MS"

    wb.create_sheet("Marking Scheme")
    assert select_marking_sheet(wb).title == "Marking Scheme"

    plain = Workbook()
    plain.active.title = "Sheet A"
    plain.create_sheet("Sheet B")
    assert select_marking_sheet(plain).title == "Sheet A"


def test_blank_category_cell_keeps_current_category(tmp_path: Path) -> None:
    path = _write_scheme(
        tmp_path,
        [
            HEADER,
            ["Safety", "A1", "Wears PPE at all times", "Always", None, None, None],
            ["   ", "A2", "Keeps workspace tidy", "Spotless", None, None, None],
        ],
    )

    result = parse_marking_scheme(path)
    assert [d.category for d in result.descriptors] == ["Safety", "Safety"]
