from __future__ import annotations

from pathlib import Path

import pandas as pd
from openpyxl import Workbook

from descriptor_import.survey import column_pattern_analysis, list_workbooks, survey_directory, survey_file


def _scheme(path: Path) -> None:
    wb = Workbook()
    cover = wb.active
    cover.title = "Cover"
    ws = wb.create_sheet("Marking Scheme")
    ws.append(["Section", "Code", "Criterion", "Excellent", "Good"])
    ws.append(["Safety", "A1", "Wears PPE", "Always", "Mostly"])
    ws.append([None, "A2", "Tidy bench", "Spotless", "Clean"])
    ws.merge_cells("A2:A3")
    wb.save(path)


def test_survey_file_describes_selected_sheet(tmp_path: Path) -> None:
    path = tmp_path / "07_Welding_Marking_Scheme.xlsx"
    _scheme(path)

    survey = survey_file(path)

    assert survey.errors == []
    assert survey.sheet_names == ["Cover", "Marking Scheme"]
    assert survey.sheet_name == "Marking Scheme"
    assert survey.header_row == 1
    assert survey.row_count == 3
    assert survey.column_count == 5
    assert survey.merged_range_count == 1
    assert [c.name for c in survey.columns] == ["Section", "Code", "Criterion", "Excellent", "Good"]
    assert survey.columns[0].sample_values == ["Safety", "Safety"]
    assert survey.columns[1].sample_values == ["A1", "A2"]


def test_survey_file_reports_unreadable_workbook(tmp_path: Path) -> None:
    path = tmp_path / "broken.xlsx"
    path.write_bytes(b"garbage")

    survey = survey_file(path)
    assert len(survey.errors) == 1
    assert survey.columns == []


def test_column_pattern_analysis_groups_names() -> None:
    analysis = column_pattern_analysis(["code", "criterion", "below pass", "notes"])
    assert analysis["code"] == ["code"]
    assert analysis["criterion"] == ["criterion"]
    assert analysis["below"] == ["below pass"]
    assert analysis["pass"] == ["below pass"]
    assert "good" not in analysis


def test_survey_directory_writes_outputs(tmp_path: Path) -> None:
    source = tmp_path / "schemes"
    source.mkdir()
    _scheme(source / "07_Welding_Marking_Scheme.xlsx")
    (source / "broken.xlsx").write_bytes(b"garbage")
    (source / "~$lock.xlsx").write_bytes(b"lock")
    output = tmp_path / "survey"

    assert [p.name for p in list_workbooks(source)] == ["07_Welding_Marking_Scheme.xlsx", "broken.xlsx"]

    summary = survey_directory(source, output_dir=output)

    assert summary["total_files"] == 2
    assert summary["files_with_errors"] == 1
    assert summary["files_with_merged_cells"] == 1
    assert summary["unique_column_names"] == ["code", "criterion", "excellent", "good", "section"]
    assert (output / "survey_results.json").exists()
    columns_df = pd.read_csv(output / "survey_columns.csv")
    assert len(columns_df) == 5
    assert set(columns_df["file_name"]) == {"07_Welding_Marking_Scheme.xlsx"}
