from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from .export import OUTPUT_FILENAMES, write_dataframe, write_json
from .ingest import CellReader, describe_load_error, detect_header, open_workbook
from .models import ColumnSurvey, FileSurvey
from .tabular_parser import select_marking_sheet

logger = logging.getLogger(__name__)

SAMPLE_ROWS = 5
MAX_SAMPLES = 3
MAX_SAMPLE_LENGTH = 50
MAX_SAMPLE_SOURCE_LENGTH = 100

DESCRIPTOR_COLUMN_HINTS: tuple[str, ...] = (
    "code",
    "id",
    "ref",
    "aspect",
    "criterion",
    "criteria",
    "excellent",
    "good",
    "pass",
    "below",
    "satisfactory",
    "acceptable",
    "poor",
)


def list_workbooks(source_dir: Path) -> list[Path]:
    return sorted(
        path
        for path in Path(source_dir).iterdir()
        if path.is_file() and path.suffix.lower() == ".xlsx" and not path.name.startswith("~")
    )


def _sample_values(reader: CellReader, header_row: int, col: int) -> list[str]:
    samples: list[str] = []
    last_row = min(header_row + SAMPLE_ROWS, reader.max_row)
    for row in range(header_row + 1, last_row + 1):
        value = reader.read(row, col).strip()
        if value and len(value) < MAX_SAMPLE_SOURCE_LENGTH:
            samples.append(value[:MAX_SAMPLE_LENGTH])
        if len(samples) >= MAX_SAMPLES:
            break
    return samples


def survey_file(path: Path) -> FileSurvey:
    survey = FileSurvey(file_name=path.name)
    try:
        workbook = open_workbook(path)
    except Exception as exc:
        survey.errors.append(describe_load_error(exc))
        return survey

    try:
        survey.sheet_names = list(workbook.sheetnames)
        sheet = select_marking_sheet(workbook)
        if sheet is None:
            survey.errors.append("No worksheets found")
            return survey

        reader = CellReader(sheet)
        survey.sheet_name = sheet.title
        survey.row_count = reader.max_row
        survey.column_count = reader.max_column
        survey.merged_range_count = len(sheet.merged_cells.ranges)

        header = detect_header(reader)
        if header is None:
            survey.errors.append("Could not detect header row")
            return survey

        survey.header_row = header.header_row
        survey.columns = [
            ColumnSurvey(
                name=column.name,
                index=column.index,
                sample_values=_sample_values(reader, header.header_row, column.index),
            )
            for column in header.columns
        ]
    finally:
        workbook.close()
    return survey


def column_pattern_analysis(column_names: list[str]) -> dict[str, list[str]]:
    analysis: dict[str, list[str]] = {}
    for hint in DESCRIPTOR_COLUMN_HINTS:
        matches = [name for name in column_names if hint in name]
        if matches:
            analysis[hint] = matches
    return analysis


def survey_columns_frame(surveys: list[FileSurvey]) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for survey in surveys:
        for column in survey.columns:
            rows.append(
                {
                    "file_name": survey.file_name,
                    "sheet_name": survey.sheet_name,
                    "header_row": survey.header_row,
                    "column_index": column.index,
                    "column_name": column.name,
                    "sample_values": " | ".join(column.sample_values),
                }
            )
    columns = ["file_name", "sheet_name", "header_row", "column_index", "column_name", "sample_values"]
    return pd.DataFrame(rows, columns=columns)


def survey_directory(source_dir: Path, output_dir: Path | None = None) -> dict[str, Any]:
    files = list_workbooks(source_dir)
    logger.info("Surveying %d workbooks in %s", len(files), source_dir)

    surveys: list[FileSurvey] = []
    for index, path in enumerate(files, start=1):
        logger.info("[%d/%d] Surveying %s", index, len(files), path.name)
        survey = survey_file(path)
        if survey.errors:
            logger.warning("%s: %s", path.name, ", ".join(survey.errors))
        surveys.append(survey)

    columns_df = survey_columns_frame(surveys)
    unique_names = sorted(
        {name.lower().strip() for name in columns_df["column_name"].astype(str)}
    ) if not columns_df.empty else []

    summary: dict[str, Any] = {
        "survey_date": datetime.now(UTC).isoformat(),
        "source_directory": str(source_dir),
        "total_files": len(surveys),
        "files_with_errors": sum(1 for s in surveys if s.errors),
        "files_with_merged_cells": sum(1 for s in surveys if s.merged_range_count > 0),
        "unique_column_names": unique_names,
        "column_patterns": column_pattern_analysis(unique_names),
        "files": surveys,
    }

    if output_dir is not None:
        output_dir = Path(output_dir)
        write_json(summary, output_dir / OUTPUT_FILENAMES["survey_results"])
        write_dataframe(columns_df, output_dir / OUTPUT_FILENAMES["survey_columns"])

    return summary
