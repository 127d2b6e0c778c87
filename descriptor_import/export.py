from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Iterable

import pandas as pd

from .models import FileParseResult, JudgementDescriptor, RawDescriptor

OUTPUT_FILENAMES = {
    "import_report": "import_report.json",
    "file_results": "file_results.csv",
    "invalid_descriptors": "invalid_descriptors.csv",
    "descriptors": "descriptors.csv",
    "survey_results": "survey_results.json",
    "survey_columns": "survey_columns.csv",
    "profiling": "profiling_summary.csv",
}


def to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True)
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    return value


def descriptors_frame(descriptors: Iterable[RawDescriptor | JudgementDescriptor]) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for descriptor in descriptors:
        row = asdict(descriptor)
        if "pass_" in row:
            row["pass"] = row.pop("pass_")
        row["warnings"] = "; ".join(descriptor.warnings)
        rows.append(row)
    return pd.DataFrame(rows)


def file_results_frame(results: Iterable[FileParseResult]) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for result in results:
        rows.append(
            {
                "file_name": result.file_name,
                "parser": result.parser,
                "source_tag": result.source_tag,
                "descriptor_count": result.descriptor_count,
                "valid_count": result.valid_count,
                "invalid_count": result.invalid_count,
                "warning_count": result.warning_count,
                "errors": "; ".join(result.errors),
                "warnings": "; ".join(result.warnings),
            }
        )
    return pd.DataFrame(rows)


def invalid_descriptors_frame(invalid: Iterable[dict[str, Any]]) -> pd.DataFrame:
    rows: list[dict[str, Any]] = []
    for item in invalid:
        record = item["record"]
        rows.append(
            {
                "skill_name": record.skill_name,
                "code": record.code,
                "criterion_name": record.criterion_name,
                "errors": "; ".join(item["errors"]),
            }
        )
    return pd.DataFrame(rows, columns=["skill_name", "code", "criterion_name", "errors"])


def write_dataframe(df: pd.DataFrame, path: Path) -> None:
    if df is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


def write_json(payload: dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(to_jsonable(payload), f, indent=2, ensure_ascii=False)


def prefixed_filename(name: str, prefix: str = "") -> str:
    base = OUTPUT_FILENAMES[name]
    if not prefix:
        return base
    return f"{prefix}{base}"
