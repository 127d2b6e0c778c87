from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class RawDescriptor:
    code: str
    criterion_name: str
    excellent: str
    good: str
    pass_: str
    below_pass: str
    skill_name: str
    category: str | None = None
    warnings: list[str] = field(default_factory=list)

    def level_texts(self) -> tuple[str, str, str, str]:
        return self.excellent, self.good, self.pass_, self.below_pass


@dataclass(slots=True)
class JudgementDescriptor:
    code: str
    criterion_name: str
    category: str
    level0: str
    level1: str
    level2: str
    level3: str
    skill_name: str
    warnings: list[str] = field(default_factory=list)

    def level_texts(self) -> tuple[str, str, str, str]:
        # Best first, matching excellent/good/pass/below_pass.
        return self.level3, self.level2, self.level1, self.level0


@dataclass(slots=True)
class DetectedColumn:
    name: str
    index: int


@dataclass(slots=True)
class HeaderDetection:
    header_row: int
    columns: list[DetectedColumn]


@dataclass(slots=True)
class ParseResult:
    descriptors: list[RawDescriptor] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class JudgementStats:
    total_rows: int = 0
    judgement_criteria: int = 0
    measurement_criteria: int = 0


@dataclass(slots=True)
class JudgementParseResult:
    descriptors: list[JudgementDescriptor] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: JudgementStats = field(default_factory=JudgementStats)


@dataclass(slots=True)
class BatchResult:
    batch_number: int
    record_count: int
    success: bool
    inserted_count: int
    duration_ms: float
    error: str | None = None


@dataclass(slots=True)
class ImportResult:
    total_processed: int = 0
    success_count: int = 0
    failed_count: int = 0
    duplicate_count: int = 0
    batches: list[BatchResult] = field(default_factory=list)


@dataclass(slots=True)
class FileParseResult:
    file_name: str
    parser: str
    descriptor_count: int
    valid_count: int
    invalid_count: int
    warning_count: int
    errors: list[str]
    warnings: list[str]
    source_tag: str = ""
    stats: dict[str, Any] | None = None


@dataclass(slots=True)
class ColumnSurvey:
    name: str
    index: int
    sample_values: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FileSurvey:
    file_name: str
    sheet_names: list[str] = field(default_factory=list)
    sheet_name: str | None = None
    header_row: int = 0
    row_count: int = 0
    column_count: int = 0
    merged_range_count: int = 0
    columns: list[ColumnSurvey] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
