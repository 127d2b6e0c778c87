from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

ParserKind = Literal["auto", "tabular", "judgement"]

DEFAULT_SOURCE_TAG = "WSC2024"
JUDGEMENT_SOURCE_TAG = "Judgement"
BATCH_SIZE = 100


@dataclass(slots=True)
class ImportConfig:
    source_dir: Path
    output_dir: Path
    db_path: Path
    source_tag: str = DEFAULT_SOURCE_TAG
    judgement_source_tag: str = JUDGEMENT_SOURCE_TAG
    parser: ParserKind = "auto"
    batch_size: int = BATCH_SIZE
    continue_on_error: bool = True
    dry_run: bool = False
    clear_existing: bool = False
    write_reports: bool = True

    def tag_for(self, parser: str) -> str:
        return self.judgement_source_tag if parser == "judgement" else self.source_tag


# Ordered: the first matching column wins for each field.
COLUMN_PATTERNS: dict[str, tuple[str, ...]] = {
    "code": ("code", "id", "ref", "no", "number", "aspect"),
    "criterion_name": (
        "criterion",
        "criteria",
        "descriptor",
        "description",
        "aspect",
        "sub-aspect",
        "sub aspect",
    ),
    "excellent": ("excellent", "exc", "outstanding", "4", "four"),
    "good": ("good", "satisfactory", "3", "three"),
    "pass": ("pass", "acceptable", "adequate", "2", "two", "sufficient"),
    "below_pass": (
        "below",
        "poor",
        "unsatisfactory",
        "fail",
        "1",
        "one",
        "insufficient",
        "below pass",
    ),
    "category": ("category", "section", "module", "area"),
}

HEADER_TERMS: tuple[str, ...] = (
    "criterion",
    "descriptor",
    "excellent",
    "good",
    "pass",
    "code",
    "aspect",
)

HEADER_SCAN_ROWS = 20
HEADER_FALLBACK_SCAN_ROWS = 10
HEADER_MIN_CELLS = 3

PREFERRED_SHEET_NAMES: tuple[str, ...] = ("Marking Scheme", "MS")
SHEET_NAME_HINTS: tuple[str, ...] = ("mark", "criteria")

JUDGEMENT_SHEET_NAME = "CIS Marking Scheme Import"

# Fixed CIS export layout, 1-based column indexes.
JUDGEMENT_COLUMNS: dict[str, int] = {
    "sub_criterion_id": 1,
    "sub_criterion_name": 2,
    "aspect_type": 4,
    "aspect_description": 5,
    "judge_score": 6,
    "level_description": 7,
}
JUDGEMENT_LEVEL_ROWS = 4

MAX_CATEGORY_LENGTH = 100
MAX_CRITERION_NAME_LENGTH = 500
MAX_LEVEL_TEXT_LENGTH = 2000
