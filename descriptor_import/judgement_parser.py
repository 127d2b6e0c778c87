from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from .config import JUDGEMENT_COLUMNS, JUDGEMENT_LEVEL_ROWS, JUDGEMENT_SHEET_NAME
from .ingest import CellReader, describe_load_error, open_workbook
from .models import JudgementDescriptor, JudgementParseResult
from .normalization import extract_skill_name_from_filename, normalize_descriptor_text

logger = logging.getLogger(__name__)

_CRITERION_ID_RE = re.compile(r"^[A-Z]\d+$")
_SCORE_RE = re.compile(r"^[+-]?\d+")

MIN_JUDGEMENT_NAME_LENGTH = 3
BLOCK_STRIDE = JUDGEMENT_LEVEL_ROWS + 1


@dataclass(slots=True)
class _BlockState:
    current_criterion_id: str = ""
    current_category: str = ""


def _parse_score(text: str) -> int | None:
    match = _SCORE_RE.match(text.strip())
    if not match:
        return None
    score = int(match.group(0))
    if 0 <= score <= 3:
        return score
    return None


def _read_levels(reader: CellReader, row: int) -> dict[int, str]:
    levels: dict[int, str] = {}
    for offset in range(1, JUDGEMENT_LEVEL_ROWS + 1):
        level_row = row + offset
        if level_row > reader.max_row:
            break
        score = _parse_score(reader.read(level_row, JUDGEMENT_COLUMNS["judge_score"]))
        description = normalize_descriptor_text(
            reader.read(level_row, JUDGEMENT_COLUMNS["level_description"])
        )
        if score is not None and description:
            levels[score] = description
    return levels


def _walk_rows(reader: CellReader, skill_name: str, result: JudgementParseResult) -> None:
    stats = result.stats
    state = _BlockState()

    i = 1
    while i <= reader.max_row:
        sub_criterion_id = reader.read(i, JUDGEMENT_COLUMNS["sub_criterion_id"]).strip()
        if _CRITERION_ID_RE.match(sub_criterion_id):
            state.current_criterion_id = sub_criterion_id
            category_name = reader.read(i, JUDGEMENT_COLUMNS["sub_criterion_name"]).strip()
            if category_name:
                state.current_category = normalize_descriptor_text(category_name)
            i += 1
            continue

        aspect_type = reader.read(i, JUDGEMENT_COLUMNS["aspect_type"]).strip().upper()

        if aspect_type == "M":
            stats.measurement_criteria += 1
            i += 1
            continue

        if aspect_type != "J":
            i += 1
            continue

        stats.judgement_criteria += 1
        criterion_name = normalize_descriptor_text(
            reader.read(i, JUDGEMENT_COLUMNS["aspect_description"])
        )
        if len(criterion_name) < MIN_JUDGEMENT_NAME_LENGTH:
            i += 1
            continue

        levels = _read_levels(reader, i)
        if not levels:
            result.warnings.append(f'No level descriptions found for "{criterion_name}" at row {i}')
            i += 1
            continue

        warnings: list[str] = []
        if len(levels) < JUDGEMENT_LEVEL_ROWS:
            warnings.append(f"Only {len(levels)}/{JUDGEMENT_LEVEL_ROWS} levels found")

        if state.current_criterion_id:
            code = f"{state.current_criterion_id}-{stats.judgement_criteria}"
        else:
            code = f"J{stats.judgement_criteria}"

        result.descriptors.append(
            JudgementDescriptor(
                code=code,
                criterion_name=criterion_name,
                category=state.current_category,
                level0=levels.get(0, ""),
                level1=levels.get(1, ""),
                level2=levels.get(2, ""),
                level3=levels.get(3, ""),
                skill_name=skill_name,
                warnings=warnings,
            )
        )
        # Fixed-size block: the J row plus its level rows, however many were usable.
        i += BLOCK_STRIDE


def parse_judgement_descriptors(file_path: Path | str) -> JudgementParseResult:
    path = Path(file_path)
    result = JudgementParseResult()
    skill_name = extract_skill_name_from_filename(path.name)

    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")

    try:
        workbook = open_workbook(path)
    except Exception as exc:
        result.errors.append(describe_load_error(exc))
        return result

    try:
        if JUDGEMENT_SHEET_NAME not in workbook.sheetnames:
            result.errors.append(f'No "{JUDGEMENT_SHEET_NAME}" worksheet found')
            return result

        reader = CellReader(workbook[JUDGEMENT_SHEET_NAME])
        result.stats.total_rows = reader.max_row
        _walk_rows(reader, skill_name, result)
    except Exception as exc:
        logger.exception("Unexpected failure while parsing %s", path.name)
        result.descriptors.clear()
        result.errors.append(describe_load_error(exc))
    finally:
        workbook.close()

    logger.debug(
        "%s: %d judgement, %d measurement criteria, %d descriptors",
        path.name,
        result.stats.judgement_criteria,
        result.stats.measurement_criteria,
        len(result.descriptors),
    )
    return result
