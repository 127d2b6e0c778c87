from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_SOURCE_TAG, MAX_CRITERION_NAME_LENGTH, MAX_LEVEL_TEXT_LENGTH
from .models import JudgementDescriptor, RawDescriptor

ParsedDescriptor = RawDescriptor | JudgementDescriptor


class DescriptorImport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(min_length=1)
    criterion_name: str = Field(min_length=2)
    excellent: str | None = None
    good: str | None = None
    pass_: str | None = Field(default=None, alias="pass")
    below_pass: str | None = None
    category: str | None = None
    skill_name: str = Field(min_length=1)
    sector: str | None = None
    source: str = DEFAULT_SOURCE_TAG
    version: int = Field(default=1, gt=0)
    tags: list[str] = Field(default_factory=list)


@dataclass(slots=True)
class ValidationResult:
    valid: bool
    errors: list[str]
    warnings: list[str]
    data: DescriptorImport | None = None


@dataclass(slots=True)
class BatchValidation:
    valid: list[DescriptorImport] = field(default_factory=list)
    invalid: list[dict[str, Any]] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)


def _structural_errors(record: ParsedDescriptor, levels: tuple[str, ...]) -> list[str]:
    errors: list[str] = []
    code = (record.code or "").strip()
    criterion_name = record.criterion_name or ""
    skill_name = (record.skill_name or "").strip()

    if not code:
        errors.append("Missing code")
    if len(criterion_name.strip()) < 2:
        errors.append("Criterion name too short or missing")
    if not skill_name:
        errors.append("Missing skill name")
    if len(criterion_name) < 5 and not any(levels):
        errors.append("Descriptor has no meaningful content")
    return errors


def _quality_warnings(record: ParsedDescriptor, levels: tuple[str, ...]) -> list[str]:
    warnings: list[str] = []
    if not any(levels):
        warnings.append("No performance levels defined")
    if len(record.criterion_name or "") > MAX_CRITERION_NAME_LENGTH:
        warnings.append(f"Criterion name is unusually long (>{MAX_CRITERION_NAME_LENGTH} chars)")
    if any(len(level) > MAX_LEVEL_TEXT_LENGTH for level in levels):
        warnings.append(f"Performance level text is unusually long (>{MAX_LEVEL_TEXT_LENGTH} chars)")
    return warnings


def validate_descriptor(record: ParsedDescriptor, source: str = DEFAULT_SOURCE_TAG) -> ValidationResult:
    levels = tuple(text or "" for text in record.level_texts())
    errors = _structural_errors(record, levels)
    warnings = [*record.warnings, *_quality_warnings(record, levels)]

    if errors:
        return ValidationResult(valid=False, errors=errors, warnings=warnings)

    excellent, good, pass_, below_pass = levels
    data = DescriptorImport(
        code=record.code.strip(),
        criterion_name=record.criterion_name.strip(),
        excellent=excellent or None,
        good=good or None,
        pass_=pass_ or None,
        below_pass=below_pass or None,
        category=record.category or None,
        skill_name=record.skill_name.strip(),
        sector=None,
        source=source,
        version=1,
        tags=[],
    )
    return ValidationResult(valid=True, errors=[], warnings=warnings, data=data)


def validate_descriptor_batch(
    records: list[ParsedDescriptor],
    source: str = DEFAULT_SOURCE_TAG,
) -> BatchValidation:
    batch = BatchValidation()
    for record in records:
        result = validate_descriptor(record, source=source)
        if result.valid and result.data is not None:
            batch.valid.append(result.data)
        else:
            batch.invalid.append({"record": record, "errors": result.errors})
        if result.warnings:
            batch.warnings.append({"record": record, "warnings": result.warnings})
    return batch
