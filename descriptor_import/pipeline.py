from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable

import pandas as pd

from .config import JUDGEMENT_SHEET_NAME, ImportConfig
from .export import (
    file_results_frame,
    invalid_descriptors_frame,
    prefixed_filename,
    write_dataframe,
    write_json,
)
from .importer import BatchImporter, CancelCheck, ImportCancelledError
from .ingest import describe_load_error, workbook_sheet_names
from .judgement_parser import parse_judgement_descriptors
from .models import FileParseResult, ImportResult
from .store import DescriptorStore, SqliteDescriptorStore
from .survey import list_workbooks
from .tabular_parser import parse_marking_scheme
from .validation import DescriptorImport, validate_descriptor_batch

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str, float], None] | None


@dataclass(slots=True)
class ImportReport:
    start_time: str
    end_time: str
    duration_seconds: float
    source_directory: str
    source_tag: str
    dry_run: bool
    file_results: list[FileParseResult]
    total_descriptors: int
    valid_descriptors: int
    invalid_descriptors: int
    existing_count: int
    deleted_count: int
    import_result: ImportResult | None
    database_count: int
    source_tags: list[str] = field(default_factory=list)
    database_counts: dict[str, int] = field(default_factory=dict)
    profile_records: list[dict[str, Any]] = field(default_factory=list)
    output_files: dict[str, Path] = field(default_factory=dict)


def _progress(progress_fn: ProgressFn, message: str, fraction: float) -> None:
    if progress_fn:
        progress_fn(message, max(0.0, min(1.0, fraction)))


def _stage(profile: list[dict[str, Any]], name: str):
    class _StageCtx:
        def __enter__(self_nonlocal):
            self_nonlocal.start = time.perf_counter()
            return self_nonlocal

        def __exit__(self_nonlocal, exc_type, exc, tb):
            elapsed = time.perf_counter() - self_nonlocal.start
            profile.append({"stage": name, "seconds": round(elapsed, 4)})

    return _StageCtx()


def resolve_parser(path: Path, parser: str) -> str:
    if parser in {"tabular", "judgement"}:
        return parser
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")
    try:
        sheet_names = workbook_sheet_names(path)
    except Exception as exc:
        logger.warning("Could not list sheets of %s (%s); using tabular parser", path.name, describe_load_error(exc))
        return "tabular"
    return "judgement" if JUDGEMENT_SHEET_NAME in sheet_names else "tabular"


def parse_and_validate(
    path: Path,
    config: ImportConfig,
) -> tuple[FileParseResult, list[DescriptorImport], list[dict[str, Any]]]:
    kind = resolve_parser(path, config.parser)
    source_tag = config.tag_for(kind)
    stats: dict[str, Any] | None = None
    if kind == "judgement":
        parsed = parse_judgement_descriptors(path)
        descriptors: list[Any] = list(parsed.descriptors)
        stats = {
            "total_rows": parsed.stats.total_rows,
            "judgement_criteria": parsed.stats.judgement_criteria,
            "measurement_criteria": parsed.stats.measurement_criteria,
        }
    else:
        parsed = parse_marking_scheme(path)
        descriptors = list(parsed.descriptors)

    validation = validate_descriptor_batch(descriptors, source=source_tag)
    file_result = FileParseResult(
        file_name=path.name,
        parser=kind,
        descriptor_count=len(descriptors),
        valid_count=len(validation.valid),
        invalid_count=len(validation.invalid),
        warning_count=len(validation.warnings),
        errors=list(parsed.errors),
        warnings=list(parsed.warnings),
        source_tag=source_tag,
        stats=stats,
    )
    return file_result, validation.valid, validation.invalid


def run_import(
    config: ImportConfig,
    store: DescriptorStore | None = None,
    progress_fn: ProgressFn = None,
    cancel_check: CancelCheck = None,
) -> ImportReport:
    started = datetime.now(UTC)
    clock = time.perf_counter()
    profile_records: list[dict[str, Any]] = []
    store = store if store is not None else SqliteDescriptorStore(config.db_path)
    importer = BatchImporter(store, batch_size=config.batch_size)

    files = list_workbooks(config.source_dir)
    logger.info("Found %d workbooks in %s", len(files), config.source_dir)

    file_results: list[FileParseResult] = []
    all_valid: list[DescriptorImport] = []
    all_invalid: list[dict[str, Any]] = []

    with _stage(profile_records, "parse_and_validate"):
        for index, path in enumerate(files, start=1):
            if cancel_check is not None and cancel_check():
                raise ImportCancelledError(f"Import cancelled before parsing {path.name}", ImportResult())

            _progress(progress_fn, f"Parsing {path.name}", 0.6 * (index - 1) / max(1, len(files)))
            file_result, valid, invalid = parse_and_validate(path, config)
            file_results.append(file_result)
            all_valid.extend(valid)
            all_invalid.extend(invalid)

            if file_result.errors:
                logger.warning("%s: errors: %s", path.name, ", ".join(file_result.errors))
            if file_result.invalid_count:
                logger.warning("%s: %d invalid descriptors skipped", path.name, file_result.invalid_count)
            logger.info("%s: %d valid descriptors", path.name, file_result.valid_count)

    total_descriptors = sum(result.descriptor_count for result in file_results)
    logger.info(
        "Parsed %d files: %d descriptors, %d valid, %d invalid",
        len(file_results),
        total_descriptors,
        len(all_valid),
        len(all_invalid),
    )

    # Only tags this run writes are counted or cleared.
    source_tags = list(dict.fromkeys(result.source_tag for result in file_results)) or [config.source_tag]
    existing_count = 0
    for tag in source_tags:
        existing = importer.count_descriptors(tag)
        if existing:
            logger.warning(
                "Found %d existing %s descriptors; duplicate (skill_name, code) rows will be skipped",
                existing,
                tag,
            )
        existing_count += existing

    deleted_count = 0
    import_result: ImportResult | None = None
    if config.dry_run:
        logger.info("Dry run: nothing written")
    else:
        with _stage(profile_records, "import"):
            if config.clear_existing:
                for tag in source_tags:
                    _progress(progress_fn, f"Deleting existing {tag} descriptors", 0.62)
                    deleted_count += importer.delete_descriptors_by_source(tag)
            if all_valid:
                _progress(progress_fn, f"Importing {len(all_valid)} descriptors", 0.65)
                import_result = importer.import_descriptors(
                    all_valid,
                    continue_on_error=config.continue_on_error,
                    cancel_check=cancel_check,
                )
            else:
                logger.info("No valid descriptors to import")

    database_counts = {tag: importer.count_descriptors(tag) for tag in source_tags}
    report = ImportReport(
        start_time=started.isoformat(),
        end_time=datetime.now(UTC).isoformat(),
        duration_seconds=round(time.perf_counter() - clock, 3),
        source_directory=str(config.source_dir),
        source_tag=config.source_tag,
        dry_run=config.dry_run,
        file_results=file_results,
        total_descriptors=total_descriptors,
        valid_descriptors=len(all_valid),
        invalid_descriptors=len(all_invalid),
        existing_count=existing_count,
        deleted_count=deleted_count,
        import_result=import_result,
        database_count=sum(database_counts.values()),
        source_tags=source_tags,
        database_counts=database_counts,
        profile_records=profile_records,
    )

    if config.write_reports:
        _progress(progress_fn, "Writing reports", 0.95)
        output_dir = Path(config.output_dir)
        report.output_files = {
            "import_report": output_dir / prefixed_filename("import_report"),
            "file_results": output_dir / prefixed_filename("file_results"),
            "invalid_descriptors": output_dir / prefixed_filename("invalid_descriptors"),
            "profiling": output_dir / prefixed_filename("profiling"),
        }
        write_dataframe(file_results_frame(file_results), report.output_files["file_results"])
        write_dataframe(invalid_descriptors_frame(all_invalid), report.output_files["invalid_descriptors"])
        write_dataframe(pd.DataFrame(profile_records), report.output_files["profiling"])
        payload = {
            key: getattr(report, key)
            for key in ImportReport.__dataclass_fields__
            if key != "output_files"
        }
        write_json(payload, report.output_files["import_report"])

    _progress(progress_fn, "Import completed", 1.0)
    return report
