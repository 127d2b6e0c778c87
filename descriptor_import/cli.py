from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from .config import DEFAULT_SOURCE_TAG, JUDGEMENT_SOURCE_TAG
from .environment import assert_runtime_compatibility
from .export import descriptors_frame, to_jsonable, write_dataframe
from .importer import BatchImporter, ImportAbortedError, ImportCancelledError
from .judgement_parser import parse_judgement_descriptors
from .pipeline import resolve_parser, run_import
from .runtime import build_import_config, descriptors_db_path, ensure_runtime_dirs
from .store import SqliteDescriptorStore
from .survey import survey_directory
from .tabular_parser import parse_marking_scheme


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="descriptor-import",
        description="Parse marking-scheme workbooks into descriptors and bulk-import them.",
    )
    parser.add_argument("--db", default=None, help="SQLite database path (default: $DESCRIPTOR_IMPORT_DB)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    parse_cmd = sub.add_parser("parse", help="Parse one workbook and print or export its descriptors")
    parse_cmd.add_argument("file", help="Path to an .xlsx marking scheme")
    parse_cmd.add_argument("--parser", choices=["auto", "tabular", "judgement"], default="auto")
    parse_cmd.add_argument("--output", default=None, help="Write descriptors to this CSV file")

    import_cmd = sub.add_parser("import", help="Parse and import every workbook in a directory")
    import_cmd.add_argument("source_dir", help="Directory containing .xlsx marking schemes")
    import_cmd.add_argument("--output-dir", default=None, help="Directory for the import report")
    import_cmd.add_argument("--parser", choices=["auto", "tabular", "judgement"], default="auto")
    import_cmd.add_argument(
        "--source-tag",
        default=None,
        help=f"Tag for every imported row (default: {DEFAULT_SOURCE_TAG}, CIS exports {JUDGEMENT_SOURCE_TAG})",
    )
    import_cmd.add_argument("--batch-size", type=int, default=100)
    import_cmd.add_argument("--dry-run", action="store_true", help="Validate without inserting")
    import_cmd.add_argument("--clear-existing", action="store_true", help="Delete rows of the source tag first")
    import_cmd.add_argument("--stop-on-error", action="store_true", help="Abort at the first failed batch")

    count_cmd = sub.add_parser("count", help="Count stored descriptors")
    count_cmd.add_argument("--source-tag", default=None)

    delete_cmd = sub.add_parser("delete", help="Delete stored descriptors of one source tag")
    delete_cmd.add_argument("--source-tag", required=True)

    survey_cmd = sub.add_parser("survey", help="Report the structure of every workbook in a directory")
    survey_cmd.add_argument("source_dir")
    survey_cmd.add_argument("--output-dir", default=None)
    return parser


def _db_path(args: argparse.Namespace) -> Path:
    return Path(args.db) if args.db else descriptors_db_path()


def _cmd_parse(args: argparse.Namespace) -> int:
    path = Path(args.file)
    try:
        kind = resolve_parser(path, args.parser)
        parsed = parse_judgement_descriptors(path) if kind == "judgement" else parse_marking_scheme(path)
    except FileNotFoundError as exc:
        print(f"ERROR: {exc}")
        return 1

    for error in parsed.errors:
        print(f"ERROR: {error}")
    for warning in parsed.warnings:
        print(f"WARNING: {warning}")

    frame = descriptors_frame(parsed.descriptors)
    if args.output:
        write_dataframe(frame, Path(args.output))
        print(f"Wrote {len(parsed.descriptors)} descriptors to {args.output}")
    else:
        print(frame.to_json(orient="records", force_ascii=False, indent=2))
    return 1 if parsed.errors else 0


def _cmd_import(args: argparse.Namespace) -> int:
    config = build_import_config(
        source_dir=Path(args.source_dir),
        output_dir=Path(args.output_dir) if args.output_dir else None,
        db_path=_db_path(args),
        options={
            "parser": args.parser,
            "source_tag": args.source_tag,
            "batch_size": args.batch_size,
            "dry_run": args.dry_run,
            "clear_existing": args.clear_existing,
            "continue_on_error": not args.stop_on_error,
        },
    )

    def progress(message: str, fraction: float) -> None:
        pct = round(fraction * 100, 1)
        print(f"[{pct:>5}%] {message}")

    try:
        report = run_import(config, progress_fn=progress)
    except (ImportAbortedError, ImportCancelledError) as exc:
        print(f"\n=== Import stopped ===\n{exc}")
        print(json.dumps(to_jsonable(exc.result), indent=2))
        return 1

    print("\n=== Import complete ===")
    print(f"Files processed: {len(report.file_results)}")
    print(f"Total descriptors found: {report.total_descriptors}")
    print(f"Valid for import: {report.valid_descriptors}")
    print(f"Invalid (skipped): {report.invalid_descriptors}")
    if report.import_result is not None:
        result = report.import_result
        print(f"Successfully imported: {result.success_count}")
        print(f"Duplicates skipped: {result.duplicate_count}")
        print(f"Failed: {result.failed_count}")
    for tag, count in report.database_counts.items():
        print(f"{tag} descriptors in database: {count}")
    if report.output_files:
        print("\nGenerated files:")
        for key, path in report.output_files.items():
            print(f"- {key}: {path}")
    failed = report.import_result.failed_count if report.import_result else 0
    return 1 if failed else 0


def _cmd_count(args: argparse.Namespace) -> int:
    importer = BatchImporter(SqliteDescriptorStore(_db_path(args)))
    print(importer.count_descriptors(args.source_tag))
    return 0


def _cmd_delete(args: argparse.Namespace) -> int:
    importer = BatchImporter(SqliteDescriptorStore(_db_path(args)))
    deleted = importer.delete_descriptors_by_source(args.source_tag)
    print(f"Deleted {deleted} descriptors with source {args.source_tag!r}")
    return 0


def _cmd_survey(args: argparse.Namespace) -> int:
    output_dir = Path(args.output_dir) if args.output_dir else None
    summary = survey_directory(Path(args.source_dir), output_dir=output_dir)
    print("\n=== Survey summary ===")
    print(f"Total files surveyed: {summary['total_files']}")
    print(f"Files with errors: {summary['files_with_errors']}")
    print(f"Files with merged cells: {summary['files_with_merged_cells']}")
    print(f"Unique column names found: {len(summary['unique_column_names'])}")
    for pattern, matches in summary["column_patterns"].items():
        print(f'  "{pattern}": {", ".join(matches)}')
    return 0


COMMANDS = {
    "parse": _cmd_parse,
    "import": _cmd_import,
    "count": _cmd_count,
    "delete": _cmd_delete,
    "survey": _cmd_survey,
}


def main(argv: list[str] | None = None) -> int:
    assert_runtime_compatibility()
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.db is None:
        ensure_runtime_dirs()
    return COMMANDS[args.command](args)


if __name__ == "__main__":
    raise SystemExit(main())
