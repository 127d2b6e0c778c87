from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .config import BATCH_SIZE, DEFAULT_SOURCE_TAG, JUDGEMENT_SOURCE_TAG, ImportConfig

PARSER_ALIASES: dict[str, str] = {
    "auto": "auto",
    "tabular": "tabular",
    "excel": "tabular",
    "marking-scheme": "tabular",
    "judgement": "judgement",
    "judgment": "judgement",
    "cis": "judgement",
}


def runtime_root() -> Path:
    return Path(os.getenv("DESCRIPTOR_IMPORT_RUNTIME_ROOT", "runtime")).resolve()


def descriptors_db_path() -> Path:
    return Path(os.getenv("DESCRIPTOR_IMPORT_DB", str(runtime_root() / "descriptors.db"))).resolve()


def reports_root() -> Path:
    return Path(os.getenv("DESCRIPTOR_IMPORT_REPORTS_ROOT", str(runtime_root() / "reports"))).resolve()


def ensure_runtime_dirs() -> None:
    runtime_root().mkdir(parents=True, exist_ok=True)
    reports_root().mkdir(parents=True, exist_ok=True)


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def _bool(value: Any, default: bool) -> bool:
    if value is None:
        return bool(default)
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def _normalize_parser(parser: Any) -> str:
    key = str(parser or "auto").strip().lower()
    return PARSER_ALIASES.get(key, "auto")


def build_import_config(
    *,
    source_dir: Path,
    output_dir: Path | None = None,
    db_path: Path | None = None,
    options: dict[str, Any] | None = None,
) -> ImportConfig:
    options = options or {}
    batch_size = _int(options.get("batch_size"), BATCH_SIZE)
    if batch_size < 1:
        batch_size = BATCH_SIZE
    explicit_tag = str(options.get("source_tag") or "").strip()
    # An explicit tag applies to every workbook; otherwise CIS exports keep their own tag.
    source_tag = explicit_tag or DEFAULT_SOURCE_TAG
    judgement_source_tag = explicit_tag or JUDGEMENT_SOURCE_TAG

    return ImportConfig(
        source_dir=Path(source_dir),
        output_dir=Path(output_dir) if output_dir is not None else reports_root(),
        db_path=Path(db_path) if db_path is not None else descriptors_db_path(),
        source_tag=source_tag,
        judgement_source_tag=judgement_source_tag,
        parser=_normalize_parser(options.get("parser")),
        batch_size=batch_size,
        continue_on_error=_bool(options.get("continue_on_error"), True),
        dry_run=_bool(options.get("dry_run"), False),
        clear_existing=_bool(options.get("clear_existing"), False),
        write_reports=_bool(options.get("write_reports"), True),
    )
