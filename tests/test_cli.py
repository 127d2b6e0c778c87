from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook

from descriptor_import import environment
from descriptor_import.cli import main
from descriptor_import.runtime import build_import_config


def _scheme(path: Path) -> None:
    wb = Workbook()
    ws = wb.active
    ws.title = "Marking Scheme"
    ws.append(["Code", "Criterion", "Excellent", "Good", "Pass", "Below Pass"])
    ws.append(["A1", "Wears PPE at all times", "Always", "Mostly", "Sometimes", "Never"])
    wb.save(path)


def test_parse_prints_descriptors(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DESCRIPTOR_IMPORT_SKIP_RUNTIME_CHECK", "1")
    path = tmp_path / "07_Welding_Marking_Scheme.xlsx"
    _scheme(path)

    code = main(["--db", str(tmp_path / "d.db"), "parse", str(path)])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload[0]["code"] == "A1"
    assert payload[0]["pass"] == "Sometimes"
    assert payload[0]["skill_name"] == "Welding"


def test_parse_writes_csv(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("DESCRIPTOR_IMPORT_SKIP_RUNTIME_CHECK", "1")
    path = tmp_path / "07_Welding_Marking_Scheme.xlsx"
    _scheme(path)
    output = tmp_path / "out" / "descriptors.csv"

    assert main(["--db", str(tmp_path / "d.db"), "parse", str(path), "--output", str(output)]) == 0

    df = pd.read_csv(output)
    assert df["pass"].tolist() == ["Sometimes"]


def test_import_count_and_delete(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DESCRIPTOR_IMPORT_SKIP_RUNTIME_CHECK", "1")
    source = tmp_path / "schemes"
    source.mkdir()
    _scheme(source / "07_Welding_Marking_Scheme.xlsx")
    db = str(tmp_path / "d.db")

    assert main(["--db", db, "import", str(source), "--output-dir", str(tmp_path / "reports")]) == 0
    assert "Successfully imported: 1" in capsys.readouterr().out

    assert main(["--db", db, "count", "--source-tag", "WSC2024"]) == 0
    assert capsys.readouterr().out.strip() == "1"

    assert main(["--db", db, "delete", "--source-tag", "WSC2024"]) == 0
    assert "Deleted 1 descriptors" in capsys.readouterr().out


def test_build_import_config_coerces_options(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("DESCRIPTOR_IMPORT_RUNTIME_ROOT", str(tmp_path / "runtime"))
    monkeypatch.delenv("DESCRIPTOR_IMPORT_DB", raising=False)
    monkeypatch.delenv("DESCRIPTOR_IMPORT_REPORTS_ROOT", raising=False)

    config = build_import_config(
        source_dir=tmp_path,
        options={"batch_size": "0", "parser": "CIS", "dry_run": "yes", "source_tag": "  "},
    )

    assert config.batch_size == 100
    assert config.parser == "judgement"
    assert config.dry_run is True
    assert config.source_tag == "WSC2024"
    assert config.continue_on_error is True
    assert config.db_path == (tmp_path / "runtime" / "descriptors.db").resolve()
    assert config.output_dir == (tmp_path / "runtime" / "reports").resolve()


def test_dependency_checks(monkeypatch) -> None:
    assert environment._major_minor("3.1.5") == (3, 1)
    assert environment._major_minor("2.0rc1") == (2, 0)
    assert environment._major_minor("7") == (7, 0)
    assert environment.dependency_problems() == []

    monkeypatch.setattr(environment.metadata, "version", lambda name: "1.0")
    monkeypatch.delenv("DESCRIPTOR_IMPORT_SKIP_RUNTIME_CHECK", raising=False)
    problems = environment.dependency_problems()
    assert problems[0] == "openpyxl 1.0 is older than 3.1"
    with pytest.raises(RuntimeError, match="pydantic 1.0 is older than 2.0"):
        environment.assert_runtime_compatibility()


def test_parse_missing_file_reports_error(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.setenv("DESCRIPTOR_IMPORT_SKIP_RUNTIME_CHECK", "1")
    missing = tmp_path / "missing.xlsx"

    assert main(["--db", str(tmp_path / "d.db"), "parse", str(missing)]) == 1
    assert capsys.readouterr().out.startswith("ERROR: Workbook not found:")

    assert main(["--db", str(tmp_path / "d.db"), "parse", str(missing), "--parser", "judgement"]) == 1
    assert "ERROR: Workbook not found:" in capsys.readouterr().out


def test_build_import_config_source_tags(tmp_path: Path) -> None:
    default = build_import_config(source_dir=tmp_path, output_dir=tmp_path, db_path=tmp_path / "d.db")
    assert default.tag_for("tabular") == "WSC2024"
    assert default.tag_for("judgement") == "Judgement"

    explicit = build_import_config(
        source_dir=tmp_path,
        output_dir=tmp_path,
        db_path=tmp_path / "d.db",
        options={"source_tag": "WSC2026"},
    )
    assert explicit.tag_for("tabular") == "WSC2026"
    assert explicit.tag_for("judgement") == "WSC2026"
