from __future__ import annotations

import pytest

from descriptor_import.normalization import (
    detect_encoding_issues,
    extract_skill_name_from_filename,
    merge_warnings,
    normalize_descriptor_text,
)

SAMPLES = [
    "",
    "Already canonical text",
    "Good \u2018quality\u2019 \u2022 item",
    "Caf\u0065\u0301 \u201cquoted\u201d \u2013 dash\u00a0space",
    "line one\r\nline two\r\rline three\n\n\n\n\nline four",
    "  tabs\t\tand   spaces  ",
    "e\x01\u0301 control between letter and accent",
    "\u25cf bullet\n\u25e6 hollow\n\u00b7 dot",
]


@pytest.mark.parametrize("text", SAMPLES)
def test_normalize_is_idempotent(text: str) -> None:
    once = normalize_descriptor_text(text)
    assert normalize_descriptor_text(once) == once


def test_normalize_quotes_and_bullets() -> None:
    assert normalize_descriptor_text("Good \u2018quality\u2019 \u2022 item") == "Good 'quality' - item"


def test_normalize_handles_missing_input() -> None:
    assert normalize_descriptor_text(None) == ""
    assert normalize_descriptor_text("") == ""


def test_normalize_spaces_dashes_and_composition() -> None:
    text = "Cafe\u0301\u00a0\u2014\u2009\u201cdone\u201d"
    assert normalize_descriptor_text(text) == 'Caf\u00e9 - "done"'


def test_normalize_whitespace_and_line_endings() -> None:
    text = "  first\t\t line\r\nsecond\r\n\r\n\r\n\r\nthird\x07  "
    assert normalize_descriptor_text(text) == "first line\nsecond\n\nthird"


def test_detect_replacement_character() -> None:
    warnings = detect_encoding_issues("Broken \ufffd text")
    assert any("replacement character" in w for w in warnings)


def test_detect_nothing_for_plain_ascii() -> None:
    assert detect_encoding_issues("Plain ASCII text, nothing odd here.") == []
    assert detect_encoding_issues("") == []


def test_detect_mojibake_and_multiple_issues() -> None:
    warnings = detect_encoding_issues("Qualit\u00c3\u00a9 \u00e2\u20ac\u2122s \ue001")
    assert "Possible UTF-8 mojibake detected (French accents)" in warnings
    assert "Possible UTF-8 mojibake detected (smart quotes/dashes)" in warnings
    assert "Private use area characters found (font-specific symbols)" in warnings


def test_detect_control_characters_and_long_unbroken_text() -> None:
    assert any("Control characters" in w for w in detect_encoding_issues("bad\x02value"))
    assert any("without whitespace" in w for w in detect_encoding_issues("x" * 501))
    assert detect_encoding_issues("x" * 500) == []


def test_extract_skill_name_from_filename() -> None:
    assert extract_skill_name_from_filename("01_Industrial_Mechanics_marking_scheme (f).xlsx") == "Industrial Mechanics"
    assert extract_skill_name_from_filename("12-Web_Technologies_MARKING_SCHEME.XLSX") == "Web Technologies"
    assert extract_skill_name_from_filename("Cooking.xlsx") == "Cooking"


def test_merge_warnings_keeps_first_occurrence_order() -> None:
    assert merge_warnings(["a", "b"], ["b", "c"], []) == ["a", "b", "c"]
