from __future__ import annotations

import re
import unicodedata

_SINGLE_QUOTES_RE = re.compile("[\u2018\u2019\u201a\u201b\u2032\u2035]")
_DOUBLE_QUOTES_RE = re.compile("[\u201c\u201d\u201e\u201f\u2033\u2036]")
_BULLETS_RE = re.compile("[\u2022\u2023\u2043\u204c\u204d\u25e6\u25aa\u25ab\u25cf\u25cb\u2219\u00b7]")
_EXOTIC_SPACES_RE = re.compile("[\u00a0\u202f\u2007\u2000-\u200b]")
_DASHES_RE = re.compile("[\u2010-\u2015]")
_CONTROL_CHARS_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HORIZONTAL_SPACE_RE = re.compile(r"[ \t]+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_MULTI_SPACE_RE = re.compile(r"\s+")

# UTF-8 bytes read back as Latin-1/CP1252.
_MOJIBAKE_ACCENTS_RE = re.compile("\u00c3[\u00a9\u00a8\u00a0 \u00a2\u00ae\u00b4\u00b9\u00bb\u00a7\u00aa\u00ab\u00af]")
_MOJIBAKE_PUNCTUATION_RE = re.compile("\u00e2\u20ac")
_REPLACEMENT_CHAR_RE = re.compile("\ufffd")
_RAW_CONTROL_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f]")
_PRIVATE_USE_RE = re.compile("[\ue000-\uf8ff]")
_WHITESPACE_RE = re.compile(r"\s")

_XLSX_SUFFIX_RE = re.compile(r"\.xlsx$", re.IGNORECASE)
_LEADING_ORDINAL_RE = re.compile(r"^\d+[_\-\s]*")
_MARKING_SCHEME_SUFFIX_RE = re.compile(r"_marking_scheme.*$", re.IGNORECASE)

LONG_UNBROKEN_TEXT_LENGTH = 500


def normalize_descriptor_text(text: str | None) -> str:
    if not text:
        return ""

    normalized = unicodedata.normalize("NFC", str(text))
    normalized = _SINGLE_QUOTES_RE.sub("'", normalized)
    normalized = _DOUBLE_QUOTES_RE.sub('"', normalized)
    normalized = _BULLETS_RE.sub("-", normalized)
    normalized = _EXOTIC_SPACES_RE.sub(" ", normalized)
    normalized = _DASHES_RE.sub("-", normalized)
    normalized = _CONTROL_CHARS_RE.sub("", normalized)
    # A stripped control char may have separated a letter from its combining mark.
    normalized = unicodedata.normalize("NFC", normalized)

    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _HORIZONTAL_SPACE_RE.sub(" ", normalized)
    normalized = _EXCESS_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def detect_encoding_issues(text: str | None) -> list[str]:
    if not text:
        return []

    warnings: list[str] = []
    if _MOJIBAKE_ACCENTS_RE.search(text):
        warnings.append("Possible UTF-8 mojibake detected (French accents)")
    if _MOJIBAKE_PUNCTUATION_RE.search(text):
        warnings.append("Possible UTF-8 mojibake detected (smart quotes/dashes)")
    if _REPLACEMENT_CHAR_RE.search(text):
        warnings.append("Unicode replacement character found (encoding failure)")
    if _RAW_CONTROL_RE.search(text):
        warnings.append("Control characters detected (may indicate encoding issues)")
    if _PRIVATE_USE_RE.search(text):
        warnings.append("Private use area characters found (font-specific symbols)")
    if len(text) > LONG_UNBROKEN_TEXT_LENGTH and not _WHITESPACE_RE.search(text):
        warnings.append("Very long string without whitespace (possible encoding issue)")
    return warnings


def extract_skill_name_from_filename(filename: str) -> str:
    name = _XLSX_SUFFIX_RE.sub("", filename)
    name = _LEADING_ORDINAL_RE.sub("", name)
    name = _MARKING_SCHEME_SUFFIX_RE.sub("", name)
    name = name.replace("_", " ")
    name = _MULTI_SPACE_RE.sub(" ", name)
    return name.strip()


def merge_warnings(*groups: list[str]) -> list[str]:
    merged: list[str] = []
    seen: set[str] = set()
    for group in groups:
        for warning in group:
            if warning in seen:
                continue
            seen.add(warning)
            merged.append(warning)
    return merged
