from __future__ import annotations

import os
import sys
from importlib import metadata

MIN_PYTHON = (3, 11)

# Rich text reads need openpyxl 3.1; the import model uses the pydantic v2 API.
REQUIRED_PACKAGES: dict[str, tuple[int, int]] = {
    "openpyxl": (3, 1),
    "pandas": (2, 0),
    "pydantic": (2, 0),
}


def _major_minor(version: str) -> tuple[int, int]:
    parts: list[int] = []
    for piece in version.split(".")[:2]:
        digits = ""
        for ch in piece:
            if not ch.isdigit():
                break
            digits += ch
        parts.append(int(digits) if digits else 0)
    while len(parts) < 2:
        parts.append(0)
    return parts[0], parts[1]


def dependency_problems() -> list[str]:
    problems: list[str] = []
    for name, minimum in REQUIRED_PACKAGES.items():
        try:
            installed = metadata.version(name)
        except metadata.PackageNotFoundError:
            problems.append(f"{name} is not installed")
            continue
        if _major_minor(installed) < minimum:
            problems.append(f"{name} {installed} is older than {minimum[0]}.{minimum[1]}")
    return problems


def assert_runtime_compatibility() -> None:
    if os.getenv("DESCRIPTOR_IMPORT_SKIP_RUNTIME_CHECK", "0") == "1":
        return

    if sys.version_info < MIN_PYTHON:
        raise RuntimeError(
            "Unsupported Python version. Use Python 3.11+ for this project "
            f"(current: {sys.version.split()[0]})."
        )

    problems = dependency_problems()
    if problems:
        raise RuntimeError(
            "Unsupported dependencies: " + "; ".join(problems) + ". Install them via `pip install -e .`."
        )
