# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Locate the Kotlin source line of a failing JUnit test from its stack trace.

A frame such as ``at skip.lib.SkipLibTests.testSkipLib$SkipLib(SkipLibTests.kt:16)``
is turned into ``<module>/src/test/kotlin/skip/lib/SkipLibTests.kt`` line 16,
which is then mapped back to Swift through the sourcemap.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Final

from pydantic import ValidationError

from .models import SourceLocation
from .sourcemap import find_source_map_line

CAUSED_BY_SEPARATOR: Final[str] = "\nCaused by: "

SOURCE_ROOTS: Final[tuple[str, ...]] = (
    "src/test/kotlin",
    "src/main/kotlin",
    "src/test/java",
    "src/main/java",
)

_JUNIT_FRAME_PREFIX: Final[str] = "org.junit."
_ASSERTION_WRAPPER_PREFIX: Final[str] = "skip.unit.XCTestCase"
_INLINED_ASSERTION_PREFIX: Final[str] = "skip.unit.XCTestCase$DefaultImpls"

_LOGGER = logging.getLogger(__name__)


def _parse_frame(line: str) -> tuple[str, str] | None:
    stripped = line.strip()
    if not stripped.startswith("at ") or not stripped.endswith(")"):
        return None
    parts = stripped[3:-1].split("(")
    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def _package_directory(element: str) -> Path:
    directory = Path()
    for part in element.split("."):
        # package names are lower-case; the first camel-case part is the class
        if part.lower() != part:
            break
        directory /= part
    return directory


def find_kotlin_location(module_path: Path, contents: str) -> SourceLocation | None:
    """Return the first project-owned Kotlin frame of ``contents`` that exists on disk.

    Only the innermost ``Caused by:`` section is inspected, since coroutine
    tests wrap the real call stack.

    Args:
        module_path: Root folder of the Gradle module that ran the tests.
        contents: Text of the ``<failure>`` element.

    Returns:
        SourceLocation | None: Kotlin file and line (column 0) of the failing frame.
    """

    stack_trace = contents.split(CAUSED_BY_SEPARATOR)[-1]
    skip_next = False
    for line in stack_trace.split("\n"):
        frame = _parse_frame(line)
        if frame is None:
            continue
        if skip_next:
            skip_next = False
            continue
        element, file_line = frame
        if element.startswith(_JUNIT_FRAME_PREFIX):
            continue
        if element.startswith(_ASSERTION_WRAPPER_PREFIX):
            # the next frame is the inlined assertion body with a useless line number
            skip_next = element.startswith(_INLINED_ASSERTION_PREFIX)
            continue
        if "$" not in element:
            continue

        file_parts = file_line.split(":")
        if len(file_parts) != 2 or not file_parts[0].endswith(".kt") or not file_parts[1].isdigit():
            continue
        file_name, line_number = file_parts[0], int(file_parts[1])

        package_directory = _package_directory(element)
        for root in SOURCE_ROOTS:
            candidate = module_path / root / package_directory / file_name
            if candidate.exists():
                return SourceLocation.at(str(candidate), line_number, 0)
    return None


def extract_source_location(
    module_path: Path,
    contents: str | None,
) -> tuple[SourceLocation | None, SourceLocation | None]:
    """Return the Kotlin location of a test failure and its Swift counterpart.

    Args:
        module_path: Root folder of the Gradle module that ran the tests.
        contents: Text of the ``<failure>`` element, if any.

    Returns:
        tuple[SourceLocation | None, SourceLocation | None]: Kotlin location and
        the sourcemap-derived Swift location; either may be ``None``.
    """

    if not contents:
        return None, None
    kotlin_location = find_kotlin_location(module_path, contents)
    if kotlin_location is None:
        return None, None
    try:
        swift_location = find_source_map_line(kotlin_location)
    except (OSError, ValidationError) as exc:
        _LOGGER.warning("unable to read sourcemap for %s: %s", kotlin_location.path, exc)
        swift_location = None
    return kotlin_location, swift_location


__all__ = [
    "CAUSED_BY_SEPARATOR",
    "SOURCE_ROOTS",
    "extract_source_location",
    "find_kotlin_location",
]
