# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Classify Gradle and Kotlin compiler output into :class:`GradleIssue` values."""

from __future__ import annotations

import re
from typing import Final

from .models import GradleIssue, IssueKind, SourceLocation

# e.g. "e: file:///PATH/build.gradle.kts:102:17: Unresolved reference: option"
KOTLIN_ISSUE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([we]): file://(.*):([0-9]+):([0-9]+)[:]* +(.*)$")

# e.g. "/PATH/Foo.kt:10:5-12 Error:" followed by the message on the next line
GRADLE_FAILURE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^/(.*):([0-9]+):([0-9]+)-([0-9]+) (Error|Warning):$")

_FAILURE_KINDS: Final[dict[str, IssueKind]] = {
    "Error": IssueKind.ERROR,
    "Warning": IssueKind.WARNING,
}

WHAT_WENT_WRONG_BANNER: Final[str] = "* What went wrong:"

# Prefixes of a single line reporting a failure that carries no source location.
GENERIC_FAILURE_PREFIXES: Final[tuple[str, ...]] = (
    "Failed to apply plugin",
    "FAILURE: Build failed with an exception.",
    "INSTALL_FAILED",
    "Failure [INSTALL_",
    "adb: failed to install",
    "Execution failed for task",
)


def parse_kotlin_issue(line: str) -> GradleIssue | None:
    """Parse a one-line Kotlin compiler diagnostic."""

    match = KOTLIN_ISSUE_PATTERN.match(line)
    if match is None:
        return None
    kind, path, line_number, column, message = match.groups()
    return GradleIssue(
        kind=IssueKind(kind),
        message=message,
        location=SourceLocation.at(path, int(line_number), int(column)),
    )


def parse_gradle_failure(line1: str, line2: str) -> GradleIssue | None:
    """Parse a range header on ``line1`` whose message sits on ``line2``."""

    match = GRADLE_FAILURE_PATTERN.match(line1)
    if match is None:
        return None
    path, line_number, column, _end_column, kind = match.groups()
    return GradleIssue(
        kind=_FAILURE_KINDS[kind],
        message=line2.strip(),
        # the pattern consumes the leading slash
        location=SourceLocation.at("/" + path, int(line_number), int(column)),
    )


def parse_generic_failure(line1: str, line2: str) -> GradleIssue | None:
    """Recognise build failures reported without a location.

    A ``* What went wrong:`` banner on ``line1`` makes ``line2`` the error
    message. Otherwise ``line2`` is reported when it starts with one of
    :data:`GENERIC_FAILURE_PREFIXES`, unless it is the banner's own message.
    """

    message = line2.strip()
    if not message:
        return None
    if line1.strip() == WHAT_WENT_WRONG_BANNER:
        if message == WHAT_WENT_WRONG_BANNER:
            return None
        return GradleIssue(kind=IssueKind.ERROR, message=message)
    if message.startswith(GENERIC_FAILURE_PREFIXES):
        return GradleIssue(kind=IssueKind.ERROR, message=message)
    return None


def parse_gradle_output(line1: str, line2: str) -> GradleIssue | None:
    """Classify a two-line window of build output.

    Matching order, first match wins: the one-line Kotlin pattern on
    ``line1``, the range header on ``line1`` with its message on ``line2``,
    then the location-less failure heuristics.

    Args:
        line1: Previous line of output, or the current line for the first line.
        line2: Current line of output.

    Returns:
        GradleIssue | None: The recognised issue, or ``None``.
    """

    return (
        parse_kotlin_issue(line1)
        or parse_gradle_failure(line1, line2)
        or parse_generic_failure(line1, line2)
    )


__all__ = [
    "GENERIC_FAILURE_PREFIXES",
    "GRADLE_FAILURE_PATTERN",
    "KOTLIN_ISSUE_PATTERN",
    "WHAT_WENT_WRONG_BANNER",
    "parse_gradle_failure",
    "parse_gradle_output",
    "parse_generic_failure",
    "parse_kotlin_issue",
]
