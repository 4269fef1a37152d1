# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build diagnostic classification and sourcemap remapping."""

from __future__ import annotations

from .classifier import (
    GENERIC_FAILURE_PREFIXES,
    GRADLE_FAILURE_PATTERN,
    KOTLIN_ISSUE_PATTERN,
    parse_gradle_output,
)
from .models import GradleIssue, IssueKind, SourceLocation, SourcePosition
from .scanner import GradleOutputScanner, resolve_location_symlink
from .sourcemap import SourceMap, SourceMapEntry, SourceRange, find_source_map_line, sourcemap_path
from .stacktrace import extract_source_location, find_kotlin_location

__all__ = [
    "GENERIC_FAILURE_PREFIXES",
    "GRADLE_FAILURE_PATTERN",
    "KOTLIN_ISSUE_PATTERN",
    "GradleIssue",
    "GradleOutputScanner",
    "IssueKind",
    "SourceLocation",
    "SourceMap",
    "SourceMapEntry",
    "SourcePosition",
    "SourceRange",
    "extract_source_location",
    "find_kotlin_location",
    "find_source_map_line",
    "parse_gradle_output",
    "resolve_location_symlink",
    "sourcemap_path",
]
