# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the streaming output scanner."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from skipdrive.diagnostics import GradleOutputScanner, IssueKind, sourcemap_path
from skipdrive.streams import BufferedOutputByteStream

BUILD_FAILURE = """\
> Task :app:compileDebugKotlin FAILED

FAILURE: Build failed with an exception.

* What went wrong:
Execution failed for task ':app:compileDebugKotlin'.
> A failure occurred while executing KotlinCompileDaemon
"""


def _scan(scanner: GradleOutputScanner, text: str) -> None:
    for line in text.splitlines():
        scanner.scan(line)
    scanner.finish()


def test_single_kotlin_line_is_reported_once() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(scanner, "e: file:///tmp/Foo.kt:12:13 Compile Error")
    assert sink.text() == "/tmp/Foo.kt:12:13: error: Compile Error\n"
    assert scanner.error_count == 1


def test_last_line_is_scanned_on_finish() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    scanner.scan("> Task :app:compileKotlin")
    scanner.scan("w: file:///tmp/Bar.kt:1:2 Deprecated")
    assert sink.text() == ""
    scanner.finish()
    assert sink.text() == "/tmp/Bar.kt:1:2: warning: Deprecated\n"


def test_consecutive_kotlin_lines_are_each_reported() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(
        scanner,
        "e: file:///tmp/A.kt:1:1 first\ne: file:///tmp/B.kt:2:2 second\ne: file:///tmp/C.kt:3:3 third",
    )
    assert sink.text().splitlines() == [
        "/tmp/A.kt:1:1: error: first",
        "/tmp/B.kt:2:2: error: second",
        "/tmp/C.kt:3:3: error: third",
    ]


def test_build_failure_trace_reports_each_error_once() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(scanner, BUILD_FAILURE)
    assert sink.text().splitlines() == [
        "error: FAILURE: Build failed with an exception.",
        "error: Execution failed for task ':app:compileDebugKotlin'.",
    ]
    assert all(issue.location is None for issue in scanner.issues)


def test_errors_only_drops_warnings() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink, errors_only=True)
    _scan(scanner, "w: file:///tmp/A.kt:1:1 careful\ne: file:///tmp/B.kt:2:2 broken")
    assert sink.text() == "/tmp/B.kt:2:2: error: broken\n"
    assert [issue.kind for issue in scanner.issues] == [IssueKind.ERROR]


def test_remapped_location_precedes_generated_one(tmp_path: Path) -> None:
    kotlin_file = tmp_path / "Foo.kt"
    kotlin_file.write_text("", encoding="utf-8")
    sourcemap_path(kotlin_file).write_text(
        json.dumps(
            {
                "entries": [
                    {
                        "sourceFile": {"path": "/src/Foo.swift"},
                        "sourceRange": {"start": {"line": 3, "column": 2}, "end": {"line": 5, "column": 0}},
                        "range": {"start": {"line": 10, "column": 0}, "end": {"line": 15, "column": 0}},
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(scanner, f"e: file://{kotlin_file}:12:4 Type mismatch")
    assert sink.text().splitlines() == [
        "/src/Foo.swift:3:2: error: Type mismatch",
        f"{kotlin_file}:12:4: error: Type mismatch",
    ]


def test_unreadable_sourcemap_keeps_generated_location(tmp_path: Path) -> None:
    kotlin_file = tmp_path / "Foo.kt"
    sourcemap_path(kotlin_file).write_text("{not json", encoding="utf-8")
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(scanner, f"e: file://{kotlin_file}:1:1 oops")
    assert sink.text() == f"{kotlin_file}:1:1: error: oops\n"


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinked_locations_are_resolved(tmp_path: Path) -> None:
    real = tmp_path / "real" / "Foo.kt"
    real.parent.mkdir()
    real.write_text("", encoding="utf-8")
    link = tmp_path / "Foo.kt"
    link.symlink_to(real)
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink, resolve_symlinks=True)
    _scan(scanner, f"e: file://{link}:2:3 broken")
    assert sink.text() == f"{real}:2:3: error: broken\n"


def test_failure_line_after_kotlin_diagnostic_is_reported() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(
        scanner,
        "e: file:///tmp/Foo.kt:12:13 Compile Error\n"
        "Execution failed for task ':app:compileKotlin'.\n"
        "> Compilation error. See log for more details",
    )
    assert sink.text().splitlines() == [
        "/tmp/Foo.kt:12:13: error: Compile Error",
        "error: Execution failed for task ':app:compileKotlin'.",
    ]
    assert scanner.error_count == 2


def test_failure_line_after_kotlin_diagnostic_on_last_line_is_reported_once() -> None:
    sink = BufferedOutputByteStream()
    scanner = GradleOutputScanner(sink)
    _scan(scanner, "w: file:///tmp/Foo.kt:1:2 careful\nFAILURE: Build failed with an exception.")
    assert sink.text().splitlines() == [
        "/tmp/Foo.kt:1:2: warning: careful",
        "error: FAILURE: Build failed with an exception.",
    ]
