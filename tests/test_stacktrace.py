# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for locating failing test sources from JUnit stack traces."""

from __future__ import annotations

import json
from pathlib import Path

from skipdrive.diagnostics import SourceLocation, extract_source_location, find_kotlin_location, sourcemap_path

TRACE = """\
java.lang.AssertionError: expected:<1> but was:<2>
\tat org.junit.Assert.fail(Assert.java:89)
\tat skip.unit.XCTestCase$DefaultImpls.XCTAssertEqual(XCTestCase.kt:31)
\tat skip.lib.SkipLibTests.XCTAssertEqual(SkipLibTests.kt:99)
\tat skip.lib.SkipLibTests.testSkipLib$SkipLib_debugUnitTest(SkipLibTests.kt:16)
\tat java.base/jdk.internal.reflect.NativeMethodAccessorImpl.invoke0(Native Method)
"""


def _module(tmp_path: Path) -> tuple[Path, Path]:
    module = tmp_path / "SkipLib"
    kotlin_file = module / "src" / "test" / "kotlin" / "skip" / "lib" / "SkipLibTests.kt"
    kotlin_file.parent.mkdir(parents=True)
    kotlin_file.write_text("", encoding="utf-8")
    return module, kotlin_file


def test_first_project_frame_is_located(tmp_path: Path) -> None:
    module, kotlin_file = _module(tmp_path)
    assert find_kotlin_location(module, TRACE) == SourceLocation.at(str(kotlin_file), 16, 0)


def test_only_innermost_cause_is_inspected(tmp_path: Path) -> None:
    module, kotlin_file = _module(tmp_path)
    outer = "kotlinx.coroutines.TimeoutCancellationException\n\tat skip.lib.Other.run$x(Other.kt:1)"
    assert find_kotlin_location(module, f"{outer}\nCaused by: {TRACE}") == SourceLocation.at(str(kotlin_file), 16, 0)


def test_frames_without_sources_are_skipped(tmp_path: Path) -> None:
    assert find_kotlin_location(tmp_path / "Missing", TRACE) is None


def test_swift_location_comes_from_sourcemap(tmp_path: Path) -> None:
    module, kotlin_file = _module(tmp_path)
    sourcemap_path(kotlin_file).write_text(
        json.dumps(
            {
                "entries": [
                    {
                        "sourceFile": {"path": "/src/SkipLibTests.swift"},
                        "sourceRange": {"start": {"line": 20, "column": 8}, "end": {"line": 20, "column": 40}},
                        "range": {"start": {"line": 15, "column": 0}, "end": {"line": 17, "column": 0}},
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    kotlin, swift = extract_source_location(module, TRACE)
    assert kotlin == SourceLocation.at(str(kotlin_file), 16, 0)
    assert swift == SourceLocation.at("/src/SkipLibTests.swift", 20, 8)


def test_empty_contents_have_no_location(tmp_path: Path) -> None:
    assert extract_source_location(tmp_path, None) == (None, None)
    assert extract_source_location(tmp_path, "") == (None, None)
