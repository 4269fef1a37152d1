# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the JUnit console summary."""

from __future__ import annotations

import io
from pathlib import Path

from skipdrive.junit import TestCase, TestFailure, TestSuite, module_name_for, summarize_test_results
from skipdrive.logging import BuildLogger
from skipdrive.streams import BufferedOutputByteStream

FAILURE_TRACE = (
    "java.lang.AssertionError: nope\n"
    "\tat skip.lib.SkipLibTests.testFails$SkipLib_debugUnitTest(SkipLibTests.kt:22)\n"
)


def _suite() -> TestSuite:
    return TestSuite(
        name="skip.lib.SkipLibTests",
        tests=3,
        failures=1,
        errors=0,
        time=0.6,
        test_cases=(
            TestCase(name="testPasses$SkipLib_debugUnitTest", classname="skip.lib.SkipLibTests", time=0.1),
            TestCase(
                name="testFails$SkipLib_debugUnitTest",
                classname="skip.lib.SkipLibTests",
                time=0.5,
                failures=(TestFailure(message="testSkipModule(): nope", contents=FAILURE_TRACE),),
            ),
            TestCase(name="testLater", classname="skip.lib.SkipLibTests", time=0.0, skipped=True),
        ),
        system_out="line one\nline two\n",
    )


def test_summary_counts_and_lines(logger: BuildLogger, log_output: io.StringIO) -> None:
    summary = summarize_test_results([_suite()], logger)

    assert (summary.tests, summary.passed, summary.failed, summary.skipped) == (3, 1, 1, 1)
    assert summary.failed_names == ["skip.lib.SkipLibTests.testFails"]
    assert summary.pass_percentage == 33

    output = log_output.getvalue()
    assert "JUNIT TEST STDOUT: SkipLibTests:" in output
    assert "STDOUT> line one" in output
    assert "JUNIT TEST PASSED SkipLibTests.testPasses (0.1)" in output
    assert "JUNIT TEST FAILED SkipLibTests.testFails (0.5)" in output
    assert "JUNIT TEST SKIPPED SkipLibTests.testLater\n" in output
    assert "JUNIT TEST SUITE: SkipLibTests: PASSED 1 FAILED 1 SKIPPED 1 TIME 0.6" in output
    assert "JUNIT SUITES 1 TESTS 3 PASSED 1 (33%) FAILED 1 SKIPPED 1 TIME 0.6" in output


def test_all_passing_run_reports_success(logger: BuildLogger, log_output: io.StringIO) -> None:
    suite = TestSuite(
        name="Only",
        tests=1,
        failures=0,
        errors=0,
        time=0.1,
        test_cases=(TestCase(name="t", classname="Only", time=0.1),),
    )
    summary = summarize_test_results([suite], logger, show_streams=False)
    assert summary.failed == 0
    assert summary.failed_cases == ()
    assert "PASSED 1 (100%)" in log_output.getvalue()


def test_failure_locations_are_written_to_sink(tmp_path: Path, logger: BuildLogger) -> None:
    kotlin_file = tmp_path / "SkipLib" / "src" / "test" / "kotlin" / "skip" / "lib" / "SkipLibTests.kt"
    kotlin_file.parent.mkdir(parents=True)
    kotlin_file.write_text("", encoding="utf-8")
    sink = BufferedOutputByteStream()

    summarize_test_results([_suite()], logger, project_folder=tmp_path, sink=sink)

    assert sink.text() == f"{kotlin_file}:22:0: error: nope\n"


def test_module_name_from_test_name() -> None:
    assert module_name_for(TestCase(name="testX$SkipLib_debugUnitTest", classname="C", time=0)) == "SkipLib"
    assert module_name_for(TestCase(name="testX", classname="C", time=0)) is None
