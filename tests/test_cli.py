# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the skipdrive command-line interface."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from skipdrive.cli.app import app

PASSING_SUITE = """<testsuite name="pkg.Tests" tests="1" failures="0" errors="0" time="0.2">
  <testcase name="testOk" classname="pkg.Tests" time="0.2"/>
</testsuite>"""

FAILING_SUITE = """<testsuite name="pkg.Tests" tests="1" failures="1" errors="0" time="0.2">
  <testcase name="testBad" classname="pkg.Tests" time="0.2"><failure message="boom"/></testcase>
</testsuite>"""


def _results(tmp_path: Path, suite: str) -> Path:
    results = tmp_path / "test-results"
    (results / "test").mkdir(parents=True)
    (results / "test" / "TEST-pkg.Tests.xml").write_text(suite, encoding="utf-8")
    return results


def test_scan_reports_errors_from_log_file(tmp_path: Path) -> None:
    log = tmp_path / "build.log"
    log.write_text("> Task :app:compileKotlin\ne: file:///tmp/Foo.kt:12:13 Compile Error\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["scan", str(log), "--no-emoji", "--no-color"])
    assert result.exit_code == 1
    assert "/tmp/Foo.kt:12:13: error: Compile Error" in result.output
    assert "1 error(s), 0 warning(s)" in result.output


def test_scan_reads_stdin() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["scan", "--no-emoji"], input="w: file:///tmp/Foo.kt:1:2 careful\nBUILD SUCCESSFUL\n")
    assert result.exit_code == 0
    assert "/tmp/Foo.kt:1:2: warning: careful" in result.output


def test_scan_errors_only_hides_warnings() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["scan", "--errors-only"], input="w: file:///tmp/Foo.kt:1:2 careful\n")
    assert result.exit_code == 0
    assert "warning: careful" not in result.output


def test_test_report_passing(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["test-report", str(_results(tmp_path, PASSING_SUITE)), "--no-emoji"])
    assert result.exit_code == 0
    assert "JUNIT TEST PASSED Tests.testOk (0.2)" in result.output
    assert "--- Test results: " in result.output
    assert "JUNIT SUITES 1 TESTS 1 PASSED 1 (100%) FAILED 0 SKIPPED 0 TIME 0.2" in result.output


def test_test_report_failing(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["test-report", str(_results(tmp_path, FAILING_SUITE)), "--no-emoji"])
    assert result.exit_code == 1
    assert "JUNIT TEST FAILED Tests.testBad (0.2)" in result.output


def test_test_report_missing_directory(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["test-report", str(tmp_path / "absent"), "--no-emoji"])
    assert result.exit_code == 1
    assert "did not exist" in result.output


def test_gradle_reports_config_errors(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.skipdrive]\nunknown = 1\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(app, ["gradle", str(tmp_path), "build", "--no-emoji"])
    assert result.exit_code == 1
    assert "Invalid [tool.skipdrive] configuration" in result.output


def test_gradle_test_requires_module(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["gradle", str(tmp_path), "--test", "--gradle", "/bin/true", "--no-emoji"])
    assert result.exit_code == 1
    assert "--test requires --module" in result.output
