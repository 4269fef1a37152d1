# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Console summary of parsed JUnit results, with failure locations for IDEs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from ..diagnostics.models import GradleIssue, IssueKind
from ..diagnostics.stacktrace import extract_source_location
from ..logging import BuildLogger
from ..streams import WritableByteStream
from .models import TestCase, TestSuite

STDOUT_PREFIX: Final[str] = "STDOUT> "
STDERR_PREFIX: Final[str] = "STDERR> "

# prefixes the JUnit runner adds to failure messages that carry no information
_TRIMMED_MESSAGE_PREFIXES: Final[tuple[str, ...]] = ("testSkipModule(): ",)


@dataclass(frozen=True, slots=True)
class TestRunSummary:
    """Totals across every suite of a test run."""

    __test__ = False

    suites: int
    tests: int
    passed: int
    failed: int
    skipped: int
    time: float
    failed_cases: tuple[TestCase, ...]

    @property
    def pass_percentage(self) -> int:
        if self.tests == 0:
            return 0
        return round(self.passed * 100 / self.tests)

    @property
    def failed_names(self) -> list[str]:
        return [case.full_name for case in self.failed_cases]

    def summary_line(self) -> str:
        return (
            f"JUNIT SUITES {self.suites} TESTS {self.tests} PASSED {self.passed} "
            f"({self.pass_percentage}%) FAILED {self.failed} SKIPPED {self.skipped} "
            f"TIME {round(self.time, 2)}"
        )


def short_suite_name(suite: TestSuite) -> str:
    """Turn ``skip.foundation.TestDateFormatter`` into ``TestDateFormatter``."""

    return suite.name.split(".")[-1]


def module_name_for(test_case: TestCase) -> str | None:
    """Return the Gradle module encoded in a test name such as ``testFoo$SkipLib_debugUnitTest``."""

    parts = test_case.name.split("$")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1].split("_")[0] or None


def _prefixed(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.split("\n") if line)


def _trim_message(message: str) -> str:
    for prefix in _TRIMMED_MESSAGE_PREFIXES:
        if message.startswith(prefix):
            return message[len(prefix) :]
    return message


def _report_failure_locations(
    test_case: TestCase,
    project_folder: Path,
    logger: BuildLogger,
    sink: WritableByteStream,
) -> list[GradleIssue]:
    module_name = module_name_for(test_case)
    if module_name is None:
        logger.warn(f"Could not extract module name from test case name: {test_case.name}")
        return []
    issues: list[GradleIssue] = []
    for failure in test_case.failures:
        kotlin_location, swift_location = extract_source_location(project_folder / module_name, failure.contents)
        for location in (kotlin_location, swift_location):
            if location is None:
                continue
            issue = GradleIssue(kind=IssueKind.ERROR, message=_trim_message(failure.message), location=location)
            sink.write_text(issue.message_string + "\n")
            issues.append(issue)
    sink.flush()
    return issues


def summarize_test_results(
    suites: list[TestSuite],
    logger: BuildLogger,
    *,
    project_folder: Path | None = None,
    sink: WritableByteStream | None = None,
    show_streams: bool = True,
) -> TestRunSummary:
    """Print per-test and per-suite results and return the run totals.

    When both ``project_folder`` and ``sink`` are given, each failure whose
    stack trace points into a module's Kotlin sources is also written to
    ``sink`` as a ``path:line:col: error: message`` diagnostic, followed by
    its Swift location when the sourcemap provides one.

    Args:
        suites: Parsed test suites.
        logger: Destination for the human-readable report.
        project_folder: Folder holding the Gradle modules that ran the tests.
        sink: Destination for failure diagnostics.
        show_streams: Whether captured suite stdout/stderr is echoed first.

    Returns:
        TestRunSummary: Totals and the failed test cases in report order.
    """

    if show_streams:
        for suite in suites:
            name = short_suite_name(suite)
            if suite.system_out:
                logger.echo(f"JUNIT TEST STDOUT: {name}:")
                logger.echo(_prefixed(suite.system_out, STDOUT_PREFIX))
            if suite.system_err:
                logger.echo(f"JUNIT TEST STDERR: {name}:")
                logger.echo(_prefixed(suite.system_err, STDERR_PREFIX))

    passed_total = failed_total = skipped_total = tests_total = 0
    time_total = 0.0
    for suite in suites:
        name = short_suite_name(suite)
        passed = failed = skipped = 0
        suite_time = 0.0
        for test_case in suite.test_cases:
            tests_total += 1
            if test_case.skipped:
                skipped += 1
                status = "SKIPPED"
            elif test_case.failures:
                failed += 1
                status = "FAILED"
            else:
                passed += 1
                status = "PASSED"
            suite_time += test_case.time

            message = f"{name}.{test_case.name.split('$')[0]}"
            if not test_case.skipped:
                message += f" ({test_case.time})"
            logger.echo(f"JUNIT TEST {status} {message}")
            if test_case.failures and project_folder is not None and sink is not None:
                _report_failure_locations(test_case, project_folder, logger, sink)

        logger.echo(
            f"JUNIT TEST SUITE: {name}: PASSED {passed} FAILED {failed} SKIPPED {skipped} "
            f"TIME {round(suite_time, 2)}"
        )
        passed_total += passed
        failed_total += failed
        skipped_total += skipped
        time_total += suite_time

    failed_cases: list[TestCase] = []
    for suite in suites:
        for test_case in suite.test_cases:
            if test_case.failures:
                failed_cases.append(test_case)
            for failure in test_case.failures:
                logger.echo(f"{test_case.name} {failure.message}")
                if failure.contents:
                    logger.echo(failure.contents)

    summary = TestRunSummary(
        suites=len(suites),
        tests=tests_total,
        passed=passed_total,
        failed=failed_total,
        skipped=skipped_total,
        time=time_total,
        failed_cases=tuple(failed_cases),
    )
    if summary.failed:
        logger.fail(summary.summary_line())
    else:
        logger.ok(summary.summary_line())
    return summary


__all__ = [
    "TestRunSummary",
    "module_name_for",
    "short_suite_name",
    "summarize_test_results",
]
