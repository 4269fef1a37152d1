# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for classifying Gradle and Kotlin compiler output."""

from __future__ import annotations

import pytest

from skipdrive.diagnostics import GradleIssue, IssueKind, SourceLocation, parse_gradle_output
from skipdrive.diagnostics.classifier import parse_generic_failure, parse_gradle_failure, parse_kotlin_issue


def test_kotlin_error_line_is_parsed() -> None:
    line = "e: file:///tmp/Foo.kt:12:13 Compile Error"
    issue = parse_gradle_output(line, line)
    assert issue == GradleIssue(
        kind=IssueKind.ERROR,
        message="Compile Error",
        location=SourceLocation.at("/tmp/Foo.kt", 12, 13),
    )
    assert issue is not None
    assert issue.message_string == "/tmp/Foo.kt:12:13: error: Compile Error"


def test_kotlin_warning_with_trailing_colon() -> None:
    issue = parse_kotlin_issue("w: file:///PATH/build.gradle.kts:102:17: Unresolved reference: option")
    assert issue is not None
    assert issue.kind is IssueKind.WARNING
    assert issue.location == SourceLocation.at("/PATH/build.gradle.kts", 102, 17)
    assert issue.message == "Unresolved reference: option"


def test_kotlin_pattern_is_only_checked_on_first_line() -> None:
    assert parse_gradle_output("compiling...", "e: file:///tmp/Foo.kt:1:2 oops") is None


def test_range_header_takes_message_from_next_line() -> None:
    issue = parse_gradle_failure("/src/app/Foo.kt:10:5-12 Error:", "   Type mismatch   ")
    assert issue == GradleIssue(
        kind=IssueKind.ERROR,
        message="Type mismatch",
        location=SourceLocation.at("/src/app/Foo.kt", 10, 5),
    )


def test_range_header_warning() -> None:
    issue = parse_gradle_output("/src/Foo.kt:3:1-4 Warning:", "unused variable")
    assert issue is not None
    assert issue.kind is IssueKind.WARNING
    assert str(issue.location) == "/src/Foo.kt:3:1"


def test_what_went_wrong_yields_location_less_error() -> None:
    issue = parse_gradle_output("* What went wrong:", "Execution failed for task ':app:compileKotlin'.")
    assert issue == GradleIssue(kind=IssueKind.ERROR, message="Execution failed for task ':app:compileKotlin'.")
    assert issue is not None
    assert issue.message_string == "error: Execution failed for task ':app:compileKotlin'."


def test_banner_alone_is_not_an_issue() -> None:
    assert parse_generic_failure("* What went wrong:", "* What went wrong:") is None
    assert parse_generic_failure("* What went wrong:", "   ") is None


@pytest.mark.parametrize(
    "line",
    [
        "Failed to apply plugin 'com.android.application'.",
        "FAILURE: Build failed with an exception.",
        "INSTALL_FAILED_UPDATE_INCOMPATIBLE",
        "Failure [INSTALL_FAILED_INSUFFICIENT_STORAGE]",
        "adb: failed to install app.apk",
    ],
)
def test_generic_failure_prefixes(line: str) -> None:
    issue = parse_gradle_output("> Task :app:installDebug", line)
    assert issue is not None
    assert issue.kind is IssueKind.ERROR
    assert issue.location is None
    assert issue.message == line


def test_ordinary_output_is_ignored() -> None:
    assert parse_gradle_output("> Task :app:compileKotlin", "BUILD SUCCESSFUL in 3s") is None
