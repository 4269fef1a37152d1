# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Parse JUnit XML reports written by Gradle test tasks."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET  # nosec B405 - reports are produced by the local build
from collections.abc import Callable
from pathlib import Path
from typing import Final, TypeVar

from .models import TestCase, TestFailure, TestSuite

XML_SUFFIX: Final[str] = ".xml"

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


class TestReportError(RuntimeError):
    """Raised when a report directory or file cannot be turned into test suites."""

    __test__ = False

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path

    @classmethod
    def missing_property(cls, path: Path, property_name: str) -> TestReportError:
        return cls(f"The property name “{property_name}” could not be found in {path}", path=path)

    @classmethod
    def missing_directory(cls, path: Path) -> TestReportError:
        return cls(
            "The expected test output folder did not exist, which may indicate that the gradle "
            f"process encountered a build error or other issue. Missing folder: {path}",
            path=path,
        )

    @classmethod
    def unreadable(cls, path: Path, reason: str) -> TestReportError:
        return cls(f"Unable to parse test report {path}: {reason}", path=path)


def _text(element: ET.Element) -> str:
    return "".join(element.itertext())


def _required(element: ET.Element, name: str, path: Path, convert: Callable[[str], _T]) -> _T:
    raw = element.get(name)
    if raw is None:
        raise TestReportError.missing_property(path, name)
    try:
        return convert(raw)
    except ValueError as exc:
        raise TestReportError.missing_property(path, name) from exc


def _parse_failure(element: ET.Element, path: Path) -> TestFailure:
    return TestFailure(
        message=_required(element, "message", path, str),
        type=element.get("type"),
        contents=_text(element) or None,
    )


def _parse_test_case(element: ET.Element, path: Path) -> TestCase:
    name = _required(element, "name", path, str)
    classname = _required(element, "classname", path, str)
    time = _required(element, "time", path, float)
    skipped = any(child.tag == "skipped" for child in element)
    failures = tuple(_parse_failure(child, path) for child in element if child.tag == "failure")
    return TestCase(name=name, classname=classname, time=time, skipped=skipped, failures=failures)


def _parse_skipped(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError:
        return 0


def _parse_suite(element: ET.Element, path: Path) -> TestSuite:
    name = _required(element, "name", path, str)
    tests = _required(element, "tests", path, int)
    skipped = _parse_skipped(element.get("skipped"))
    failures = _required(element, "failures", path, int)
    errors = _required(element, "errors", path, int)
    time = _required(element, "time", path, float)

    test_cases: list[TestCase] = []
    system_out = ""
    system_err = ""
    for child in element:
        if child.tag == "testcase":
            test_cases.append(_parse_test_case(child, path))
        elif child.tag == "system-out":
            system_out += _text(child)
        elif child.tag == "system-err":
            system_err += _text(child)

    return TestSuite(
        name=name,
        tests=tests,
        skipped=skipped,
        failures=failures,
        errors=errors,
        time=time,
        test_cases=tuple(test_cases),
        system_out=system_out or None,
        system_err=system_err or None,
    )


def parse_test_suites(path: Path) -> list[TestSuite]:
    """Parse one JUnit XML file.

    The root may be a single ``<testsuite>`` or a ``<testsuites>`` wrapper.

    Args:
        path: XML report to read.

    Returns:
        list[TestSuite]: Suites in document order.

    Raises:
        TestReportError: If the file is unreadable, malformed, or lacks a
            required attribute.
    """

    try:
        root = ET.parse(path).getroot()  # nosec B314 - locally produced report
    except OSError as exc:
        raise TestReportError.unreadable(path, exc.strerror or str(exc)) from exc
    except ET.ParseError as exc:
        raise TestReportError.unreadable(path, str(exc)) from exc

    if root.tag == "testsuites":
        suites = [child for child in root if child.tag == "testsuite"]
    elif root.tag == "testsuite":
        suites = [root]
    else:
        raise TestReportError.missing_property(path, "testsuite")
    return [_parse_suite(suite, path) for suite in suites]


def parse_test_results(directory: Path) -> list[TestSuite]:
    """Parse every report below the immediate subdirectories of ``directory``.

    Gradle writes one subdirectory per test task (``test``,
    ``testDebugUnitTest``, ...). Entries that are directories at the second
    level or do not end in ``.xml`` are skipped.

    Args:
        directory: ``test-results`` folder of a Gradle module.

    Returns:
        list[TestSuite]: Suites from all reports, ordered by task then file name.

    Raises:
        TestReportError: If ``directory`` is missing or any report fails to parse.
    """

    if not directory.is_dir():
        raise TestReportError.missing_directory(directory)

    suites: list[TestSuite] = []
    for task_directory in sorted(directory.iterdir()):
        if not task_directory.is_dir():
            _LOGGER.debug("skipping non-directory test result entry: %s", task_directory)
            continue
        for result_path in sorted(task_directory.iterdir()):
            if result_path.is_dir():
                continue
            if result_path.suffix != XML_SUFFIX:
                _LOGGER.debug("skipping non .xml test file: %s", result_path)
                continue
            suites.extend(parse_test_suites(result_path))
    return suites


__all__ = [
    "TestReportError",
    "parse_test_results",
    "parse_test_suites",
]
