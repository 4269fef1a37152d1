# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""JUnit XML test report parsing and summaries."""

from __future__ import annotations

from .models import TestCase, TestFailure, TestSuite
from .parser import TestReportError, parse_test_results, parse_test_suites
from .report import TestRunSummary, module_name_for, short_suite_name, summarize_test_results

__all__ = [
    "TestCase",
    "TestFailure",
    "TestReportError",
    "TestRunSummary",
    "TestSuite",
    "module_name_for",
    "parse_test_results",
    "parse_test_suites",
    "short_suite_name",
    "summarize_test_results",
]
