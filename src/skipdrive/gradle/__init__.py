# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Gradle launching and the build/test harness built on it."""

from __future__ import annotations

from .driver import (
    GradleDriver,
    GradleDriverError,
    GradleLaunch,
    GradleLaunchOptions,
    environment_with_default_tool_paths,
    find_gradle,
    format_memory,
    gradle_jvm_options,
    parse_gradle_version_output,
)
from .harness import DEFAULT_TEST_ACTIONS, GradleHarness, apply_test_target_override

__all__ = [
    "DEFAULT_TEST_ACTIONS",
    "GradleDriver",
    "GradleDriverError",
    "GradleHarness",
    "GradleLaunch",
    "GradleLaunchOptions",
    "apply_test_target_override",
    "environment_with_default_tool_paths",
    "find_gradle",
    "format_memory",
    "gradle_jvm_options",
    "parse_gradle_version_output",
]
