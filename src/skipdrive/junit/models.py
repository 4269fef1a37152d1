# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Immutable tree mirroring a JUnit XML test report."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TestFailure(BaseModel):
    """One ``<failure>`` element of a test case."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    # e.g. "org.opentest4j.AssertionFailedError: THIS TEST CASE ALWAYS FAILS"
    message: str
    type: str | None = None
    contents: str | None = None


class TestCase(BaseModel):
    """One ``<testcase>`` element."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    name: str
    classname: str
    time: float
    skipped: bool = False
    failures: tuple[TestFailure, ...] = ()

    @property
    def full_name(self) -> str:
        """Return ``classname.name`` with any ``$`` suffix of the name trimmed off."""

        return f"{self.classname}.{self.name.split('$')[0]}"

    @property
    def failed(self) -> bool:
        return bool(self.failures)


class TestSuite(BaseModel):
    """One ``<testsuite>`` element with its counts and captured output."""

    __test__ = False
    model_config = ConfigDict(frozen=True)

    name: str
    tests: int
    skipped: int = 0
    failures: int
    errors: int
    time: float
    test_cases: tuple[TestCase, ...] = Field(default=())
    system_out: str | None = None
    system_err: str | None = None


__all__ = ["TestCase", "TestFailure", "TestSuite"]
