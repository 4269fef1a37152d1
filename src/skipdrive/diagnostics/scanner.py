# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Sliding-window scanner that reports build diagnostics to a byte sink."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from ..streams import WritableByteStream
from .classifier import parse_generic_failure, parse_gradle_output, parse_kotlin_issue
from .models import GradleIssue, IssueKind, SourceLocation
from .sourcemap import find_source_map_line

_LOGGER = logging.getLogger(__name__)


def resolve_location_symlink(location: SourceLocation) -> SourceLocation:
    """Return ``location`` pointing at the destination when its path is a symlink."""

    path = Path(location.path)
    if not path.is_symlink():
        return location
    target = Path(os.readlink(path))
    if not target.is_absolute():
        target = path.parent / target
    return SourceLocation(path=str(target), position=location.position)


class GradleOutputScanner:
    """Classify output line by line and write ``path:line:col: kind: message`` lines.

    Each call to :meth:`scan` looks at the previous line together with the new
    one. An issue also found in the previous window is suppressed, since
    adjacent windows share a line. A failure line that follows a Kotlin
    diagnostic is reported alongside it.
    """

    def __init__(
        self,
        sink: WritableByteStream,
        *,
        resolve_symlinks: bool = False,
        errors_only: bool = False,
    ) -> None:
        """Create a scanner writing findings to ``sink``.

        Args:
            sink: Destination for one formatted line per diagnostic.
            resolve_symlinks: Whether locations that are symlinks are replaced
                by their destination before remapping.
            errors_only: Whether warnings are dropped.
        """

        self.sink = sink
        self.resolve_symlinks = resolve_symlinks
        self.errors_only = errors_only
        self.issues: list[GradleIssue] = []
        self._previous_line: str | None = None
        self._previous_issues: list[GradleIssue] = []

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.kind is IssueKind.ERROR)

    def scan(self, line: str) -> list[GradleIssue]:
        """Advance the window by ``line`` and report what it contains."""

        line1 = line if self._previous_line is None else self._previous_line
        self._previous_line = line
        return self.scan_pair(line1, line)

    def finish(self) -> list[GradleIssue]:
        """Scan the final line on its own so a one-line diagnostic there is not missed."""

        if self._previous_line is None:
            return []
        return self.scan_pair(self._previous_line, self._previous_line)

    def scan_pair(self, line1: str, line2: str) -> list[GradleIssue]:
        """Classify one window and write the resulting diagnostics.

        When the issue has a location with a sourcemap entry, the remapped
        diagnostic is written first, followed by the generated-code one.

        Returns:
            list[GradleIssue]: Diagnostics written for this window.
        """

        found = self._window_issues(line1, line2)
        previous = self._previous_issues
        self._previous_issues = found
        reported: list[GradleIssue] = []
        for issue in found:
            if issue in previous:
                continue
            reported.extend(self._report(issue))
        if reported:
            self.sink.flush()
        return reported

    @staticmethod
    def _window_issues(line1: str, line2: str) -> list[GradleIssue]:
        issue = parse_gradle_output(line1, line2)
        if issue is None:
            return []
        # a Kotlin diagnostic on line1 shadows a failure line entering as line2
        if parse_kotlin_issue(line1) is not None:
            failure = parse_generic_failure(line1, line2)
            if failure is not None:
                return [issue, failure]
        return [issue]

    def _report(self, issue: GradleIssue) -> list[GradleIssue]:
        if self.errors_only and issue.kind is not IssueKind.ERROR:
            return []
        if self.resolve_symlinks and issue.location is not None:
            issue = issue.with_location(resolve_location_symlink(issue.location))

        reported: list[GradleIssue] = []
        source_location = self._remap(issue.location)
        if source_location is not None:
            reported.append(issue.with_location(source_location))
        reported.append(issue)
        for finding in reported:
            self.sink.write_text(finding.message_string + "\n")
        self.issues.extend(reported)
        return reported

    def _remap(self, location: SourceLocation | None) -> SourceLocation | None:
        if location is None:
            return None
        try:
            return find_source_map_line(location)
        except (OSError, ValidationError) as exc:
            _LOGGER.warning("unable to read sourcemap for %s: %s", location.path, exc)
            return None


__all__ = ["GradleOutputScanner", "resolve_location_symlink"]
