# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Diagnostic records extracted from build tool output."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IssueKind(str, Enum):
    """Severity of a build diagnostic, keyed by the compiler's one-letter prefix."""

    ERROR = "e"
    WARNING = "w"

    @property
    def label(self) -> str:
        return "error" if self is IssueKind.ERROR else "warning"


class SourcePosition(BaseModel):
    """1-based line and column inside a file."""

    model_config = ConfigDict(frozen=True)

    line: int = Field(ge=0)
    column: int = Field(default=0, ge=0)

    def __lt__(self, other: SourcePosition) -> bool:
        return (self.line, self.column) < (other.line, other.column)


class SourceLocation(BaseModel):
    """Position inside a named file."""

    model_config = ConfigDict(frozen=True)

    path: str
    position: SourcePosition

    @classmethod
    def at(cls, path: str, line: int, column: int = 0) -> SourceLocation:
        return cls(path=path, position=SourcePosition(line=line, column=column))

    @property
    def line(self) -> int:
        return self.position.line

    @property
    def column(self) -> int:
        return self.position.column

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


class GradleIssue(BaseModel):
    """Error or warning found in build output, optionally tied to a location."""

    model_config = ConfigDict(frozen=True)

    kind: IssueKind
    message: str
    location: SourceLocation | None = None

    def with_location(self, location: SourceLocation | None) -> GradleIssue:
        """Return a copy of the issue pointing at ``location``."""

        return self.model_copy(update={"location": location})

    @property
    def message_string(self) -> str:
        """Render the issue in the ``path:line:col: kind: message`` form editors parse."""

        prefix = f"{self.location}: " if self.location is not None else ""
        return f"{prefix}{self.kind.label}: {self.message}"


__all__ = [
    "GradleIssue",
    "IssueKind",
    "SourceLocation",
    "SourcePosition",
]
