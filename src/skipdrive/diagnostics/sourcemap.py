# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Line mapping from generated Kotlin files back to their Swift sources.

The transpiler writes ``.Foo.sourcemap`` next to each generated ``Foo.kt``. The
document lists entries pairing a generated line range with the source range it
came from::

    {"entries": [{"sourceFile": {"path": "/src/Foo.swift"},
                  "sourceRange": {"start": {"line": 3, "column": 5}, "end": {...}},
                  "range": {"start": {"line": 10, "column": 0}, "end": {"line": 15, "column": 0}}}]}
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .models import SourceLocation, SourcePosition

SOURCEMAP_SUFFIX = ".sourcemap"


class SourceFilePath(BaseModel):
    """Original source file referenced by a map entry."""

    model_config = ConfigDict(frozen=True)

    path: str


class SourceRange(BaseModel):
    """Inclusive span between two positions."""

    model_config = ConfigDict(frozen=True)

    start: SourcePosition
    end: SourcePosition

    def contains_line(self, line: int) -> bool:
        return self.start.line <= line <= self.end.line

    @property
    def line_count(self) -> int:
        return self.end.line - self.start.line + 1


class SourceMapEntry(BaseModel):
    """Generated ``range`` produced from ``source_range`` of ``source_file``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source_file: SourceFilePath = Field(alias="sourceFile")
    source_range: SourceRange | None = Field(default=None, alias="sourceRange")
    range: SourceRange


class SourceMap(BaseModel):
    """Decoded sourcemap document."""

    model_config = ConfigDict(frozen=True)

    entries: list[SourceMapEntry] = Field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> SourceMap:
        """Parse the sourcemap stored at ``path``.

        Raises:
            OSError: If the file cannot be read.
            pydantic.ValidationError: If the document does not match the schema.
        """

        return cls.model_validate_json(path.read_bytes())

    def find(self, line: int) -> SourceLocation | None:
        """Return the source location for generated ``line``.

        Among entries with a source range whose generated range contains
        ``line``, the one spanning the fewest lines wins. Entries spanning the
        same number of lines resolve to the one listed first.

        Args:
            line: 1-based line in the generated file.

        Returns:
            SourceLocation | None: Start of the matching source range, if any.
        """

        best: SourceMapEntry | None = None
        for entry in self.entries:
            if entry.source_range is None or not entry.range.contains_line(line):
                continue
            if best is None or entry.range.line_count < best.range.line_count:
                best = entry
        if best is None or best.source_range is None:
            return None
        return SourceLocation(path=best.source_file.path, position=best.source_range.start)


def sourcemap_path(generated: Path | str) -> Path:
    """Return the sourcemap path for a generated file: ``dir/Foo.kt`` -> ``dir/.Foo.sourcemap``."""

    path = Path(generated)
    return path.with_name(f".{path.stem}{SOURCEMAP_SUFFIX}")


def find_source_map_line(location: SourceLocation) -> SourceLocation | None:
    """Map a location in generated code back to its original source.

    The sourcemap is read on every call. A missing map yields ``None``.

    Raises:
        OSError: If the map exists but cannot be read.
        pydantic.ValidationError: If the map is malformed.
    """

    map_path = sourcemap_path(location.path)
    if not map_path.is_file():
        return None
    return SourceMap.load(map_path).find(location.line)


__all__ = [
    "SOURCEMAP_SUFFIX",
    "SourceFilePath",
    "SourceMap",
    "SourceMapEntry",
    "SourceRange",
    "find_source_map_line",
    "sourcemap_path",
]
