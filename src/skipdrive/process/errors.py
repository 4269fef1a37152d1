# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Error taxonomy for child process execution."""

from __future__ import annotations

import os
import shlex
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ProcessResult


class ProcessError(RuntimeError):
    """Base class for every failure raised by the process engine."""


class MissingExecutableError(ProcessError):
    """Raised when the program named by a command cannot be resolved."""

    def __init__(self, program: str) -> None:
        """Initialise the error with the unresolved program name.

        Args:
            program: First argument of the command as supplied by the caller.
        """

        super().__init__(f"could not find executable for '{program}'")
        self.program = program


class ProcessStateError(ProcessError):
    """Raised when an operation is invoked in a state that does not allow it."""


class SystemCallKind(str, Enum):
    """Operating-system operation that failed while driving a child."""

    CHDIR = "chdir"
    CLOSE = "close"
    EXEC = "exec"
    PIPE = "pipe"
    SPAWN = "posix_spawn"
    READ = "read"
    WAITPID = "waitpid"


class SystemCallError(ProcessError):
    """OS-level failure with the errno and the path or command it concerned."""

    def __init__(
        self,
        kind: SystemCallKind,
        errno: int | None,
        *,
        path: Path | str | None = None,
        arguments: Sequence[str] | None = None,
    ) -> None:
        """Initialise the error from the failing operation and its context.

        Args:
            kind: Operation that failed.
            errno: OS error number reported by the failure, when known.
            path: File or directory involved in the failure.
            arguments: Command line involved in the failure.
        """

        self.kind = kind
        self.errno = errno
        self.path = None if path is None else str(path)
        self.arguments = tuple(arguments) if arguments is not None else None
        super().__init__(self._render())

    def _render(self) -> str:
        reason = os.strerror(self.errno) if self.errno is not None else "unknown error"
        message = f"{self.kind.value} error: {reason} ({self.errno})"
        if self.path is not None:
            message += f", path '{self.path}'"
        if self.arguments is not None:
            message += f", `{shlex.join(self.arguments)}`"
        return message

    @classmethod
    def from_os_error(
        cls,
        kind: SystemCallKind,
        exc: OSError,
        *,
        path: Path | str | None = None,
        arguments: Sequence[str] | None = None,
    ) -> SystemCallError:
        """Wrap ``exc`` keeping its errno and, when not supplied, its filename."""

        filename = path if path is not None else exc.filename
        return cls(kind, exc.errno, path=filename, arguments=arguments)


class ProcessResultError(ProcessError):
    """Base class for failures derived from a finished process."""


class IllegalUTF8SequenceError(ProcessResultError):
    """Raised when captured output is not valid UTF-8."""

    def __init__(self, data: bytes, *, stream: str = "stdout") -> None:
        super().__init__(f"illegal UTF-8 sequence in captured {stream} ({len(data)} bytes)")
        self.data = data
        self.stream = stream


class NonZeroExitError(ProcessResultError):
    """Raised when a process did not terminate normally with exit code 0."""

    def __init__(self, result: ProcessResult) -> None:
        """Initialise the error from the completed process.

        Args:
            result: Completed process whose exit status was rejected.
        """

        self.result = result
        super().__init__(self._render())

    def _render(self) -> str:
        message = f"{self.result.exit_status}: {shlex.join(self.result.arguments)}"
        try:
            output = self.result.output.get() + self.result.stderr_output.get()
        except SystemCallError:
            return message
        text = output.decode("utf-8", errors="replace").strip()
        if not text:
            return message
        indented = "\n".join(f"    {line}" for line in text.splitlines())
        return f"{message} output:\n{indented}"


__all__ = [
    "IllegalUTF8SequenceError",
    "MissingExecutableError",
    "NonZeroExitError",
    "ProcessError",
    "ProcessResultError",
    "ProcessStateError",
    "SystemCallError",
    "SystemCallKind",
]
