# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Value types describing a command, its output routing and its outcome."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final

from .errors import IllegalUTF8SequenceError, SystemCallError

OutputCallback = Callable[[bytes], None]


@dataclass(frozen=True, slots=True)
class Discard:
    """Send stdout and stderr to the null device."""

    redirect_stderr: bool = False

    @property
    def redirects_output(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Collect:
    """Accumulate stdout (and stderr unless merged) into the result."""

    redirect_stderr: bool = False

    @property
    def redirects_output(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class Stream:
    """Deliver output chunks to callbacks as they arrive; nothing is accumulated.

    Callbacks run on reader threads. With ``redirect_stderr`` set, stderr is
    merged into stdout and ``on_stderr`` is never called.
    """

    on_stdout: OutputCallback
    on_stderr: OutputCallback | None = None
    redirect_stderr: bool = False

    @property
    def redirects_output(self) -> bool:
        return True


OutputRedirection = Discard | Collect | Stream


@dataclass(frozen=True, slots=True)
class Terminated:
    """Child exited normally with ``code``."""

    code: int

    def __str__(self) -> str:
        return f"terminated({self.code})"


@dataclass(frozen=True, slots=True)
class Signalled:
    """Child was killed by ``signal``."""

    signal: int

    def __str__(self) -> str:
        return f"signalled({self.signal})"


ExitStatus = Terminated | Signalled


def exit_status_from_returncode(returncode: int) -> ExitStatus:
    """Translate a :mod:`subprocess` return code; negative values denote signals."""

    if returncode < 0:
        return Signalled(-returncode)
    return Terminated(returncode)


@dataclass(frozen=True, slots=True)
class CapturedOutput:
    """Bytes collected from one stream, or the read failure that ended collection."""

    data: bytes = b""
    error: SystemCallError | None = None

    def get(self) -> bytes:
        """Return the collected bytes.

        Raises:
            SystemCallError: When reading the stream failed.
        """

        if self.error is not None:
            raise self.error
        return self.data


EMPTY_OUTPUT: Final[CapturedOutput] = CapturedOutput()


def _frozen_environment(environment: Mapping[str, str] | None) -> Mapping[str, str]:
    source = os.environ if environment is None else environment
    return MappingProxyType(dict(source))


@dataclass(frozen=True, slots=True)
class Command:
    """Everything needed to launch one child process."""

    arguments: tuple[str, ...]
    environment: Mapping[str, str] = field(default_factory=lambda: _frozen_environment(None))
    working_directory: Path | None = None
    redirection: OutputRedirection = field(default_factory=Collect)
    start_new_process_group: bool = True

    def __post_init__(self) -> None:
        if not self.arguments:
            raise ValueError("Command must contain at least one argument")

    @classmethod
    def create(
        cls,
        arguments: Sequence[str],
        *,
        environment: Mapping[str, str] | None = None,
        working_directory: Path | str | None = None,
        redirection: OutputRedirection | None = None,
        start_new_process_group: bool = True,
    ) -> Command:
        """Build a command from loosely typed caller input.

        Args:
            arguments: Program followed by its arguments.
            environment: Child environment. Defaults to a snapshot of ``os.environ``.
            working_directory: Directory the child starts in.
            redirection: Output routing mode. Defaults to :class:`Collect`.
            start_new_process_group: Whether the child leads its own process group.

        Returns:
            Command: Immutable command description.

        Raises:
            ValueError: If ``arguments`` is empty.
        """

        return cls(
            arguments=tuple(str(argument) for argument in arguments),
            environment=_frozen_environment(environment),
            working_directory=Path(working_directory) if working_directory is not None else None,
            redirection=Collect() if redirection is None else redirection,
            start_new_process_group=start_new_process_group,
        )


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Outcome of a completed child process."""

    arguments: tuple[str, ...]
    environment: Mapping[str, str]
    exit_status: ExitStatus
    output: CapturedOutput = EMPTY_OUTPUT
    stderr_output: CapturedOutput = EMPTY_OUTPUT

    @property
    def succeeded(self) -> bool:
        return self.exit_status == Terminated(0)

    @property
    def result_description(self) -> str:
        status = self.exit_status
        if isinstance(status, Signalled):
            return f"terminated by signal {status.signal}"
        if status.code == 0:
            return "succeeded"
        return f"failed with exit code {status.code}"

    def utf8_output(self) -> str:
        """Decode stdout as strict UTF-8.

        Raises:
            SystemCallError: When reading stdout failed.
            IllegalUTF8SequenceError: When stdout is not valid UTF-8.
        """

        return _decode(self.output.get(), "stdout")

    def utf8_stderr_output(self) -> str:
        """Decode stderr as strict UTF-8.

        Raises:
            SystemCallError: When reading stderr failed.
            IllegalUTF8SequenceError: When stderr is not valid UTF-8.
        """

        return _decode(self.stderr_output.get(), "stderr")

    def __str__(self) -> str:
        try:
            text = self.output.get().decode("utf-8", errors="replace")
        except SystemCallError as exc:
            text = f"<{exc}>"
        return f"<ProcessResult: exit: {self.exit_status}, output:\n {text}\n>"


def _decode(data: bytes, stream: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise IllegalUTF8SequenceError(data, stream=stream) from exc


__all__ = [
    "CapturedOutput",
    "Collect",
    "Command",
    "Discard",
    "ExitStatus",
    "OutputCallback",
    "OutputRedirection",
    "ProcessResult",
    "Signalled",
    "Stream",
    "Terminated",
    "exit_status_from_returncode",
]
