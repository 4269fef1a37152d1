# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""One-shot helpers that run a command to completion and collect its output."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from .engine import LoggingHandler, Process
from .errors import NonZeroExitError
from .models import Collect, ProcessResult, Terminated


def _collecting_process(
    arguments: Sequence[str],
    *,
    environment: Mapping[str, str] | None,
    working_directory: Path | str | None,
    logging_handler: LoggingHandler | None,
) -> Process:
    process = Process.from_arguments(
        arguments,
        environment=environment,
        working_directory=working_directory,
        redirection=Collect(),
        logging_handler=logging_handler,
    )
    process.launch().close()
    return process


def popen(
    arguments: Sequence[str],
    *,
    environment: Mapping[str, str] | None = None,
    working_directory: Path | str | None = None,
    logging_handler: LoggingHandler | None = None,
) -> ProcessResult:
    """Run ``arguments`` with an empty stdin and return the collected result.

    Args:
        arguments: Program followed by its arguments.
        environment: Child environment. Defaults to a snapshot of ``os.environ``.
        working_directory: Directory the child starts in.
        logging_handler: Optional callback receiving the command line.

    Returns:
        ProcessResult: Completed process with stdout and stderr collected separately.
    """

    process = _collecting_process(
        arguments,
        environment=environment,
        working_directory=working_directory,
        logging_handler=logging_handler,
    )
    return process.wait_until_exit()


async def popen_async(
    arguments: Sequence[str],
    *,
    environment: Mapping[str, str] | None = None,
    working_directory: Path | str | None = None,
    logging_handler: LoggingHandler | None = None,
) -> ProcessResult:
    """Awaitable counterpart of :func:`popen`."""

    process = _collecting_process(
        arguments,
        environment=environment,
        working_directory=working_directory,
        logging_handler=logging_handler,
    )
    return await process.wait()


def ensure_zero_exit(result: ProcessResult) -> ProcessResult:
    """Return ``result`` unchanged when it terminated with exit code 0.

    Raises:
        NonZeroExitError: For any other exit status, signals included.
    """

    if result.exit_status != Terminated(0):
        raise NonZeroExitError(result)
    return result


def check_non_zero_exit(
    arguments: Sequence[str],
    *,
    environment: Mapping[str, str] | None = None,
    working_directory: Path | str | None = None,
    logging_handler: LoggingHandler | None = None,
) -> str:
    """Run ``arguments`` and return its stdout, failing unless it exits with 0.

    Returns:
        str: Decoded stdout of the successful run.

    Raises:
        NonZeroExitError: When the process did not terminate with exit code 0.
        IllegalUTF8SequenceError: When stdout is not valid UTF-8.
    """

    result = popen(
        arguments,
        environment=environment,
        working_directory=working_directory,
        logging_handler=logging_handler,
    )
    return ensure_zero_exit(result).utf8_output()


async def check_non_zero_exit_async(
    arguments: Sequence[str],
    *,
    environment: Mapping[str, str] | None = None,
    working_directory: Path | str | None = None,
    logging_handler: LoggingHandler | None = None,
) -> str:
    """Awaitable counterpart of :func:`check_non_zero_exit`."""

    result = await popen_async(
        arguments,
        environment=environment,
        working_directory=working_directory,
        logging_handler=logging_handler,
    )
    return ensure_zero_exit(result).utf8_output()


__all__ = [
    "check_non_zero_exit",
    "check_non_zero_exit_async",
    "ensure_zero_exit",
    "popen",
    "popen_async",
]
