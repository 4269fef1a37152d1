# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Public surface of the process execution engine."""

from __future__ import annotations

from .engine import READ_CHUNK_SIZE, LoggingHandler, Process, ProcessState, resolve_executable
from .errors import (
    IllegalUTF8SequenceError,
    MissingExecutableError,
    NonZeroExitError,
    ProcessError,
    ProcessResultError,
    ProcessStateError,
    SystemCallError,
    SystemCallKind,
)
from .execution import check_non_zero_exit, check_non_zero_exit_async, ensure_zero_exit, popen, popen_async
from .models import (
    CapturedOutput,
    Collect,
    Command,
    Discard,
    ExitStatus,
    OutputCallback,
    OutputRedirection,
    ProcessResult,
    Signalled,
    Stream,
    Terminated,
    exit_status_from_returncode,
)

__all__ = [
    "READ_CHUNK_SIZE",
    "CapturedOutput",
    "Collect",
    "Command",
    "Discard",
    "ExitStatus",
    "IllegalUTF8SequenceError",
    "LoggingHandler",
    "MissingExecutableError",
    "NonZeroExitError",
    "OutputCallback",
    "OutputRedirection",
    "Process",
    "ProcessError",
    "ProcessResult",
    "ProcessResultError",
    "ProcessState",
    "ProcessStateError",
    "Signalled",
    "Stream",
    "SystemCallError",
    "SystemCallKind",
    "Terminated",
    "check_non_zero_exit",
    "check_non_zero_exit_async",
    "ensure_zero_exit",
    "exit_status_from_returncode",
    "popen",
    "popen_async",
    "resolve_executable",
]
