# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Child process execution with concurrent output draining.

A :class:`Process` moves through ``IDLE -> READING_OUTPUT -> OUTPUT_READY ->
COMPLETE`` (or ``FAILED`` when reaping the child fails). One reader thread per
captured pipe drains output; the child is reaped only after every reader has
reached end of file, so a child blocked on a full pipe can never deadlock the
wait. Blocking and ``asyncio`` waits share the same state machine and the same
cached result.
"""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import shlex
import shutil

# Bandit: subprocess usage is intentional; commands are argument vectors and
# ``shell=True`` is never used.
import subprocess  # nosec B404
import threading
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from pathlib import Path
from typing import IO, Final

from ..streams import LocalFileOutputByteStream, WritableByteStream
from .errors import (
    MissingExecutableError,
    ProcessError,
    ProcessStateError,
    SystemCallError,
    SystemCallKind,
)
from .models import (
    EMPTY_OUTPUT,
    CapturedOutput,
    Command,
    Discard,
    OutputCallback,
    OutputRedirection,
    ProcessResult,
    Stream,
    exit_status_from_returncode,
)

READ_CHUNK_SIZE: Final[int] = 4096

LoggingHandler = Callable[[str], None]

_LOGGER = logging.getLogger(__name__)


class ProcessState(str, Enum):
    """Lifecycle stage of a :class:`Process`."""

    IDLE = "idle"
    READING_OUTPUT = "reading_output"
    OUTPUT_READY = "output_ready"
    COMPLETE = "complete"
    FAILED = "failed"


def resolve_executable(program: str, environment: Mapping[str, str]) -> str:
    """Return the path used to spawn ``program``.

    Programs containing a path separator are used as given. Bare names are
    looked up on the ``PATH`` of the child environment.

    Args:
        program: First element of the command line.
        environment: Environment the child will run with.

    Returns:
        str: Program path suitable for :class:`subprocess.Popen`.

    Raises:
        MissingExecutableError: If a bare name is not found on ``PATH``.
    """

    if os.sep in program or (os.altsep and os.altsep in program):
        return program
    resolved = shutil.which(program, path=environment.get("PATH", os.defpath))
    if resolved is None:
        raise MissingExecutableError(program)
    return resolved


class Process:
    """Launch one child process and collect or stream its output."""

    def __init__(self, command: Command, *, logging_handler: LoggingHandler | None = None) -> None:
        """Prepare a process for ``command`` without launching it.

        Args:
            command: Immutable description of the child to run.
            logging_handler: Optional callback receiving the command line just
                before the child is spawned.
        """

        self.command = command
        self._logging_handler = logging_handler
        self._lock = threading.Lock()
        self._reap_lock = threading.Lock()
        self._output_ready = threading.Event()
        self._state = ProcessState.IDLE
        self._launched = False
        self._popen: subprocess.Popen[bytes] | None = None
        self._pending_readers = 0
        self._captures: dict[str, CapturedOutput] = {"stdout": EMPTY_OUTPUT, "stderr": EMPTY_OUTPUT}
        self._callback_error: BaseException | None = None
        self._result: ProcessResult | None = None
        self._failure: ProcessError | None = None

    @classmethod
    def from_arguments(
        cls,
        arguments: Sequence[str],
        *,
        environment: Mapping[str, str] | None = None,
        working_directory: Path | str | None = None,
        redirection: OutputRedirection | None = None,
        start_new_process_group: bool = True,
        logging_handler: LoggingHandler | None = None,
    ) -> Process:
        """Build a process from an argument vector; see :meth:`Command.create`."""

        command = Command.create(
            arguments,
            environment=environment,
            working_directory=working_directory,
            redirection=redirection,
            start_new_process_group=start_new_process_group,
        )
        return cls(command, logging_handler=logging_handler)

    @property
    def state(self) -> ProcessState:
        with self._lock:
            return self._state

    @property
    def launched(self) -> bool:
        with self._lock:
            return self._launched

    @property
    def pid(self) -> int | None:
        popen = self._popen
        return None if popen is None else popen.pid

    @property
    def result(self) -> ProcessResult | None:
        with self._lock:
            return self._result

    def launch(self) -> WritableByteStream:
        """Spawn the child and start draining its output.

        Returns:
            WritableByteStream: Sink connected to the child's stdin. Closing it
            delivers end-of-file to the child.

        Raises:
            ProcessStateError: If the process was already launched.
            MissingExecutableError: If the program cannot be resolved.
            SystemCallError: If the working directory is unusable or spawning fails.
        """

        with self._lock:
            if self._launched:
                raise ProcessStateError("process has already been launched")
            self._launched = True

        command = self.command
        try:
            popen = self._spawn(command)
        except ProcessError as exc:
            with self._lock:
                self._state = ProcessState.FAILED
                self._failure = exc
            raise
        self._popen = popen
        self._start_readers(popen, command.redirection)
        assert popen.stdin is not None
        return LocalFileOutputByteStream(popen.stdin)

    def _spawn(self, command: Command) -> subprocess.Popen[bytes]:
        arguments = list(command.arguments)
        program = resolve_executable(arguments[0], command.environment)
        working_directory = command.working_directory
        if working_directory is not None and not working_directory.is_dir():
            raise SystemCallError(
                SystemCallKind.CHDIR,
                errno.ENOENT,
                path=working_directory,
                arguments=arguments,
            )
        if self._logging_handler is not None:
            self._logging_handler(shlex.join(arguments))

        redirection = command.redirection
        if isinstance(redirection, Discard):
            stdout: int = subprocess.DEVNULL
            stderr: int = subprocess.DEVNULL
        else:
            stdout = subprocess.PIPE
            stderr = subprocess.STDOUT if redirection.redirect_stderr else subprocess.PIPE
        try:
            return subprocess.Popen(  # nosec B603 - argument vector without a shell
                [program, *arguments[1:]],
                stdin=subprocess.PIPE,
                stdout=stdout,
                stderr=stderr,
                env=dict(command.environment),
                cwd=working_directory,
                start_new_session=command.start_new_process_group,
                bufsize=0,
                close_fds=True,
            )
        except OSError as exc:
            kind = SystemCallKind.SPAWN
            if working_directory is not None and exc.filename == str(working_directory):
                kind = SystemCallKind.CHDIR
            raise SystemCallError.from_os_error(kind, exc, arguments=arguments) from exc

    def _start_readers(self, popen: subprocess.Popen[bytes], redirection: OutputRedirection) -> None:
        on_stdout: OutputCallback | None = None
        on_stderr: OutputCallback | None = None
        if isinstance(redirection, Stream):
            on_stdout = redirection.on_stdout
            on_stderr = redirection.on_stderr
        readers: list[tuple[str, IO[bytes], OutputCallback | None]] = []
        if popen.stdout is not None:
            readers.append(("stdout", popen.stdout, on_stdout))
        if popen.stderr is not None:
            readers.append(("stderr", popen.stderr, on_stderr))

        with self._lock:
            self._pending_readers = len(readers)
            if readers:
                self._state = ProcessState.READING_OUTPUT
            else:
                self._state = ProcessState.OUTPUT_READY
                self._output_ready.set()
        for name, pipe, callback in readers:
            thread = threading.Thread(
                target=self._drain,
                args=(name, pipe, callback),
                name=f"skipdrive-{name}-{popen.pid}",
                daemon=True,
            )
            thread.start()

    def _drain(self, name: str, pipe: IO[bytes], callback: OutputCallback | None) -> None:
        chunks: list[bytes] = []
        error: SystemCallError | None = None
        fd = pipe.fileno()
        try:
            while True:
                try:
                    chunk = os.read(fd, READ_CHUNK_SIZE)
                except InterruptedError:
                    continue
                if not chunk:
                    break
                if callback is None:
                    chunks.append(chunk)
                    continue
                try:
                    callback(chunk)
                except Exception as exc:  # noqa: BLE001 - re-raised from wait
                    _LOGGER.debug("%s callback failed, discarding remaining output", name, exc_info=True)
                    with self._lock:
                        if self._callback_error is None:
                            self._callback_error = exc
                    callback = _discard
        except OSError as exc:
            error = SystemCallError.from_os_error(SystemCallKind.READ, exc, arguments=self.command.arguments)
        try:
            pipe.close()
        except OSError as exc:
            if error is None:
                error = SystemCallError.from_os_error(SystemCallKind.CLOSE, exc, arguments=self.command.arguments)
        self._reader_finished(name, CapturedOutput(b"".join(chunks), error))

    def _reader_finished(self, name: str, capture: CapturedOutput) -> None:
        with self._lock:
            self._captures[name] = capture
            self._pending_readers -= 1
            if self._pending_readers == 0:
                self._state = ProcessState.OUTPUT_READY
                self._output_ready.set()

    def _poll(self) -> ProcessResult | None:
        """Return the cached result, raise a recorded failure, or ``None`` to keep waiting."""

        with self._lock:
            state = self._state
            if state is ProcessState.IDLE:
                raise ProcessStateError("cannot wait for a process that has not been launched")
            if state is ProcessState.COMPLETE:
                assert self._result is not None
                return self._result
            if state is ProcessState.FAILED:
                assert self._failure is not None
                raise self._failure
        return None

    def _reap(self) -> ProcessResult:
        with self._reap_lock:
            cached = self._poll()
            if cached is not None:
                return cached
            popen = self._popen
            assert popen is not None
            try:
                returncode = popen.wait()
            except OSError as exc:
                failure = SystemCallError.from_os_error(
                    SystemCallKind.WAITPID, exc, arguments=self.command.arguments
                )
                with self._lock:
                    self._state = ProcessState.FAILED
                    self._failure = failure
                raise failure from exc
            with self._lock:
                result = ProcessResult(
                    arguments=self.command.arguments,
                    environment=self.command.environment,
                    exit_status=exit_status_from_returncode(returncode),
                    output=self._captures["stdout"],
                    stderr_output=self._captures["stderr"],
                )
                self._result = result
                self._state = ProcessState.COMPLETE
                callback_error = self._callback_error
            if callback_error is not None:
                raise callback_error
            return result

    def wait_until_exit(self) -> ProcessResult:
        """Block until output is drained and the child is reaped.

        Returns:
            ProcessResult: The same result object on every call.

        Raises:
            ProcessStateError: If the process was never launched.
            SystemCallError: If spawning or reaping the child failed.
            Exception: The first exception raised by a :class:`Stream` callback,
                reported once after the child is reaped.
        """

        while True:
            cached = self._poll()
            if cached is not None:
                return cached
            if self._output_ready.is_set():
                return self._reap()
            self._output_ready.wait()

    async def wait(self) -> ProcessResult:
        """Await output draining and reaping without blocking the event loop.

        Returns:
            ProcessResult: The same result object on every call.

        Raises:
            ProcessStateError: If the process was never launched.
            SystemCallError: If spawning or reaping the child failed.
        """

        while True:
            cached = self._poll()
            if cached is not None:
                return cached
            if self._output_ready.is_set():
                return await asyncio.to_thread(self._reap)
            await asyncio.to_thread(self._output_ready.wait)

    def signal(self, signum: int) -> None:
        """Send ``signum`` to the child, or to its process group when it leads one.

        Delivery is best effort: a child that already exited is ignored.

        Raises:
            ProcessStateError: If the process was never launched.
        """

        with self._lock:
            if not self._launched:
                raise ProcessStateError("cannot signal a process that has not been launched")
            if self._state in (ProcessState.COMPLETE, ProcessState.FAILED):
                return
        popen = self._popen
        if popen is None:
            return
        try:
            if self.command.start_new_process_group:
                os.killpg(popen.pid, signum)
            else:
                popen.send_signal(signum)
        except (ProcessLookupError, PermissionError):
            _LOGGER.debug("signal %s not delivered to pid %s", signum, popen.pid)


def _discard(_chunk: bytes) -> None:
    return None


__all__ = [
    "READ_CHUNK_SIZE",
    "LoggingHandler",
    "Process",
    "ProcessState",
    "resolve_executable",
]
