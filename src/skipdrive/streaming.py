# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Asynchronous line and JSON streams over a child's merged stdout/stderr.

Reader threads split output into separator-terminated units and hand them to
the event loop through a bounded queue; a full queue blocks the reader thread,
which in turn lets the child block on its pipe. An unterminated final fragment
is never emitted.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from pathlib import Path
from types import TracebackType
from typing import Any, Final

from .process import (
    LoggingHandler,
    NonZeroExitError,
    Process,
    ProcessResult,
    Stream,
    Terminated,
    ensure_zero_exit,
)

DEFAULT_SEPARATOR: Final[bytes] = b"\n"
DEFAULT_QUEUE_SIZE: Final[int] = 1024

ExitHandler = Callable[[ProcessResult], None]

_LOGGER = logging.getLogger(__name__)
_BACKGROUND_TASKS: Final[set[asyncio.Task[None]]] = set()


class StreamDecodeError(ValueError):
    """Raised when a streamed line is not a valid JSON document."""

    def __init__(self, line: bytes) -> None:
        preview = line[:200].decode("utf-8", errors="replace")
        super().__init__(f"invalid JSON line in process output: {preview!r}")
        self.line = line


def expect_zero_exit_code(result: ProcessResult) -> None:
    """Exit handler accepting only ``terminated(0)``.

    Raises:
        NonZeroExitError: For any other exit status.
    """

    ensure_zero_exit(result)


class LineSplitter:
    """Split a byte stream into separator-terminated units.

    Bytes after the last separator are carried over to the next :meth:`feed`.
    """

    def __init__(self, separator: bytes = DEFAULT_SEPARATOR) -> None:
        if not separator:
            raise ValueError("separator must not be empty")
        self.separator = separator
        self._pending = b""

    @property
    def pending(self) -> bytes:
        return self._pending

    def feed(self, chunk: bytes) -> list[bytes]:
        """Return every unit completed by ``chunk``, separators stripped."""

        data = self._pending + chunk
        if self.separator not in data:
            self._pending = data
            return []
        *units, self._pending = data.split(self.separator)
        return units

    def discard_pending(self) -> bytes:
        """Drop and return the unterminated remainder."""

        dropped, self._pending = self._pending, b""
        if dropped:
            _LOGGER.debug("dropping %d bytes of unterminated output", len(dropped))
        return dropped


class _Finished:
    pass


_FINISHED: Final[_Finished] = _Finished()


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


class AsyncByteLineStream:
    """Async iterator of raw output units from a child with stderr merged into stdout.

    The child is launched on the first iteration. When the child has been
    reaped, signalled exits end the stream with :class:`NonZeroExitError`;
    normal exits are passed to ``on_exit``, whose exception (if any) ends the
    stream. :meth:`aclose` stops delivery; the child runs to completion with its
    output drained and discarded.
    """

    def __init__(
        self,
        arguments: Sequence[str],
        *,
        on_exit: ExitHandler,
        environment: Mapping[str, str] | None = None,
        working_directory: Path | str | None = None,
        separator: bytes = DEFAULT_SEPARATOR,
        max_buffered_lines: int = DEFAULT_QUEUE_SIZE,
        logging_handler: LoggingHandler | None = None,
    ) -> None:
        self._on_exit = on_exit
        self._splitter = LineSplitter(separator)
        self._max_buffered = max_buffered_lines
        self.process = Process.from_arguments(
            arguments,
            environment=environment,
            working_directory=working_directory,
            redirection=Stream(on_stdout=self._on_chunk, redirect_stderr=True),
            logging_handler=logging_handler,
        )
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[bytes | _Finished | _Failure] | None = None
        self._completion: asyncio.Task[None] | None = None
        self._abandoned = False
        self._done = False

    def _start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self._max_buffered)
        self.process.launch().close()
        self._completion = asyncio.ensure_future(self._complete())
        _BACKGROUND_TASKS.add(self._completion)
        self._completion.add_done_callback(_BACKGROUND_TASKS.discard)

    def _on_chunk(self, chunk: bytes) -> None:
        # Runs on the reader thread.
        assert self._loop is not None and self._queue is not None
        for unit in self._splitter.feed(chunk):
            if self._abandoned:
                return
            asyncio.run_coroutine_threadsafe(self._queue.put(unit), self._loop).result()

    async def _complete(self) -> None:
        assert self._queue is not None
        try:
            result = await self.process.wait()
            self._splitter.discard_pending()
            if not isinstance(result.exit_status, Terminated):
                raise NonZeroExitError(result)
            self._on_exit(result)
        except Exception as exc:  # noqa: BLE001 - delivered to the consumer
            if not self._abandoned:
                await self._queue.put(_Failure(exc))
        else:
            if not self._abandoned:
                await self._queue.put(_FINISHED)

    def __aiter__(self) -> AsyncByteLineStream:
        return self

    async def __anext__(self) -> bytes:
        if self._done or self._abandoned:
            raise StopAsyncIteration
        if self._queue is None:
            self._start()
        assert self._queue is not None
        item = await self._queue.get()
        if isinstance(item, _Finished):
            self._done = True
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._done = True
            raise item.error
        return item

    async def aclose(self) -> None:
        """Stop delivering units.

        The child keeps running; its output is drained and discarded and it is
        reaped in the background. Await ``self.process.wait()`` to block until
        it has exited.
        """

        if self._abandoned:
            return
        self._abandoned = True
        if self._queue is None:
            return
        while not self._queue.empty():
            self._queue.get_nowait()

    async def __aenter__(self) -> AsyncByteLineStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()


async def stream_lines(
    arguments: Sequence[str],
    *,
    on_exit: ExitHandler,
    environment: Mapping[str, str] | None = None,
    working_directory: Path | str | None = None,
    separator: bytes = DEFAULT_SEPARATOR,
    logging_handler: LoggingHandler | None = None,
) -> AsyncIterator[str]:
    """Yield the child's output lines as text, stderr merged into stdout.

    Lines that are not valid UTF-8 are skipped with a warning.

    Args:
        arguments: Program followed by its arguments.
        on_exit: Called with the result of a normally terminated child; an
            exception it raises ends the iteration.
        environment: Child environment. Defaults to a snapshot of ``os.environ``.
        working_directory: Directory the child starts in.
        separator: Byte sequence terminating each line.
        logging_handler: Optional callback receiving the command line.

    Yields:
        str: One decoded line without its separator.

    Raises:
        NonZeroExitError: When the child was killed by a signal.
    """

    stream = AsyncByteLineStream(
        arguments,
        on_exit=on_exit,
        environment=environment,
        working_directory=working_directory,
        separator=separator,
        logging_handler=logging_handler,
    )
    async with stream:
        async for unit in stream:
            try:
                line = unit.decode("utf-8")
            except UnicodeDecodeError:
                _LOGGER.warning("skipping undecodable output line (%d bytes) from %s", len(unit), arguments[0])
                continue
            yield line


async def stream_json(
    arguments: Sequence[str],
    *,
    on_exit: ExitHandler,
    environment: Mapping[str, str] | None = None,
    working_directory: Path | str | None = None,
    separator: bytes = DEFAULT_SEPARATOR,
    logging_handler: LoggingHandler | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """Yield each output line parsed as a JSON object.

    Lines holding other JSON values are skipped.

    Raises:
        StreamDecodeError: When a line is not valid JSON.
        NonZeroExitError: When the child was killed by a signal.
    """

    stream = AsyncByteLineStream(
        arguments,
        on_exit=on_exit,
        environment=environment,
        working_directory=working_directory,
        separator=separator,
        logging_handler=logging_handler,
    )
    async with stream:
        async for unit in stream:
            try:
                value = json.loads(unit)
            except ValueError as exc:
                raise StreamDecodeError(unit) from exc
            if isinstance(value, dict):
                yield value


__all__ = [
    "DEFAULT_SEPARATOR",
    "AsyncByteLineStream",
    "ExitHandler",
    "LineSplitter",
    "StreamDecodeError",
    "expect_zero_exit_code",
    "stream_json",
    "stream_lines",
]
