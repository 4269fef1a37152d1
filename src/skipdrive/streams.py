# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Writable byte sinks used for child stdin, diagnostics output and test capture.

Three backends share one buffering policy: an in-memory sink, a file-backed sink
that defers I/O errors until :meth:`close`, and a lock-serialised wrapper for
sinks written from several threads.
"""

from __future__ import annotations

import os
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, Final

BLOCK_SIZE: Final[int] = 1024

BytesLike = bytes | bytearray | memoryview


class FileStreamError(OSError):
    """Raised from :meth:`LocalFileOutputByteStream.close` when an earlier write failed."""

    def __init__(self, path: Path | None, errno: int | None) -> None:
        """Initialise the error with the failing file and errno.

        Args:
            path: File the stream was writing to, ``None`` for borrowed handles.
            errno: OS error number captured from the failed operation.
        """

        reason = os.strerror(errno) if errno is not None else "unknown error"
        target = str(path) if path is not None else "<file object>"
        super().__init__(errno, f"failed writing to {target}: {reason}")
        self.path = path


class WritableByteStream(ABC):
    """Sink accepting raw bytes and UTF-8 text."""

    @property
    @abstractmethod
    def position(self) -> int:
        """Return the number of bytes accepted so far."""

    @abstractmethod
    def write(self, data: BytesLike) -> None:
        """Append ``data`` to the stream."""

    @abstractmethod
    def flush(self) -> None:
        """Push buffered bytes to the backend."""

    @abstractmethod
    def close(self) -> None:
        """Flush and release the backend."""

    def write_text(self, text: str) -> None:
        """Append ``text`` encoded as UTF-8."""

        self.write(text.encode("utf-8"))

    def __enter__(self) -> WritableByteStream:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


class _BufferedStreamBase(WritableByteStream):
    """Shared buffering policy; subclasses implement the three backend hooks."""

    def __init__(self, *, buffered: bool) -> None:
        self._buffered = buffered
        self._buffer = bytearray()
        self._position = 0

    @property
    def position(self) -> int:
        return self._position

    def write(self, data: BytesLike) -> None:
        payload = bytes(data)
        self._position += len(payload)
        if not self._buffered:
            self._write_impl(payload)
            return
        if len(self._buffer) + len(payload) <= BLOCK_SIZE:
            self._buffer.extend(payload)
            return
        self._drain()
        if len(payload) >= BLOCK_SIZE:
            self._write_impl(payload)
        else:
            self._buffer.extend(payload)

    def flush(self) -> None:
        self._drain()
        self._flush_impl()

    def close(self) -> None:
        self._drain()
        self._close_impl()

    def _drain(self) -> None:
        if self._buffer:
            pending = bytes(self._buffer)
            self._buffer.clear()
            self._write_impl(pending)

    @abstractmethod
    def _write_impl(self, data: bytes) -> None:
        """Deliver ``data`` to the backend."""

    def _flush_impl(self) -> None:
        """Flush the backend; a no-op for backends without their own buffer."""

    def _close_impl(self) -> None:
        """Release the backend; a no-op for in-memory sinks."""


class BufferedOutputByteStream(_BufferedStreamBase):
    """Growable in-memory sink, mostly used to capture output in tests."""

    def __init__(self) -> None:
        super().__init__(buffered=False)
        self._contents = bytearray()

    def _write_impl(self, data: bytes) -> None:
        self._contents.extend(data)

    @property
    def bytes(self) -> bytes:
        """Return everything written so far."""

        self.flush()
        return bytes(self._contents)

    def text(self) -> str:
        """Return the contents decoded as strict UTF-8."""

        return self.bytes.decode("utf-8")


class LocalFileOutputByteStream(_BufferedStreamBase):
    """File-backed sink that records I/O failures and reports them on close.

    Writes never raise for OS-level failures. The first failure is remembered
    and later writes are dropped; :meth:`close` raises it once as a
    :class:`FileStreamError` so callers get a single, well-defined error point.
    """

    def __init__(
        self,
        target: Path | str | BinaryIO,
        *,
        buffered: bool = True,
        close_file: bool = True,
    ) -> None:
        """Open ``target`` for writing or adopt an already open binary handle.

        Args:
            target: Path opened in ``wb`` mode, or a writable binary file object.
            buffered: Whether writes are batched in :data:`BLOCK_SIZE` blocks.
            close_file: Whether :meth:`close` also closes the underlying handle.

        Raises:
            FileStreamError: When ``target`` is a path that cannot be opened.
        """

        super().__init__(buffered=buffered)
        self._error: OSError | None = None
        self._closed = False
        self._close_file = close_file
        if isinstance(target, (str, Path)):
            self.path: Path | None = Path(target)
            try:
                self._file: BinaryIO = open(self.path, "wb")  # noqa: SIM115 - owned by the stream
            except OSError as exc:
                self._closed = True
                raise FileStreamError(self.path, exc.errno) from exc
        else:
            self.path = None
            self._file = target

    @property
    def closed(self) -> bool:
        return self._closed

    def _write_impl(self, data: bytes) -> None:
        if self._error is not None:
            return
        try:
            self._file.write(data)
        except OSError as exc:
            self._error = exc

    def _flush_impl(self) -> None:
        if self._error is not None:
            return
        try:
            self._file.flush()
        except OSError as exc:
            self._error = exc

    def _close_impl(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._close_file:
            try:
                self._file.close()
            except OSError as exc:
                if self._error is None:
                    self._error = exc
        else:
            self._flush_impl()
        if self._error is not None:
            error, self._error = self._error, None
            raise FileStreamError(self.path, error.errno) from error

    def close(self) -> None:
        if self._closed:
            return
        super().close()

    def __del__(self) -> None:
        if self._closed or not self._close_file:
            return
        try:
            self._file.close()
        except OSError:
            pass


_STDOUT_LOCK: Final[threading.RLock] = threading.RLock()


class ThreadSafeOutputByteStream(WritableByteStream):
    """Serialise every operation on ``stream`` through a lock.

    Each wrapper owns its lock unless one is passed in. Wrappers that share a
    sink must share the lock too, as :func:`stdout_stream` does.
    """

    def __init__(self, stream: WritableByteStream, lock: threading.RLock | None = None) -> None:
        self.stream = stream
        self._lock = threading.RLock() if lock is None else lock

    @property
    def position(self) -> int:
        with self._lock:
            return self.stream.position

    def write(self, data: BytesLike) -> None:
        with self._lock:
            self.stream.write(data)

    def write_text(self, text: str) -> None:
        with self._lock:
            self.stream.write_text(text)

    def flush(self) -> None:
        with self._lock:
            self.stream.flush()

    def close(self) -> None:
        with self._lock:
            self.stream.close()


def stdout_stream() -> ThreadSafeOutputByteStream:
    """Return a thread-safe, non-closing sink over the process stdout."""

    return ThreadSafeOutputByteStream(
        LocalFileOutputByteStream(sys.stdout.buffer, close_file=False),
        lock=_STDOUT_LOCK,
    )


__all__ = [
    "BLOCK_SIZE",
    "BufferedOutputByteStream",
    "FileStreamError",
    "LocalFileOutputByteStream",
    "ThreadSafeOutputByteStream",
    "WritableByteStream",
    "stdout_stream",
]
