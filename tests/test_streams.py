# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Tests for the writable byte stream backends."""

from __future__ import annotations

import errno
import io
import threading
from pathlib import Path

import pytest

from skipdrive.streams import (
    BLOCK_SIZE,
    BufferedOutputByteStream,
    FileStreamError,
    LocalFileOutputByteStream,
    ThreadSafeOutputByteStream,
)


class _FailingFile(io.RawIOBase):
    def writable(self) -> bool:
        return True

    def write(self, data) -> int:  # type: ignore[override]
        raise OSError(errno.ENOSPC, "No space left on device")


class _RecordingFile(io.BytesIO):
    def __init__(self) -> None:
        super().__init__()
        self.writes: list[bytes] = []

    def write(self, data) -> int:  # type: ignore[override]
        self.writes.append(bytes(data))
        return super().write(data)


def test_buffered_output_collects_bytes_and_text() -> None:
    stream = BufferedOutputByteStream()
    stream.write(b"hello ")
    stream.write_text("wörld")
    assert stream.bytes == "hello wörld".encode()
    assert stream.text() == "hello wörld"
    assert stream.position == len("hello wörld".encode())


def test_file_stream_writes_to_path(tmp_path: Path) -> None:
    target = tmp_path / "out.txt"
    with LocalFileOutputByteStream(target) as stream:
        stream.write_text("line one\n")
        stream.write(b"line two\n")
    assert target.read_text(encoding="utf-8") == "line one\nline two\n"


def test_small_writes_are_batched_until_flush() -> None:
    handle = _RecordingFile()
    stream = LocalFileOutputByteStream(handle, close_file=False)
    stream.write(b"a")
    stream.write(b"b")
    assert handle.writes == []
    stream.flush()
    assert handle.writes == [b"ab"]


def test_overflowing_write_drains_buffer_first() -> None:
    handle = _RecordingFile()
    stream = LocalFileOutputByteStream(handle, close_file=False)
    stream.write(b"x" * 10)
    stream.write(b"y" * BLOCK_SIZE)
    assert handle.writes == [b"x" * 10, b"y" * BLOCK_SIZE]


def test_unbuffered_stream_writes_through() -> None:
    handle = _RecordingFile()
    stream = LocalFileOutputByteStream(handle, buffered=False, close_file=False)
    stream.write(b"now")
    assert handle.writes == [b"now"]


def test_write_failure_is_reported_once_on_close() -> None:
    stream = LocalFileOutputByteStream(_FailingFile(), buffered=False, close_file=False)
    stream.write(b"data")
    stream.write(b"more")
    with pytest.raises(FileStreamError) as excinfo:
        stream.close()
    assert excinfo.value.errno == errno.ENOSPC
    assert stream.closed
    stream.close()


def test_unopenable_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileStreamError) as excinfo:
        LocalFileOutputByteStream(tmp_path / "missing" / "out.txt")
    assert "missing" in str(excinfo.value)


def test_thread_safe_stream_keeps_writes_whole() -> None:
    inner = BufferedOutputByteStream()
    stream = ThreadSafeOutputByteStream(inner)

    def _writer(tag: str) -> None:
        for _ in range(200):
            stream.write_text(f"{tag * 8}\n")

    threads = [threading.Thread(target=_writer, args=(tag,)) for tag in "abcd"]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = inner.text().splitlines()
    assert len(lines) == 800
    assert all(len(set(line)) == 1 and len(line) == 8 for line in lines)
    assert stream.position == 800 * 9


class _BlockingStream(BufferedOutputByteStream):
    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def write_text(self, text: str) -> None:
        self.entered.set()
        self.release.wait(timeout=10)
        super().write_text(text)


def test_separate_sinks_do_not_block_each_other() -> None:
    blocking = _BlockingStream()
    slow = ThreadSafeOutputByteStream(blocking)
    fast_inner = BufferedOutputByteStream()
    fast = ThreadSafeOutputByteStream(fast_inner)

    holder = threading.Thread(target=slow.write_text, args=("slow\n",))
    holder.start()
    assert blocking.entered.wait(timeout=10)

    writer = threading.Thread(target=fast.write_text, args=("fast\n",))
    writer.start()
    writer.join(timeout=5)
    finished = not writer.is_alive()
    blocking.release.set()
    holder.join()
    writer.join()

    assert finished
    assert fast_inner.text() == "fast\n"
    assert blocking.text() == "slow\n"


def test_shared_lock_serialises_wrappers_over_one_sink() -> None:
    inner = BufferedOutputByteStream()
    lock = threading.RLock()
    first = ThreadSafeOutputByteStream(inner, lock=lock)
    second = ThreadSafeOutputByteStream(inner, lock=lock)
    with lock:
        writer = threading.Thread(target=second.write_text, args=("b\n",))
        writer.start()
        writer.join(timeout=0.2)
        assert writer.is_alive()
        first.write_text("a\n")
    writer.join()
    assert inner.text() == "a\nb\n"
