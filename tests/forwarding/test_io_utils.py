"""Tests for the chunked copy primitives.

Tests cover:
- read_once error wrapping, EOF handling and strict length checks
- read_data accumulation across short reads and chunk windows
- read_to end-of-stream, full-buffer and cancellation paths
- write_all partial writes, error propagation and cancellation
- non-blocking streams reporting None are never taken for EOF or success
"""

from __future__ import annotations

import io
import os
import sys
import threading
from typing import List

import pytest

from HttpRelay.Forwarding.cancellation import CancellationToken
from HttpRelay.Forwarding.errors import CancellationError, ReadError, ShortReadError
from HttpRelay.Forwarding.io_utils import CHUNK_SIZE, read_data, read_once, read_to, write_all


class CappedReader:
    """Reader returning at most ``cap`` bytes per call and recording request sizes."""

    def __init__(self, data: bytes, cap: int = CHUNK_SIZE) -> None:
        self._data = data
        self._pos = 0
        self.cap = cap
        self.requested: List[int] = []

    def readinto(self, buf) -> int:
        self.requested.append(len(buf))
        n = min(len(buf), self.cap, len(self._data) - self._pos)
        buf[:n] = self._data[self._pos : self._pos + n]
        self._pos += n
        return n


class FailingReader:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def readinto(self, buf) -> int:
        raise self.exc


class ReadOnlyReader:
    """Reader exposing only ``read(n)``."""

    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)

    def read(self, n: int) -> bytes:
        return self._stream.read(n)


class TrickleWriter:
    """Writer accepting at most ``per_call`` bytes per write."""

    def __init__(self, per_call: int) -> None:
        self.per_call = per_call
        self.written = bytearray()
        self.calls = 0

    def write(self, data) -> int:
        self.calls += 1
        chunk = bytes(data[: self.per_call])
        self.written.extend(chunk)
        return len(chunk)


class WouldBlockWriter(TrickleWriter):
    """Non-blocking writer: accepts ``per_call`` bytes, then reports ``None``."""

    def __init__(self, per_call: int, accepted_calls: int) -> None:
        super().__init__(per_call)
        self.accepted_calls = accepted_calls

    def write(self, data):
        if self.calls >= self.accepted_calls:
            self.calls += 1
            return None
        return super().write(data)


class WouldBlockReader(CappedReader):
    """Non-blocking reader: serves its data, then reports ``None`` instead of EOF."""

    def readinto(self, buf):
        n = super().readinto(buf)
        return n or None


class CancellingWriter(TrickleWriter):
    """Writer that fires ``token`` after its first write."""

    def __init__(self, per_call: int, token: CancellationToken) -> None:
        super().__init__(per_call)
        self.token = token

    def write(self, data) -> int:
        n = super().write(data)
        self.token.cancel()
        return n


# --- read_once ---


class TestReadOnce:
    def test_returns_count_for_full_read(self):
        buf = bytearray(4)
        assert read_once(io.BytesIO(b"abcdef"), "header", buf) == 4
        assert bytes(buf) == b"abcd"

    def test_short_read_tolerated_without_check(self):
        buf = bytearray(8)
        assert read_once(io.BytesIO(b"abc"), "header", buf) == 3

    def test_short_read_rejected_with_check(self):
        with pytest.raises(ShortReadError) as excinfo:
            read_once(io.BytesIO(b"abc"), "header", bytearray(8), check_len=True)

        err = excinfo.value
        assert err.part == "header"
        assert err.expected == 8
        assert err.actual == 3
        assert "header" in str(err)

    def test_underlying_error_wrapped_with_label(self):
        cause = OSError("connection reset")
        with pytest.raises(ReadError) as excinfo:
            read_once(FailingReader(cause), "length prefix", bytearray(4))

        assert excinfo.value.part == "length prefix"
        assert excinfo.value.cause is cause
        assert excinfo.value.__cause__ is cause

    def test_end_of_stream_is_read_error(self):
        with pytest.raises(ReadError) as excinfo:
            read_once(io.BytesIO(b""), "payload", bytearray(4))

        assert isinstance(excinfo.value.cause, EOFError)
        assert not isinstance(excinfo.value, ShortReadError)

    def test_would_block_is_not_end_of_stream(self):
        with pytest.raises(ReadError) as excinfo:
            read_once(WouldBlockReader(b""), "payload", bytearray(4))

        assert isinstance(excinfo.value.cause, BlockingIOError)
        assert not isinstance(excinfo.value.cause, EOFError)

    def test_empty_buffer_reads_nothing(self):
        assert read_once(io.BytesIO(b""), "payload", bytearray(0), check_len=True) == 0

    def test_adapts_read_only_streams(self):
        buf = bytearray(3)
        assert read_once(ReadOnlyReader(b"xyz!"), "tag", buf) == 3
        assert bytes(buf) == b"xyz"


# --- read_data ---


class TestReadData:
    def test_reads_exact_total_across_chunks(self):
        payload = bytes(range(256)) * 80  # 20480 bytes
        reader = CappedReader(payload)

        data = read_data(reader, "blob", 20000)

        assert len(data) == 20000
        assert data == payload[:20000]
        assert max(reader.requested) <= CHUNK_SIZE
        assert reader.requested[:3] == [CHUNK_SIZE, CHUNK_SIZE, 20000 - 2 * CHUNK_SIZE]

    def test_tolerates_short_reads(self):
        payload = b"z" * 20000
        reader = CappedReader(payload, cap=1000)

        assert read_data(reader, "blob", 20000) == payload
        assert len(reader.requested) == 20

    def test_truncated_source_raises_read_error(self):
        with pytest.raises(ReadError) as excinfo:
            read_data(CappedReader(b"a" * 100), "blob", 200)

        assert excinfo.value.part == "blob"

    def test_sub_read_failure_propagates(self):
        with pytest.raises(ReadError) as excinfo:
            read_data(FailingReader(OSError("boom")), "blob", 10)

        assert isinstance(excinfo.value.cause, OSError)

    def test_zero_total_returns_empty(self):
        assert read_data(io.BytesIO(b"unused"), "blob", 0) == b""

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError):
            read_data(io.BytesIO(b""), "blob", -1)


# --- read_to ---


class TestReadTo:
    def test_eof_returns_bytes_read_so_far(self):
        reader = CappedReader(b"q" * 5000)
        buf = bytearray(10000)

        assert read_to(reader, buf) == 5000
        assert bytes(buf[:5000]) == b"q" * 5000

    def test_full_buffer_returns_length(self):
        buf = bytearray(20000)
        assert read_to(CappedReader(b"r" * 30000), buf) == 20000

    def test_reads_in_chunk_windows(self):
        reader = CappedReader(b"s" * 20000)
        read_to(reader, bytearray(20000))

        assert reader.requested == [CHUNK_SIZE, CHUNK_SIZE, 20000 - 2 * CHUNK_SIZE]

    def test_pre_cancelled_token_raises_before_reading(self):
        token = CancellationToken()
        token.cancel()
        reader = CappedReader(b"t" * 100)

        with pytest.raises(CancellationError):
            read_to(reader, bytearray(100), token)

        assert reader.requested == []

    def test_accepts_threading_event(self):
        event = threading.Event()
        event.set()

        with pytest.raises(CancellationError):
            read_to(CappedReader(b"t"), bytearray(1), event)

    def test_cancellation_observed_between_chunks(self):
        token = CancellationToken()

        class CancelAfterFirst(CappedReader):
            def readinto(self, buf) -> int:
                n = super().readinto(buf)
                token.cancel()
                return n

        reader = CancelAfterFirst(b"u" * 20000)
        buf = bytearray(20000)

        with pytest.raises(CancellationError):
            read_to(reader, buf, token)

        assert len(reader.requested) == 1
        assert bytes(buf[:CHUNK_SIZE]) == b"u" * CHUNK_SIZE

    def test_would_block_is_not_end_of_stream(self):
        buf = bytearray(10)

        with pytest.raises(BlockingIOError):
            read_to(WouldBlockReader(b"abc"), buf)

        assert bytes(buf[:3]) == b"abc"

    @pytest.mark.skipif(sys.platform == "win32", reason="non-blocking pipes are POSIX only")
    def test_non_blocking_pipe_with_open_writer_is_not_eof(self):
        read_fd, write_fd = os.pipe()
        try:
            os.write(write_fd, b"abc")
            os.set_blocking(read_fd, False)
            with io.FileIO(read_fd, "rb", closefd=False) as reader:
                buf = bytearray(10)
                with pytest.raises(BlockingIOError):
                    read_to(reader, buf)

            assert bytes(buf[:3]) == b"abc"
        finally:
            os.close(read_fd)
            os.close(write_fd)

    def test_read_errors_propagate_unchanged(self):
        cause = OSError("reset")
        with pytest.raises(OSError) as excinfo:
            read_to(FailingReader(cause), bytearray(10))

        assert excinfo.value is cause


# --- write_all ---


class TestWriteAll:
    def test_partial_writes_complete_payload(self):
        writer = TrickleWriter(per_call=3)

        write_all(writer, b"0123456789")

        assert writer.calls == 4
        assert bytes(writer.written) == b"0123456789"

    def test_single_write_when_sink_accepts_everything(self):
        sink = io.BytesIO()
        write_all(sink, b"hello")
        assert sink.getvalue() == b"hello"

    def test_empty_payload_does_not_write(self):
        writer = TrickleWriter(per_call=3)
        write_all(writer, b"")
        assert writer.calls == 0

    def test_write_error_propagates(self):
        class BrokenWriter:
            def write(self, data) -> int:
                raise BrokenPipeError("closed")

        with pytest.raises(BrokenPipeError):
            write_all(BrokenWriter(), b"data")

    def test_pre_cancelled_token_raises_without_writing(self):
        token = CancellationToken()
        token.cancel()
        writer = TrickleWriter(per_call=3)

        with pytest.raises(CancellationError):
            write_all(writer, b"data", token)

        assert writer.calls == 0

    def test_cancellation_observed_between_writes(self):
        token = CancellationToken()
        writer = CancellingWriter(per_call=3, token=token)

        with pytest.raises(CancellationError):
            write_all(writer, b"0123456789", token)

        assert writer.calls == 1
        assert bytes(writer.written) == b"012"

    def test_would_block_raises_with_bytes_written(self):
        writer = WouldBlockWriter(per_call=3, accepted_calls=2)

        with pytest.raises(BlockingIOError) as excinfo:
            write_all(writer, b"0123456789")

        assert excinfo.value.characters_written == 6
        assert bytes(writer.written) == b"012345"
        assert writer.calls == 3

    @pytest.mark.skipif(sys.platform == "win32", reason="non-blocking pipes are POSIX only")
    def test_non_blocking_pipe_never_reports_false_success(self):
        payload = b"x" * (4 * 1024 * 1024)
        read_fd, write_fd = os.pipe()
        try:
            os.set_blocking(write_fd, False)
            with io.FileIO(write_fd, "wb", closefd=False) as writer:
                with pytest.raises(BlockingIOError) as excinfo:
                    write_all(writer, payload)

            written = excinfo.value.characters_written
            assert 0 < written < len(payload)

            drained = bytearray()
            while len(drained) < written:
                drained.extend(os.read(read_fd, written - len(drained)))
            assert bytes(drained) == payload[:written]
        finally:
            os.close(read_fd)
            os.close(write_fd)
