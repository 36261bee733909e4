"""File-like adapter over a streaming :class:`httpx.Response` body."""

from __future__ import annotations

import io
from typing import Iterator, Optional

import httpx

__all__ = ["ResponseBodyStream"]


class ResponseBodyStream(io.RawIOBase):
    """Readable binary stream backed by ``response.iter_bytes()``.

    The stream does not own the response: closing it stops further reads but
    leaves closing the response to whoever opened it (the forwarder).
    """

    def __init__(self, response: httpx.Response, *, chunk_size: Optional[int] = None) -> None:
        super().__init__()
        self._response = response
        self._chunk_size = chunk_size
        self._chunks: Optional[Iterator[bytes]] = None
        self._pending = b""
        self._exhausted = False

    @property
    def response(self) -> httpx.Response:
        return self._response

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        if self.closed:
            raise ValueError("I/O operation on closed body stream")

        view = memoryview(buffer).cast("B")
        if not len(view):
            return 0

        while not self._pending and not self._exhausted:
            if self._chunks is None:
                self._chunks = self._response.iter_bytes(chunk_size=self._chunk_size)
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                self._exhausted = True

        n = min(len(view), len(self._pending))
        view[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n
