# === NAVMAP v1 ===
# {
#   "module": "HttpRelay.Forwarding.io_utils",
#   "purpose": "Chunked, cancellable read/write primitives over binary streams",
#   "sections": [
#     {
#       "id": "read-once",
#       "name": "read_once",
#       "anchor": "function-read-once",
#       "kind": "function"
#     },
#     {
#       "id": "read-data",
#       "name": "read_data",
#       "anchor": "function-read-data",
#       "kind": "function"
#     },
#     {
#       "id": "read-to",
#       "name": "read_to",
#       "anchor": "function-read-to",
#       "kind": "function"
#     },
#     {
#       "id": "write-all",
#       "name": "write_all",
#       "anchor": "function-write-all",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Chunked, cancellable read/write primitives over binary streams.

**Purpose**
-----------
Move fixed-size buffers between a binary stream and memory without silent
partial success: after :func:`read_data`, :func:`read_to` (non-EOF path) or
:func:`write_all` return, every requested byte has been transferred.

**Key Functions**
-----------------

:func:`read_once`
  Exactly one underlying read into a caller buffer, labelled for diagnostics.
  Optional strict length check raises :class:`ShortReadError`.

:func:`read_data`
  Allocate ``total`` bytes and fill them with :func:`read_once` calls over
  successive :data:`CHUNK_SIZE` windows. Short reads are tolerated.

:func:`read_to`
  Fill a caller buffer until it is full or the stream ends, polling a
  cancellation token before every chunk. End of stream is *not* an error.

:func:`write_all`
  Write a payload until it is fully accepted, polling a cancellation token
  before every write call. Partial writes advance the offset.

**Stream Contract**
-------------------
Readers are objects with ``readinto(buffer) -> int`` (any :class:`io.RawIOBase`
or :class:`io.BufferedIOBase`, :class:`HttpRelay.Forwarding.net.streams.ResponseBodyStream`).
Objects offering only ``read(n) -> bytes`` are adapted. A read returning zero
bytes for a non-empty window means end of stream. Writers return the number of
bytes accepted from ``write``.

Non-blocking raw streams report "no data yet" or "nothing accepted" by
returning ``None``. That is never end of stream or success: the primitives
raise :class:`BlockingIOError` so the caller can wait for readiness and resume.
"""

from __future__ import annotations

import errno
import logging
from typing import Any, Optional

from .cancellation import is_cancelled
from .errors import CancellationError, ReadError, ShortReadError

__all__ = ["CHUNK_SIZE", "read_once", "read_data", "read_to", "write_all"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def _readinto(reader: Any, view: memoryview) -> int:
    readinto = getattr(reader, "readinto", None)
    if readinto is not None:
        n = readinto(view)
        if n is None:
            raise BlockingIOError(errno.EAGAIN, "reader has no data available yet")
        return n
    data = reader.read(len(view))
    if data is None:
        raise BlockingIOError(errno.EAGAIN, "reader has no data available yet")
    n = len(data)
    view[:n] = data
    return n


def read_once(reader: Any, part: str, buf: Any, check_len: bool = False) -> int:
    """Issue exactly one read of ``reader`` into ``buf``.

    Args:
        reader: Binary stream to read from.
        part: Label identifying the logical field being read; carried on errors.
        buf: Writable buffer (``bytearray``, ``memoryview``) to fill.
        check_len: When ``True`` the read must fill ``buf`` completely.

    Returns:
        Number of bytes read.

    Raises:
        ReadError: If the read raised, or returned no bytes for a non-empty
            buffer (end of stream; ``cause`` is :class:`EOFError`). A
            non-blocking reader with no data yet gives a ``cause`` of
            :class:`BlockingIOError` instead.
        ShortReadError: If ``check_len`` is set and fewer than ``len(buf)``
            bytes were read.
    """
    view = memoryview(buf).cast("B")
    try:
        n = _readinto(reader, view)
    except ReadError:
        raise
    except Exception as exc:
        raise ReadError(part, exc) from exc

    if n == 0 and len(view) > 0:
        raise ReadError(part, EOFError("EOF"))

    if check_len and n != len(view):
        raise ShortReadError(part, expected=len(view), actual=n)

    return n


def read_data(reader: Any, name: str, total: int, *, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Read exactly ``total`` bytes from ``reader``.

    Each underlying call reads at most ``chunk_size`` bytes and may return
    fewer; the loop accumulates until ``total`` is satisfied.

    Raises:
        ReadError: Propagated from the first failing :func:`read_once`.
    """
    if total < 0:
        raise ValueError(f"total must be >= 0, got {total}")

    buf = bytearray(total)
    view = memoryview(buf)
    start = 0
    while start < total:
        window = min(chunk_size, total - start)
        start += read_once(reader, name, view[start : start + window], False)

    return bytes(buf)


def read_to(
    reader: Any,
    buf: Any,
    cancel: Optional[Any] = None,
    *,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Fill ``buf`` from ``reader`` until it is full or the stream ends.

    ``cancel`` is polled before every chunk. Bytes already copied into ``buf``
    before cancellation are left in place.

    Returns:
        ``len(buf)`` when the buffer was filled, otherwise the number of bytes
        read before end of stream.

    Raises:
        CancellationError: If ``cancel`` fired before the transfer completed.
        BlockingIOError: If a non-blocking ``reader`` has no data available
            yet; bytes copied before that stay in ``buf``.
        Exception: Any error raised by the underlying read, unchanged.
    """
    view = memoryview(buf).cast("B")
    total = len(view)
    start = 0
    while start < total:
        if is_cancelled(cancel):
            raise CancellationError("read")

        window = min(chunk_size, total - start)
        n = _readinto(reader, view[start : start + window])
        if n == 0:
            logger.debug("read_to reached end of stream after %d of %d bytes", start, total)
            return start

        start += n

    return total


def write_all(
    writer: Any,
    data: Any,
    cancel: Optional[Any] = None,
) -> None:
    """Write all of ``data`` to ``writer``.

    A write accepting fewer bytes than offered is not an error; the remainder
    is retried. ``cancel`` is polled before every write call.

    Raises:
        CancellationError: If ``cancel`` fired before the payload was written.
        BlockingIOError: If a non-blocking ``writer`` accepted nothing;
            ``characters_written`` holds the bytes transferred so far.
        Exception: Any error raised by ``writer.write``, unchanged.
    """
    view = memoryview(data).cast("B")
    total = len(view)
    offset = 0
    while offset < total:
        if is_cancelled(cancel):
            raise CancellationError("write")

        n = writer.write(view[offset:])
        if n is None:
            raise BlockingIOError(errno.EAGAIN, "writer would block", offset)
        offset += n
