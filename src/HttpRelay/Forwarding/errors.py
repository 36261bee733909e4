# === NAVMAP v1 ===
# {
#   "module": "HttpRelay.Forwarding.errors",
#   "purpose": "Structured exception taxonomy for forwarding and chunked I/O.",
#   "sections": [
#     {
#       "id": "forwardingerror",
#       "name": "ForwardingError",
#       "anchor": "class-forwardingerror",
#       "kind": "class"
#     },
#     {
#       "id": "transporterror",
#       "name": "TransportError",
#       "anchor": "class-transporterror",
#       "kind": "class"
#     },
#     {
#       "id": "responsestatuserror",
#       "name": "ResponseStatusError",
#       "anchor": "class-responsestatuserror",
#       "kind": "class"
#     },
#     {
#       "id": "readerror",
#       "name": "ReadError",
#       "anchor": "class-readerror",
#       "kind": "class"
#     },
#     {
#       "id": "shortreaderror",
#       "name": "ShortReadError",
#       "anchor": "class-shortreaderror",
#       "kind": "class"
#     },
#     {
#       "id": "cancellationerror",
#       "name": "CancellationError",
#       "anchor": "class-cancellationerror",
#       "kind": "class"
#     },
#     {
#       "id": "urlparseerror",
#       "name": "URLParseError",
#       "anchor": "class-urlparseerror",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Structured exception taxonomy for forwarding and chunked I/O.

Responsibilities
----------------
- Give every failure mode of the forwarding helpers its own exception type so
  callers branch on ``isinstance`` rather than on message text.
- Keep the diagnostic fields (label, status, cause, attempt count) as
  attributes that survive re-raising and can be copied into telemetry.

Design Notes
------------
- All types derive from :class:`ForwardingError`, so ``except ForwardingError``
  catches everything this package raises on its own behalf. Exceptions raised
  by a caller-supplied body handler are *not* wrapped and propagate as-is.
- Underlying causes are kept on ``cause`` and chained with ``raise ... from``.
"""

from __future__ import annotations

__all__ = (
    "ForwardingError",
    "TransportError",
    "ResponseStatusError",
    "ReadError",
    "ShortReadError",
    "CancellationError",
    "URLParseError",
)


class ForwardingError(Exception):
    """Base class for errors raised by :mod:`HttpRelay.Forwarding`."""


class TransportError(ForwardingError):
    """Raised when sending a request failed on every attempt.

    Attributes:
        cause: The exception raised by the final attempt.
        attempts: Number of attempts made before giving up.
    """

    def __init__(self, cause: BaseException, *, attempts: int) -> None:
        self.cause = cause
        self.attempts = attempts
        super().__init__(f"send failed after {attempts} attempt(s): {cause}")


class ResponseStatusError(ForwardingError):
    """Raised when a response status falls outside ``[200, 299]``.

    The full response body is drained and kept on :attr:`body` so the caller
    can inspect upstream error payloads.
    """

    def __init__(self, status_code: int, reason: str, body: bytes) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"response has status:{self.status} and body:{body!r}")

    @property
    def status(self) -> str:
        """Status line text, e.g. ``"404 Not Found"``."""
        if self.reason:
            return f"{self.status_code} {self.reason}"
        return str(self.status_code)


class ReadError(ForwardingError):
    """Raised when a bounded read of a labelled part fails.

    Attributes:
        part: Caller-supplied label naming the field being read.
        cause: Underlying exception, or ``EOFError`` on premature end of stream.
    """

    def __init__(
        self,
        part: str,
        cause: BaseException | None = None,
        *,
        message: str | None = None,
    ) -> None:
        self.part = part
        self.cause = cause
        super().__init__(message or f"read {part}, err: {cause}")


class ShortReadError(ReadError):
    """Raised when a strict read returned fewer bytes than the buffer holds."""

    def __init__(self, part: str, *, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            part,
            message=(
                f"encounter unexpected EOF for {part}, expect to read {expected} bytes, "
                f"but got {actual}"
            ),
        )


class CancellationError(ForwardingError):
    """Raised when a cancellation token fires during a transfer or send."""

    def __init__(self, operation: str = "operation") -> None:
        self.operation = operation
        super().__init__(f"{operation} canceled")


class URLParseError(ForwardingError, ValueError):
    """Raised when an endpoint handed to the URL helpers cannot be parsed."""

    def __init__(self, endpoint: str, cause: BaseException | None = None) -> None:
        self.endpoint = endpoint
        self.cause = cause
        super().__init__(f"invalid endpoint {endpoint!r}: {cause}")
