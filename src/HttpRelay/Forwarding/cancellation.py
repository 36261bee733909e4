"""Cooperative cancellation tokens.

A token is an externally owned flag that long-running loops poll between
units of work. Polling never blocks; latency is bounded by one unit of work
(one chunk for the copy primitives, one attempt or one backoff sleep for the
retrying sender).

Any object exposing ``is_set()`` (for example :class:`threading.Event`) is
accepted wherever a token is expected, and ``None`` means "never cancelled".
"""

from __future__ import annotations

import threading
import time
from typing import Any, Optional

from .errors import CancellationError

__all__ = [
    "CancellationToken",
    "is_cancelled",
    "raise_if_cancelled",
    "wait_or_cancel",
]


class CancellationToken:
    """Thread-safe cancellation flag with an optional deadline."""

    def __init__(self, *, deadline: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        """Token that reports cancelled once ``seconds`` have elapsed."""
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def cancel(self) -> None:
        self._event.set()

    def is_set(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; return ``True`` if cancelled meanwhile."""
        if self._deadline is not None:
            remaining = self._deadline - time.monotonic()
            if remaining <= timeout:
                return self._event.wait(max(remaining, 0.0)) or True
        return self._event.wait(timeout)


def is_cancelled(token: Any) -> bool:
    """Return ``True`` if ``token`` has fired, without blocking."""
    if token is None:
        return False
    return bool(token.is_set())


def raise_if_cancelled(token: Any, operation: str = "operation") -> None:
    if is_cancelled(token):
        raise CancellationError(operation)


def wait_or_cancel(token: Any, seconds: float, operation: str = "operation") -> None:
    """Sleep for ``seconds`` unless ``token`` fires first.

    Raises:
        CancellationError: If the token is (or becomes) set during the wait.
    """
    raise_if_cancelled(token, operation)
    if token is None:
        time.sleep(seconds)
        return
    wait = getattr(token, "wait", None)
    if wait is None:
        time.sleep(seconds)
    elif wait(seconds):
        raise CancellationError(operation)
    raise_if_cancelled(token, operation)
