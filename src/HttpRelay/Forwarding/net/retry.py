# === NAVMAP v1 ===
# {
#   "module": "HttpRelay.Forwarding.net.retry",
#   "purpose": "Tenacity-backed sender that retries transport failures with exponential backoff",
#   "sections": [
#     {
#       "id": "retryingsender",
#       "name": "RetryingSender",
#       "anchor": "class-retryingsender",
#       "kind": "class"
#     },
#     {
#       "id": "get-default-sender",
#       "name": "get_default_sender",
#       "anchor": "function-get-default-sender",
#       "kind": "function"
#     },
#     {
#       "id": "reset-default-sender",
#       "name": "reset_default_sender",
#       "anchor": "function-reset-default-sender",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Tenacity-backed sender that retries transport failures.

Only outright transport failures (:class:`httpx.TransportError`: connect and
read errors, timeouts, protocol errors) are retried. A response with any
status code is a completed exchange and is returned as-is; status
classification belongs to the forwarder.

Defaults reproduce the historical policy: 3 attempts in total, sleeping 10 ms
then 20 ms between them, no jitter. All three numbers and the sleep function
are constructor parameters so tests can run without real sleeps.

Cancellation is observed before each attempt and during each backoff sleep.
An in-flight ``send`` itself is bounded by the client's timeouts, not by the
token.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..cancellation import raise_if_cancelled, wait_or_cancel
from ..config.models import ForwardingConfig
from ..errors import TransportError
from .client import get_http_client

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_BACKOFF_BASE_S",
    "DEFAULT_BACKOFF_FACTOR",
    "RetryingSender",
    "get_default_sender",
    "reset_default_sender",
]

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE_S = 0.010
DEFAULT_BACKOFF_FACTOR = 2.0


def _log_before_sleep(retry_state: RetryCallState) -> None:
    request = retry_state.args[0] if retry_state.args else None
    exc = retry_state.outcome.exception() if retry_state.outcome is not None else None
    delay = retry_state.next_action.sleep if retry_state.next_action is not None else 0.0
    LOGGER.debug(
        "Retrying %s %s after %s (attempt %s, delay %.3fs)",
        getattr(request, "method", "?"),
        getattr(request, "url", "?"),
        exc,
        retry_state.attempt_number,
        delay,
    )


class RetryingSender:
    """Send prepared requests, retrying transport failures with backoff.

    Args:
        client: Transport used for every attempt. When omitted the process
            default from :func:`~HttpRelay.Forwarding.net.client.get_http_client`
            is resolved at send time.
        max_attempts: Total attempts including the first one.
        backoff_base: Seconds slept before the first retry.
        backoff_factor: Multiplier applied to the delay after each retry.
        sleep: Replacement for the backoff sleep, called with seconds. When
            omitted the sleep waits on the cancellation token.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE_S,
        backoff_factor: float = DEFAULT_BACKOFF_FACTOR,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if backoff_base < 0:
            raise ValueError(f"backoff_base must be >= 0, got {backoff_base}")
        if backoff_factor <= 0:
            raise ValueError(f"backoff_factor must be > 0, got {backoff_factor}")
        self._client = client
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_factor = backoff_factor
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: ForwardingConfig,
        client: Optional[httpx.Client] = None,
        **kwargs: Any,
    ) -> "RetryingSender":
        policy = config.retry
        return cls(
            client,
            max_attempts=policy.max_attempts,
            backoff_base=policy.backoff_base_ms / 1000.0,
            backoff_factor=policy.backoff_factor,
            **kwargs,
        )

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            return get_http_client()
        return self._client

    def send(self, request: httpx.Request, *, cancel: Optional[Any] = None) -> httpx.Response:
        """Send ``request`` with ``stream=True`` and return the first response.

        The caller owns the returned response and must close it.

        Raises:
            TransportError: Every attempt failed; ``cause`` is the last failure.
            CancellationError: ``cancel`` fired before an attempt or while
                backing off.
        """
        client = self.client
        attempts = 0

        def _attempt(req: httpx.Request) -> httpx.Response:
            nonlocal attempts
            raise_if_cancelled(cancel, "send")
            attempts += 1
            return client.send(req, stream=True)

        def _sleep(seconds: float) -> None:
            if self._sleep is None:
                wait_or_cancel(cancel, seconds, "send")
                return
            self._sleep(seconds)
            raise_if_cancelled(cancel, "send")

        retrying = Retrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base, exp_base=self.backoff_factor),
            sleep=_sleep,
            before_sleep=_log_before_sleep,
            reraise=True,
        )

        try:
            return retrying(_attempt, request)
        except httpx.TransportError as exc:
            LOGGER.warning(
                "Send of %s %s failed after %d attempt(s): %s",
                request.method,
                request.url,
                attempts,
                exc,
            )
            raise TransportError(exc, attempts=attempts) from exc


# ============================================================================
# Process default
# ============================================================================

_DEFAULT_SENDER: Optional[RetryingSender] = None
_DEFAULT_LOCK = threading.Lock()


def get_default_sender() -> RetryingSender:
    """Lazily create the sender used when callers do not supply one."""
    global _DEFAULT_SENDER
    with _DEFAULT_LOCK:
        if _DEFAULT_SENDER is None:
            _DEFAULT_SENDER = RetryingSender()
        return _DEFAULT_SENDER


def reset_default_sender() -> None:
    """Drop the default sender (for testing)."""
    global _DEFAULT_SENDER
    with _DEFAULT_LOCK:
        _DEFAULT_SENDER = None
