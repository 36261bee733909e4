"""
Forwarding orchestrator.

``forward_to`` sends a prepared request through a :class:`RetryingSender`,
validates the response status and relays the live body to a caller handler.

Per call:

    Sending ──► Failed                      (TransportError / CancellationError)
            └─► Received ──► StatusError    (status outside [200, 299])
                         ├─► StatusError body read failed (ReadError)
                         ├─► Success, no handler
                         ├─► Success, handler returned
                         └─► Success, handler raised

Every ``Received`` branch closes the response before returning.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

import httpx

from ..errors import ReadError, ResponseStatusError
from .retry import RetryingSender, get_default_sender
from .streams import ResponseBodyStream

__all__ = ["BodyHandler", "forward_to", "is_success_status"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

BodyHandler = Callable[[httpx.Headers, ResponseBodyStream], T]


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code <= 299


def _status_error(response: httpx.Response) -> ResponseStatusError:
    try:
        body = response.read()
    except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
        raise ReadError("response body", exc) from exc
    return ResponseStatusError(response.status_code, response.reason_phrase, body)


def forward_to(
    request: httpx.Request,
    handler: Optional[BodyHandler[T]] = None,
    *,
    sender: Optional[RetryingSender] = None,
    cancel: Optional[Any] = None,
) -> Optional[T]:
    """Send ``request`` and hand a successful response body to ``handler``.

    Args:
        request: Fully built request; it may be sent more than once.
        handler: Called as ``handler(headers, body_stream)`` for 2xx responses.
            The body is not read beforehand; the handler consumes as much as
            it needs. Its return value is returned and its exceptions
            propagate unchanged.
        sender: Sender to use; defaults to :func:`get_default_sender`.
        cancel: Cancellation token observed by the sender.

    Returns:
        The handler's return value, or ``None`` without a handler.

    Raises:
        TransportError: Sending failed on every attempt.
        CancellationError: ``cancel`` fired while sending.
        ResponseStatusError: Status outside ``[200, 299]``; carries the body.
        ReadError: The error body could not be drained.
    """
    sender = sender or get_default_sender()
    response = sender.send(request, cancel=cancel)
    if response is None:
        return None

    try:
        if not is_success_status(response.status_code):
            logger.debug(
                "Forward of %s %s returned status %s", request.method, request.url, response.status_code
            )
            raise _status_error(response)

        if handler is None:
            return None

        return handler(response.headers, ResponseBodyStream(response))
    finally:
        response.close()
