"""
Network layer for HttpRelay Forwarding.

Architecture:
- Explicit HTTPX client per sender (lazy process default when none is given)
- Tenacity-driven retries of transport failures only (10 ms, 20 ms backoff)
- Status validation with full error-body capture
- Streaming success bodies to a caller handler without pre-buffering
"""

from .client import build_http_client, close_http_client, get_http_client, reset_http_client
from .forwarder import BodyHandler, forward_to, is_success_status
from .retry import RetryingSender, get_default_sender, reset_default_sender
from .streams import ResponseBodyStream

__all__ = [
    # Client factory
    "build_http_client",
    "get_http_client",
    "close_http_client",
    "reset_http_client",
    # Sending
    "RetryingSender",
    "get_default_sender",
    "reset_default_sender",
    # Forwarding
    "BodyHandler",
    "ResponseBodyStream",
    "forward_to",
    "is_success_status",
]
