# === NAVMAP v1 ===
# {
#   "module": "HttpRelay.Forwarding.__init__",
#   "purpose": "Public surface of the outbound request forwarding helpers.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Outbound request forwarding helpers.

Sends a prepared :class:`httpx.Request` with transport-failure retries,
validates the response status and streams the body to a caller handler.
Chunked, cancellable copy primitives move bytes between that stream (or any
binary stream) and memory.
"""

from .cancellation import CancellationToken, is_cancelled, raise_if_cancelled
from .errors import (
    CancellationError,
    ForwardingError,
    ReadError,
    ResponseStatusError,
    ShortReadError,
    TransportError,
    URLParseError,
)
from .io_utils import CHUNK_SIZE, read_data, read_once, read_to, write_all
from .jsonutil import json_marshal
from .net import RetryingSender, ResponseBodyStream, build_http_client, forward_to
from .urls import gen_query_uri, gen_url

__all__ = [
    "CHUNK_SIZE",
    "CancellationError",
    "CancellationToken",
    "ForwardingError",
    "ReadError",
    "ResponseBodyStream",
    "ResponseStatusError",
    "RetryingSender",
    "ShortReadError",
    "TransportError",
    "URLParseError",
    "build_http_client",
    "forward_to",
    "gen_query_uri",
    "gen_url",
    "is_cancelled",
    "json_marshal",
    "raise_if_cancelled",
    "read_data",
    "read_once",
    "read_to",
    "write_all",
]
