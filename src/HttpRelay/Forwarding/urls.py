"""URL composition helpers for outbound requests."""

from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import parse_qsl, urlencode

import httpx

from .errors import URLParseError

__all__ = ["gen_query_uri", "gen_url"]


def _parse_endpoint(endpoint: str) -> httpx.URL:
    try:
        return httpx.URL(endpoint)
    except (httpx.InvalidURL, TypeError) as exc:
        raise URLParseError(endpoint, exc) from exc


def gen_query_uri(endpoint: str, params: Optional[Mapping[str, str]] = None) -> str:
    """Append ``params`` to the query string of ``endpoint``.

    Existing query parameters are kept. The combined query is form-encoded
    with keys sorted; repeated keys keep their relative order.

    Raises:
        URLParseError: If ``endpoint`` is not a valid URL.
    """
    url = _parse_endpoint(endpoint)

    if params:
        pairs = parse_qsl(url.query.decode("ascii"), keep_blank_values=True)
        pairs.extend(params.items())
        pairs.sort(key=lambda pair: pair[0])
        url = url.copy_with(query=urlencode(pairs).encode("ascii"))

    return str(url)


def gen_url(endpoint: str, query: str = "") -> str:
    """Replace the raw query of ``endpoint`` with ``query`` when non-empty.

    Raises:
        URLParseError: If ``endpoint`` is not a valid URL.
    """
    url = _parse_endpoint(endpoint)

    if query:
        url = url.copy_with(query=query.encode("utf-8"))

    return str(url)
