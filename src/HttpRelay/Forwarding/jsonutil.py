"""JSON encoding for request bodies."""

from __future__ import annotations

import json
from typing import Any

__all__ = ["json_marshal"]

# U+2028 and U+2029 stay \u-escaped in the output.
_LINE_SEPARATORS = str.maketrans({"\u2028": "\\u2028", "\u2029": "\\u2029"})


def json_marshal(value: Any) -> bytes:
    """Encode ``value`` as compact UTF-8 JSON followed by a newline.

    ``<``, ``>`` and ``&`` are emitted literally and non-ASCII text is not
    ``\\u``-escaped, so payloads embedding HTML or URLs stay byte-for-byte
    readable. U+2028 and U+2029 are the exception and are always escaped.

    Raises:
        TypeError: If ``value`` is not JSON serialisable.
        ValueError: If ``value`` contains NaN/Infinity or a circular reference.
    """
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    return (text.translate(_LINE_SEPARATORS) + "\n").encode("utf-8")
