"""Best-effort normalisation of escaped text before pattern matching."""

from __future__ import annotations

import html
import re

_UNICODE_ESCAPE = re.compile(r"\\?u00([0-9a-f]{2})", re.IGNORECASE)
_PERCENT_BYTE = re.compile(r"%[0-9a-f]{2}", re.IGNORECASE)


def _percent_decode(match: re.Match[str]) -> str:
    # Each %XX is decoded on its own; bytes that are not valid UTF-8 alone stay as-is.
    try:
        return bytes.fromhex(match.group(0)[1:]).decode("utf-8")
    except UnicodeDecodeError:
        return match.group(0)


def decode_text(raw: str) -> str:
    """Decode unicode escapes, percent-encoding and HTML entities.

    Never raises; malformed sequences are passed through untouched.
    """
    if not raw:
        return raw
    text = _UNICODE_ESCAPE.sub(lambda m: "%" + m.group(1), raw)
    text = _PERCENT_BYTE.sub(_percent_decode, text)
    return html.unescape(text)
