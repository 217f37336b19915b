"""Regex iteration with a wall-clock budget."""

from __future__ import annotations

import logging
import re
import time

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 500


def match_all_bounded(
    regex: re.Pattern[str],
    content: str,
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
) -> list[re.Match[str]]:
    """Collect every match of ``regex`` in ``content`` until the budget runs out.

    The clock is checked between matches only; a single pathological match
    step cannot be interrupted. On timeout the matches found so far are
    returned and a warning is logged.
    """
    matches: list[re.Match[str]] = []
    deadline = time.monotonic() + timeout_ms / 1000

    for match in regex.finditer(content):
        matches.append(match)
        if time.monotonic() > deadline:
            logger.warning(
                "Regex timed out after %d ms (%d matches kept): %.80s",
                timeout_ms,
                len(matches),
                regex.pattern,
            )
            break

    return matches
