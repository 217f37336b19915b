"""Entropy and position helpers over a text buffer."""

from __future__ import annotations

import bisect
import math
import re
from collections import Counter

_NEWLINE = re.compile("\n")


def shannon_entropy(text: str | None) -> float:
    """Shannon entropy in bits per character; 0 for empty input."""
    if not text:
        return 0.0
    length = len(text)
    entropy = 0.0
    for count in Counter(text).values():
        p = count / length
        entropy -= p * math.log2(p)
    return entropy


def line_and_column(content: str, index: int) -> tuple[int, int]:
    """Map a character index to a 1-based (line, column) pair."""
    head = content[:index]
    line = head.count("\n") + 1
    column = len(head) - (head.rfind("\n") + 1) + 1
    return line, column


class LineIndex:
    """Newline offsets of one buffer, for many index lookups.

    Gives the same answers as :func:`line_and_column` without rescanning the
    text before each index.
    """

    def __init__(self, content: str) -> None:
        self._newlines = [m.start() for m in _NEWLINE.finditer(content)]

    def position(self, index: int) -> tuple[int, int]:
        line = bisect.bisect_left(self._newlines, index)
        line_start = self._newlines[line - 1] + 1 if line else 0
        return line + 1, index - line_start + 1
