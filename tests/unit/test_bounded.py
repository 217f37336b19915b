"""Tests for time-bounded regex iteration."""

from __future__ import annotations

import logging
import re
import time

from jsrecon.scanner.bounded import match_all_bounded


def test_collects_all_matches_within_budget():
    matches = match_all_bounded(re.compile(r"\d+"), "a1b22c333")
    assert [m.group(0) for m in matches] == ["1", "22", "333"]


def test_no_matches():
    assert match_all_bounded(re.compile(r"\d"), "abc") == []


def test_timeout_returns_partial_results(caplog):
    content = "x" * 2_000_000
    start = time.monotonic()
    with caplog.at_level(logging.WARNING, logger="jsrecon.scanner.bounded"):
        matches = match_all_bounded(re.compile("x"), content, timeout_ms=1)
    elapsed = time.monotonic() - start

    assert 0 < len(matches) < len(content)
    assert elapsed < 5
    assert "timed out" in caplog.text


def test_matches_keep_their_positions():
    matches = match_all_bounded(re.compile("ab"), "ab ab")
    assert [m.start() for m in matches] == [0, 3]


def test_backtracking_pattern_stops_between_matches(caplog):
    # Every segment makes (a+)+ backtrack exponentially before "ab" matches.
    content = ("a" * 16 + "!ab") * 5000
    start = time.monotonic()
    with caplog.at_level(logging.WARNING, logger="jsrecon.scanner.bounded"):
        matches = match_all_bounded(re.compile(r"(a+)+b"), content, timeout_ms=20)
    elapsed = time.monotonic() - start

    assert 0 < len(matches) < 5000
    assert all(m.group(0) == "ab" for m in matches)
    assert elapsed < 5
    assert "timed out" in caplog.text
