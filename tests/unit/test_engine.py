"""Tests for the scan engine."""

from __future__ import annotations

import asyncio
import time

import pytest

from jsrecon.scanner.engine import ScanCancelled, ScanEngine, apply_dependency_confusion
from jsrecon.scanner.models import ContentSource, Occurrence, ScanResult
from jsrecon.scanner.patterns import (
    DEPENDENCY_CONFUSION,
    DOM_XSS_SINKS,
    ENDPOINTS,
    INTERESTING_PARAMETERS,
    POTENTIAL_NPM_PACKAGES,
    POTENTIAL_SECRETS,
    SOURCE_MAPS,
    SUBDOMAINS,
    get_patterns,
)


def run_async(coro):
    """Helper to run async functions in sync tests."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def _scan(patterns, sources, hostname=None, **kwargs) -> ScanResult:
    engine = ScanEngine(patterns, hostname=hostname)
    return run_async(engine.scan(sources, **kwargs))


class TestSkippedSources:
    def test_too_large_source_contributes_nothing(self, rule_factory):
        patterns = {POTENTIAL_SECRETS: [rule_factory(POTENTIAL_SECRETS, "SECRET_X")]}
        sources = [ContentSource(source="big.js", code="SECRET_X", is_too_large=True)]
        result = _scan(patterns, sources)
        assert result.results[POTENTIAL_SECRETS] == {}
        assert "big.js" not in result.content_map
        assert result.sources_skipped == 1
        assert result.sources_scanned == 0

    def test_empty_source_skipped(self, rule_factory):
        patterns = {ENDPOINTS: [rule_factory(ENDPOINTS, "x")]}
        result = _scan(patterns, [ContentSource(source="empty", code="")])
        assert result.content_map == {}
        assert result.sources_skipped == 1


class TestValidation:
    def test_subdomains_scoped_to_current_host(self, rule_factory):
        patterns = {SUBDOMAINS: [rule_factory(SUBDOMAINS, r"[a-z]+\.(?:example|other)\.com")]}
        sources = [ContentSource(source="a.js", code="api.example.com api.other.com")]
        result = _scan(patterns, sources, hostname="app.example.com")
        assert list(result.results[SUBDOMAINS]) == ["api.example.com"]

    def test_subdomains_rejected_without_hostname(self, rule_factory):
        patterns = {SUBDOMAINS: [rule_factory(SUBDOMAINS, r"api\.example\.com")]}
        result = _scan(patterns, [ContentSource(source="a.js", code="api.example.com")])
        assert result.results[SUBDOMAINS] == {}

    def test_entropy_gate(self, rule_factory):
        rule = rule_factory(POTENTIAL_SECRETS, r'key="([^"]+)"', group=1, entropy=3.0)
        code = 'key="aaaa" key="aK9!pQ2z"'
        result = _scan({POTENTIAL_SECRETS: [rule]}, [ContentSource(source="a.js", code=code)])
        assert list(result.results[POTENTIAL_SECRETS]) == ["aK9!pQ2z"]

    def test_zero_threshold_always_passes(self, rule_factory):
        rule = rule_factory(POTENTIAL_SECRETS, r'key="([^"]+)"', group=1, entropy=0)
        result = _scan(
            {POTENTIAL_SECRETS: [rule]},
            [ContentSource(source="a.js", code='key="aaaa"')],
        )
        assert list(result.results[POTENTIAL_SECRETS]) == ["aaaa"]

    def test_endpoint_made_of_slashes_rejected(self, rule_factory):
        rule = rule_factory(ENDPOINTS, r'"(/[^"]*)"', group=1)
        code = '"/" "///" "/api/v1/users"'
        result = _scan({ENDPOINTS: [rule]}, [ContentSource(source="a.js", code=code)])
        assert list(result.results[ENDPOINTS]) == ["/api/v1/users"]

    def test_missing_group_is_ignored(self, rule_factory):
        rule = rule_factory(ENDPOINTS, r"/api", group=3)
        result = _scan({ENDPOINTS: [rule]}, [ContentSource(source="a.js", code="/api")])
        assert result.results[ENDPOINTS] == {}

    def test_values_are_trimmed(self, rule_factory):
        rule = rule_factory(DOM_XSS_SINKS, r"\s*eval\(")
        result = _scan({DOM_XSS_SINKS: [rule]}, [ContentSource(source="a.js", code="  eval(")])
        assert list(result.results[DOM_XSS_SINKS]) == ["eval("]


class TestAggregation:
    def test_occurrences_from_two_sources(self, rule_factory):
        rule = rule_factory(POTENTIAL_SECRETS, "unique-secret", rule_id="s")
        sources = [
            ContentSource(source="first.js", code="x = 'unique-secret'"),
            ContentSource(source="second.js", code="unique-secret"),
        ]
        result = _scan({POTENTIAL_SECRETS: [rule]}, sources)

        findings = result.results[POTENTIAL_SECRETS]
        assert list(findings) == ["unique-secret"]
        occurrences = findings["unique-secret"]
        assert [o.source for o in occurrences] == ["first.js", "second.js"]
        assert occurrences[0] == Occurrence(
            source="first.js",
            rule_id="s",
            index=5,
            length=13,
            line=1,
            column=6,
        )

    def test_line_and_column(self, rule_factory):
        rule = rule_factory(POTENTIAL_SECRETS, "needle")
        result = _scan(
            {POTENTIAL_SECRETS: [rule]},
            [ContentSource(source="a.js", code="x\ny\nfoo needle")],
        )
        (occ,) = result.results[POTENTIAL_SECRETS]["needle"]
        assert (occ.line, occ.column) == (3, 5)

    def test_invalid_rule_does_not_stop_others(self, rule_factory):
        patterns = {
            ENDPOINTS: [
                rule_factory(ENDPOINTS, "(broken"),
                rule_factory(ENDPOINTS, r'"(/ok)"', group=1),
            ]
        }
        result = _scan(patterns, [ContentSource(source="a.js", code='"/ok"')])
        assert list(result.results[ENDPOINTS]) == ["/ok"]

    def test_many_matches_in_large_source(self, rule_factory):
        code = "\n".join(f"x = '/a{i}';" for i in range(60_000))
        patterns = {ENDPOINTS: [rule_factory(ENDPOINTS, r"(/a\d*)", group=1)]}
        engine = ScanEngine(patterns, regex_timeout_ms=2000)

        start = time.monotonic()
        result = run_async(engine.scan([ContentSource(source="big.js", code=code)]))
        elapsed = time.monotonic() - start

        assert elapsed < 10
        (occurrence,) = result.results[ENDPOINTS]["/a59999"]
        assert (occurrence.line, occurrence.column) == (60_000, 6)

    def test_single_rule_catalog_entry(self, rule_factory):
        patterns = {ENDPOINTS: rule_factory(ENDPOINTS, r'"(/one)"', group=1)}
        result = _scan(patterns, [ContentSource(source="a.js", code='"/one"')])
        assert list(result.results[ENDPOINTS]) == ["/one"]


class TestDecodingAndContent:
    def test_content_is_decoded_before_matching(self, rule_factory):
        rule = rule_factory(ENDPOINTS, r'"(/[^"]*)"', group=1)
        code = '"\\u002Fapi\\u002Fusers"'
        result = _scan({ENDPOINTS: [rule]}, [ContentSource(source="a.js", code=code)])
        assert list(result.results[ENDPOINTS]) == ["/api/users"]
        assert result.content_map["a.js"] == '"/api/users"'

    def test_context_snippet(self, rule_factory):
        rule = rule_factory(POTENTIAL_SECRETS, "needle")
        result = _scan(
            {POTENTIAL_SECRETS: [rule]},
            [ContentSource(source="a.js", code="hay\nneedle\nhay")],
        )
        occ = result.results[POTENTIAL_SECRETS]["needle"][0]
        snippet = result.context_snippet(occ.source, occ.index, occ.length)
        assert snippet == "... hay needle hay ..."


class TestScheduling:
    def test_progress_counts_processed_sources(self, rule_factory):
        calls = []
        patterns = {ENDPOINTS: [rule_factory(ENDPOINTS, "x")]}
        sources = [
            ContentSource(source="empty", code=""),
            ContentSource(source="a", code="x"),
            ContentSource(source="b", code="x"),
        ]
        _scan(patterns, sources, on_progress=lambda done, total: calls.append((done, total)))
        assert calls == [(1, 3), (2, 3)]

    def test_cancelled_scan_raises(self, rule_factory):
        patterns = {ENDPOINTS: [rule_factory(ENDPOINTS, "x")]}
        with pytest.raises(ScanCancelled):
            _scan(
                patterns,
                [ContentSource(source="a", code="x")],
                is_cancelled=lambda: True,
            )

    def test_cancellation_between_sources(self, rule_factory):
        seen = []
        patterns = {ENDPOINTS: [rule_factory(ENDPOINTS, "x")]}
        sources = [ContentSource(source=s, code="x") for s in ("a", "b", "c")]

        def on_progress(done, total):
            seen.append(done)

        with pytest.raises(ScanCancelled):
            _scan(
                patterns, sources, on_progress=on_progress, is_cancelled=lambda: len(seen) >= 1
            )
        assert seen == [1]


def test_builtin_catalog_end_to_end():
    code = (
        'const api = "https://api.example.com/x";\n'
        'fetch("/api/v1/users");\n'
        "el.innerHTML = html;\n"
        'location.assign("/login?redirect=/home");\n'
        'import ui from "@acme/internal-ui";\n'
        "//# sourceMappingURL=app.js.map\n"
    )
    result = _scan(
        get_patterns(),
        [ContentSource(source="Inline Script #1", code=code)],
        hostname="www.example.com",
    )
    assert "api.example.com" in result.results[SUBDOMAINS]
    assert "/api/v1/users" in result.results[ENDPOINTS]
    assert ".innerHTML =" in result.results[DOM_XSS_SINKS]
    assert "redirect" in result.results[INTERESTING_PARAMETERS]
    assert "@acme/internal-ui" in result.results[POTENTIAL_NPM_PACKAGES]
    assert "app.js.map" in result.results[SOURCE_MAPS]


class TestDependencyConfusion:
    def _result(self):
        occ = Occurrence(source="a.js", rule_id="npm", index=0, length=5, line=1, column=1)
        return ScanResult(
            results={POTENTIAL_NPM_PACKAGES: {"@acme/a": [occ], "@acme/b": [occ]}}
        )

    def test_confirmed_packages_promoted(self):
        result = self._result()
        apply_dependency_confusion(result, ["@acme/b"])
        assert POTENTIAL_NPM_PACKAGES not in result.results
        assert list(result.results[DEPENDENCY_CONFUSION]) == ["@acme/b"]

    def test_nothing_missing(self):
        result = self._result()
        apply_dependency_confusion(result, [])
        assert POTENTIAL_NPM_PACKAGES not in result.results
        assert DEPENDENCY_CONFUSION not in result.results
