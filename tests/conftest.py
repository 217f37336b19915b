"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from jsrecon.fetch.throttle import FetchResponse, ThrottledFetcher
from jsrecon.scanner.models import CompiledRule, Rule
from jsrecon.scanner.patterns import compile_rule


class FakeTransport:
    """Stands in for the network: URL → body, FetchResponse, status or exception."""

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = routes or {}
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, method: str, url: str) -> FetchResponse:
        self.calls.append((method, url))
        value = self.routes.get(url)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, FetchResponse):
            return value
        if isinstance(value, int):
            return FetchResponse(url=url, status=value)
        if value is None:
            return FetchResponse(url=url, status=404)
        if isinstance(value, (dict, list)):
            value = json.dumps(value)
        return FetchResponse(url=url, status=200, text=value)

    @property
    def urls(self) -> list[str]:
        return [url for _, url in self.calls]


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def make_fetcher():
    """Build a ThrottledFetcher over a FakeTransport with no pacing delay."""

    def _make(routes: dict | None = None, **kwargs) -> ThrottledFetcher:
        kwargs.setdefault("request_delay_ms", 0)
        return ThrottledFetcher(transport=FakeTransport(routes), **kwargs)

    return _make


def make_rule(
    category: str,
    source: str,
    group: int = 0,
    entropy: float = 0.0,
    flags: str = "g",
    rule_id: str = "test-rule",
) -> CompiledRule:
    return compile_rule(
        Rule(
            rule_id=rule_id,
            category=category,
            source=source,
            flags=flags,
            group=group,
            entropy=entropy,
        )
    )


@pytest.fixture
def rule_factory():
    return make_rule


@pytest.fixture
def isolated_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG data/config dirs at a temporary directory."""
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in (
        "JSRECON_MAX_CONCURRENT_FETCHES",
        "JSRECON_REQUEST_DELAY_MS",
        "JSRECON_REGEX_TIMEOUT_MS",
        "JSRECON_WEB_PORT",
    ):
        monkeypatch.delenv(var, raising=False)
    return tmp_path
