"""Tests for hostname scoping and URL exclusion."""

from __future__ import annotations

import logging

import pytest

from jsrecon.scanner.domain import (
    DomainInfo,
    compute_domain_info,
    is_scannable,
    is_url_excluded,
    is_valid_subdomain,
)


class TestComputeDomainInfo:
    @pytest.mark.parametrize(
        "hostname,base",
        [
            ("www.example.com", "example.com"),
            ("a.b.example.com", "example.com"),
            ("shop.example.co.uk", "example.co.uk"),
            ("example.com.au", "example.com.au"),
            ("example.com", "example.com"),
            ("localhost", "localhost"),
            ("WWW.Example.COM", "example.com"),
        ],
    )
    def test_base_domain(self, hostname, base):
        info = compute_domain_info(hostname)
        assert info.base_domain == base
        assert info.current_hostname == hostname.lower()

    @pytest.mark.parametrize("hostname", [None, "", "127.0.0.1", "[::1]"])
    def test_unscoped(self, hostname):
        info = compute_domain_info(hostname)
        assert info == DomainInfo()
        assert not info.is_scoped


class TestIsValidSubdomain:
    def test_accepts_siblings_under_base_domain(self):
        info = compute_domain_info("app.example.com")
        assert is_valid_subdomain("api.example.com", info)

    def test_rejects_other_domains(self):
        info = compute_domain_info("app.example.com")
        assert not is_valid_subdomain("api.other.com", info)
        assert not is_valid_subdomain("notexample.com", info)

    def test_accepts_base_and_current_host(self):
        info = compute_domain_info("app.example.com")
        assert is_valid_subdomain("example.com", info)
        assert is_valid_subdomain("APP.example.com", info)

    def test_fails_closed_when_unscoped(self):
        assert not is_valid_subdomain("api.example.com", DomainInfo())


class TestIsUrlExcluded:
    def test_substring(self):
        assert is_url_excluded("https://cdn.example.com/a.js", ["cdn.example.com"])
        assert not is_url_excluded("https://example.com/a.js", ["cdn.example.com"])

    def test_newline_separated_string(self):
        patterns = "foo.com\n\n  cdn.example.com  \n"
        assert is_url_excluded("https://cdn.example.com/", patterns)

    def test_regex_pattern(self):
        assert is_url_excluded("https://agency.gov", [r"/\.gov$/"])
        assert not is_url_excluded("https://agency.gov.example.com", [r"/\.gov$/"])

    def test_invalid_regex_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="jsrecon.scanner.domain"):
            assert not is_url_excluded("https://example.com", ["/[unclosed/"])
        assert "Invalid regex" in caplog.text

    def test_empty(self):
        assert not is_url_excluded("https://example.com", None)
        assert not is_url_excluded("https://example.com", "")


class TestIsScannable:
    def test_http_pages(self):
        assert is_scannable("https://example.com/")
        assert is_scannable("http://example.com/")

    def test_non_http(self):
        assert not is_scannable("chrome://extensions")
        assert not is_scannable("file:///etc/hosts")
        assert not is_scannable(None)

    def test_browser_stores(self):
        assert not is_scannable("https://chromewebstore.google.com/detail/x")
        assert not is_scannable("https://addons.mozilla.org/en-US/firefox/")

    def test_excluded(self):
        assert not is_scannable("https://example.com/", ["example.com"])
