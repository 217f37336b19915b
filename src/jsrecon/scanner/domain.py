"""Hostname scoping and URL exclusion checks."""

from __future__ import annotations

import ipaddress
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Second-level labels that make the registrable domain three labels long
# (example.co.uk, example.com.au, ...)
_SECOND_LEVEL_LABELS = frozenset({"co", "com", "gov", "org", "net", "ac", "edu"})

_UNSCANNABLE_PREFIXES = (
    "https://chrome.google.com/webstore",
    "https://chromewebstore.google.com/",
    "https://addons.mozilla.org",
)


@dataclass(frozen=True)
class DomainInfo:
    """The scanned host and its base domain; both ``None`` when unscoped."""

    current_hostname: str | None = None
    base_domain: str | None = None

    @property
    def is_scoped(self) -> bool:
        return bool(self.current_hostname and self.base_domain)


def _is_ip_literal(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname.strip("[]"))
    except ValueError:
        return False
    return True


def compute_domain_info(hostname: str | None) -> DomainInfo:
    """Derive the base domain used to scope subdomain findings."""
    if not hostname:
        return DomainInfo()
    hostname = hostname.lower().rstrip(".")
    if not hostname or _is_ip_literal(hostname):
        return DomainInfo()

    parts = hostname.split(".")
    if len(parts) <= 2:
        return DomainInfo(current_hostname=hostname, base_domain=hostname)

    if parts[-2] in _SECOND_LEVEL_LABELS:
        base = ".".join(parts[-3:])
    else:
        base = ".".join(parts[-2:])
    return DomainInfo(current_hostname=hostname, base_domain=base)


def is_valid_subdomain(domain: str, info: DomainInfo) -> bool:
    """True if ``domain`` is the scanned host, its base domain, or below either."""
    if not info.is_scoped:
        return False
    domain = domain.lower()
    for root in (info.current_hostname, info.base_domain):
        if domain == root or domain.endswith("." + root):
            return True
    return False


def _split_patterns(excluded: str | Iterable[str] | None) -> list[str]:
    if not excluded:
        return []
    if isinstance(excluded, str):
        excluded = excluded.split("\n")
    return [p.strip() for p in excluded if p and p.strip()]


def is_url_excluded(url: str, excluded: str | Iterable[str] | None) -> bool:
    """Match a URL against substring or ``/regex/`` exclusion patterns."""
    for pattern in _split_patterns(excluded):
        if len(pattern) > 1 and pattern.startswith("/") and pattern.endswith("/"):
            try:
                if re.search(pattern[1:-1], url):
                    return True
            except re.error:
                logger.warning("Invalid regex in exclusion list: %s", pattern)
        elif pattern in url:
            return True
    return False


def is_scannable(url: str | None, excluded: str | Iterable[str] | None = None) -> bool:
    """Only http(s) pages outside the browser stores and the exclusion list."""
    if not url or not url.startswith("http"):
        return False
    if url.startswith(_UNSCANNABLE_PREFIXES):
        return False
    return not is_url_excluded(url, excluded)
