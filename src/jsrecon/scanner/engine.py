"""Scan engine — runs the rule catalog over every content source."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from collections.abc import Callable, Iterable, Mapping

from jsrecon.scanner.bounded import DEFAULT_TIMEOUT_MS, match_all_bounded
from jsrecon.scanner.decoder import decode_text
from jsrecon.scanner.domain import DomainInfo, compute_domain_info, is_valid_subdomain
from jsrecon.scanner.metrics import LineIndex, shannon_entropy
from jsrecon.scanner.models import CompiledRule, ContentSource, Occurrence, ScanResult
from jsrecon.scanner.patterns import (
    DEPENDENCY_CONFUSION,
    ENDPOINTS,
    POTENTIAL_NPM_PACKAGES,
    POTENTIAL_SECRETS,
    SUBDOMAINS,
    normalize_catalog,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_ONLY_SLASHES = re.compile(r"/+")


class ScanCancelled(Exception):
    """Raised when a scan's owner went away before it finished."""


class ScanEngine:
    """Applies a rule catalog to content sources, one source per scheduler slice."""

    def __init__(
        self,
        patterns: Mapping[str, CompiledRule | Iterable[CompiledRule]],
        hostname: str | None = None,
        regex_timeout_ms: float = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self._patterns = normalize_catalog(patterns)
        self._hostname = hostname
        self._timeout_ms = regex_timeout_ms

    async def scan(
        self,
        sources: Iterable[ContentSource],
        on_progress: ProgressCallback | None = None,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> ScanResult:
        """Scan sources in order and return findings plus decoded content."""
        sources = list(sources)
        start = time.time()
        domain = compute_domain_info(self._hostname)

        result = ScanResult(results={category: {} for category in self._patterns})
        total = len(sources)
        processed = 0

        for content in sources:
            if is_cancelled and is_cancelled():
                raise ScanCancelled("scan cancelled before completion")

            if not content.code or content.is_too_large:
                logger.debug("Skipping %s (empty or too large)", content.source)
                result.sources_skipped += 1
                continue

            decoded = decode_text(content.code)
            result.content_map[content.source] = decoded
            self._scan_source(decoded, content.source, domain, result)
            result.sources_scanned += 1

            processed += 1
            if on_progress:
                on_progress(processed, total)

            await asyncio.sleep(0)

        if is_cancelled and is_cancelled():
            raise ScanCancelled("scan cancelled before completion")

        result.duration = time.time() - start
        return result

    def _scan_source(
        self,
        code: str,
        source: str,
        domain: DomainInfo,
        result: ScanResult,
    ) -> None:
        lines = LineIndex(code)
        for category, rules in self._patterns.items():
            for rule in rules:
                if rule.regex is None:
                    continue
                for match in match_all_bounded(rule.regex, code, self._timeout_ms):
                    self._record_match(match, rule, category, lines, source, domain, result)

    def _record_match(
        self,
        match: re.Match[str],
        rule: CompiledRule,
        category: str,
        lines: LineIndex,
        source: str,
        domain: DomainInfo,
        result: ScanResult,
    ) -> None:
        try:
            raw = match.group(rule.group)
        except IndexError:
            return
        value = (raw or "").strip()
        if not value:
            return

        if not _is_valid(category, value, rule, domain):
            return

        line, column = lines.position(match.start())
        result.results.setdefault(category, {}).setdefault(value, []).append(
            Occurrence(
                source=source,
                rule_id=rule.rule_id,
                index=match.start(),
                length=len(value),
                line=line,
                column=column,
            )
        )


def _is_valid(category: str, value: str, rule: CompiledRule, domain: DomainInfo) -> bool:
    """Category-specific acceptance checks; other categories only need a value."""
    if category == SUBDOMAINS:
        return is_valid_subdomain(value, domain)
    if category == POTENTIAL_SECRETS:
        return shannon_entropy(value) >= rule.entropy
    if category == ENDPOINTS:
        return not _ONLY_SLASHES.fullmatch(value)
    return True


def apply_dependency_confusion(result: ScanResult, missing: Iterable[str]) -> None:
    """Promote unpublished scoped packages to dependency-confusion findings."""
    candidates = result.results.pop(POTENTIAL_NPM_PACKAGES, {})
    missing = set(missing)
    confirmed = {name: occ for name, occ in candidates.items() if name in missing}
    if confirmed:
        result.results[DEPENDENCY_CONFUSION] = confirmed
