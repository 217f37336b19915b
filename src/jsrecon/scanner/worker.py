"""Passive secret scan and the message boundary used by out-of-process callers.

Requests arrive as plain dicts (rules in their serialised form) and are
answered with ``{"status": ...}`` dicts, so the same handler backs the web
API and any other relay.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from jsrecon.scanner.bounded import DEFAULT_TIMEOUT_MS, match_all_bounded
from jsrecon.scanner.metrics import LineIndex, shannon_entropy
from jsrecon.scanner.models import (
    CompiledRule,
    ContentSource,
    Occurrence,
    PassiveFinding,
    Rule,
    ScanResult,
)
from jsrecon.scanner.patterns import POTENTIAL_SECRETS, compile_rule

logger = logging.getLogger(__name__)

MAX_CONTENT_SIZE_BYTES = 5 * 1024 * 1024


def prepare_sources(
    sources: Iterable[ContentSource],
    max_bytes: int = MAX_CONTENT_SIZE_BYTES,
) -> tuple[list[ContentSource], dict[str, str]]:
    """Flag oversized sources and collect the content worth retaining."""
    prepared: list[ContentSource] = []
    content_map: dict[str, str] = {}
    for s in sources:
        if not s.code:
            continue
        too_large = len(s.code.encode("utf-8")) > max_bytes
        if not too_large:
            content_map[s.source] = s.code
        prepared.append(ContentSource(source=s.source, code=s.code, is_too_large=too_large))
    return prepared, content_map


async def perform_passive_scan(
    sources: Iterable[ContentSource],
    rules: Iterable[CompiledRule],
    timeout_ms: float = DEFAULT_TIMEOUT_MS,
) -> list[PassiveFinding]:
    """Run secret rules over raw content, yielding after every source."""
    rules = list(rules)
    findings: list[PassiveFinding] = []

    for s in sources:
        if not s.code or s.is_too_large:
            continue

        lines = LineIndex(s.code)
        for rule in rules:
            if rule.regex is None:
                continue
            for match in match_all_bounded(rule.regex, s.code, timeout_ms):
                try:
                    secret = match.group(rule.group)
                except IndexError:
                    continue
                if secret is None:
                    continue
                if rule.entropy and shannon_entropy(secret) < rule.entropy:
                    continue

                line, column = lines.position(match.start())
                findings.append(
                    PassiveFinding(
                        id=rule.rule_id,
                        description=rule.rule.description,
                        secret=secret,
                        source=s.source,
                        line=line,
                        column=column,
                        index=match.start(),
                        is_source_too_large=s.is_too_large,
                    )
                )

        await asyncio.sleep(0)

    return findings


def passive_result(
    findings: Iterable[PassiveFinding],
    content_map: dict[str, str],
) -> ScanResult:
    """Group passive findings by secret, keeping content only when something was found."""
    secrets: dict[str, list[Occurrence]] = {}
    for f in findings:
        secrets.setdefault(f.secret, []).append(
            Occurrence(
                source=f.source,
                rule_id=f.id,
                index=f.index,
                length=len(f.secret),
                line=f.line,
                column=f.column,
            )
        )
    return ScanResult(
        results={POTENTIAL_SECRETS: secrets},
        content_map=dict(content_map) if secrets else {},
    )


def serialize_rules(rules: Iterable[CompiledRule]) -> list[dict[str, Any]]:
    return [r.rule.to_dict() for r in rules]


def deserialize_rules(payload: Iterable[dict[str, Any]]) -> list[CompiledRule]:
    return [compile_rule(Rule.from_dict(d, category=POTENTIAL_SECRETS)) for d in payload]


def _parse_sources(payload: Iterable[dict[str, Any]]) -> list[ContentSource]:
    return [
        ContentSource(
            source=item["source"],
            code=item.get("content") or item.get("code") or "",
            is_too_large=bool(item.get("isTooLarge", False)),
        )
        for item in payload
    ]


async def handle_message(request: dict[str, Any]) -> dict[str, Any]:
    """Route a worker request and answer with a status envelope."""
    kind = request.get("type") if isinstance(request, dict) else None

    if kind == "ping":
        return {"status": "ready"}

    if kind == "scanContent":
        try:
            sources = _parse_sources(request["allContentSources"])
            rules = deserialize_rules(request["serializableRules"])
            findings = await perform_passive_scan(sources, rules)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Worker scan failed: %s", exc)
            return {"status": "error", "message": str(exc)}
        return {"status": "success", "data": [f.to_dict() for f in findings]}

    return {"status": "error", "message": f"Unknown message type: {kind}"}
