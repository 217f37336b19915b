"""Scanner data models — content sources, rules, occurrences and scan results."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ContentSource:
    """A text buffer to scan, tagged with where it came from.

    ``source`` is "Main HTML Document", "Inline Script #N" or an absolute URL.
    """

    source: str
    code: str
    is_too_large: bool = False


@dataclass(frozen=True)
class Rule:
    """Serialisable rule descriptor.

    Only the regex *source* and *flags* travel with a rule; the executable
    pattern is built by :func:`jsrecon.scanner.patterns.compile_rule` inside the
    context that runs the scan.
    """

    rule_id: str
    category: str
    source: str
    flags: str = "g"
    group: int = 0
    entropy: float = 0.0
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.rule_id,
            "category": self.category,
            "regex": {"source": self.source, "flags": self.flags},
            "group": self.group,
            "entropy": self.entropy,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], category: str = "") -> Rule:
        regex = data["regex"]
        if isinstance(regex, dict):
            source = regex["source"]
            flags = regex.get("flags", "g")
        else:
            source = str(regex)
            flags = data.get("flags", "gi")
        return cls(
            rule_id=str(data.get("id", "")),
            category=data.get("category", category),
            source=source,
            flags=flags,
            group=int(data.get("group") or 0),
            entropy=float(data.get("entropy") or 0),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class CompiledRule:
    """A rule paired with its executable pattern (``None`` when unusable)."""

    rule: Rule
    regex: re.Pattern[str] | None

    @property
    def rule_id(self) -> str:
        return self.rule.rule_id

    @property
    def group(self) -> int:
        return self.rule.group

    @property
    def entropy(self) -> float:
        return self.rule.entropy


@dataclass(frozen=True)
class Occurrence:
    """One validated match location for a finding."""

    source: str
    rule_id: str
    index: int
    length: int
    line: int
    column: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "ruleId": self.rule_id,
            "index": self.index,
            "secretLength": self.length,
            "line": self.line,
            "column": self.column,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Occurrence:
        return cls(
            source=data["source"],
            rule_id=data.get("ruleId", ""),
            index=int(data.get("index", 0)),
            length=int(data.get("secretLength", 0)),
            line=int(data.get("line", 1)),
            column=int(data.get("column", 1)),
        )


@dataclass
class ScanResult:
    """Findings grouped by category, plus the decoded text of every source.

    ``results`` maps category → value → occurrences (in discovery order).
    """

    results: dict[str, dict[str, list[Occurrence]]] = field(default_factory=dict)
    content_map: dict[str, str] = field(default_factory=dict)
    sources_scanned: int = 0
    sources_skipped: int = 0
    duration: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def total_findings(self) -> int:
        return sum(len(values) for values in self.results.values())

    def context_snippet(
        self,
        source: str,
        index: int,
        length: int,
        radius: int = 250,
    ) -> str:
        """Return the text around a match, flattened to one line."""
        code = self.content_map.get(source)
        if not code:
            return ""
        start = max(0, index - radius)
        end = min(len(code), index + length + radius)
        return "... " + code[start:end].replace("\n", " ") + " ..."

    def to_cache_record(self) -> dict[str, Any]:
        """Plain nested structure for persistence."""
        return {
            "results": {
                category: {
                    value: [o.to_dict() for o in occurrences]
                    for value, occurrences in values.items()
                }
                for category, values in self.results.items()
            },
            "contentMap": dict(self.content_map),
            "timestamp": int(self.timestamp * 1000),
        }

    @classmethod
    def from_cache_record(cls, record: dict[str, Any]) -> ScanResult:
        results = {
            category: {
                value: [Occurrence.from_dict(o) for o in occurrences]
                for value, occurrences in values.items()
            }
            for category, values in (record.get("results") or {}).items()
        }
        return cls(
            results=results,
            content_map=dict(record.get("contentMap") or {}),
            timestamp=record.get("timestamp", 0) / 1000,
        )


@dataclass(frozen=True)
class PassiveFinding:
    """A flat secret finding produced by the passive worker scan."""

    id: str
    description: str
    secret: str
    source: str
    line: int
    column: int
    is_source_too_large: bool = False
    index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "secret": self.secret,
            "source": self.source,
            "isSourceTooLarge": self.is_source_too_large,
            "line": self.line,
            "column": self.column,
        }
