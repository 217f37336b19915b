"""Load secret rule definitions from YAML."""

from __future__ import annotations

import importlib.resources
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

_BUILTIN_RULES = "secrets.yaml"


def load_secret_rules(path: str | Path | None = None) -> list[dict[str, Any]]:
    """Load rule definitions from ``path``, or the built-in catalog."""
    if path is None:
        pkg = importlib.resources.files("jsrecon.scanner.data")
        text = pkg.joinpath(_BUILTIN_RULES).read_text(encoding="utf-8")
    else:
        text = Path(path).read_text(encoding="utf-8")
    return parse_secret_rules(text)


def parse_secret_rules(text: str) -> list[dict[str, Any]]:
    data = yaml.safe_load(text)
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ValueError("Rule YAML must be a list or a mapping with a 'rules' list")

    rules: list[dict[str, Any]] = []
    for r in data:
        if not isinstance(r, dict):
            continue
        rules.append(
            {
                "id": str(r.get("id", "")),
                "description": r.get("description", ""),
                "regex": r.get("regex", ""),
                "group": int(r.get("group", 0) or 0),
                "entropy": float(r.get("entropy", 0) or 0),
            }
        )
    return rules


def filter_rules(
    rules: Iterable[dict[str, Any]],
    excluded_ids: Iterable[str],
) -> list[dict[str, Any]]:
    """Drop rules the user has switched off."""
    excluded = set(excluded_ids)
    return [r for r in rules if r.get("id") not in excluded]
