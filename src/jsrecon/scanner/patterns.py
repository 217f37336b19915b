"""Rule catalog adapter — turns rule descriptors into executable patterns."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from jsrecon.scanner.models import CompiledRule, Rule

logger = logging.getLogger(__name__)

# Category names, in catalog (and therefore occurrence) order
SUBDOMAINS = "Subdomains"
ENDPOINTS = "Endpoints"
DOM_XSS_SINKS = "Potential DOM XSS Sinks"
POTENTIAL_SECRETS = "Potential Secrets"
INTERESTING_PARAMETERS = "Interesting Parameters"
JS_LIBRARIES = "JS Libraries"
SOURCE_MAPS = "Source Maps"
POTENTIAL_NPM_PACKAGES = "Potential NPM Packages"
DEPENDENCY_CONFUSION = "Dependency Confusion"

DEFAULT_PARAMETERS: tuple[str, ...] = (
    "redirect",
    "url",
    "ret",
    "next",
    "goto",
    "target",
    "dest",
    "r",
    "debug",
    "test",
    "admin",
    "edit",
    "enable",
    "id",
    "user",
    "account",
    "profile",
    "key",
    "token",
    "api_key",
    "secret",
    "password",
    "email",
    "callback",
    "return",
    "returnTo",
    "return_to",
    "redirect_to",
    "redirectTo",
    "continue",
)

_NPM_NAME = r"@[a-z0-9\-~][a-z0-9\-._~]*/[a-z0-9\-~][a-z0-9\-._~]*"

_JS_LIBRARY_NAMES = (
    "jquery|react|react-dom|vue|angular|lodash|underscore|bootstrap|"
    "moment|axios|backbone|ember|handlebars|d3|dompurify"
)

# Built-in categories that do not depend on user settings
_STATIC_RULES: tuple[Rule, ...] = (
    Rule(
        rule_id="subdomain",
        category=SUBDOMAINS,
        source=r"\b(?:[a-z0-9](?:[a-z0-9\-]{0,61}[a-z0-9])?\.)+[a-z]{2,24}\b",
        flags="gi",
    ),
    Rule(
        rule_id="endpoint-path",
        category=ENDPOINTS,
        source=r"[\"'`](/[^\s\"'`<>\\]*)[\"'`]",
        flags="g",
        group=1,
    ),
    Rule(
        rule_id="dom-xss-sink",
        category=DOM_XSS_SINKS,
        source=(
            r"\.(?:innerHTML|outerHTML)\s*\+?=|"
            r"\.insertAdjacentHTML\s*\(|"
            r"\bdocument\.write(?:ln)?\s*\(|"
            r"\beval\s*\(|"
            r"\bnew\s+Function\s*\(|"
            r"\bdangerouslySetInnerHTML\b|"
            r"\.srcdoc\s*=|"
            r"\bset(?:Timeout|Interval)\s*\(\s*[\"'`]|"
            r"\blocation(?:\.href)?\s*=(?!=)"
        ),
        flags="g",
    ),
    Rule(
        rule_id="js-library-banner",
        category=JS_LIBRARIES,
        source=(
            r"\b(?:jQuery|React|Vue\.js|AngularJS|Lodash|Bootstrap|Moment\.js|"
            r"Handlebars|Backbone\.js|Underscore\.js|DOMPurify)\s+v?\d+\.\d+(?:\.\d+)?"
        ),
        flags="g",
    ),
    Rule(
        rule_id="js-library-file",
        category=JS_LIBRARIES,
        source=(
            rf"\b((?:{_JS_LIBRARY_NAMES})[\-.@]v?\d+\.\d+(?:\.\d+)?)(?:\.min)?\.js\b"
        ),
        flags="gi",
        group=1,
    ),
    Rule(
        rule_id="source-map",
        category=SOURCE_MAPS,
        source=r"[#@]\s*sourceMappingURL\s*=\s*(?!data:)([^\s'\"*]+)",
        flags="g",
        group=1,
    ),
    Rule(
        rule_id="npm-package-json-name",
        category=POTENTIAL_NPM_PACKAGES,
        source=rf"\"name\":\s*\"({_NPM_NAME})\"",
        flags="g",
        group=1,
    ),
    Rule(
        rule_id="npm-package-import",
        category=POTENTIAL_NPM_PACKAGES,
        source=rf"(?:from|require\()\s*['\"]({_NPM_NAME})['\"]",
        flags="g",
        group=1,
    ),
)

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}

# JS-style named groups: (?<name>...) but not lookbehinds (?<= / (?<!
# An even run of backslashes (possibly none) leaves the next character unescaped.
_JS_NAMED_GROUP = re.compile(r"(?<!\\)((?:\\\\)*)\(\?<(?![=!])")
_JS_NAMED_BACKREF = re.compile(r"(?<!\\)((?:\\\\)*)\\k<([A-Za-z_][A-Za-z0-9_]*)>")


def translate_flags(flags: str) -> int:
    """Map JavaScript regex flags onto ``re`` flags.

    ``g`` is implied (matching is always global); ``u``, ``y`` and ``d`` have
    no counterpart and are ignored.
    """
    value = 0
    for flag in flags or "":
        value |= _FLAG_MAP.get(flag, 0)
    return value


def compile_rule(rule: Rule) -> CompiledRule:
    """Compile a rule, yielding ``regex=None`` for a pattern that will not compile."""
    source = _JS_NAMED_GROUP.sub(r"\1(?P<", rule.source)
    source = _JS_NAMED_BACKREF.sub(r"\1(?P=\2)", source)
    try:
        regex = re.compile(source, translate_flags(rule.flags))
    except re.error as exc:
        logger.debug("Skipping rule %s: %s", rule.rule_id, exc)
        return CompiledRule(rule=rule, regex=None)
    return CompiledRule(rule=rule, regex=regex)


def build_secret_rules(definitions: Iterable[Mapping[str, Any]]) -> list[CompiledRule]:
    """One case-insensitive rule per ``{id, regex, group?, entropy?}`` definition."""
    compiled: list[CompiledRule] = []
    for d in definitions:
        if not isinstance(d, Mapping) or not d.get("id") or not d.get("regex"):
            logger.debug("Skipping malformed secret rule: %r", d)
            continue
        rule = Rule(
            rule_id=str(d["id"]),
            category=POTENTIAL_SECRETS,
            source=str(d["regex"]),
            flags="gi",
            group=int(d.get("group") or 0),
            entropy=float(d.get("entropy") or 0),
            description=str(d.get("description", "")),
        )
        compiled.append(compile_rule(rule))
    return compiled


def build_parameter_rule(parameters: Iterable[str]) -> CompiledRule:
    """Alternate the configured parameter names into one matcher.

    An empty list gives a rule whose regex is ``None`` — nothing to match.
    """
    names = [p for p in parameters if p]
    if not names:
        rule = Rule(
            rule_id="interesting-parameter",
            category=INTERESTING_PARAMETERS,
            source="",
            flags="gi",
            group=1,
        )
        return CompiledRule(rule=rule, regex=None)

    alternation = "|".join(re.escape(n) for n in names)
    rule = Rule(
        rule_id="interesting-parameter",
        category=INTERESTING_PARAMETERS,
        source=f"[?&\"'](({alternation}))\\s*[:=]",
        flags="gi",
        group=1,
    )
    return compile_rule(rule)


def get_patterns(
    parameters: Iterable[str] = DEFAULT_PARAMETERS,
    secret_rules: Iterable[Mapping[str, Any]] = (),
) -> dict[str, list[CompiledRule]]:
    """Build the full catalog, every category as a list of compiled rules."""
    static: dict[str, list[CompiledRule]] = {}
    for rule in _STATIC_RULES:
        static.setdefault(rule.category, []).append(compile_rule(rule))

    return {
        SUBDOMAINS: static[SUBDOMAINS],
        ENDPOINTS: static[ENDPOINTS],
        DOM_XSS_SINKS: static[DOM_XSS_SINKS],
        POTENTIAL_SECRETS: build_secret_rules(secret_rules),
        INTERESTING_PARAMETERS: [build_parameter_rule(parameters)],
        JS_LIBRARIES: static[JS_LIBRARIES],
        SOURCE_MAPS: static[SOURCE_MAPS],
        POTENTIAL_NPM_PACKAGES: static[POTENTIAL_NPM_PACKAGES],
    }


def normalize_catalog(
    catalog: Mapping[str, CompiledRule | Iterable[CompiledRule]],
) -> dict[str, list[CompiledRule]]:
    """Accept a category mapped to a single rule or to several."""
    return {
        category: [rules] if isinstance(rules, CompiledRule) else list(rules)
        for category, rules in catalog.items()
    }
