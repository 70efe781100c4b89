"""Rule-based maintenance-signal extraction from free-text documentation.

:func:`extract_maintenance_signal` is pure: README text in, excerpt or
None out. Behavior is driven entirely by two tables:

- ``SIGNAL_RULES``: phrases that announce a package is deprecated or
  unmaintained. ``strong`` rules are accepted even when the excerpt looks
  like code; ``weak`` rules only when no veto fires.
- ``VETO_RULES``: shapes that mark an excerpt as code or API-usage
  documentation rather than a project-level notice. ``code`` vetoes always
  apply; ``phrasing`` vetoes only when the excerpt carries no explicit
  maintenance keyword (see :func:`has_maintenance_keyword`).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

MIN_EXCERPT_LENGTH = 20
MAX_EXCERPT_LENGTH = 300
CONTEXT_CHARS = 150
SPECIAL_CHAR_RATIO = 0.15

_SPECIAL_CHARS = frozenset("{}()[];=<>")
_SENTENCE_END_RE = re.compile(r"[.!?](?=\s)|\n")
_MAINTENANCE_KEYWORD_RE = re.compile(
    r"deprecated|unmaintained|no longer maintained|end[\s-]of[\s-]life|\bEOL\b", re.IGNORECASE
)


@dataclass(frozen=True)
class SignalRule:
    """A phrase that positively indicates a maintenance problem."""

    name: str
    pattern: re.Pattern[str]
    strength: Literal["strong", "weak"]


@dataclass(frozen=True)
class VetoRule:
    """A test that marks an excerpt as code-like or API-level."""

    name: str
    test: Callable[[str], bool]
    kind: Literal["code", "phrasing"] = "code"


def _regex(pattern: str) -> Callable[[str], bool]:
    compiled = re.compile(pattern, re.IGNORECASE)
    return lambda text: compiled.search(text) is not None


def _special_char_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for ch in text if ch in _SPECIAL_CHARS) / len(text)


SIGNAL_RULES: tuple[SignalRule, ...] = (
    SignalRule(
        "no-longer-maintained",
        re.compile(
            r"\b(?:is\s+)?no\s+longer\s+(?:being\s+)?(?:actively\s+)?"
            r"(?:maintained|supported|developed)\b",
            re.IGNORECASE,
        ),
        "strong",
    ),
    SignalRule(
        "project-deprecated",
        re.compile(
            r"\b(?:this\s+)?(?:project|package|library|module|repository|repo)\s+"
            r"(?:is|has\s+been)\s+(?:now\s+)?(?:officially\s+)?deprecated\b",
            re.IGNORECASE,
        ),
        "strong",
    ),
    SignalRule(
        "version-deprecated",
        re.compile(
            r"\b(?:version|v)\s*\d+(?:\.\d+)*(?:\.x)?\s+(?:is|has\s+been)\s+"
            r"(?:now\s+)?deprecated\b",
            re.IGNORECASE,
        ),
        "strong",
    ),
    SignalRule(
        "end-of-life",
        re.compile(r"\bend[\s-]+of[\s-]+life\b", re.IGNORECASE),
        "strong",
    ),
    SignalRule("unmaintained", re.compile(r"\bunmaintained\b", re.IGNORECASE), "weak"),
    SignalRule("eol", re.compile(r"\bEOL\b"), "weak"),
)

VETO_RULES: tuple[VetoRule, ...] = (
    VetoRule("special-characters", lambda text: _special_char_ratio(text) > SPECIAL_CHAR_RATIO),
    VetoRule("code-comment", _regex(r"(?://|/\*|\*/|<!--)")),
    VetoRule("assignment", _regex(r"\b(?:const|let|var|val)\s+\w+\s*=|\w+\s*=\s*['\"\d{\[]")),
    VetoRule("function-literal", _regex(r"=>|\bfunction\s*\w*\s*\(|\bdef\s+\w+\s*\(|\blambda\b")),
    VetoRule("method-call", _regex(r"\w+\.\w+\s*\(")),
    VetoRule("import", _regex(r"\brequire\s*\(|\bimport\s+[\w{*]|\bfrom\s+['\"]")),
    VetoRule(
        "usage-example",
        _regex(r"\b(?:usage|example|for\s+example|e\.g\.|instead\s+use|use\s+\w+\s+instead)\b"),
        "phrasing",
    ),
    VetoRule(
        "api-deprecation",
        _regex(
            r"\bdeprecated\s+(?:option|method|function|api|parameter|argument|"
            r"property|flag|field|setting)s?\b"
        ),
        "phrasing",
    ),
)


# ── excerpts ─────────────────────────────────────────────────────────────


def _excerpt(text: str, start: int, end: int) -> str:
    lo = max(0, start - CONTEXT_CHARS)
    hi = min(len(text), end + CONTEXT_CHARS)

    # Begin after the last sentence boundary before the match.
    before = list(_SENTENCE_END_RE.finditer(text, lo, start))
    if before:
        lo = before[-1].end()

    # Stop at the first sentence boundary after the match.
    after = _SENTENCE_END_RE.search(text, end, hi)
    if after:
        hi = after.end()

    excerpt = " ".join(text[lo:hi].split())
    if len(excerpt) > MAX_EXCERPT_LENGTH:
        excerpt = excerpt[: MAX_EXCERPT_LENGTH - 3] + "..."
    return excerpt


def has_maintenance_keyword(excerpt: str) -> bool:
    return _MAINTENANCE_KEYWORD_RE.search(excerpt) is not None


def vetoes(excerpt: str) -> list[str]:
    """Names of the veto rules that fire for *excerpt*."""
    return [rule.name for rule in VETO_RULES if rule.test(excerpt)]


def rejecting_vetoes(excerpt: str) -> list[str]:
    """Vetoes that reject *excerpt*; a maintenance keyword overrides phrasing vetoes."""
    keyword = has_maintenance_keyword(excerpt)
    return [
        rule.name
        for rule in VETO_RULES
        if rule.test(excerpt) and not (rule.kind == "phrasing" and keyword)
    ]


def is_valid_maintenance_signal(excerpt: str, rule: SignalRule) -> bool:
    if len(excerpt) < MIN_EXCERPT_LENGTH:
        return False
    if rule.strength == "strong":
        return True
    return not rejecting_vetoes(excerpt)


# ── public ───────────────────────────────────────────────────────────────


def extract_maintenance_signal(text: str | None) -> str | None:
    """Return an excerpt announcing the package is unmaintained, or None.

    Rules are tried in table order; every occurrence of a rule's phrase is
    considered before moving to the next rule.
    """
    if not text:
        return None
    for rule in SIGNAL_RULES:
        for m in rule.pattern.finditer(text):
            excerpt = _excerpt(text, m.start(), m.end())
            if is_valid_maintenance_signal(excerpt, rule):
                return excerpt
    return None
