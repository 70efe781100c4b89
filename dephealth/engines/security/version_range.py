"""Version range matcher: one comparator-set grammar for every source dialect.

Vulnerability databases describe affected versions in different notations.
All of them are normalized to the canonical grammar::

    range      := set ( " || " set )*
    set        := comparator ( " " comparator )*  |  "*"
    comparator := ( ">=" | "<=" | ">" | "<" | "=" | "!=" ) version

Accepted input dialects:

- bare comparator chains ``< 4.17.2``, ``>= 1.0.0 < 2.0.0``
- comma-separated comparator lists ``>= 1.0.0, < 2.0.0``
- phrase form ``1.0.0 to 2.0.0`` (``>=1.0.0 <=2.0.0``)
- interval notation ``[a,b)``, ``(a,b]``, ``[a,b]``, ``(a,b)``; an empty
  endpoint is unbounded (``[1.0,)``)
- hyphen ranges ``1.0.0 - 2.0.0`` (``>=1.0.0 <=2.0.0``)
- ``||`` alternatives and bare versions (``1.2.3`` is ``=1.2.3``)

:func:`matches` treats anything it cannot parse as affecting every
version, so a possible vulnerability is never silently dropped.
"""

from __future__ import annotations

import operator
import re
from collections.abc import Callable

from packaging.version import InvalidVersion, Version

MAX_RANGE_LENGTH = 5000

_PHRASE_RE = re.compile(r"^\s*(\S+)\s+to\s+(\S+)\s*$", re.IGNORECASE)
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_INTERVAL_RE = re.compile(r"^\s*([\[(])\s*([^,\[\]()]*?)\s*,\s*([^,\[\]()]*?)\s*([\])])\s*$")
_COMPARATOR_RE = re.compile(r"(>=|<=|==|!=|>|<|=)?\s*([^\s<>=!,|]+)")
_WILDCARDS = frozenset({"*", "x", "X"})

_OPERATORS: dict[str, Callable[[Version, Version], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "=": operator.eq,
    "!=": operator.ne,
}

Comparator = tuple[str, Version]


class RangeParseError(ValueError):
    """Raised when a range string is not in any recognized dialect."""


# ── versions ─────────────────────────────────────────────────────────────


def clean_version(version: str) -> str:
    """Strip constraint decoration so a declared version can be compared.

    ``^1.2.3`` -> ``1.2.3``; ``1.0.0 - 2.0.0`` -> ``1.0.0``;
    ``1.0.0 || 2.0.0`` -> ``1.0.0``.
    """
    cleaned = re.sub(r"^[\^~>=<]+", "", version or "").strip()
    if " - " in cleaned:
        cleaned = cleaned.split(" - ")[0].strip()
    if "||" in cleaned:
        cleaned = cleaned.split("||")[0].strip()
    return cleaned


def parse_version(text: str) -> Version | None:
    """Parse a semver-ish string; None when it is not a version at all."""
    text = (text or "").strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    if not text:
        return None
    try:
        return Version(text)
    except InvalidVersion:
        return None


# ── normalization ────────────────────────────────────────────────────────


def _normalize_alternative(alt: str) -> str:
    alt = alt.strip()
    if not alt or alt in _WILDCARDS:
        return "*"

    m = _PHRASE_RE.match(alt)
    if m:
        return f">={m.group(1)} <={m.group(2)}"

    m = _HYPHEN_RE.match(alt)
    if m:
        return f">={m.group(1)} <={m.group(2)}"

    m = _INTERVAL_RE.match(alt)
    if m:
        opening, low, high, closing = m.groups()
        parts: list[str] = []
        if low:
            parts.append(f"{'>=' if opening == '[' else '>'}{low}")
        if high:
            parts.append(f"{'<=' if closing == ']' else '<'}{high}")
        if not parts:
            return "*"
        return " ".join(parts)

    return alt.replace(",", " ")


def _parse_set(text: str) -> list[Comparator]:
    if text == "*":
        return []
    comparators: list[Comparator] = []
    pos = 0
    for m in _COMPARATOR_RE.finditer(text):
        if text[pos : m.start()].strip():
            raise RangeParseError(f"unexpected text in range: {text!r}")
        pos = m.end()
        op = m.group(1) or "="
        if op == "==":
            op = "="
        raw = m.group(2)
        if raw in _WILDCARDS:
            continue
        version = parse_version(raw)
        if version is None:
            raise RangeParseError(f"invalid version {raw!r} in range {text!r}")
        comparators.append((op, version))
    if text[pos:].strip():
        raise RangeParseError(f"unexpected text in range: {text!r}")
    return comparators


def parse_range(raw_range: str) -> list[list[Comparator]]:
    """Parse *raw_range* into OR-ed comparator sets.

    Raises :class:`RangeParseError` for empty or unrecognized input.
    """
    if raw_range is None or not raw_range.strip() or raw_range.strip().lower() == "unknown":
        raise RangeParseError("empty range")
    return [_parse_set(_normalize_alternative(alt)) for alt in raw_range.split("||")]


def normalize_range(raw_range: str) -> str:
    """Return the canonical comparator-set form of *raw_range*."""
    sets = parse_range(raw_range)
    rendered = [" ".join(f"{op}{ver}" for op, ver in s) or "*" for s in sets]
    return " || ".join(rendered)


# ── evaluation ───────────────────────────────────────────────────────────


def satisfies(version: Version, sets: list[list[Comparator]]) -> bool:
    return any(all(_OPERATORS[op](version, bound) for op, bound in s) for s in sets)


def matches(installed_version: str, raw_range: str) -> bool:
    """True when *installed_version* falls inside *raw_range*.

    Unparseable installed versions and empty/unparseable ranges match
    (report rather than hide). Ranges longer than ``MAX_RANGE_LENGTH``
    are treated as corrupt records and do not match.
    """
    if raw_range and len(raw_range.strip()) > MAX_RANGE_LENGTH:
        return False
    version = parse_version(clean_version(installed_version))
    if version is None:
        return True
    try:
        sets = parse_range(raw_range)
    except RangeParseError:
        return True
    return satisfies(version, sets)
