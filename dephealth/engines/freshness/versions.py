"""Version helpers for freshness: resolve, parse and diff."""

from __future__ import annotations

from packaging.version import Version

from dephealth.engines.security.version_range import clean_version, parse_version
from dephealth.models.analysis import VersionGap

_FLOATING = frozenset({"", "latest", "*", "x"})


def resolve_current_version(declared: str, latest: str) -> str:
    """Cleaned installed version; floating specs resolve to *latest*."""
    cleaned = clean_version(declared)
    if cleaned.lower() in _FLOATING:
        return latest
    return cleaned


def version_gap(current: Version, latest: Version) -> VersionGap:
    """Most significant release component that differs.

    ``current`` when the installed version is at or ahead of latest.
    A prerelease of the same release (``2.0.0rc1`` vs ``2.0.0``) counts
    as a patch gap.
    """
    if current >= latest:
        return "current"
    if current.major != latest.major:
        return "major"
    if current.minor != latest.minor:
        return "minor"
    return "patch"


def gap_between(current: str, latest: str) -> VersionGap | None:
    """String form of :func:`version_gap`; None when either side is not a version."""
    cur = parse_version(current)
    lat = parse_version(latest)
    if cur is None or lat is None:
        return None
    return version_gap(cur, lat)
