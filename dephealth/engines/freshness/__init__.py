"""Freshness engine: version staleness and maintenance risk."""

from dephealth.engines.freshness.analyzer import FreshnessAnalyzer, default_freshness
from dephealth.engines.freshness.maintenance import (
    SIGNAL_RULES,
    VETO_RULES,
    extract_maintenance_signal,
    is_valid_maintenance_signal,
    vetoes,
)
from dephealth.engines.freshness.versions import gap_between, resolve_current_version, version_gap

__all__ = [
    "SIGNAL_RULES",
    "VETO_RULES",
    "FreshnessAnalyzer",
    "default_freshness",
    "extract_maintenance_signal",
    "gap_between",
    "is_valid_maintenance_signal",
    "resolve_current_version",
    "version_gap",
    "vetoes",
]
