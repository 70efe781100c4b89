"""Security engine: vulnerability filtering over one version-range grammar."""

from dephealth.engines.security.analyzer import (
    SecurityAnalyzer,
    aggregate_severity,
    merge_duplicate_ids,
)
from dephealth.engines.security.version_range import (
    RangeParseError,
    clean_version,
    matches,
    normalize_range,
    parse_version,
)

__all__ = [
    "RangeParseError",
    "SecurityAnalyzer",
    "aggregate_severity",
    "clean_version",
    "matches",
    "merge_duplicate_ids",
    "normalize_range",
    "parse_version",
]
