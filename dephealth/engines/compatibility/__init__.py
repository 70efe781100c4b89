"""Compatibility engine: deprecation and breaking-change detection."""

from dephealth.engines.compatibility.analyzer import CompatibilityAnalyzer
from dephealth.engines.compatibility.migration_guide import MigrationGuideResolver, candidate_urls

__all__ = ["CompatibilityAnalyzer", "MigrationGuideResolver", "candidate_urls"]
