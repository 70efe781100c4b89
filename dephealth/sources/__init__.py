"""Contracts for the external collaborators the pipeline consumes."""

from dephealth.sources.registry import PackageRegistryClient
from dephealth.sources.vulnerability import (
    BatchVulnerabilityClient,
    VulnerabilityAggregator,
    VulnerabilityClient,
    VulnerabilitySource,
)

__all__ = [
    "BatchVulnerabilityClient",
    "PackageRegistryClient",
    "VulnerabilityAggregator",
    "VulnerabilityClient",
    "VulnerabilitySource",
]
