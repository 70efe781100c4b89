"""Top-level report and run status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from dephealth.core.network import NetworkStatus
from dephealth.models.analysis import DependencyAnalysis


@dataclass(frozen=True)
class ScoreBreakdown:
    total_dependencies: int = 0
    critical_issues: int = 0
    warnings: int = 0
    healthy: int = 0


@dataclass(frozen=True)
class HealthScore:
    overall: int
    security: int
    freshness: int
    compatibility: int
    license: int
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


@dataclass(frozen=True)
class AnalysisSummary:
    """Top-line counts over direct, non-internal dependencies."""

    total_dependencies: int
    analyzed_dependencies: int
    failed_dependencies: int
    critical_issues: int
    high_issues: int
    warnings: int
    healthy: int
    errors: int = 0


@dataclass(frozen=True)
class FailedPackage:
    name: str
    version: str
    error: str
    error_code: str = "PACKAGE_NOT_FOUND"
    is_transitive: bool = False


@dataclass(frozen=True)
class PerformanceMetrics:
    scan_duration_ms: int
    memory_rss_bytes: int | None
    dependency_count: int
    valid_dependency_count: int
    invalid_dependency_count: int
    transitive_dependency_count: int


@dataclass(frozen=True)
class AnalysisMetadata:
    cache_hits: int
    cache_requests: int
    total_dependencies: int


@dataclass(frozen=True)
class AnalysisResult:
    timestamp: datetime
    dependencies: tuple[DependencyAnalysis, ...]
    health_score: HealthScore
    summary: AnalysisSummary
    failed_packages: tuple[FailedPackage, ...] = ()
    is_monorepo: bool = False
    manifest_count: int = 0
    metadata: AnalysisMetadata | None = None
    performance: PerformanceMetrics | None = None
    network_status: NetworkStatus | None = None


@dataclass(frozen=True)
class AnalysisStatus:
    is_running: bool = False
    progress: int = 0
    current_item: str | None = None
