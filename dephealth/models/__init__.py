"""Value types for the analysis pipeline: one file per concern."""

from dephealth.models.analysis import (
    Classification,
    CompatibilityAnalysis,
    CompatibilityIssue,
    DependencyAnalysis,
    DependencyIssue,
    FreshnessAnalysis,
    LicenseAnalysis,
    MaintenanceReason,
    MaintenanceSignals,
    SecurityAnalysis,
    UpgradeWarning,
)
from dephealth.models.dependency import Dependency, DependencyFile, ProjectInfo
from dephealth.models.package import PackageInfo
from dephealth.models.result import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisStatus,
    AnalysisSummary,
    FailedPackage,
    HealthScore,
    PerformanceMetrics,
    ScoreBreakdown,
)
from dephealth.models.vulnerability import SEVERITY_ORDER, Severity, Vulnerability

__all__ = [
    "SEVERITY_ORDER",
    "AnalysisMetadata",
    "AnalysisResult",
    "AnalysisStatus",
    "AnalysisSummary",
    "Classification",
    "CompatibilityAnalysis",
    "CompatibilityIssue",
    "Dependency",
    "DependencyAnalysis",
    "DependencyFile",
    "DependencyIssue",
    "FailedPackage",
    "FreshnessAnalysis",
    "HealthScore",
    "LicenseAnalysis",
    "MaintenanceReason",
    "MaintenanceSignals",
    "PackageInfo",
    "PerformanceMetrics",
    "ProjectInfo",
    "ScoreBreakdown",
    "SecurityAnalysis",
    "Severity",
    "UpgradeWarning",
    "Vulnerability",
]
