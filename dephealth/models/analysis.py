"""Per-dimension analysis results and the joined per-dependency record."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from dephealth.models.dependency import Dependency
from dephealth.models.package import PackageInfo
from dephealth.models.vulnerability import Severity, Vulnerability

VersionGap = Literal["current", "patch", "minor", "major"]
CompatibilityStatus = Literal["safe", "breaking-changes", "version-deprecated", "unknown"]
LicenseType = Literal["permissive", "copyleft", "proprietary", "unknown"]
RiskLevel = Literal["low", "medium", "high"]


# ── security ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SecurityAnalysis:
    vulnerabilities: tuple[Vulnerability, ...] = ()
    severity: Severity = "none"


# ── freshness ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MaintenanceReason:
    """One piece of evidence that a package is no longer maintained.

    ``source`` is ``registry`` (deprecation notices) or ``readme``
    (free-text notice); ``type`` is ``version-deprecated``, ``deprecated``
    or ``notice``.
    """

    source: Literal["registry", "readme"]
    type: Literal["version-deprecated", "deprecated", "notice"]
    message: str


@dataclass(frozen=True)
class MaintenanceSignals:
    is_long_term_unmaintained: bool
    reasons: tuple[MaintenanceReason, ...]
    last_checked: datetime


@dataclass(frozen=True)
class FreshnessAnalysis:
    current_version: str
    latest_version: str
    version_gap: VersionGap
    release_date: datetime
    is_outdated: bool
    is_unmaintained: bool
    grace_period_active: bool = False
    maintenance_signals: MaintenanceSignals | None = None


# ── compatibility ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CompatibilityIssue:
    type: Literal["version-deprecated", "breaking-change", "version-conflict"]
    severity: Literal["critical", "high", "medium", "low"]
    message: str
    affected_versions: str | None = None
    recommendation: str | None = None
    migration_guide: str | None = None


@dataclass(frozen=True)
class UpgradeWarning:
    breaking_change: str
    description: str
    migration_guide: str | None = None


@dataclass(frozen=True)
class CompatibilityAnalysis:
    status: CompatibilityStatus = "safe"
    issues: tuple[CompatibilityIssue, ...] = ()
    upgrade_warnings: tuple[UpgradeWarning, ...] | None = None


# ── license ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LicenseAnalysis:
    license: str
    spdx_ids: tuple[str, ...]
    is_compatible: bool
    license_type: LicenseType
    risk_level: RiskLevel
    spdx_id: str | None = None
    compatibility_reason: str | None = None
    requires_attribution: bool = False
    requires_source_code: bool = False
    conflicts_with: tuple[str, ...] | None = None


# ── classification ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class DependencyIssue:
    category: Literal["security", "maintenance", "freshness"]
    severity: Literal["critical", "high", "medium", "low", "info"]
    title: str
    description: str
    actionable: bool = True
    suggested_action: str | None = None


@dataclass(frozen=True)
class Classification:
    """Primary label plus every issue found.

    ``primary`` is one of ``security``, ``unmaintained``, ``outdated``,
    ``healthy`` or ``unknown``; ``severity``/``gap``/``days_since_update``
    qualify it. Lower ``display_priority`` sorts first.
    """

    primary: Literal["security", "unmaintained", "outdated", "healthy", "unknown"]
    display_priority: int
    severity: Literal["critical", "high", "medium", "low"] | None = None
    gap: Literal["major", "minor", "patch"] | None = None
    days_since_update: int | None = None
    all_issues: tuple[DependencyIssue, ...] = ()


# ── joined record ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DependencyAnalysis:
    """Everything known about one dependency at one tree position.

    The same underlying analysis can appear at several positions; each
    position gets its own copy (``dataclasses.replace``) with its own
    ``children``.
    """

    dependency: Dependency
    security: SecurityAnalysis
    freshness: FreshnessAnalysis
    license: LicenseAnalysis
    compatibility: CompatibilityAnalysis | None = None
    classification: Classification | None = None
    package_info: PackageInfo | None = None
    is_failed: bool = False
    error: str | None = None
    children: tuple[DependencyAnalysis, ...] = field(default_factory=tuple)

    @property
    def maintenance_signals(self) -> MaintenanceSignals | None:
        return self.freshness.maintenance_signals
