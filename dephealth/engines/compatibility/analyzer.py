"""Compatibility analyzer: deprecated versions and major-upgrade breaking changes."""

from __future__ import annotations

import structlog

from dephealth.core.errors import DepHealthError
from dephealth.core.network import NetworkStatus
from dephealth.engines.compatibility.migration_guide import MigrationGuideResolver
from dephealth.engines.security.version_range import clean_version
from dephealth.models.analysis import (
    CompatibilityAnalysis,
    CompatibilityIssue,
    FreshnessAnalysis,
    UpgradeWarning,
)
from dephealth.models.dependency import Dependency
from dephealth.models.package import PackageInfo
from dephealth.sources.registry import PackageRegistryClient

log = structlog.get_logger("dephealth.engine")


class CompatibilityAnalyzer:
    """Best-effort upgrade-risk signal; recoverable errors yield ``safe``."""

    def __init__(
        self,
        registry: PackageRegistryClient,
        migration_guides: MigrationGuideResolver | None = None,
    ) -> None:
        self._registry = registry
        self._guides = migration_guides or MigrationGuideResolver()

    async def analyze(
        self,
        dependency: Dependency,
        package_info: PackageInfo | None = None,
        freshness: FreshnessAnalysis | None = None,
        *,
        network: NetworkStatus | None = None,
    ) -> CompatibilityAnalysis:
        if dependency.is_internal:
            return CompatibilityAnalysis()

        current = freshness.current_version if freshness else clean_version(dependency.version)

        try:
            notice = await self._deprecation_notice(dependency, current, freshness)
        except DepHealthError as exc:
            if not exc.recoverable:
                raise
            log.warning(
                "compatibility.deprecation_check_failed",
                package=dependency.name,
                version=current,
                error=str(exc),
            )
            return CompatibilityAnalysis()

        issues: list[CompatibilityIssue] = []
        warnings: list[UpgradeWarning] = []

        if notice:
            issues.append(
                CompatibilityIssue(
                    type="version-deprecated",
                    severity="critical",
                    message=notice,
                    affected_versions=current,
                    recommendation="Update to a non-deprecated version",
                )
            )

        if freshness is not None and freshness.version_gap == "major" and freshness.is_outdated:
            latest = freshness.latest_version
            signals = freshness.maintenance_signals
            long_term = signals is not None and signals.is_long_term_unmaintained

            if not long_term:
                guide = await self._guide(dependency, latest, package_info, network)
                issues.append(
                    CompatibilityIssue(
                        type="breaking-change",
                        severity="high",
                        message=(
                            f"Major version upgrade available ({current} -> {latest}). "
                            "Major versions typically include breaking changes."
                        ),
                        affected_versions=f"{current} -> {latest}",
                        recommendation=f"Review changelog before upgrading to {latest}",
                        migration_guide=guide,
                    )
                )
                warnings.append(
                    UpgradeWarning(
                        breaking_change="Major version upgrade",
                        description=(
                            f"Upgrading {dependency.name} from {current} to {latest} may "
                            "introduce breaking changes such as API changes or removed features."
                        ),
                        migration_guide=guide,
                    )
                )
            elif notice:
                guide = await self._guide(dependency, latest, package_info, network)
                issues.append(
                    CompatibilityIssue(
                        type="breaking-change",
                        severity="critical",
                        message=(
                            "Current version is deprecated and a major upgrade is available. "
                            f"{notice}"
                        ),
                        affected_versions=current,
                        recommendation=f"Upgrade to {latest} (may require code changes)",
                        migration_guide=guide,
                    )
                )

        if any(i.type == "version-deprecated" for i in issues):
            status = "version-deprecated"
        elif any(i.type == "breaking-change" for i in issues):
            status = "breaking-changes"
        else:
            status = "safe"

        if status != "safe":
            log.info(
                "compatibility.issues_found",
                package=dependency.name,
                version=current,
                status=status,
                issues=len(issues),
            )

        return CompatibilityAnalysis(
            status=status,
            issues=tuple(issues),
            upgrade_warnings=tuple(warnings) or None,
        )

    # ── internal ───────────────────────────────────────────────────────────

    async def _deprecation_notice(
        self, dependency: Dependency, current: str, freshness: FreshnessAnalysis | None
    ) -> str | None:
        # Freshness already asked the registry when it produced signals.
        signals = freshness.maintenance_signals if freshness is not None else None
        if signals is not None:
            for reason in signals.reasons:
                if reason.type == "version-deprecated":
                    return reason.message
            return None
        return await self._registry.get_version_deprecation_status(dependency.name, current)

    async def _guide(
        self,
        dependency: Dependency,
        version: str,
        package_info: PackageInfo | None,
        network: NetworkStatus | None,
    ) -> str:
        repository = package_info.repository if package_info is not None else None
        return await self._guides.resolve(dependency.name, version, repository, network=network)
