"""Freshness analyzer: version gap, grace period and maintenance signals."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from dephealth.cache.package_info import PackageInfoCache
from dephealth.core.config import FreshnessConfig
from dephealth.core.errors import DepHealthError, PackageNotFoundError
from dephealth.core.network import NetworkStatus
from dephealth.engines.freshness.maintenance import extract_maintenance_signal
from dephealth.engines.freshness.versions import resolve_current_version, version_gap
from dephealth.engines.security.version_range import parse_version
from dephealth.models.analysis import FreshnessAnalysis, MaintenanceReason, MaintenanceSignals
from dephealth.models.dependency import Dependency
from dephealth.models.package import PackageInfo
from dephealth.sources.registry import PackageRegistryClient

log = structlog.get_logger("dephealth.engine")

_FEATURE = "version-check"


def _utc(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def default_freshness(
    dependency: Dependency, *, now: datetime | None = None
) -> FreshnessAnalysis:
    """Conservative result: current, not outdated, not unmaintained."""
    version = dependency.version
    return FreshnessAnalysis(
        current_version=version,
        latest_version=version,
        version_gap="current",
        release_date=now or datetime.now(timezone.utc),
        is_outdated=False,
        is_unmaintained=False,
    )


class FreshnessAnalyzer:
    """Compare installed and latest versions and look for maintenance signals."""

    def __init__(
        self,
        registry: PackageRegistryClient,
        packages: PackageInfoCache,
        config: FreshnessConfig | None = None,
    ) -> None:
        self._registry = registry
        self._packages = packages
        self._config = config or FreshnessConfig()

    async def analyze(
        self,
        dependency: Dependency,
        package_info: PackageInfo | None = None,
        *,
        now: datetime | None = None,
        network: NetworkStatus | None = None,
        bypass_cache: bool = False,
    ) -> FreshnessAnalysis:
        """Analyze *dependency* against the latest release.

        Fetches *package_info* through the cache when not supplied.
        :class:`~dephealth.core.errors.PackageNotFoundError` propagates;
        other recoverable fetch errors degrade to :func:`default_freshness`.
        """
        now = now or datetime.now(timezone.utc)

        if dependency.is_internal:
            return default_freshness(dependency, now=now)

        if package_info is None:
            try:
                package_info = await self._packages.get(dependency.name, bypass_cache=bypass_cache)
            except PackageNotFoundError:
                raise
            except DepHealthError as exc:
                if not exc.recoverable:
                    raise
                log.warning("freshness.fetch_failed", package=dependency.name, error=str(exc))
                if network is not None:
                    network.mark_degraded(_FEATURE, f"{dependency.name}: {exc}")
                return default_freshness(dependency, now=now)

        latest = package_info.version
        current = resolve_current_version(dependency.version, latest)
        release_date = _utc(package_info.published_at)

        cur_v = parse_version(current)
        lat_v = parse_version(latest)
        if cur_v is None or lat_v is None:
            log.warning(
                "freshness.unparseable_version",
                package=dependency.name,
                current=current,
                latest=latest,
            )
            return FreshnessAnalysis(
                current_version=current,
                latest_version=latest,
                version_gap="current",
                release_date=release_date,
                is_outdated=False,
                is_unmaintained=False,
            )

        gap = version_gap(cur_v, lat_v)
        days_since_release = (now - release_date).days

        grace_period_active = False
        is_outdated = gap != "current"
        if gap == "major" and days_since_release < self._config.major_grace_period_days:
            is_outdated = False
            grace_period_active = True
            log.debug(
                "freshness.grace_period_active",
                package=dependency.name,
                latest=latest,
                days_since_release=days_since_release,
            )

        signals = await self._maintenance_signals(dependency, current, package_info, now, network)
        is_unmaintained = (
            days_since_release > self._config.unmaintained_threshold_days
            or signals.is_long_term_unmaintained
        )

        return FreshnessAnalysis(
            current_version=current,
            latest_version=latest,
            version_gap=gap,
            release_date=release_date,
            is_outdated=is_outdated,
            is_unmaintained=is_unmaintained,
            grace_period_active=grace_period_active,
            maintenance_signals=signals,
        )

    # ── internal ───────────────────────────────────────────────────────────

    async def _maintenance_signals(
        self,
        dependency: Dependency,
        current: str,
        package_info: PackageInfo,
        now: datetime,
        network: NetworkStatus | None,
    ) -> MaintenanceSignals:
        reasons: list[MaintenanceReason] = []

        # 1. registry notice on the installed version
        try:
            notice = await self._registry.get_version_deprecation_status(dependency.name, current)
        except DepHealthError as exc:
            if not exc.recoverable:
                raise
            log.warning(
                "freshness.deprecation_check_failed",
                package=dependency.name,
                version=current,
                error=str(exc),
            )
            if network is not None:
                network.mark_degraded(_FEATURE, f"{dependency.name}@{current}: {exc}")
            notice = None
        if notice:
            reasons.append(MaintenanceReason("registry", "version-deprecated", notice))

        # 2. package-level notice on the latest version
        if not reasons and package_info.deprecated_message:
            reasons.append(
                MaintenanceReason("registry", "deprecated", package_info.deprecated_message)
            )

        # 3. README heuristics
        if not reasons:
            excerpt = extract_maintenance_signal(package_info.readme)
            if excerpt:
                reasons.append(MaintenanceReason("readme", "notice", excerpt))

        if reasons:
            log.info(
                "freshness.maintenance_signal",
                package=dependency.name,
                source=reasons[0].source,
                type=reasons[0].type,
            )

        return MaintenanceSignals(
            is_long_term_unmaintained=bool(reasons),
            reasons=tuple(reasons),
            last_checked=now,
        )
