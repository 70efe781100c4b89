"""Tests for the freshness engine: version gaps, grace period, maintenance signals."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from dephealth.cache.package_info import PackageInfoCache
from dephealth.core.config import FreshnessConfig
from dephealth.core.errors import NetworkError, PackageNotFoundError
from dephealth.core.network import NetworkStatus
from dephealth.engines.freshness.analyzer import FreshnessAnalyzer, default_freshness
from dephealth.engines.freshness.versions import (
    gap_between,
    resolve_current_version,
)
from dephealth.models.dependency import Dependency
from dephealth.models.package import PackageInfo

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


# ── helpers ──────────────────────────────────────────────────────────────


def _dep(name: str = "widget", version: str = "1.0.0", **overrides) -> Dependency:
    return Dependency(name=name, version_constraint=version, **overrides)


def _info(name: str = "widget", version: str = "1.0.0", *, days_ago: int = 30, **overrides):
    return PackageInfo(
        name=name,
        version=version,
        published_at=NOW - timedelta(days=days_ago),
        **overrides,
    )


def _analyzer(registry, **config) -> FreshnessAnalyzer:
    return FreshnessAnalyzer(registry, PackageInfoCache(registry), FreshnessConfig(**config))


# ── versions ─────────────────────────────────────────────────────────────


class TestVersionGap:
    @pytest.mark.parametrize(
        ("current", "latest", "gap"),
        [
            ("1.0.0", "1.0.0", "current"),
            ("2.0.0", "1.9.0", "current"),
            ("1.0.0", "1.0.5", "patch"),
            ("1.0.0", "1.3.0", "minor"),
            ("1.9.9", "2.0.0", "major"),
            ("v1.0.0", "3.1.4", "major"),
        ],
    )
    def test_gap(self, current, latest, gap):
        assert gap_between(current, latest) == gap

    def test_unparseable_gap_is_none(self):
        assert gap_between("next", "1.0.0") is None

    @pytest.mark.parametrize("declared", ["", "latest", "*", "x", "LATEST"])
    def test_floating_versions_resolve_to_latest(self, declared):
        assert resolve_current_version(declared, "4.2.0") == "4.2.0"

    def test_declared_constraint_is_cleaned(self):
        assert resolve_current_version("^1.2.3", "4.2.0") == "1.2.3"


# ── analyzer ─────────────────────────────────────────────────────────────


class TestFreshnessAnalyzer:
    @pytest.mark.anyio()
    async def test_current(self, registry):
        result = await _analyzer(registry).analyze(_dep(), _info(), now=NOW)
        assert result.version_gap == "current"
        assert not result.is_outdated
        assert not result.is_unmaintained

    @pytest.mark.anyio()
    async def test_minor_outdated(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(version="1.2.0"), _info(version="1.4.0"), now=NOW
        )
        assert result.version_gap == "minor"
        assert result.is_outdated
        assert result.current_version == "1.2.0"
        assert result.latest_version == "1.4.0"

    @pytest.mark.anyio()
    async def test_major_after_grace_period(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(version="1.0.0"), _info(version="2.0.0", days_ago=200), now=NOW
        )
        assert result.version_gap == "major"
        assert result.is_outdated
        assert not result.grace_period_active

    @pytest.mark.anyio()
    async def test_major_inside_grace_period(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(version="1.0.0"), _info(version="2.0.0", days_ago=10), now=NOW
        )
        assert result.version_gap == "major"
        assert not result.is_outdated
        assert result.grace_period_active

    @pytest.mark.anyio()
    async def test_grace_period_does_not_apply_to_minor(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(version="1.0.0"), _info(version="1.1.0", days_ago=1), now=NOW
        )
        assert result.is_outdated
        assert not result.grace_period_active

    @pytest.mark.anyio()
    async def test_grace_period_is_configurable(self, registry):
        result = await _analyzer(registry, major_grace_period_days=0).analyze(
            _dep(version="1.0.0"), _info(version="2.0.0", days_ago=1), now=NOW
        )
        assert result.is_outdated

    @pytest.mark.anyio()
    async def test_floating_version_is_current(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(version="latest"), _info(version="3.0.0"), now=NOW
        )
        assert result.current_version == "3.0.0"
        assert result.version_gap == "current"

    @pytest.mark.anyio()
    async def test_unparseable_version_is_current(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(version="github:acme/widget"), _info(version="3.0.0"), now=NOW
        )
        assert result.version_gap == "current"
        assert not result.is_outdated
        assert result.maintenance_signals is None

    @pytest.mark.anyio()
    async def test_old_release_is_unmaintained_without_signals(self, registry):
        result = await _analyzer(registry).analyze(_dep(), _info(days_ago=800), now=NOW)
        assert result.is_unmaintained
        assert not result.maintenance_signals.is_long_term_unmaintained
        assert result.maintenance_signals.reasons == ()

    @pytest.mark.anyio()
    async def test_signal_marks_long_term_unmaintained(self, registry):
        result = await _analyzer(registry).analyze(
            _dep(), _info(days_ago=10, deprecated_message="Use acme-next instead"), now=NOW
        )
        assert result.is_unmaintained
        assert result.maintenance_signals.is_long_term_unmaintained

    @pytest.mark.anyio()
    async def test_internal_uses_default(self, registry):
        result = await _analyzer(registry).analyze(_dep(is_internal=True), now=NOW)
        assert result == default_freshness(_dep(is_internal=True), now=NOW)
        assert registry.info_calls == []

    @pytest.mark.anyio()
    async def test_fetches_through_cache(self, registry):
        registry.add(_info(version="1.0.1"))
        result = await _analyzer(registry).analyze(_dep(), now=NOW)
        assert result.version_gap == "patch"
        assert registry.info_calls == ["widget"]

    @pytest.mark.anyio()
    async def test_not_found_propagates(self, registry):
        with pytest.raises(PackageNotFoundError):
            await _analyzer(registry).analyze(_dep("ghost"), now=NOW)

    @pytest.mark.anyio()
    async def test_network_error_degrades(self, registry):
        registry.failures["widget"] = NetworkError("connect timeout")
        network = NetworkStatus()

        result = await _analyzer(registry).analyze(_dep(), now=NOW, network=network)

        assert result.version_gap == "current"
        assert not result.is_outdated
        assert network.degraded_features == ["version-check"]


class TestMaintenanceSignals:
    @pytest.mark.anyio()
    async def test_registry_version_deprecation_first(self, registry):
        registry.deprecations[("widget", "1.0.0")] = "1.0.0 has a critical bug, use 1.0.1"
        info = _info(
            deprecated_message="widget is deprecated",
            readme="This project is no longer maintained.",
        )

        result = await _analyzer(registry).analyze(_dep(), info, now=NOW)

        [reason] = result.maintenance_signals.reasons
        assert reason.source == "registry"
        assert reason.type == "version-deprecated"
        assert result.is_unmaintained

    @pytest.mark.anyio()
    async def test_package_deprecation_second(self, registry):
        info = _info(
            deprecated_message="widget is deprecated",
            readme="This project is no longer maintained.",
        )
        result = await _analyzer(registry).analyze(_dep(), info, now=NOW)

        [reason] = result.maintenance_signals.reasons
        assert (reason.source, reason.type) == ("registry", "deprecated")

    @pytest.mark.anyio()
    async def test_readme_notice_last(self, registry):
        info = _info(readme="# widget\n\nThis project is no longer maintained.\n")
        result = await _analyzer(registry).analyze(_dep(), info, now=NOW)

        [reason] = result.maintenance_signals.reasons
        assert (reason.source, reason.type) == ("readme", "notice")
        assert "no longer maintained" in reason.message
        assert result.is_unmaintained

    @pytest.mark.anyio()
    async def test_deprecation_lookup_failure_is_recovered(self, registry):
        async def boom(name, version):
            raise NetworkError("registry unavailable")

        registry.get_version_deprecation_status = boom
        network = NetworkStatus()

        result = await _analyzer(registry).analyze(_dep(), _info(), now=NOW, network=network)

        assert result.maintenance_signals.reasons == ()
        assert "version-check" in network.degraded_features

    @pytest.mark.anyio()
    async def test_clean_package_has_no_reasons(self, registry):
        info = _info(readme="A small, fast widget library. See the docs for usage.")
        result = await _analyzer(registry).analyze(_dep(), info, now=NOW)
        assert result.maintenance_signals.reasons == ()
        assert not result.is_unmaintained
