"""Tests for the compatibility analyzer and migration-guide resolution."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from dephealth.cache.package_info import PackageInfoCache
from dephealth.core.errors import NetworkError
from dephealth.core.network import NetworkStatus
from dephealth.engines.compatibility.analyzer import CompatibilityAnalyzer
from dephealth.engines.compatibility.migration_guide import (
    MigrationGuideResolver,
    candidate_urls,
)
from dephealth.engines.freshness.analyzer import FreshnessAnalyzer
from dephealth.models.analysis import FreshnessAnalysis, MaintenanceReason, MaintenanceSignals
from dephealth.models.dependency import Dependency
from dephealth.models.package import PackageInfo

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)
REPO = "git+https://github.com/acme/widget.git"


# ── helpers ──────────────────────────────────────────────────────────────


def _dep(version: str = "1.0.0", **overrides) -> Dependency:
    return Dependency(name="widget", version_constraint=version, **overrides)


def _info(**overrides) -> PackageInfo:
    defaults = {"name": "widget", "version": "3.0.0", "published_at": NOW, "repository": REPO}
    defaults.update(overrides)
    return PackageInfo(**defaults)


def _freshness(
    gap: str = "major",
    *,
    outdated: bool = True,
    stale: bool = False,
    reasons: tuple[MaintenanceReason, ...] = (),
) -> FreshnessAnalysis:
    # Same shape FreshnessAnalyzer produces: any signal marks long-term
    # unmaintained, an old release only marks the package unmaintained.
    return FreshnessAnalysis(
        current_version="1.0.0",
        latest_version="3.0.0",
        version_gap=gap,
        release_date=NOW,
        is_outdated=outdated,
        is_unmaintained=stale or bool(reasons),
        maintenance_signals=MaintenanceSignals(
            is_long_term_unmaintained=bool(reasons), reasons=reasons, last_checked=NOW
        ),
    )


def _resolver(live: set[str] | None = None, calls: list[str] | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        return httpx.Response(200 if url in (live or set()) else 404)

    return MigrationGuideResolver(transport=httpx.MockTransport(handler))


_DEPRECATED = MaintenanceReason("registry", "version-deprecated", "1.0.0 leaks memory")
_README_NOTICE = MaintenanceReason("readme", "notice", "This project is no longer maintained.")


# ── candidate URLs ───────────────────────────────────────────────────────


class TestCandidateUrls:
    def test_github_repository(self):
        assert candidate_urls("widget", "3.0.0", REPO) == [
            "https://github.com/acme/widget/releases/tag/v3.0.0",
            "https://github.com/acme/widget/releases/tag/3.0.0",
            "https://www.npmjs.com/package/widget/v/3.0.0",
            "https://www.npmjs.com/package/widget",
        ]

    def test_ssh_repository(self):
        urls = candidate_urls("widget", "3.0.0", "git@github.com:acme/widget.git")
        assert urls[0] == "https://github.com/acme/widget/releases/tag/v3.0.0"

    def test_non_github_repository(self):
        assert candidate_urls("widget", "3.0.0", "https://gitlab.com/acme/widget") == [
            "https://www.npmjs.com/package/widget/v/3.0.0",
            "https://www.npmjs.com/package/widget",
        ]

    def test_scoped_package(self):
        urls = candidate_urls("@acme/widget", "1.0.0")
        assert urls[-1] == "https://www.npmjs.com/package/@acme/widget"


class TestMigrationGuideResolver:
    @pytest.mark.anyio()
    async def test_first_live_candidate(self):
        calls: list[str] = []
        resolver = _resolver({"https://github.com/acme/widget/releases/tag/3.0.0"}, calls)

        url = await resolver.resolve("widget", "3.0.0", REPO)

        assert url == "https://github.com/acme/widget/releases/tag/3.0.0"
        assert len(calls) == 2

    @pytest.mark.anyio()
    async def test_probes_use_head(self):
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(200)

        resolver = MigrationGuideResolver(transport=httpx.MockTransport(handler))
        await resolver.resolve("widget", "3.0.0")
        assert methods == ["HEAD"]

    @pytest.mark.anyio()
    async def test_fallback_to_last_candidate(self):
        url = await _resolver().resolve("widget", "3.0.0", REPO)
        assert url == "https://www.npmjs.com/package/widget"

    @pytest.mark.anyio()
    async def test_transport_errors_never_raise(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        network = NetworkStatus()
        resolver = MigrationGuideResolver(transport=httpx.MockTransport(handler))

        url = await resolver.resolve("widget", "3.0.0", REPO, network=network)

        assert url == "https://www.npmjs.com/package/widget"
        assert network.degraded_features == ["migration-guide"]

    @pytest.mark.anyio()
    async def test_redirect_to_live_page(self):
        target = "https://www.npmjs.com/package/widget/v/3.0.0"

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == "https://github.com/acme/widget/releases/tag/v3.0.0":
                return httpx.Response(301, headers={"location": target})
            return httpx.Response(200 if str(request.url) == target else 404)

        resolver = MigrationGuideResolver(transport=httpx.MockTransport(handler))
        url = await resolver.resolve("widget", "3.0.0", REPO)
        assert url == "https://github.com/acme/widget/releases/tag/v3.0.0"


# ── analyzer ─────────────────────────────────────────────────────────────


class TestCompatibilityAnalyzer:
    @pytest.mark.anyio()
    async def test_internal_is_safe(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(is_internal=True), None, _freshness()
        )
        assert result.status == "safe"
        assert registry.deprecation_calls == []

    @pytest.mark.anyio()
    async def test_current_is_safe(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(), _info(), _freshness("current", outdated=False)
        )
        assert result.status == "safe"
        assert result.issues == ()
        assert result.upgrade_warnings is None

    @pytest.mark.anyio()
    async def test_major_outdated_is_breaking(self, registry):
        live = {"https://github.com/acme/widget/releases/tag/v3.0.0"}
        result = await CompatibilityAnalyzer(registry, _resolver(live)).analyze(
            _dep(), _info(), _freshness()
        )

        assert result.status == "breaking-changes"
        [issue] = result.issues
        assert issue.type == "breaking-change"
        assert issue.severity == "high"
        assert "1.0.0 -> 3.0.0" in issue.message
        assert issue.migration_guide == "https://github.com/acme/widget/releases/tag/v3.0.0"
        [warning] = result.upgrade_warnings
        assert warning.migration_guide == issue.migration_guide

    @pytest.mark.anyio()
    async def test_major_inside_grace_period_is_safe(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(), _info(), _freshness(outdated=False)
        )
        assert result.status == "safe"

    @pytest.mark.anyio()
    async def test_major_with_maintenance_signal_is_not_breaking(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(), _info(), _freshness(reasons=(_README_NOTICE,))
        )
        assert result.status == "safe"
        assert result.issues == ()

    @pytest.mark.anyio()
    async def test_old_release_without_signals_is_breaking(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(), _info(), _freshness(stale=True)
        )
        assert result.status == "breaking-changes"

    @pytest.mark.anyio()
    async def test_deprecated_version_from_freshness(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(), _info(), _freshness("current", outdated=False, reasons=(_DEPRECATED,))
        )

        assert result.status == "version-deprecated"
        [issue] = result.issues
        assert issue.severity == "critical"
        assert issue.message == "1.0.0 leaks memory"
        assert registry.deprecation_calls == []

    @pytest.mark.anyio()
    async def test_deprecated_version_with_major_gap(self, registry):
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(
            _dep(), _info(), _freshness(reasons=(_DEPRECATED,))
        )
        assert result.status == "version-deprecated"
        assert [(i.type, i.severity) for i in result.issues] == [
            ("version-deprecated", "critical"),
            ("breaking-change", "critical"),
        ]
        assert result.issues[1].message.startswith("Current version is deprecated")

    @pytest.mark.anyio()
    async def test_registry_consulted_without_freshness(self, registry):
        registry.deprecations[("widget", "1.0.0")] = "do not use"
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(_dep("^1.0.0"))
        assert result.status == "version-deprecated"
        assert registry.deprecation_calls == [("widget", "1.0.0")]

    @pytest.mark.anyio()
    async def test_deprecation_lookup_failure_is_safe(self, registry):
        async def boom(name, version):
            raise NetworkError("registry unavailable")

        registry.get_version_deprecation_status = boom
        result = await CompatibilityAnalyzer(registry, _resolver()).analyze(_dep())
        assert result.status == "safe"
        assert result.issues == ()


# ── freshness -> compatibility ───────────────────────────────────────────


async def _analyze_both(registry, info: PackageInfo):
    dep = _dep()
    freshness = await FreshnessAnalyzer(registry, PackageInfoCache(registry)).analyze(
        dep, info, now=NOW
    )
    compatibility = await CompatibilityAnalyzer(registry, _resolver()).analyze(
        dep, info, freshness
    )
    return freshness, compatibility


class TestFreshnessToCompatibility:
    @pytest.mark.anyio()
    async def test_old_major_release_without_signals(self, registry):
        info = _info(published_at=NOW - timedelta(days=1000))
        freshness, result = await _analyze_both(registry, info)

        assert freshness.is_unmaintained
        assert result.status == "breaking-changes"
        assert [(i.type, i.severity) for i in result.issues] == [("breaking-change", "high")]

    @pytest.mark.anyio()
    async def test_deprecated_installed_version_with_major_upgrade(self, registry):
        registry.deprecations[("widget", "1.0.0")] = "1.0.0 has a known data-loss bug"
        info = _info(published_at=NOW - timedelta(days=200))
        _, result = await _analyze_both(registry, info)

        assert result.status == "version-deprecated"
        assert [(i.type, i.severity) for i in result.issues] == [
            ("version-deprecated", "critical"),
            ("breaking-change", "critical"),
        ]
        assert "1.0.0 has a known data-loss bug" in result.issues[1].message

    @pytest.mark.anyio()
    async def test_readme_notice_suppresses_breaking_change(self, registry):
        info = _info(
            published_at=NOW - timedelta(days=200),
            readme="# widget\n\nThis project is no longer maintained.\n",
        )
        freshness, result = await _analyze_both(registry, info)

        assert freshness.maintenance_signals.is_long_term_unmaintained
        assert result.status == "safe"
        assert result.issues == ()
