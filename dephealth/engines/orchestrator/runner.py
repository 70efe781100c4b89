"""AnalysisOrchestrator: chunked, concurrent dependency analysis runs."""

from __future__ import annotations

import asyncio
import sys
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

import structlog

from dephealth.cache.package_info import PackageInfoCache
from dephealth.cache.store import CacheStore
from dephealth.core.config import AnalysisConfig
from dephealth.core.errors import DepHealthError, NetworkError, PackageNotFoundError
from dephealth.core.network import NetworkStatus
from dephealth.engines.compatibility.analyzer import CompatibilityAnalyzer
from dephealth.engines.compatibility.migration_guide import MigrationGuideResolver
from dephealth.engines.freshness.analyzer import FreshnessAnalyzer, default_freshness
from dephealth.engines.health_score.calculator import HealthScoreCalculator
from dephealth.engines.license.checker import (
    LicenseCompatibilityChecker,
    internal_license,
    unanalyzed_license,
)
from dephealth.engines.orchestrator.classifier import classify, summarize
from dephealth.engines.orchestrator.collector import (
    build_tree,
    chunked,
    collect_dependencies,
    scoped_key,
)
from dephealth.engines.orchestrator.progress import ProgressTracker
from dephealth.engines.security.analyzer import SecurityAnalyzer
from dephealth.models.analysis import (
    CompatibilityAnalysis,
    DependencyAnalysis,
    FreshnessAnalysis,
    SecurityAnalysis,
)
from dephealth.models.dependency import Dependency, ProjectInfo
from dephealth.models.package import PackageInfo
from dephealth.models.result import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisStatus,
    AnalysisSummary,
    FailedPackage,
    PerformanceMetrics,
)
from dephealth.sources.registry import PackageRegistryClient
from dephealth.sources.vulnerability import VulnerabilitySource

log = structlog.get_logger("dephealth.engine")

FAILED_LICENSE_REASON = "Failed package - license not analyzed"


def peak_rss_bytes() -> int | None:
    """Peak resident set size of this process, None where unsupported."""
    if sys.platform == "win32":
        return None
    import resource

    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports KiB, macOS bytes.
    return peak if sys.platform == "darwin" else peak * 1024


@dataclass
class _Partial:
    """Freshness-side result for one dependency, before assembly."""

    freshness: FreshnessAnalysis
    package_info: PackageInfo | None = None
    compatibility: CompatibilityAnalysis | None = None
    error: Exception | None = None


@dataclass
class _RunState:
    analyses: dict[str, DependencyAnalysis] = field(default_factory=dict)
    failed: list[FailedPackage] = field(default_factory=list)
    errors: int = 0


class AnalysisOrchestrator:
    """Drive the analyzers over a project and assemble the report.

    Chunks run one after another; within a chunk the batched security
    call and the per-dependency freshness -> compatibility pipelines run
    concurrently. A failure of the batched security call aborts the run.
    """

    def __init__(
        self,
        registry: PackageRegistryClient,
        vulnerability_source: VulnerabilitySource,
        *,
        config: AnalysisConfig | None = None,
        cache_store: CacheStore | None = None,
        migration_guides: MigrationGuideResolver | None = None,
    ) -> None:
        self._config = config or AnalysisConfig()
        self._packages = PackageInfoCache(registry, cache_store, self._config.cache)
        self._security = SecurityAnalyzer(vulnerability_source)
        self._freshness = FreshnessAnalyzer(registry, self._packages, self._config.freshness)
        self._compatibility = CompatibilityAnalyzer(
            registry, migration_guides or MigrationGuideResolver(self._config.probe)
        )
        self._licenses = LicenseCompatibilityChecker(self._config.license)
        self._scorer = HealthScoreCalculator(self._config.health_score)
        self._progress = ProgressTracker()

    # ── public ─────────────────────────────────────────────────────────────

    @property
    def config(self) -> AnalysisConfig:
        return self._config

    @property
    def package_cache(self) -> PackageInfoCache:
        return self._packages

    def get_status(self) -> AnalysisStatus:
        return self._progress.snapshot()

    def add_progress_callback(self, callback: Callable[[AnalysisStatus], None]) -> None:
        self._progress.callbacks.append(callback)

    async def analyze(
        self,
        project: ProjectInfo,
        *,
        bypass_cache: bool = False,
        include_transitive: bool | None = None,
    ) -> AnalysisResult:
        """Analyze every dependency of *project* and return the full report.

        Raises :class:`~dephealth.core.errors.VulnerabilitySourceError` when
        the batched vulnerability fetch for a chunk fails.
        """
        include = (
            self._config.include_transitive if include_transitive is None else include_transitive
        )
        is_monorepo = project.is_monorepo
        started = time.perf_counter()
        network = NetworkStatus()

        def key(dep: Dependency) -> str:
            return scoped_key(dep, is_monorepo=is_monorepo)

        work = collect_dependencies(
            project.dependencies, is_monorepo=is_monorepo, include_transitive=include
        )
        transitive = sum(1 for d in work if d.is_transitive)

        tokens = structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex[:12])
        try:
            log.info(
                "orchestrator.started",
                dependencies=len(work),
                direct=len(work) - transitive,
                transitive=transitive,
                monorepo=is_monorepo,
                chunk_size=self._config.chunk_size,
            )
            self._progress.start(len(work))
            self._packages.reset_stats()

            description = (
                f"Analyzing dependencies ({len(work)} total: "
                f"{len(work) - transitive} direct, {transitive} transitive)"
                if include
                else f"Analyzing dependencies ({len(work)} direct, transitive disabled)"
            )
            state = await self._run_chunks(
                work,
                key,
                bypass_cache=bypass_cache,
                network=network,
                project_license=project.license,
                description=description,
            )

            tree = build_tree(
                project.dependencies,
                state.analyses,
                is_monorepo=is_monorepo,
                include_transitive=include,
            )

            direct = [d for d in project.dependencies if not d.is_transitive and not d.is_internal]
            if is_monorepo:
                summary_input = [state.analyses[key(d)] for d in direct if key(d) in state.analyses]
            else:
                summary_input = [
                    a
                    for a in state.analyses.values()
                    if not a.dependency.is_internal and not a.dependency.is_transitive
                ]
            summary = summarize(
                summary_input,
                total_direct=len(direct),
                failed=sum(1 for f in state.failed if not f.is_transitive),
                errors=state.errors,
            )

            external = [a for a in state.analyses.values() if not a.dependency.is_internal]
            health = self._scorer.calculate(external)

            result = AnalysisResult(
                timestamp=datetime.now(timezone.utc),
                dependencies=tuple(tree),
                health_score=health,
                summary=summary,
                failed_packages=tuple(state.failed),
                is_monorepo=is_monorepo,
                manifest_count=project.manifest_count,
                metadata=self._metadata(summary),
                performance=self._performance(
                    started, summary, sum(1 for a in external if a.dependency.is_transitive)
                ),
                network_status=network if network.has_issues() else None,
            )
            log.info(
                "orchestrator.completed",
                duration_ms=result.performance.scan_duration_ms,
                analyzed=len(state.analyses),
                failed=len(state.failed),
                errors=state.errors,
                overall_score=health.overall,
            )
            return result
        finally:
            self._progress.finish()
            structlog.contextvars.reset_contextvars(**tokens)

    async def analyze_incremental(
        self,
        changed: Sequence[Dependency],
        *,
        bypass_cache: bool = False,
        include_transitive: bool | None = None,
        project_license: str | None = None,
    ) -> AnalysisResult:
        """Re-analyze only *changed* dependencies.

        The result lists the changed dependencies flat (no tree rebuild);
        summary and score cover just those dependencies.
        """
        include = (
            self._config.include_transitive if include_transitive is None else include_transitive
        )
        started = time.perf_counter()
        network = NetworkStatus()

        def key(dep: Dependency) -> str:
            return scoped_key(dep, is_monorepo=True)

        filtered = [d for d in changed if include or not d.is_transitive]
        work = collect_dependencies(filtered, is_monorepo=True, include_transitive=False)

        tokens = structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex[:12])
        try:
            log.info("orchestrator.incremental_started", dependencies=len(work))
            self._progress.start(len(work))
            self._packages.reset_stats()

            state = await self._run_chunks(
                work,
                key,
                bypass_cache=bypass_cache,
                network=network,
                project_license=project_license,
                description=f"Analyzing {len(work)} changed dependencies",
            )

            external = [a for a in state.analyses.values() if not a.dependency.is_internal]
            summary = summarize(
                external,
                total_direct=sum(1 for a in external if not a.dependency.is_transitive),
                failed=len(state.failed),
                errors=state.errors,
            )
            health = self._scorer.calculate(external)
            result = AnalysisResult(
                timestamp=datetime.now(timezone.utc),
                dependencies=tuple(external),
                health_score=health,
                summary=summary,
                failed_packages=tuple(state.failed),
                metadata=self._metadata(summary),
                performance=self._performance(
                    started, summary, sum(1 for a in external if a.dependency.is_transitive)
                ),
                network_status=network if network.has_issues() else None,
            )
            log.info(
                "orchestrator.incremental_completed",
                duration_ms=result.performance.scan_duration_ms,
                overall_score=health.overall,
            )
            return result
        finally:
            self._progress.finish()
            structlog.contextvars.reset_contextvars(**tokens)

    # ── chunk processing ───────────────────────────────────────────────────

    async def _run_chunks(
        self,
        work: Sequence[Dependency],
        key: Callable[[Dependency], str],
        *,
        bypass_cache: bool,
        network: NetworkStatus,
        project_license: str | None,
        description: str,
    ) -> _RunState:
        state = _RunState()
        chunks = chunked(work, self._config.chunk_size)
        now = datetime.now(timezone.utc)

        for index, chunk in enumerate(chunks, start=1):
            log.info("orchestrator.chunk_started", chunk=index, chunks=len(chunks), size=len(chunk))
            self._progress.describe(description)
            self._progress.advance(0)

            security, partials = await self._analyze_chunk(chunk, bypass_cache, network, now)

            for dep, sec, partial in zip(chunk, security, partials):
                self._progress.advance()
                try:
                    analysis = self._assemble(dep, sec, partial, project_license, now)
                except PackageNotFoundError as exc:
                    log.warning(
                        "orchestrator.package_not_found",
                        package=dep.name,
                        version=dep.version,
                        transitive=dep.is_transitive,
                    )
                    state.failed.append(
                        FailedPackage(
                            name=dep.name,
                            version=dep.version,
                            error=str(exc),
                            is_transitive=dep.is_transitive,
                        )
                    )
                    analysis = self._failed_analysis(dep, str(exc), now, is_failed=True)
                except Exception as exc:
                    log.error(
                        "orchestrator.dependency_failed",
                        package=dep.name,
                        version=dep.version,
                        error=str(exc),
                        exc_info=True,
                    )
                    state.errors += 1
                    analysis = self._failed_analysis(dep, str(exc), now, is_failed=False)
                state.analyses[key(dep)] = analysis

            log.info("orchestrator.chunk_completed", chunk=index, chunks=len(chunks))

        return state

    async def _analyze_chunk(
        self,
        chunk: Sequence[Dependency],
        bypass_cache: bool,
        network: NetworkStatus,
        now: datetime,
    ) -> tuple[list[SecurityAnalysis], list[_Partial]]:
        security_task = asyncio.ensure_future(self._security.analyze_chunk(chunk, network=network))
        pipeline_tasks = [
            asyncio.ensure_future(self._dependency_pipeline(dep, bypass_cache, network, now))
            for dep in chunk
        ]
        tasks = [security_task, *pipeline_tasks]
        try:
            security, *partials = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            log.error("orchestrator.chunk_aborted", size=len(chunk))
            raise
        return security, partials

    async def _dependency_pipeline(
        self,
        dep: Dependency,
        bypass_cache: bool,
        network: NetworkStatus,
        now: datetime,
    ) -> _Partial:
        """Freshness, then compatibility fed with the freshness result.

        Errors are captured in the returned partial and re-raised during
        assembly so one dependency cannot fail its siblings.
        """
        if dep.is_internal:
            return _Partial(default_freshness(dep, now=now), compatibility=CompatibilityAnalysis())

        if dep.is_transitive and not self._config.analyze_transitive_metadata:
            freshness = default_freshness(dep, now=now)
            compat = await self._compatibility_or_none(dep, None, None, network)
            return _Partial(freshness, compatibility=compat)

        try:
            info = await self._packages.get(dep.name, bypass_cache=bypass_cache)
            freshness = await self._freshness.analyze(dep, info, now=now, network=network)
        except Exception as exc:
            if isinstance(exc, NetworkError):
                network.mark_degraded(
                    "version-check", f"Version check failed for {dep.name}: {exc}"
                )
            if not isinstance(exc, PackageNotFoundError):
                log.warning("orchestrator.freshness_failed", package=dep.name, error=str(exc))
            return _Partial(default_freshness(dep, now=now), error=exc)

        compat = await self._compatibility_or_none(dep, info, freshness, network)
        return _Partial(freshness, package_info=info, compatibility=compat)

    async def _compatibility_or_none(
        self,
        dep: Dependency,
        info: PackageInfo | None,
        freshness: FreshnessAnalysis | None,
        network: NetworkStatus,
    ) -> CompatibilityAnalysis | None:
        try:
            return await self._compatibility.analyze(dep, info, freshness, network=network)
        except Exception:
            log.warning("orchestrator.compatibility_failed", package=dep.name, exc_info=True)
            return None

    # ── assembly ───────────────────────────────────────────────────────────

    def _assemble(
        self,
        dep: Dependency,
        security: SecurityAnalysis,
        partial: _Partial,
        project_license: str | None,
        now: datetime,
    ) -> DependencyAnalysis:
        if partial.error is not None:
            raise partial.error

        skip_metadata = dep.is_transitive and not self._config.analyze_transitive_metadata
        info = partial.package_info
        if info is None and not dep.is_internal and not skip_metadata:
            raise DepHealthError(f"Package info missing for {dep.name}")

        if dep.is_internal:
            license_ = internal_license()
        elif skip_metadata or info is None:
            license_ = unanalyzed_license()
        else:
            license_ = self._licenses.analyze(info.license, project_license)
            if not license_.is_compatible:
                log.info(
                    "orchestrator.license_issue",
                    package=dep.name,
                    license=license_.license,
                    reason=license_.compatibility_reason,
                )

        analysis = DependencyAnalysis(
            dependency=dep,
            security=security,
            freshness=partial.freshness,
            license=license_,
            compatibility=partial.compatibility,
            package_info=info,
        )
        return _with_classification(analysis, now)

    @staticmethod
    def _failed_analysis(
        dep: Dependency, error: str, now: datetime, *, is_failed: bool
    ) -> DependencyAnalysis:
        analysis = DependencyAnalysis(
            dependency=dep,
            security=SecurityAnalysis(),
            freshness=default_freshness(dep, now=now),
            license=unanalyzed_license(FAILED_LICENSE_REASON),
            is_failed=is_failed,
            error=error,
        )
        return _with_classification(analysis, now)

    # ── metadata ───────────────────────────────────────────────────────────

    def _metadata(self, summary: AnalysisSummary) -> AnalysisMetadata:
        stats = self._packages.stats
        return AnalysisMetadata(
            cache_hits=stats.hits,
            cache_requests=stats.requests,
            total_dependencies=summary.total_dependencies,
        )

    @staticmethod
    def _performance(
        started: float, summary: AnalysisSummary, transitive: int
    ) -> PerformanceMetrics:
        return PerformanceMetrics(
            scan_duration_ms=int((time.perf_counter() - started) * 1000),
            memory_rss_bytes=peak_rss_bytes(),
            dependency_count=summary.total_dependencies,
            valid_dependency_count=summary.analyzed_dependencies,
            invalid_dependency_count=summary.failed_dependencies,
            transitive_dependency_count=transitive,
        )


def _with_classification(analysis: DependencyAnalysis, now: datetime) -> DependencyAnalysis:
    return replace(analysis, classification=classify(analysis, now=now))
