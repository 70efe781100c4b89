"""Security analyzer: fetch, range-filter and grade vulnerability records."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import structlog

from dephealth.core.errors import DepHealthError, VulnerabilitySourceError
from dephealth.core.network import NetworkStatus
from dephealth.engines.security.version_range import (
    MAX_RANGE_LENGTH,
    clean_version,
    matches,
    parse_version,
)
from dephealth.models.analysis import SecurityAnalysis
from dephealth.models.dependency import Dependency
from dephealth.models.vulnerability import SEVERITY_ORDER, Vulnerability
from dephealth.sources.vulnerability import VulnerabilitySource

log = structlog.get_logger("dephealth.engine")

_FEATURE = "vulnerability-scan"

_SEVERITY_ALIASES = {"moderate": "medium"}


def normalize_severity(severity: str | None) -> str | None:
    """Lower-case a source severity; None when it is not one we grade."""
    if not severity:
        return None
    value = severity.strip().lower()
    value = _SEVERITY_ALIASES.get(value, value)
    return value if value in SEVERITY_ORDER else None


def aggregate_severity(vulnerabilities: Sequence[Vulnerability]) -> str:
    """Highest severity present, ``none`` for no records.

    A non-empty list with no recognized severity grades as ``medium``.
    """
    if not vulnerabilities:
        return "none"
    present = {normalize_severity(v.severity) for v in vulnerabilities}
    for level in SEVERITY_ORDER:
        if level in present:
            return level
    return "medium"


def merge_duplicate_ids(vulnerabilities: Sequence[Vulnerability]) -> list[Vulnerability]:
    """Collapse records sharing an ID into one, keeping first-seen order.

    The merged record's affected range is the ``||`` union of the
    individual ranges; patched versions, references and sources are
    unioned; severity and CVSS take the highest value.
    """
    groups: dict[str, list[Vulnerability]] = {}
    for vuln in vulnerabilities:
        groups.setdefault(vuln.id, []).append(vuln)

    merged: list[Vulnerability] = []
    for vid, group in groups.items():
        if len(group) == 1:
            merged.append(group[0])
            continue

        first = group[0]
        ranges = _unique(v.affected_versions for v in group if v.affected_versions)
        patched = _unique(v.patched_versions for v in group if v.patched_versions)
        references = _unique(ref for v in group for ref in v.references)
        sources = _unique(src for v in group for src in v.sources)
        scores = [v.cvss_score for v in group if v.cvss_score is not None]
        dates = [v.published_date for v in group if v.published_date is not None]

        merged.append(
            Vulnerability(
                id=vid,
                severity=aggregate_severity(group),
                affected_versions=" || ".join(ranges),
                title=first.title,
                description=first.description,
                references=tuple(references),
                patched_versions=" || ".join(patched) or None,
                published_date=min(dates) if dates else None,
                cvss_score=max(scores) if scores else None,
                sources=tuple(sources),
            )
        )
        log.debug("security.duplicate_ids_merged", vulnerability_id=vid, records=len(group))
    return merged


def _unique(items) -> list:
    seen: list = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


class SecurityAnalyzer:
    """Produce a :class:`SecurityAnalysis` per dependency.

    The vulnerability source binding (single database or aggregator,
    batch-capable or not) is fixed at construction.
    """

    def __init__(self, source: VulnerabilitySource) -> None:
        self._source = source

    # ── public ─────────────────────────────────────────────────────────────

    async def analyze(
        self, dependency: Dependency, *, network: NetworkStatus | None = None
    ) -> SecurityAnalysis:
        """Analyze one dependency with a single (non-batched) fetch.

        Recoverable source errors degrade to an empty ``none`` analysis.
        """
        if dependency.is_internal:
            return SecurityAnalysis()

        try:
            records = await self._source.fetch_one(dependency.name, dependency.version)
        except DepHealthError as exc:
            if not exc.recoverable:
                raise
            log.warning(
                "security.fetch_failed",
                package=dependency.name,
                version=dependency.version,
                error=str(exc),
            )
            if network is not None:
                network.mark_degraded(_FEATURE, f"{dependency.name}: {exc}")
            return SecurityAnalysis()

        if network is not None:
            network.mark_success()
        return self.build_analysis(dependency, records)

    async def analyze_chunk(
        self, dependencies: Sequence[Dependency], *, network: NetworkStatus | None = None
    ) -> list[SecurityAnalysis]:
        """Analyze a chunk with one batched call, results in input order.

        Raises :class:`VulnerabilitySourceError` when the batched fetch
        fails; the caller treats that as fatal for the run.
        """
        external = [d for d in dependencies if not d.is_internal]

        if not external:
            return [SecurityAnalysis() for _ in dependencies]

        if not self._source.supports_batch:
            log.debug("security.per_item_fallback", count=len(external))
            return list(
                await asyncio.gather(*(self.analyze(d, network=network) for d in dependencies))
            )

        try:
            by_name = await self._source.fetch_batch(external)  # type: ignore[misc]
        except Exception as exc:
            log.error(
                "security.batch_failed",
                source=self._source.kind,
                count=len(external),
                error=str(exc),
            )
            if network is not None:
                network.mark_degraded(_FEATURE, f"batch vulnerability fetch failed: {exc}")
            raise VulnerabilitySourceError(
                f"vulnerability source failed for a batch of {len(external)} packages: {exc}"
            ) from exc

        if network is not None:
            network.mark_success()

        return [
            SecurityAnalysis()
            if dep.is_internal
            else self.build_analysis(dep, by_name.get(dep.name) or [])
            for dep in dependencies
        ]

    async def analyze_batch(
        self, dependencies: Sequence[Dependency], *, network: NetworkStatus | None = None
    ) -> dict[str, SecurityAnalysis]:
        """Batched analysis keyed by package name."""
        results = await self.analyze_chunk(dependencies, network=network)
        return {dep.name: res for dep, res in zip(dependencies, results)}

    # ── internal ───────────────────────────────────────────────────────────

    def build_analysis(
        self, dependency: Dependency, records: Sequence[Vulnerability]
    ) -> SecurityAnalysis:
        affecting = merge_duplicate_ids(self.filter_affecting(dependency, records))
        severity = aggregate_severity(affecting)
        if affecting:
            log.info(
                "security.vulnerabilities_found",
                package=dependency.name,
                version=dependency.version,
                count=len(affecting),
                severity=severity,
            )
        return SecurityAnalysis(
            vulnerabilities=tuple(affecting),
            severity=severity,  # type: ignore[arg-type]
        )

    @staticmethod
    def filter_affecting(
        dependency: Dependency, records: Sequence[Vulnerability]
    ) -> list[Vulnerability]:
        """Keep the records whose affected range contains the installed version."""
        if not records:
            return []

        installed = clean_version(dependency.version)
        if parse_version(installed) is None:
            log.warning(
                "security.unparseable_version",
                package=dependency.name,
                version=dependency.version,
                records=len(records),
            )
            return list(records)

        kept: list[Vulnerability] = []
        for record in records:
            raw = record.affected_versions or ""
            if len(raw.strip()) > MAX_RANGE_LENGTH:
                log.warning(
                    "security.suspicious_range",
                    package=dependency.name,
                    vulnerability_id=record.id,
                    length=len(raw),
                )
                continue
            if matches(installed, raw):
                kept.append(record)
        return kept
