"""Health score: four capped-penalty sub-scores and a weighted composite.

Every sub-score has the same shape::

    base    = 100 * (1 - bad_fraction)
    penalty = min(sum of per-issue point costs, cap)
    score   = max(0, round(base - penalty))

License is the exception: 100 points shared evenly among incompatible
dependencies, no cap.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import structlog

from dephealth.core.config import HealthScoreConfig
from dephealth.models.analysis import DependencyAnalysis
from dephealth.models.result import HealthScore, ScoreBreakdown

log = structlog.get_logger("dephealth.engine")


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def perfect_score() -> HealthScore:
    return HealthScore(overall=100, security=100, freshness=100, compatibility=100, license=100)


class HealthScoreCalculator:
    def __init__(self, config: HealthScoreConfig | None = None) -> None:
        self._config = config or HealthScoreConfig()

    @property
    def config(self) -> HealthScoreConfig:
        return self._config

    def calculate(self, analyses: Sequence[DependencyAnalysis]) -> HealthScore:
        """Score *analyses*, ignoring failed ones; empty input scores 100."""
        scored = [a for a in analyses if not a.is_failed]
        if not scored:
            return perfect_score()

        security = self.security_score(scored)
        freshness = self.freshness_score(scored)
        compatibility = self.compatibility_score(scored)
        license_ = self.license_score(scored)

        w = self._config.weights
        overall = round_half_up(
            security * w.security
            + freshness * w.freshness
            + compatibility * w.compatibility
            + license_ * w.license
        )

        log.info(
            "health_score.calculated",
            dependencies=len(scored),
            excluded=len(analyses) - len(scored),
            overall=overall,
            security=security,
            freshness=freshness,
            compatibility=compatibility,
            license=license_,
        )
        return HealthScore(
            overall=overall,
            security=security,
            freshness=freshness,
            compatibility=compatibility,
            license=license_,
            breakdown=self.breakdown(scored),
        )

    # ── sub-scores ─────────────────────────────────────────────────────────

    def security_score(self, analyses: Sequence[DependencyAnalysis]) -> int:
        cost = self._config.security
        counts = {"critical": 0, "high": 0, "medium": 0, "low": 0}
        for a in analyses:
            if a.security.severity in counts:
                counts[a.security.severity] += 1

        vulnerable = sum(counts.values())
        base = round_half_up(100 * (1 - vulnerable / len(analyses)))
        penalty = min(
            counts["critical"] * cost.critical
            + counts["high"] * cost.high
            + counts["medium"] * cost.medium
            + counts["low"] * cost.low,
            cost.cap,
        )
        return max(0, round_half_up(base - penalty))

    def freshness_score(self, analyses: Sequence[DependencyAnalysis]) -> int:
        cost = self._config.freshness
        unmaintained = major = minor = patch = 0
        for a in analyses:
            f = a.freshness
            if f.is_unmaintained:
                unmaintained += 1
            if f.is_outdated:
                if f.version_gap == "major":
                    major += 1
                elif f.version_gap == "minor":
                    minor += 1
                elif f.version_gap == "patch":
                    patch += 1

        # Patch gaps are low risk and do not count as stale.
        stale = unmaintained + major + minor
        base = round_half_up(100 * (1 - stale / len(analyses)))
        raw = (
            unmaintained * cost.unmaintained
            + major * cost.major
            + minor * cost.minor
            + patch * cost.patch
        )
        penalty = min(raw, max(cost.min_cap, base * cost.cap_ratio))
        return max(0, round_half_up(base - penalty))

    def compatibility_score(self, analyses: Sequence[DependencyAnalysis]) -> int:
        cost = self._config.compatibility
        analyzed = deprecated = breaking = conflicts = 0
        for a in analyses:
            compat = a.compatibility
            if compat is None:
                continue
            analyzed += 1
            if compat.status == "version-deprecated":
                deprecated += 1
            elif compat.status == "breaking-changes":
                breaking += 1
            if any(i.type == "version-conflict" for i in compat.issues):
                conflicts += 1

        if analyzed == 0:
            return 100

        issues = deprecated + breaking + conflicts
        base = round_half_up(100 * (1 - issues / analyzed))
        penalty = min(
            deprecated * cost.deprecated
            + breaking * cost.breaking
            + conflicts * cost.version_conflict,
            cost.cap,
        )
        return max(0, round_half_up(base - penalty))

    @staticmethod
    def license_score(analyses: Sequence[DependencyAnalysis]) -> int:
        incompatible = sum(1 for a in analyses if not a.license.is_compatible)
        return max(0, round_half_up(100 - incompatible * 100 / len(analyses)))

    @staticmethod
    def breakdown(analyses: Sequence[DependencyAnalysis]) -> ScoreBreakdown:
        critical = warnings = healthy = 0
        for a in analyses:
            severity = a.security.severity
            if severity == "critical" or a.freshness.is_unmaintained:
                critical += 1
            elif (
                severity == "high"
                or (a.freshness.is_outdated and a.freshness.version_gap == "major")
                or not a.license.is_compatible
            ):
                warnings += 1
            else:
                healthy += 1
        return ScoreBreakdown(
            total_dependencies=len(analyses),
            critical_issues=critical,
            warnings=warnings,
            healthy=healthy,
        )
