"""Primary classification per dependency and the top-line summary."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from dephealth.models.analysis import Classification, DependencyAnalysis, DependencyIssue
from dephealth.models.result import AnalysisSummary

# Lower sorts first.
SECURITY_PRIORITY = {"critical": 1, "high": 2, "medium": 3, "low": 4}
UNMAINTAINED_PRIORITY = 5
OUTDATED_PRIORITY = {"major": 6, "minor": 7, "patch": 8}
HEALTHY_PRIORITY = 9
UNKNOWN_PRIORITY = 10

_FRESHNESS_ISSUE_SEVERITY = {"major": "medium", "minor": "low", "patch": "info"}


def _days_since(release: datetime, now: datetime) -> int:
    if release.tzinfo is None:
        release = release.replace(tzinfo=timezone.utc)
    return max(0, (now - release).days)


def collect_issues(
    analysis: DependencyAnalysis, *, now: datetime | None = None
) -> tuple[DependencyIssue, ...]:
    """Every security, maintenance and freshness issue, not just the primary one."""
    now = now or datetime.now(timezone.utc)
    issues: list[DependencyIssue] = []

    for vuln in analysis.security.vulnerabilities:
        severity = vuln.severity.lower() if vuln.severity else "medium"
        if severity not in SECURITY_PRIORITY:
            severity = "medium"
        issues.append(
            DependencyIssue(
                category="security",
                severity=severity,  # type: ignore[arg-type]
                title=vuln.title or vuln.id,
                description=vuln.description,
                suggested_action=(
                    f"Update to {vuln.patched_versions}"
                    if vuln.patched_versions
                    else "Review vulnerability and consider alternatives"
                ),
            )
        )

    freshness = analysis.freshness
    if freshness.is_unmaintained:
        days = _days_since(freshness.release_date, now)
        issues.append(
            DependencyIssue(
                category="maintenance",
                severity="medium",
                title="Package appears unmaintained",
                description=f"No updates in {days} days ({days // 365} years)",
                suggested_action="Consider finding an actively maintained alternative",
            )
        )

    if freshness.is_outdated and freshness.version_gap in _FRESHNESS_ISSUE_SEVERITY:
        gap = freshness.version_gap
        issues.append(
            DependencyIssue(
                category="freshness",
                severity=_FRESHNESS_ISSUE_SEVERITY[gap],  # type: ignore[arg-type]
                title=f"{gap.capitalize()} version update available",
                description=(
                    f"Current: {freshness.current_version}, Latest: {freshness.latest_version}"
                ),
                suggested_action=f"Update to {freshness.latest_version}",
            )
        )

    return tuple(issues)


def classify(analysis: DependencyAnalysis, *, now: datetime | None = None) -> Classification:
    """Pick one primary label by the priority ladder.

    critical > high > medium > low security, then unmaintained, then
    major/minor/patch outdated, then healthy. Failed analyses are
    ``unknown``.
    """
    if analysis.is_failed:
        return Classification(primary="unknown", display_priority=UNKNOWN_PRIORITY)

    now = now or datetime.now(timezone.utc)
    issues = collect_issues(analysis, now=now)
    severity = analysis.security.severity
    freshness = analysis.freshness

    if severity in SECURITY_PRIORITY:
        return Classification(
            primary="security",
            display_priority=SECURITY_PRIORITY[severity],
            severity=severity,  # type: ignore[arg-type]
            all_issues=issues,
        )
    if freshness.is_unmaintained:
        return Classification(
            primary="unmaintained",
            display_priority=UNMAINTAINED_PRIORITY,
            days_since_update=_days_since(freshness.release_date, now),
            all_issues=issues,
        )
    if freshness.is_outdated and freshness.version_gap in OUTDATED_PRIORITY:
        return Classification(
            primary="outdated",
            display_priority=OUTDATED_PRIORITY[freshness.version_gap],
            gap=freshness.version_gap,  # type: ignore[arg-type]
            all_issues=issues,
        )
    return Classification(primary="healthy", display_priority=HEALTHY_PRIORITY, all_issues=issues)


def summarize(
    analyses: Iterable[DependencyAnalysis],
    *,
    total_direct: int,
    failed: int,
    errors: int,
) -> AnalysisSummary:
    """Bucket non-failed analyses by their primary classification.

    critical/high security count as critical/high; other security,
    unmaintained and major-outdated count as warnings; minor/patch
    outdated and healthy count as healthy.
    """
    critical = high = warnings = healthy = 0
    for analysis in analyses:
        if analysis.is_failed:
            continue
        c = analysis.classification or classify(analysis)
        if c.primary == "security":
            if c.severity == "critical":
                critical += 1
            elif c.severity == "high":
                high += 1
            else:
                warnings += 1
        elif c.primary == "unmaintained":
            warnings += 1
        elif c.primary == "outdated" and c.gap == "major":
            warnings += 1
        else:
            healthy += 1

    return AnalysisSummary(
        total_dependencies=total_direct,
        analyzed_dependencies=max(total_direct - failed, 0),
        failed_dependencies=failed,
        critical_issues=critical,
        high_issues=high,
        warnings=warnings,
        healthy=healthy,
        errors=errors,
    )
