"""Per-run network status: tracks which external features were degraded."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

_MAX_ERRORS = 5

FEATURE_LABELS: dict[str, str] = {
    "vulnerability-scan": "Vulnerability scanning",
    "version-check": "Version checking",
    "migration-guide": "Migration guide lookup",
}


@dataclass
class NetworkStatus:
    """Explicit context object created at the start of each analysis run.

    Analyzers receive it from the orchestrator instead of reaching for a
    process-wide singleton.
    """

    is_online: bool = True
    degraded_features: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    last_checked: datetime | None = None

    def mark_degraded(self, feature: str, error: str) -> None:
        self.is_online = False
        if feature not in self.degraded_features:
            self.degraded_features.append(feature)
        if len(self.errors) < _MAX_ERRORS:
            self.errors.append(error)
        self.last_checked = datetime.now(timezone.utc)

    def mark_success(self) -> None:
        # A later success does not clear earlier degradation.
        self.last_checked = datetime.now(timezone.utc)

    def has_issues(self) -> bool:
        return not self.is_online or bool(self.degraded_features)

    def user_message(self) -> str:
        if not self.has_issues():
            return ""
        if not self.degraded_features:
            return "Unable to reach external services."
        names = [FEATURE_LABELS.get(f, f) for f in self.degraded_features]
        if len(names) == 1:
            return f"{names[0]} is unavailable due to network issues."
        return f"{', '.join(names[:-1])} and {names[-1]} are unavailable due to network issues."
