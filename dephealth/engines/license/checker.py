"""License compatibility against an allow-list and a conflict matrix."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from dephealth.core.config import LicenseConfig
from dephealth.engines.license.parser import (
    UNKNOWN_EXPRESSION,
    ParsedLicense,
    classify_license,
    parse_license,
)
from dephealth.models.analysis import LicenseAnalysis

log = structlog.get_logger("dephealth.engine")

_COPYLEFT_CONFLICTS = ("PROPRIETARY", "COMMERCIAL", "UNLICENSED")

# Dependency license -> project-license markers it cannot be combined with.
INCOMPATIBILITY_MATRIX: dict[str, tuple[str, ...]] = {
    spdx: _COPYLEFT_CONFLICTS
    for spdx in (
        "GPL-2.0",
        "GPL-2.0-only",
        "GPL-2.0-or-later",
        "GPL-3.0",
        "GPL-3.0-only",
        "GPL-3.0-or-later",
        "AGPL-1.0",
        "AGPL-3.0",
        "AGPL-3.0-only",
        "AGPL-3.0-or-later",
    )
}

TRANSITIVE_REASON = "Transitive dependency - license not analyzed"
INTERNAL_REASON = "Internal workspace package"


@dataclass(frozen=True)
class CompatibilityResult:
    is_compatible: bool
    reason: str
    conflicts_with: tuple[str, ...] | None = None


class LicenseCompatibilityChecker:
    """Decide whether a dependency license is acceptable for the project."""

    def __init__(self, config: LicenseConfig | None = None) -> None:
        self._config = config or LicenseConfig()

    @property
    def config(self) -> LicenseConfig:
        return self._config

    def check(
        self, parsed: ParsedLicense, project_license: str | None = None
    ) -> CompatibilityResult:
        """Compatible when an identifier is allow-listed and nothing conflicts.

        Licenses with no identifiers are always incompatible.
        """
        project_license = project_license or self._config.project_license
        primary = parsed.spdx_ids[0] if parsed.spdx_ids else UNKNOWN_EXPRESSION
        category = classify_license(primary)

        if not parsed.spdx_ids:
            return CompatibilityResult(
                False, "License is unknown or not specified. Review package license before use."
            )

        allowed = self._config.effective_licenses
        if not any(spdx in allowed for spdx in parsed.spdx_ids):
            return CompatibilityResult(False, self.explain_incompatibility(parsed, category.type))

        conflicts = self.conflicts(parsed, category.type, project_license)
        if conflicts:
            return CompatibilityResult(
                False,
                f"License conflicts with project license: {', '.join(conflicts)}",
                tuple(conflicts),
            )

        label = parsed.spdx_ids[0] if len(parsed.spdx_ids) == 1 else parsed.expression
        return CompatibilityResult(True, f"License {label} is in your acceptable licenses list.")

    @staticmethod
    def conflicts(
        parsed: ParsedLicense, license_type: str, project_license: str | None
    ) -> list[str]:
        """Conflict-matrix hits in both directions, case-insensitive substring match."""
        if not project_license:
            return []
        project_upper = project_license.upper()
        found: list[str] = []
        for spdx in parsed.spdx_ids:
            for marker in INCOMPATIBILITY_MATRIX.get(spdx, ()):
                if marker in project_upper:
                    found.append(f"{spdx} conflicts with {project_license}")
        if "GPL" in project_upper and license_type == "proprietary":
            found.append(f"{project_license} (copyleft) conflicts with proprietary dependency")
        return found

    def explain_incompatibility(self, parsed: ParsedLicense, license_type: str) -> str:
        label = parsed.spdx_ids[0] if len(parsed.spdx_ids) == 1 else parsed.expression
        if license_type == "proprietary":
            return (
                "Proprietary license detected. Commercial use may be restricted. "
                "Review license terms before use."
            )
        if license_type == "copyleft":
            if self._config.strict_mode:
                return (
                    f"{label} is a copyleft license. Strict mode only allows permissive "
                    "licenses. Add it to the acceptable licenses if appropriate."
                )
            return (
                f"{label} is a copyleft license. It may require open-sourcing derivative "
                "works. Review license terms and add it to the acceptable licenses if "
                "appropriate."
            )
        if license_type == "unknown":
            return (
                f'License "{parsed.expression}" is not recognized. Review package license '
                "and add it to the acceptable licenses if appropriate."
            )
        return (
            f'License "{parsed.expression}" is not in your acceptable licenses list. '
            "Add it to the acceptable licenses if appropriate for your project."
        )

    # ── analysis ───────────────────────────────────────────────────────────

    def analyze(self, raw_license: Any, project_license: str | None = None) -> LicenseAnalysis:
        """Parse, classify and check one registry license value."""
        parsed = parse_license(raw_license)
        primary = parsed.spdx_ids[0] if parsed.spdx_ids else UNKNOWN_EXPRESSION
        category = classify_license(primary)
        result = self.check(parsed, project_license)

        if not result.is_compatible:
            log.debug("license.incompatible", license=parsed.expression, reason=result.reason)

        return LicenseAnalysis(
            license=parsed.expression,
            spdx_ids=parsed.spdx_ids,
            is_compatible=result.is_compatible,
            license_type=category.type,
            risk_level=category.risk_level if result.is_compatible else "high",
            spdx_id=parsed.spdx_ids[0] if len(parsed.spdx_ids) == 1 else None,
            compatibility_reason=result.reason,
            requires_attribution=category.requires_attribution,
            requires_source_code=category.requires_source_code,
            conflicts_with=result.conflicts_with,
        )


def unanalyzed_license(reason: str = TRANSITIVE_REASON) -> LicenseAnalysis:
    """Placeholder for dependencies whose license is deliberately not checked."""
    return LicenseAnalysis(
        license=UNKNOWN_EXPRESSION,
        spdx_ids=(),
        is_compatible=True,
        license_type="unknown",
        risk_level="low",
        compatibility_reason=reason,
    )


def internal_license() -> LicenseAnalysis:
    return LicenseAnalysis(
        license="Internal",
        spdx_ids=(),
        is_compatible=True,
        license_type="unknown",
        risk_level="low",
        compatibility_reason=INTERNAL_REASON,
    )
