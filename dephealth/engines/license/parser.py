"""License parsing and classification.

Registries report licenses as SPDX identifiers, boolean expressions,
``{"type": ...}`` objects, arrays of any of those, or the
``SEE LICENSE IN <file>`` convention. :func:`parse_license` never raises;
unrecognized input becomes the explicit ``Unknown`` expression with no
identifiers.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from dephealth.models.analysis import LicenseType, RiskLevel

UNKNOWN_EXPRESSION = "Unknown"
SEE_LICENSE_FILE = "SEE LICENSE IN FILE"

PERMISSIVE_LICENSES: tuple[str, ...] = (
    "MIT",
    "ISC",
    "Apache-2.0",
    "BSD-2-Clause",
    "BSD-3-Clause",
    "BSD-4-Clause",
    "CC0-1.0",
    "Unlicense",
    "WTFPL",
    "0BSD",
    "Artistic-2.0",
    "Zlib",
)

COPYLEFT_LICENSES: tuple[str, ...] = (
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
    "LGPL-2.1",
    "LGPL-2.1-only",
    "LGPL-2.1-or-later",
    "LGPL-3.0",
    "LGPL-3.0-only",
    "LGPL-3.0-or-later",
    "MPL-2.0",
    "EPL-1.0",
    "EPL-2.0",
)

PROPRIETARY_INDICATORS = frozenset({"UNLICENSED", "PROPRIETARY", "COMMERCIAL", "PRIVATE"})

_NO_ATTRIBUTION = frozenset({"CC0-1.0", "Unlicense", "0BSD"})
_PERMISSIVE_BY_UPPER = {lic.upper(): lic for lic in PERMISSIVE_LICENSES}
_COPYLEFT_FAMILIES = tuple(sorted({lic.split("-")[0].upper() for lic in COPYLEFT_LICENSES}))
_OPERATOR_RE = re.compile(r"\s+(?:OR|AND)\s+", re.IGNORECASE)

_PERMISSIVE_DESCRIPTIONS = {
    "MIT": "MIT License - very permissive, allows commercial use",
    "Apache-2.0": "Apache 2.0 - permissive with patent grant",
    "ISC": "ISC License - similar to MIT, very permissive",
    "BSD-2-Clause": "BSD 2-Clause - permissive, minimal restrictions",
    "BSD-3-Clause": "BSD 3-Clause - permissive with no-endorsement clause",
    "CC0-1.0": "CC0 - public domain dedication, no restrictions",
    "Unlicense": "Unlicense - public domain dedication",
}


@dataclass(frozen=True)
class ParsedLicense:
    spdx_ids: tuple[str, ...]
    expression: str


@dataclass(frozen=True)
class LicenseCategory:
    type: LicenseType
    risk_level: RiskLevel
    requires_attribution: bool
    requires_source_code: bool
    description: str


# ── parsing ──────────────────────────────────────────────────────────────


def normalize_spdx_id(identifier: str) -> str:
    normalized = identifier.replace("(", "").replace(")", "").strip()
    if normalized.upper().startswith("SEE LICENSE"):
        return SEE_LICENSE_FILE
    return re.sub(r"\s+", "-", normalized)


def _dedupe(ids) -> tuple[str, ...]:
    return tuple(dict.fromkeys(i for i in ids if i))


def parse_license(value: Any) -> ParsedLicense:
    """Extract every identifier that might apply to *value*.

    ``AND`` and ``OR`` are treated alike: the policy question is which
    licenses might apply, not which must.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ParsedLicense((), UNKNOWN_EXPRESSION)
        if text.upper().startswith("SEE LICENSE"):
            return ParsedLicense((SEE_LICENSE_FILE,), text)
        ids = _dedupe(normalize_spdx_id(part) for part in _OPERATOR_RE.split(text))
        if not ids:
            return ParsedLicense((), UNKNOWN_EXPRESSION)
        return ParsedLicense(ids, text)

    if isinstance(value, dict):
        for key in ("type", "license"):
            inner = value.get(key)
            if isinstance(inner, str):
                return parse_license(inner)
        return ParsedLicense((), UNKNOWN_EXPRESSION)

    if isinstance(value, (list, tuple)):
        ids = _dedupe(i for item in value for i in parse_license(item).spdx_ids)
        if not ids:
            return ParsedLicense((), UNKNOWN_EXPRESSION)
        return ParsedLicense(ids, " OR ".join(ids))

    return ParsedLicense((), UNKNOWN_EXPRESSION)


# ── classification ───────────────────────────────────────────────────────


def _is_copyleft(spdx_id: str) -> bool:
    if spdx_id in COPYLEFT_LICENSES:
        return True
    upper = spdx_id.upper()
    return any(upper.startswith(family) for family in _COPYLEFT_FAMILIES)


def _copyleft_risk(upper: str) -> RiskLevel:
    if "AGPL" in upper:
        return "high"
    if "LGPL" in upper or "MPL" in upper or "EPL" in upper:
        return "medium"
    if "GPL" in upper:
        return "high"
    return "medium"


def _copyleft_description(upper: str) -> str:
    if "AGPL" in upper:
        return "AGPL - strong copyleft, affects SaaS/web applications"
    if "LGPL" in upper:
        return "LGPL - weak copyleft, allows linking with proprietary code"
    if "GPL" in upper:
        return "GPL - strong copyleft, requires open-sourcing derivative works"
    if "MPL" in upper:
        return "MPL - weak copyleft, file-level copyleft only"
    return "Copyleft license - may require open-sourcing derivative works"


def classify_license(spdx_id: str) -> LicenseCategory:
    upper = spdx_id.upper()

    if upper in PROPRIETARY_INDICATORS:
        return LicenseCategory(
            "proprietary",
            "high",
            False,
            False,
            "Proprietary license - commercial use may be restricted",
        )

    canonical = _PERMISSIVE_BY_UPPER.get(upper)
    if canonical is not None:
        return LicenseCategory(
            "permissive",
            "low",
            canonical not in _NO_ATTRIBUTION,
            False,
            _PERMISSIVE_DESCRIPTIONS.get(canonical, "Permissive license - allows commercial use"),
        )

    if _is_copyleft(spdx_id):
        return LicenseCategory(
            "copyleft",
            _copyleft_risk(upper),
            True,
            "GPL" in upper,
            _copyleft_description(upper),
        )

    return LicenseCategory(
        "unknown", "medium", False, False, "Unknown license - review terms before use"
    )
