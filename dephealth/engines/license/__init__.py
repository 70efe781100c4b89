"""License engine: parse, classify and check dependency licenses."""

from dephealth.engines.license.checker import (
    INCOMPATIBILITY_MATRIX,
    CompatibilityResult,
    LicenseCompatibilityChecker,
    internal_license,
    unanalyzed_license,
)
from dephealth.engines.license.parser import (
    LicenseCategory,
    ParsedLicense,
    classify_license,
    parse_license,
)

__all__ = [
    "INCOMPATIBILITY_MATRIX",
    "CompatibilityResult",
    "LicenseCategory",
    "LicenseCompatibilityChecker",
    "ParsedLicense",
    "classify_license",
    "internal_license",
    "parse_license",
    "unanalyzed_license",
]
