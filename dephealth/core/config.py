"""Analysis configuration: pydantic models with environment overrides.

Every policy constant of the pipeline (chunk size, grace period, score
costs and caps, cache TTLs) lives here rather than in the analyzers.
"""

from __future__ import annotations

import os

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator

log = structlog.get_logger("dephealth.config")

DEFAULT_ACCEPTABLE_LICENSES: list[str] = [
    "MIT",
    "ISC",
    "Apache-2.0",
    "BSD-2-Clause",
    "BSD-3-Clause",
    "CC0-1.0",
    "Unlicense",
    "WTFPL",
]

# Weak-copyleft licenses accepted unless strict mode is on.
COMMON_COPYLEFT_LICENSES: list[str] = ["LGPL-2.1", "LGPL-3.0", "MPL-2.0"]

_WEIGHT_TOLERANCE = 0.01


class FreshnessConfig(BaseModel):
    unmaintained_threshold_days: int = Field(default=730, ge=0)
    major_grace_period_days: int = Field(default=90, ge=0)


class LicenseConfig(BaseModel):
    """Allow-list and project context for license compatibility checks."""

    acceptable_licenses: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ACCEPTABLE_LICENSES)
    )
    strict_mode: bool = False
    project_license: str | None = None

    @field_validator("acceptable_licenses")
    @classmethod
    def _normalize_licenses(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for item in value:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return seen or list(DEFAULT_ACCEPTABLE_LICENSES)

    @field_validator("project_license")
    @classmethod
    def _blank_project_license(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def effective_licenses(self) -> list[str]:
        """Allow-list actually applied, including weak copyleft outside strict mode."""
        if self.strict_mode:
            return list(self.acceptable_licenses)
        merged = list(self.acceptable_licenses)
        for lic in COMMON_COPYLEFT_LICENSES:
            if lic not in merged:
                merged.append(lic)
        return merged


class ScoreWeights(BaseModel):
    security: float = Field(default=0.4, ge=0)
    freshness: float = Field(default=0.3, ge=0)
    compatibility: float = Field(default=0.2, ge=0)
    license: float = Field(default=0.1, ge=0)

    @model_validator(mode="after")
    def _warn_on_drift(self) -> ScoreWeights:
        total = self.security + self.freshness + self.compatibility + self.license
        if abs(total - 1.0) > _WEIGHT_TOLERANCE:
            log.warning("config.weights_not_normalized", weight_sum=round(total, 4))
        return self


class SecurityScoring(BaseModel):
    critical: float = 8
    high: float = 4
    medium: float = 2
    low: float = 0.5
    cap: float = 60


class FreshnessScoring(BaseModel):
    unmaintained: float = 3
    major: float = 2
    minor: float = 1
    patch: float = 0.1
    min_cap: float = 10
    cap_ratio: float = 0.3


class CompatibilityScoring(BaseModel):
    deprecated: float = 8
    breaking: float = 4
    version_conflict: float = 6
    cap: float = 50


class HealthScoreConfig(BaseModel):
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    security: SecurityScoring = Field(default_factory=SecurityScoring)
    freshness: FreshnessScoring = Field(default_factory=FreshnessScoring)
    compatibility: CompatibilityScoring = Field(default_factory=CompatibilityScoring)


class CacheConfig(BaseModel):
    package_info_ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)
    negative_ttl_seconds: float = Field(default=7 * 24 * 60 * 60, gt=0)


class ProbeConfig(BaseModel):
    timeout_seconds: float = Field(default=5.0, gt=0)
    max_redirects: int = Field(default=5, ge=0)


class AnalysisConfig(BaseModel):
    """Top-level configuration for one orchestrator instance."""

    chunk_size: int = Field(default=50, ge=1)
    include_transitive: bool = True
    analyze_transitive_metadata: bool = False
    freshness: FreshnessConfig = Field(default_factory=FreshnessConfig)
    license: LicenseConfig = Field(default_factory=LicenseConfig)
    health_score: HealthScoreConfig = Field(default_factory=HealthScoreConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)

    @classmethod
    def from_env(cls) -> AnalysisConfig:
        """Build a config from ``DEPHEALTH_*`` environment variables.

        Unset variables keep their defaults. Malformed values raise
        :class:`pydantic.ValidationError`.
        """
        data: dict = {}
        freshness: dict = {}
        license_: dict = {}
        probe: dict = {}

        if (v := os.environ.get("DEPHEALTH_CHUNK_SIZE")) is not None:
            data["chunk_size"] = v
        if (v := os.environ.get("DEPHEALTH_INCLUDE_TRANSITIVE")) is not None:
            data["include_transitive"] = v
        if (v := os.environ.get("DEPHEALTH_GRACE_PERIOD_DAYS")) is not None:
            freshness["major_grace_period_days"] = v
        if (v := os.environ.get("DEPHEALTH_UNMAINTAINED_DAYS")) is not None:
            freshness["unmaintained_threshold_days"] = v
        if (v := os.environ.get("DEPHEALTH_ACCEPTABLE_LICENSES")) is not None:
            license_["acceptable_licenses"] = v.split(",")
        if (v := os.environ.get("DEPHEALTH_STRICT_LICENSES")) is not None:
            license_["strict_mode"] = v
        if (v := os.environ.get("DEPHEALTH_PROJECT_LICENSE")) is not None:
            license_["project_license"] = v
        if (v := os.environ.get("DEPHEALTH_PROBE_TIMEOUT")) is not None:
            probe["timeout_seconds"] = v

        if freshness:
            data["freshness"] = freshness
        if license_:
            data["license"] = license_
        if probe:
            data["probe"] = probe
        return cls.model_validate(data)
