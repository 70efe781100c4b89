"""Vulnerability records produced by external vulnerability sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Severity = Literal["critical", "high", "medium", "low", "none"]

# Highest first.
SEVERITY_ORDER: tuple[str, ...] = ("critical", "high", "medium", "low")


@dataclass(frozen=True)
class Vulnerability:
    """A single advisory as reported by a source.

    ``affected_versions`` is in whatever range dialect the source uses;
    see :mod:`dephealth.engines.security.version_range`.
    ``sources`` lists the databases that corroborated the record when it
    came through an aggregator.
    """

    id: str
    severity: str
    affected_versions: str
    title: str = ""
    description: str = ""
    references: tuple[str, ...] = ()
    patched_versions: str | None = None
    published_date: datetime | None = None
    cvss_score: float | None = None
    sources: tuple[str, ...] = field(default_factory=tuple)
