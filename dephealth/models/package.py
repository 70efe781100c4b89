"""Registry metadata for the latest published version of a package."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    published_at: datetime
    license: Any = None  # str | dict | list as the registry returns it
    repository: str | None = None
    description: str = ""
    homepage: str | None = None
    deprecated_message: str | None = None
    readme: str | None = None
