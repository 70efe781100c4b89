"""Package registry client contract."""

from __future__ import annotations

from typing import Protocol

from dephealth.models.package import PackageInfo


class PackageRegistryClient(Protocol):
    """Interface every registry client must satisfy.

    ``get_package_info`` raises :class:`~dephealth.core.errors.PackageNotFoundError`
    when the registry confirms the package is absent, and
    :class:`~dephealth.core.errors.NetworkError` on transport failures.
    """

    async def get_package_info(self, name: str) -> PackageInfo: ...

    async def get_version_deprecation_status(self, name: str, version: str) -> str | None: ...
