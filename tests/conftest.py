"""Shared pytest fixtures for dephealth tests.

External collaborators (package registry, vulnerability database,
migration-guide probe) are replaced with in-memory fakes; nothing here
touches the network.
"""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import pytest

from dephealth.core.errors import PackageNotFoundError
from dephealth.engines.compatibility.migration_guide import MigrationGuideResolver
from dephealth.models.dependency import Dependency
from dephealth.models.package import PackageInfo
from dephealth.models.vulnerability import Vulnerability


class FakeRegistry:
    """Registry client backed by dicts.

    ``failures`` maps a package name to the exception ``get_package_info``
    raises for it; anything not in ``packages`` is "not found".
    """

    def __init__(self) -> None:
        self.packages: dict[str, PackageInfo] = {}
        self.deprecations: dict[tuple[str, str], str] = {}
        self.failures: dict[str, Exception] = {}
        self.info_calls: list[str] = []
        self.deprecation_calls: list[tuple[str, str]] = []

    def add(self, info: PackageInfo) -> PackageInfo:
        self.packages[info.name] = info
        return info

    async def get_package_info(self, name: str) -> PackageInfo:
        self.info_calls.append(name)
        if name in self.failures:
            raise self.failures[name]
        if name not in self.packages:
            raise PackageNotFoundError(name)
        return self.packages[name]

    async def get_version_deprecation_status(self, name: str, version: str) -> str | None:
        self.deprecation_calls.append((name, version))
        return self.deprecations.get((name, version))


class FakeVulnerabilityClient:
    """Single-database vulnerability client with an optional batch failure."""

    def __init__(self) -> None:
        self.records: dict[str, list[Vulnerability]] = {}
        self.batch_error: Exception | None = None
        self.single_error: Exception | None = None
        self.batch_calls: list[list[str]] = []
        self.single_calls: list[tuple[str, str]] = []

    async def get_vulnerabilities(self, name: str, version: str) -> list[Vulnerability]:
        self.single_calls.append((name, version))
        if self.single_error is not None:
            raise self.single_error
        return list(self.records.get(name, []))

    async def get_batch_vulnerabilities(
        self, dependencies: Sequence[Dependency]
    ) -> dict[str, list[Vulnerability]]:
        self.batch_calls.append([d.name for d in dependencies])
        if self.batch_error is not None:
            raise self.batch_error
        return {d.name: list(self.records.get(d.name, [])) for d in dependencies}


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def registry():
    return FakeRegistry()


@pytest.fixture()
def vuln_client():
    return FakeVulnerabilityClient()


@pytest.fixture()
def probed_urls():
    return []


@pytest.fixture()
def offline_guides(probed_urls):
    """Migration-guide resolver whose every probe answers 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        probed_urls.append(str(request.url))
        return httpx.Response(404)

    return MigrationGuideResolver(transport=httpx.MockTransport(handler))
