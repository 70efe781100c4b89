"""Vulnerability source contracts and the binding the Security Analyzer uses."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

from dephealth.models.dependency import Dependency
from dephealth.models.vulnerability import Vulnerability


class VulnerabilityClient(Protocol):
    """A single vulnerability database."""

    async def get_vulnerabilities(self, name: str, version: str) -> list[Vulnerability]: ...


class BatchVulnerabilityClient(VulnerabilityClient, Protocol):
    """A single database that can answer for many packages in one request."""

    async def get_batch_vulnerabilities(
        self, dependencies: Sequence[Dependency]
    ) -> Mapping[str, list[Vulnerability]]: ...


class VulnerabilityAggregator(Protocol):
    """Multi-source aggregator; each record's ``sources`` lists corroborating databases."""

    async def get_aggregated_vulnerabilities(
        self, name: str, version: str
    ) -> list[Vulnerability]: ...

    async def get_batch_aggregated_vulnerabilities(
        self, dependencies: Sequence[Dependency]
    ) -> Mapping[str, list[Vulnerability]]: ...


FetchOne = Callable[[str, str], Awaitable[list[Vulnerability]]]
FetchBatch = Callable[[Sequence[Dependency]], Awaitable[Mapping[str, list[Vulnerability]]]]


@dataclass(frozen=True)
class VulnerabilitySource:
    """Which kind of source we talk to, decided once when it is built.

    Use :meth:`single` or :meth:`aggregator`; ``fetch_batch`` is None when
    the source has no batch capability and callers fall back to per-item
    fetches.
    """

    kind: Literal["single", "aggregator"]
    fetch_one: FetchOne
    fetch_batch: FetchBatch | None = None

    @property
    def supports_batch(self) -> bool:
        return self.fetch_batch is not None

    @classmethod
    def single(cls, client: VulnerabilityClient, *, batch: bool = True) -> VulnerabilitySource:
        fetch_batch = (
            client.get_batch_vulnerabilities if batch else None  # type: ignore[attr-defined]
        )
        return cls(kind="single", fetch_one=client.get_vulnerabilities, fetch_batch=fetch_batch)

    @classmethod
    def aggregator(cls, aggregator: VulnerabilityAggregator) -> VulnerabilitySource:
        return cls(
            kind="aggregator",
            fetch_one=aggregator.get_aggregated_vulnerabilities,
            fetch_batch=aggregator.get_batch_aggregated_vulnerabilities,
        )
