"""PackageInfoCache: positive/negative TTL cache over the registry client."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import structlog

from dephealth.cache.store import CacheStore, InMemoryCacheStore
from dephealth.core.config import CacheConfig
from dephealth.core.errors import PackageNotFoundError
from dephealth.models.package import PackageInfo
from dephealth.sources.registry import PackageRegistryClient

log = structlog.get_logger("dephealth.cache")


@dataclass(frozen=True)
class CacheStats:
    """Lookup counters for one run.

    ``hits`` counts positive entries only; remembered "not found" answers
    are tallied in ``negative_hits``. ``requests`` counts every lookup.
    """

    hits: int
    misses: int
    negative_hits: int = 0

    @property
    def requests(self) -> int:
        return self.hits + self.negative_hits + self.misses


class PackageInfoCache:
    """Fetch package metadata through a TTL cache.

    Positive entries (metadata) live ``package_info_ttl_seconds``;
    confirmed-absent packages are remembered for ``negative_ttl_seconds``
    so the registry is not asked again. Concurrent lookups for the same
    name share one registry request.
    """

    def __init__(
        self,
        registry: PackageRegistryClient,
        store: CacheStore | None = None,
        config: CacheConfig | None = None,
    ) -> None:
        self._registry = registry
        self._store: CacheStore = store if store is not None else InMemoryCacheStore()
        self._config = config or CacheConfig()
        self._hits = 0
        self._negative_hits = 0
        self._misses = 0
        self._inflight: dict[str, asyncio.Future[PackageInfo]] = {}

    # ── counters ───────────────────────────────────────────────────────────

    @property
    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits, misses=self._misses, negative_hits=self._negative_hits
        )

    def reset_stats(self) -> None:
        self._hits = 0
        self._negative_hits = 0
        self._misses = 0

    # ── public ─────────────────────────────────────────────────────────────

    async def get(self, name: str, *, bypass_cache: bool = False) -> PackageInfo:
        """Return metadata for *name*, raising PackageNotFoundError if absent.

        With *bypass_cache* both lookups are skipped, but a successful
        fetch still refreshes the positive entry and clears any stale
        negative entry.
        """
        if not bypass_cache:
            cached = self._store.get(self._key(name))
            if cached is not None:
                self._hits += 1
                log.debug("cache.hit", package=name)
                return cached

            not_found = self._store.get(self._negative_key(name))
            if not_found is not None:
                self._negative_hits += 1
                log.debug("cache.negative_hit", package=name)
                raise PackageNotFoundError(name, not_found)
        else:
            log.debug("cache.bypass", package=name)

        self._misses += 1

        pending = self._inflight.get(name)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future[PackageInfo] = asyncio.get_running_loop().create_future()
        self._inflight[name] = future
        try:
            info = await self._fetch(name)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Waiters (if any) retrieve the exception; avoid "never retrieved" noise.
            future.exception()
            raise
        else:
            future.set_result(info)
            return info
        finally:
            self._inflight.pop(name, None)

    # ── internal ───────────────────────────────────────────────────────────

    async def _fetch(self, name: str) -> PackageInfo:
        try:
            info = await self._registry.get_package_info(name)
        except PackageNotFoundError as exc:
            log.info(
                "cache.negative_stored",
                package=name,
                ttl_seconds=self._config.negative_ttl_seconds,
            )
            self._store.set(self._negative_key(name), str(exc), self._config.negative_ttl_seconds)
            raise

        self._store.set(self._key(name), info, self._config.package_info_ttl_seconds)
        self._store.delete(self._negative_key(name))
        return info

    @staticmethod
    def _key(name: str) -> str:
        return f"package_info:{name}"

    @staticmethod
    def _negative_key(name: str) -> str:
        return f"package_info_missing:{name}"
