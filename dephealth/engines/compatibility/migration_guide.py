"""Migration-guide resolution: first live candidate URL, or the generic fallback."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from dephealth.core.config import ProbeConfig
from dephealth.core.network import NetworkStatus
from dephealth.core.repository import extract_github_owner_repo, normalize_repository_url

log = structlog.get_logger("dephealth.engine")

_FEATURE = "migration-guide"
_NPM_PACKAGE_URL = "https://www.npmjs.com/package/{name}"


def candidate_urls(name: str, version: str, repository: str | None = None) -> list[str]:
    """Ordered candidates, most specific first.

    GitHub release tags (``v``-prefixed, then bare) when the repository is
    on GitHub, then the version page on the registry, then the package page.
    """
    candidates: list[str] = []
    parsed = extract_github_owner_repo(normalize_repository_url(repository))
    if parsed:
        owner, repo = parsed
        base = f"https://github.com/{owner}/{repo}/releases/tag"
        candidates.append(f"{base}/v{version}")
        candidates.append(f"{base}/{version}")
    package_url = _NPM_PACKAGE_URL.format(name=quote(name, safe="@/"))
    candidates.append(f"{package_url}/v/{version}")
    candidates.append(package_url)
    return candidates


class MigrationGuideResolver:
    """Probe candidate URLs with HEAD requests; never raises on network errors.

    *transport* is forwarded to :class:`httpx.AsyncClient` so tests can
    plug in :class:`httpx.MockTransport`.
    """

    def __init__(
        self,
        config: ProbeConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or ProbeConfig()
        self._transport = transport

    async def resolve(
        self,
        name: str,
        version: str,
        repository: str | None = None,
        *,
        network: NetworkStatus | None = None,
    ) -> str:
        candidates = candidate_urls(name, version, repository)
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds,
            follow_redirects=True,
            max_redirects=self._config.max_redirects,
            transport=self._transport,
        ) as client:
            for url in candidates:
                if await self._is_live(client, url, network):
                    log.debug("migration_guide.resolved", package=name, url=url)
                    return url

        log.debug("migration_guide.fallback", package=name, url=candidates[-1])
        return candidates[-1]

    @staticmethod
    async def _is_live(
        client: httpx.AsyncClient, url: str, network: NetworkStatus | None
    ) -> bool:
        try:
            resp = await client.head(url)
        except httpx.HTTPError as exc:
            log.debug("migration_guide.probe_failed", url=url, error=str(exc))
            if network is not None and isinstance(exc, httpx.TransportError):
                network.mark_degraded(_FEATURE, f"{url}: {exc}")
            return False
        return 200 <= resp.status_code < 400
