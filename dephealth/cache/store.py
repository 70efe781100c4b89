"""Cache store contract and the default in-process TTL store."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any, Protocol


class CacheStore(Protocol):
    """Key/value store with per-entry TTL.

    Expired entries behave exactly like missing ones.
    """

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl_seconds: float) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryCacheStore:
    """Dict-backed TTL store.

    Safe for concurrent asyncio tasks: no operation awaits, so each call
    runs to completion without interleaving.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
