"""Caching layer in front of the package registry."""

from dephealth.cache.package_info import CacheStats, PackageInfoCache
from dephealth.cache.store import CacheStore, InMemoryCacheStore

__all__ = ["CacheStats", "CacheStore", "InMemoryCacheStore", "PackageInfoCache"]
