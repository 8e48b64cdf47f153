"""
Gateway caching package.

Byte caches for release listings and downloaded assets. Every entry carries
the SHA-256 of its payload, computed at write time, and expires after the
configured TTL.
"""

from .base import CacheStore, asset_key, compute_checksum, key_namespace, releases_key
from .file_store import FileCacheStore
from .redis_store import RedisCacheStore

__all__ = [
    "CacheStore",
    "FileCacheStore",
    "RedisCacheStore",
    "asset_key",
    "compute_checksum",
    "key_namespace",
    "releases_key",
]
