"""
Cache contract and key helpers.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from ..models import CacheEntry

RELEASES_NAMESPACE = "releases"
ASSET_NAMESPACE = "asset"


def compute_checksum(data: bytes) -> str:
    """Hex SHA-256 of the exact bytes."""
    return hashlib.sha256(data).hexdigest()


def releases_key(owner: str, repo: str) -> str:
    return f"{RELEASES_NAMESPACE}:{owner}:{repo}"


def asset_key(owner: str, repo: str, version: str, asset_name: str) -> str:
    return f"{ASSET_NAMESPACE}:{owner}:{repo}:{version}:{asset_name}"


def key_namespace(key: str) -> str:
    return key.split(":", 1)[0]


class CacheStore(ABC):
    """Byte cache with a write-time SHA-256 checksum and TTL.

    Payloads are stored and returned as raw bytes for every key namespace;
    decoding is the caller's business. A write fully replaces any earlier
    entry for the key, and an entry past its expiry reads as absent.
    """

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds

    @abstractmethod
    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Payload and checksum from a single consistent read."""

    @abstractmethod
    async def set(self, key: str, data: bytes) -> None:
        """Store bytes under key, computing their checksum."""

    async def get(self, key: str) -> Optional[bytes]:
        entry = await self.get_entry(key)
        return entry.payload if entry else None

    async def get_checksum(self, key: str) -> Optional[str]:
        entry = await self.get_entry(key)
        return entry.checksum if entry else None

    async def check_health(self) -> str:
        return "ok"

    async def close(self) -> None:
        return None


def ensure_bytes(data) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"cache payloads must be bytes, not {type(data).__name__}")
