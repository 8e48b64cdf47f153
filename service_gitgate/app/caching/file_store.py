"""
Disk-backed cache store.

Each key maps to one file named after the SHA-256 of the key. The file holds
a single JSON metadata line followed by the raw payload, and is written to a
temporary file then renamed into place, so readers see either the previous
entry or the new one, never a mix.
"""

import asyncio
import hashlib
import json
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Optional, Union

from shared.logging import get_logger

from ..models import CacheEntry
from .base import CacheStore, compute_checksum, ensure_bytes

ENTRY_SUFFIX = ".entry"


class FileCacheStore(CacheStore):
    """Cache entries persisted under a directory."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        ttl_seconds: int = 3600,
        *,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(ttl_seconds)
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.logger = get_logger("gitgate.cache.file")
        self._clock = clock or time.time

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}{ENTRY_SUFFIX}"

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, data: bytes) -> None:
        await asyncio.to_thread(self._write, key, ensure_bytes(data))

    def _read(self, key: str) -> Optional[CacheEntry]:
        path = self._path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None

        header, sep, payload = raw.partition(b"\n")
        try:
            if not sep:
                raise ValueError("missing metadata separator")
            meta = json.loads(header)
            checksum = meta["checksum"]
            expires_at = float(meta["expires_at"])
        except (ValueError, KeyError, TypeError) as e:
            self.logger.error("Discarding unreadable cache entry", key=key, error=str(e))
            self._discard(path)
            return None

        if meta.get("key") != key:
            return None

        if self._clock() >= expires_at:
            return None

        if compute_checksum(payload) != checksum:
            self.logger.error("Cache entry failed integrity check", key=key)
            self._discard(path)
            return None

        return CacheEntry(key=key, payload=payload, checksum=checksum, expires_at=expires_at)

    def _write(self, key: str, data: bytes) -> None:
        now = self._clock()
        header = json.dumps({
            "key": key,
            "checksum": compute_checksum(data),
            "created_at": now,
            "expires_at": now + self.ttl_seconds,
            "size": len(data),
        }).encode("utf-8")

        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.cache_dir, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(header)
                f.write(b"\n")
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            self._discard(Path(tmp_name))
            raise

        self.logger.debug("Cached entry", key=key, size=len(data), ttl=self.ttl_seconds)

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    async def check_health(self) -> str:
        return "ok" if os.access(self.cache_dir, os.W_OK) else "error"
