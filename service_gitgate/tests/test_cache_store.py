"""
Unit tests for the cache stores.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from service_gitgate.app.caching import (
    FileCacheStore,
    RedisCacheStore,
    asset_key,
    compute_checksum,
    key_namespace,
    releases_key,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_key_helpers():
    assert releases_key("acme", "tool") == "releases:acme:tool"
    assert asset_key("acme", "tool", "v1", "a.zip") == "asset:acme:tool:v1:a.zip"
    assert key_namespace(asset_key("acme", "tool", "v1", "a.zip")) == "asset"


def test_checksum_is_hex_sha256():
    assert compute_checksum(b"hello") == (
        "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
    )


class TestFileCacheStore:
    """Test cases for FileCacheStore."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, tmp_path, clock):
        return FileCacheStore(tmp_path / "cache", ttl_seconds=60, clock=clock)

    @pytest.mark.asyncio
    async def test_set_then_get(self, store):
        await store.set("asset:a:b:v1:x", b"hello")

        assert await store.get("asset:a:b:v1:x") == b"hello"
        assert await store.get_checksum("asset:a:b:v1:x") == compute_checksum(b"hello")

    @pytest.mark.asyncio
    async def test_missing_key_is_absent(self, store):
        assert await store.get("nope") is None
        assert await store.get_checksum("nope") is None

    @pytest.mark.asyncio
    async def test_binary_payload_survives_unchanged(self, store):
        payload = bytes(range(256)) + b"\n\x00\n"
        await store.set("asset:k", payload)

        entry = await store.get_entry("asset:k")
        assert entry.payload == payload
        assert entry.checksum == compute_checksum(payload)

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, store, clock):
        await store.set("k", b"data")

        clock.now += 59
        assert await store.get("k") == b"data"

        clock.now += 1
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_overwrite_replaces_payload_and_checksum(self, store):
        await store.set("k", b"first")
        await store.set("k", b"second")

        entry = await store.get_entry("k")
        assert entry.payload == b"second"
        assert entry.checksum == compute_checksum(b"second")

    @pytest.mark.asyncio
    async def test_corrupt_payload_reads_as_absent(self, store):
        await store.set("k", b"original")
        path = store._path("k")
        raw = path.read_bytes()
        path.write_bytes(raw[:-1] + b"X")

        assert await store.get("k") is None
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_unreadable_header_reads_as_absent(self, store):
        store._path("k").write_bytes(b"not json\npayload")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_entry_file_layout(self, store, clock):
        await store.set("k", b"data")
        header, _, payload = store._path("k").read_bytes().partition(b"\n")
        meta = json.loads(header)

        assert payload == b"data"
        assert meta["key"] == "k"
        assert meta["expires_at"] == clock.now + 60
        assert meta["size"] == 4

    @pytest.mark.asyncio
    async def test_rejects_non_bytes(self, store):
        with pytest.raises(TypeError):
            await store.set("k", "text")

    @pytest.mark.asyncio
    async def test_health(self, store):
        assert await store.check_health() == "ok"


class TestRedisCacheStore:
    """Test cases for RedisCacheStore."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return RedisCacheStore("redis://localhost:6379/0", ttl_seconds=60, clock=clock)

    @pytest.fixture
    def mock_redis(self):
        redis_client = MagicMock()
        redis_client.hgetall = AsyncMock()
        redis_client.ping = AsyncMock()
        redis_client.aclose = AsyncMock()

        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[1, 3, True])
        pipe.__aenter__ = AsyncMock(return_value=pipe)
        pipe.__aexit__ = AsyncMock(return_value=False)
        redis_client.pipeline.return_value = pipe
        return redis_client

    @pytest.mark.asyncio
    async def test_get_entry_hit(self, store, mock_redis):
        mock_redis.hgetall.return_value = {
            b"payload": b"hello",
            b"checksum": compute_checksum(b"hello").encode("ascii"),
            b"expires_at": b"1060.0",
        }

        with patch.object(store, "_get_redis", new_callable=AsyncMock) as mock_get_redis:
            mock_get_redis.return_value = mock_redis
            entry = await store.get_entry("asset:k")

        assert entry.payload == b"hello"
        assert entry.checksum == compute_checksum(b"hello")
        mock_redis.hgetall.assert_called_once_with("gitgate:cache:asset:k")

    @pytest.mark.asyncio
    async def test_get_entry_miss(self, store, mock_redis):
        mock_redis.hgetall.return_value = {}

        with patch.object(store, "_get_redis", new_callable=AsyncMock) as mock_get_redis:
            mock_get_redis.return_value = mock_redis
            assert await store.get_entry("asset:k") is None

    @pytest.mark.asyncio
    async def test_expired_entry_is_absent(self, store, mock_redis, clock):
        mock_redis.hgetall.return_value = {
            b"payload": b"hello",
            b"checksum": compute_checksum(b"hello").encode("ascii"),
            b"expires_at": b"1000.0",
        }

        with patch.object(store, "_get_redis", new_callable=AsyncMock) as mock_get_redis:
            mock_get_redis.return_value = mock_redis
            assert await store.get_entry("asset:k") is None

    @pytest.mark.asyncio
    async def test_checksum_mismatch_is_absent(self, store, mock_redis):
        mock_redis.hgetall.return_value = {
            b"payload": b"tampered",
            b"checksum": compute_checksum(b"hello").encode("ascii"),
            b"expires_at": b"2000.0",
        }

        with patch.object(store, "_get_redis", new_callable=AsyncMock) as mock_get_redis:
            mock_get_redis.return_value = mock_redis
            assert await store.get_entry("asset:k") is None

    @pytest.mark.asyncio
    async def test_set_writes_hash_atomically(self, store, mock_redis):
        with patch.object(store, "_get_redis", new_callable=AsyncMock) as mock_get_redis:
            mock_get_redis.return_value = mock_redis
            await store.set("asset:k", b"hello")

        mock_redis.pipeline.assert_called_once_with(transaction=True)
        pipe = mock_redis.pipeline.return_value
        pipe.delete.assert_called_once_with("gitgate:cache:asset:k")
        mapping = pipe.hset.call_args.kwargs["mapping"]
        assert mapping["payload"] == b"hello"
        assert mapping["checksum"] == compute_checksum(b"hello")
        assert float(mapping["expires_at"]) == 1060.0
        pipe.expire.assert_called_once_with("gitgate:cache:asset:k", 60)
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_reports_error_when_unreachable(self, store, mock_redis):
        mock_redis.ping.side_effect = ConnectionError("refused")

        with patch.object(store, "_get_redis", new_callable=AsyncMock) as mock_get_redis:
            mock_get_redis.return_value = mock_redis
            assert await store.check_health() == "error"
