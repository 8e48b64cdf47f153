"""
Explicitly constructed collaborators for one gateway instance.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..adapters import GitHubClient, ReleaseSource
from ..audit import AuditLogger
from ..auth import AuthDispatcher
from ..caching import CacheStore, FileCacheStore, RedisCacheStore
from ..config import GatewaySettings
from ..ratelimit import FixedWindowRateLimiter
from ..signing import AssetSigner

logger = get_logger("gitgate.context")


@dataclass
class GatewayContext:
    """Everything the pipeline needs, passed in rather than looked up globally."""

    settings: GatewaySettings
    dispatcher: AuthDispatcher
    rate_limiter: FixedWindowRateLimiter
    cache: CacheStore
    release_source: ReleaseSource
    audit: AuditLogger
    signer: Optional[AssetSigner] = None
    metrics: Optional[MetricsCollector] = None

    async def close(self) -> None:
        await self.dispatcher.close()
        await self.cache.close()
        close = getattr(self.release_source, "close", None)
        if close is not None:
            await close()


def build_cache(settings: GatewaySettings) -> CacheStore:
    github = settings.github
    if github.cache_backend.lower() == "redis":
        return RedisCacheStore(github.redis_url, github.cache_ttl_seconds)
    return FileCacheStore(github.cache_dir, github.cache_ttl_seconds)


def build_signer(settings: GatewaySettings) -> Optional[AssetSigner]:
    """Signer when enabled and loadable; None otherwise."""
    if not settings.signing.enabled:
        return None
    if not settings.signing.private_key_path:
        logger.warning("Signing enabled without a private key path; signatures disabled")
        return None
    signer = AssetSigner(settings.signing.private_key_path)
    return signer if signer.available else None


def build_context(
    settings: GatewaySettings,
    *,
    metrics: Optional[MetricsCollector] = None,
    release_source: Optional[ReleaseSource] = None,
    cache: Optional[CacheStore] = None,
    dispatcher: Optional[AuthDispatcher] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> GatewayContext:
    """Wire the gateway from settings; any collaborator may be supplied instead."""
    timeout = settings.upstream_timeout_seconds

    if dispatcher is None:
        dispatcher = AuthDispatcher(timeout=timeout, client=http_client, metrics=metrics)
    dispatcher.warn_if_insecure(settings.auth.method)

    if release_source is None:
        release_source = GitHubClient(
            settings.github.token,
            settings.github.api_url,
            timeout=timeout,
            client=http_client,
        )

    return GatewayContext(
        settings=settings,
        dispatcher=dispatcher,
        rate_limiter=FixedWindowRateLimiter(settings.rate_limit.requests_per_minute),
        cache=cache or build_cache(settings),
        release_source=release_source,
        audit=AuditLogger(settings.audit.log_file, metrics=metrics),
        signer=build_signer(settings),
        metrics=metrics,
    )
