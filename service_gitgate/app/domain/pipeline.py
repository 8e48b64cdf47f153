"""
Delivery pipeline: authenticate, rate limit, serve from cache or upstream,
attach integrity evidence, and audit the outcome.

Every request ends in exactly one audit record, written before the result
is returned or the error is raised.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from shared.errors import (
    AuthenticationError,
    ConfigurationError,
    RateLimitError,
    UpstreamNotFoundError,
    UpstreamTransferError,
)
from shared.logging import get_logger, set_device_context

from ..caching import asset_key, compute_checksum, key_namespace, releases_key
from ..models import (
    AuditAction,
    AuditOutcome,
    CacheEntry,
    DeviceIdentity,
    ReleaseSummary,
    UNKNOWN_DEVICE_ID,
)
from .context import GatewayContext


@dataclass
class ReleaseListing:
    releases: List[Dict[str, Any]]
    cached: bool
    rate_limit: Dict[str, Any]


@dataclass
class AssetDelivery:
    data: bytes
    checksum: str
    signature: Optional[str]
    cached: bool
    rate_limit: Dict[str, Any]


class RequestPipeline:
    """The two delivery operations exposed at the HTTP boundary."""

    def __init__(self, context: GatewayContext):
        self.context = context
        self.logger = get_logger("gitgate.pipeline")

    async def list_releases(
        self,
        owner: str,
        repo: str,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
    ) -> ReleaseListing:
        action = AuditAction.LIST_RELEASES
        resource = f"{owner}/{repo}"
        device, rate_status = await self._admit(action, resource, headers, cert)

        key = releases_key(owner, repo)
        entry = await self._cache_get(key)
        if entry is not None:
            releases = self._decode_listing(entry)
            if releases is not None:
                await self._audit(device.device_id, action, resource, AuditOutcome.SUCCESS, {"cached": True})
                return ReleaseListing(releases=releases, cached=True, rate_limit=rate_status)

        try:
            releases = await self.context.release_source.list_releases(owner, repo)
        except Exception as e:
            self.logger.error("Release source failed", operation="list_releases", error=str(e))
            self._record_upstream("list_releases", "error")
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "upstream_error"})
            raise UpstreamTransferError("Failed to list releases") from e

        if not releases:
            self._record_upstream("list_releases", "not_found")
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "not_found"})
            raise UpstreamNotFoundError("Repository not found")

        self._record_upstream("list_releases", "ok")
        releases = list(releases)
        await self._cache_set(key, json.dumps(releases).encode("utf-8"))
        await self._audit(device.device_id, action, resource, AuditOutcome.SUCCESS)
        return ReleaseListing(releases=releases, cached=False, rate_limit=rate_status)

    async def download_asset(
        self,
        owner: str,
        repo: str,
        version: str,
        asset_name: str,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
    ) -> AssetDelivery:
        action = AuditAction.DOWNLOAD_ASSET
        resource = f"{owner}/{repo}/{version}/{asset_name}"
        device, rate_status = await self._admit(action, resource, headers, cert)

        key = asset_key(owner, repo, version, asset_name)
        entry = await self._cache_get(key)
        if entry is not None:
            signature = self._sign(entry.payload)
            await self._audit(device.device_id, action, resource, AuditOutcome.SUCCESS, {"cached": True})
            return AssetDelivery(
                data=entry.payload,
                checksum=entry.checksum,
                signature=signature,
                cached=True,
                rate_limit=rate_status,
            )

        source = self.context.release_source
        try:
            release = await source.get_release(owner, repo, version)
            if release is not None and not isinstance(release, ReleaseSummary):
                release = ReleaseSummary.model_validate(release)
        except Exception as e:
            self.logger.error("Release source failed", operation="get_release", error=str(e))
            self._record_upstream("get_release", "error")
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "upstream_error"})
            raise UpstreamTransferError("Failed to look up release") from e

        if release is None:
            self._record_upstream("get_release", "not_found")
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "release_not_found"})
            raise UpstreamNotFoundError("Release not found")
        self._record_upstream("get_release", "ok")

        asset = release.find_asset(asset_name)
        if asset is None:
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "asset_not_found"})
            raise UpstreamNotFoundError("Asset not found")

        try:
            data = await source.download_asset(owner, repo, asset.id)
        except Exception as e:
            self.logger.error("Release source failed", operation="download_asset", error=str(e))
            data = None

        if data is None:
            self._record_upstream("download_asset", "error")
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "download_failed"})
            raise UpstreamTransferError("Failed to download asset")
        self._record_upstream("download_asset", "ok")

        data = bytes(data)
        checksum = compute_checksum(data)
        await self._cache_set(key, data)
        signature = self._sign(data)
        await self._audit(device.device_id, action, resource, AuditOutcome.SUCCESS)
        return AssetDelivery(
            data=data,
            checksum=checksum,
            signature=signature,
            cached=False,
            rate_limit=rate_status,
        )

    async def _admit(
        self,
        action: AuditAction,
        resource: str,
        headers: Mapping[str, str],
        cert: Optional[str],
    ) -> Tuple[DeviceIdentity, Dict[str, Any]]:
        """Authenticate then rate limit. Raises after auditing on refusal."""
        auth = self.context.settings.auth
        try:
            device = await self.context.dispatcher.authenticate(
                auth.method,
                headers,
                cert,
                auth.method_config(),
            )
        except ConfigurationError:
            await self._audit(UNKNOWN_DEVICE_ID, action, resource, AuditOutcome.FAILURE,
                              {"reason": "configuration_error"})
            raise

        if device is None:
            await self._audit(UNKNOWN_DEVICE_ID, action, resource, AuditOutcome.FAILURE)
            raise AuthenticationError()

        set_device_context(device.device_id)

        rate_status = self.context.rate_limiter.check(device.device_id)
        if not rate_status["allowed"]:
            if self.context.metrics:
                self.context.metrics.record_rate_limit_hit(action.value)
            await self._audit(device.device_id, action, resource, AuditOutcome.FAILURE, {"reason": "rate_limited"})
            raise RateLimitError(
                details={
                    "limit": rate_status["limit"],
                    "reset_in_seconds": rate_status["reset_in_seconds"],
                },
                retry_after=rate_status["reset_in_seconds"],
            )

        return device, rate_status

    async def _cache_get(self, key: str) -> Optional[CacheEntry]:
        """Cache lookup; backend errors read as a miss."""
        try:
            entry = await self.context.cache.get_entry(key)
        except Exception as e:
            self.logger.error("Cache fetch error", key=key, error=str(e))
            entry = None

        if self.context.metrics:
            self.context.metrics.record_cache_lookup(key_namespace(key), entry is not None)
        return entry

    async def _cache_set(self, key: str, data: bytes) -> None:
        try:
            await self.context.cache.set(key, data)
        except Exception as e:
            self.logger.error("Cache write error", key=key, error=str(e))

    def _decode_listing(self, entry: CacheEntry) -> Optional[List[Dict[str, Any]]]:
        try:
            releases = json.loads(entry.payload.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            self.logger.error("Cached release listing unreadable", key=entry.key, error=str(e))
            return None
        if not isinstance(releases, list):
            self.logger.error("Cached release listing is not a list", key=entry.key)
            return None
        return releases

    def _sign(self, data: bytes) -> Optional[str]:
        """Detached signature, or None when signing is unavailable."""
        signer = self.context.signer
        if signer is None or not signer.available:
            return None
        try:
            signature = signer.sign(data)
        except Exception as e:
            self.logger.warning("Signing failed; serving without signature", error=str(e))
            return None
        if signature and self.context.metrics:
            self.context.metrics.record_signature()
        return signature

    def _record_upstream(self, operation: str, outcome: str) -> None:
        if self.context.metrics:
            self.context.metrics.record_upstream_request(operation, outcome)

    async def _audit(
        self,
        device_id: str,
        action: AuditAction,
        resource: str,
        outcome: AuditOutcome,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self.context.audit.log(device_id, action, resource, outcome, metadata)
