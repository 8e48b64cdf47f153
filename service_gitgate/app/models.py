"""
Domain types shared across the delivery pipeline.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

UNKNOWN_DEVICE_ID = "unknown"
DEFAULT_SOURCE_IP = "0.0.0.0"


class AuthMethod(str, Enum):
    """Device trust methods."""

    MDM_TOKEN = "mdm-token"
    COORDINATION_SERVICE = "coordination-service"
    CERTIFICATE_SUBJECT = "certificate-subject"
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> Optional["AuthMethod"]:
        """Parse a configured method name. Returns None for unknown names."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower().replace("_", "-")
        normalized = _METHOD_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return None


# Vendor names used by older deployments
_METHOD_ALIASES = {
    "jamf": AuthMethod.MDM_TOKEN.value,
    "tailscale": AuthMethod.COORDINATION_SERVICE.value,
    "mtls": AuthMethod.CERTIFICATE_SUBJECT.value,
}


class AuditAction(str, Enum):
    LIST_RELEASES = "list_releases"
    DOWNLOAD_ASSET = "download_asset"


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class DeviceIdentity:
    """Authenticated subject of a single request."""

    device_id: str
    auth_method: AuthMethod
    device_name: Optional[str] = None
    user_id: Optional[str] = None
    source_ip: str = DEFAULT_SOURCE_IP
    observed_at: float = field(default_factory=time.time)


@dataclass
class RateWindowState:
    """Fixed-window counter for one device."""

    count: int
    window_ends_at: float


@dataclass(frozen=True)
class CacheEntry:
    """Cached payload with its integrity checksum."""

    key: str
    payload: bytes
    checksum: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


@dataclass(frozen=True)
class AuditRecord:
    """One access decision."""

    device_id: str
    action: AuditAction
    resource: str
    outcome: AuditOutcome
    metadata: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "action": self.action.value,
            "resource": self.resource,
            "outcome": self.outcome.value,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
        }


class ReleaseAsset(BaseModel):
    """Downloadable file attached to a release."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    size: Optional[int] = None
    content_type: Optional[str] = None
    download_count: Optional[int] = None
    updated_at: Optional[str] = None


class ReleaseSummary(BaseModel):
    """Release metadata as returned by the release source."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[int] = None
    tag_name: Optional[str] = None
    name: Optional[str] = None
    draft: bool = False
    prerelease: bool = False
    created_at: Optional[str] = None
    published_at: Optional[str] = None
    html_url: Optional[str] = None
    assets: List[ReleaseAsset] = []

    def find_asset(self, name: str) -> Optional[ReleaseAsset]:
        """Exact-name asset lookup."""
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None
