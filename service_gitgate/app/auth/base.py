"""
Trust strategy contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

import httpx

from shared.logging import get_logger

from ..models import AuthMethod, DeviceIdentity, DEFAULT_SOURCE_IP


def normalize_headers(headers: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Lower-case header names so lookups are case-insensitive."""
    if not headers:
        return {}
    return {str(name).lower(): value for name, value in headers.items()}


def first_forwarded_ip(value: Optional[str]) -> str:
    """Client address from an X-Forwarded-For style header."""
    if isinstance(value, str) and value.strip():
        return value.split(",")[0].strip()
    return DEFAULT_SOURCE_IP


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class TrustStrategy(ABC):
    """Turns request evidence into a DeviceIdentity or a refusal (None).

    Implementations return None when evidence is missing or cannot be
    verified, and raise ConfigurationError only when evidence is present but
    the deployment is missing required settings.
    """

    method: AuthMethod

    def __init__(self):
        self.logger = get_logger(f"gitgate.auth.{self.method.value}")

    @abstractmethod
    async def verify(
        self,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DeviceIdentity]:
        ...

    async def close(self) -> None:
        return None


class HttpTrustStrategy(TrustStrategy):
    """Strategy that consults a remote trust service over HTTP."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, *, timeout: float = 10.0):
        super().__init__()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
