"""
Always-succeed strategy for local and fully trusted deployments.
"""

from typing import Any, Mapping, Optional

from ..models import AuthMethod, DeviceIdentity, UNKNOWN_DEVICE_ID, DEFAULT_SOURCE_IP
from .base import TrustStrategy


class NoneStrategy(TrustStrategy):
    """Admit every request as the sentinel device."""

    method = AuthMethod.NONE

    async def verify(
        self,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DeviceIdentity]:
        return DeviceIdentity(
            device_id=UNKNOWN_DEVICE_ID,
            auth_method=self.method,
            source_ip=DEFAULT_SOURCE_IP,
        )
