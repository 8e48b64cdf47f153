"""
Coordination-service strategy: the mesh proxy injects the claimed user and
device; the claim is checked against the coordination service's device list.
"""

from typing import Any, Mapping, Optional

from shared.errors import ConfigurationError

from ..models import AuthMethod, DeviceIdentity, DEFAULT_SOURCE_IP
from .base import HttpTrustStrategy, normalize_headers, optional_str

USER_HEADER = "x-tailscale-user"
DEVICE_HEADER = "x-tailscale-device"
IP_HEADER = "x-tailscale-ip"
DEFAULT_DEVICES_URL = "https://api.tailscale.com/api/v2/devices"


class CoordinationServiceStrategy(HttpTrustStrategy):
    """Confirm a claimed device is enrolled in the coordination service."""

    method = AuthMethod.COORDINATION_SERVICE

    async def verify(
        self,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DeviceIdentity]:
        headers = normalize_headers(headers)
        claimed_user = headers.get(USER_HEADER)
        claimed_device = headers.get(DEVICE_HEADER)
        if not claimed_user or not claimed_device:
            return None

        config = config or {}
        api_key = config.get("api_key")
        if not api_key:
            raise ConfigurationError("Coordination service API key not configured")

        url = config.get("api_url") or DEFAULT_DEVICES_URL
        try:
            response = await self.client.get(
                url,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Accept": "application/json",
                },
            )
            if not response.is_success:
                self.logger.warning("Device directory lookup failed", status_code=response.status_code)
                return None

            data = response.json()
            devices = data.get("devices") if isinstance(data, dict) else None
            if not isinstance(devices, list):
                return None

            match = next(
                (d for d in devices if isinstance(d, dict) and d.get("id") == claimed_device),
                None,
            )
            if match is None:
                self.logger.info("Claimed device not enrolled", device_id=claimed_device)
                return None

            return DeviceIdentity(
                device_id=claimed_device,
                auth_method=self.method,
                device_name=optional_str(match.get("name")),
                user_id=claimed_user,
                source_ip=headers.get(IP_HEADER) or DEFAULT_SOURCE_IP,
            )
        except Exception as e:
            self.logger.warning("Device directory lookup error", error=str(e))
            return None
