"""
MDM token strategy: the device presents a token issued by the MDM platform,
which the platform's introspection endpoint resolves to a device record.
"""

from typing import Any, Mapping, Optional

from shared.errors import ConfigurationError

from ..models import AuthMethod, DeviceIdentity
from .base import HttpTrustStrategy, first_forwarded_ip, normalize_headers, optional_str

TOKEN_HEADER = "x-jamf-token"
FORWARDED_FOR_HEADER = "x-forwarded-for"
INTROSPECTION_PATH = "/api/v1/auth/tokens"
REQUIRED_CONFIG = ("api_url", "api_key", "api_secret")


class MdmTokenStrategy(HttpTrustStrategy):
    """Verify a device token against the MDM token-introspection endpoint."""

    method = AuthMethod.MDM_TOKEN

    async def verify(
        self,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DeviceIdentity]:
        headers = normalize_headers(headers)
        token = headers.get(TOKEN_HEADER)
        if not token:
            return None

        config = config or {}
        missing = [key for key in REQUIRED_CONFIG if not config.get(key)]
        if missing:
            raise ConfigurationError("MDM token configuration incomplete", details={"missing": missing})

        url = f"{str(config['api_url']).rstrip('/')}{INTROSPECTION_PATH}"
        try:
            response = await self.client.get(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
            )
            if not response.is_success:
                self.logger.info("MDM token rejected", status_code=response.status_code)
                return None

            data = response.json()
            device_id = data.get("device_id") if isinstance(data, dict) else None
            if not device_id:
                self.logger.info("MDM introspection returned no device id")
                return None

            return DeviceIdentity(
                device_id=str(device_id),
                auth_method=self.method,
                device_name=optional_str(data.get("device_name")),
                user_id=optional_str(data.get("user_id")),
                source_ip=first_forwarded_ip(headers.get(FORWARDED_FOR_HEADER)),
            )
        except Exception as e:
            self.logger.warning("MDM token introspection failed", error=str(e))
            return None
