"""
Routes a configured trust method to its strategy.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional

import httpx

from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..models import AuthMethod, DeviceIdentity
from .base import TrustStrategy, normalize_headers
from .certificate import CertificateSubjectStrategy
from .coordination import CoordinationServiceStrategy
from .mdm import MdmTokenStrategy
from .none import NoneStrategy


def default_strategies(client: httpx.AsyncClient) -> Dict[AuthMethod, TrustStrategy]:
    """One strategy per method, HTTP strategies sharing a client."""
    return {
        AuthMethod.MDM_TOKEN: MdmTokenStrategy(client),
        AuthMethod.COORDINATION_SERVICE: CoordinationServiceStrategy(client),
        AuthMethod.CERTIFICATE_SUBJECT: CertificateSubjectStrategy(),
        AuthMethod.NONE: NoneStrategy(),
    }


class AuthDispatcher:
    """Stateless router from AuthMethod to TrustStrategy."""

    def __init__(
        self,
        strategies: Optional[Dict[AuthMethod, TrustStrategy]] = None,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.logger = get_logger("gitgate.auth.dispatcher")
        self.timeout = timeout
        self.metrics = metrics
        self._owns_client = client is None and strategies is None
        self._client = client or (httpx.AsyncClient(timeout=timeout) if strategies is None else None)
        self.strategies = strategies if strategies is not None else default_strategies(self._client)

        missing = [method.value for method in AuthMethod if method not in self.strategies]
        if missing:
            raise ConfigurationError("No trust strategy registered", details={"methods": missing})

    def warn_if_insecure(self, method: Any) -> None:
        """Log startup warnings for methods that weaken the trust boundary."""
        auth_method = AuthMethod.parse(method)
        if auth_method is AuthMethod.NONE:
            self.logger.warning(
                "Auth method 'none' admits every request; do not expose this gateway publicly"
            )
        elif auth_method is AuthMethod.CERTIFICATE_SUBJECT:
            self.logger.warning(
                "Certificate-subject auth does not validate the certificate chain; "
                "require client certificates at the TLS listener or proxy"
            )

    async def authenticate(
        self,
        method: Any,
        headers: Optional[Mapping[str, str]],
        cert: Optional[str] = None,
        method_config: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DeviceIdentity]:
        """Return the device identity, or None when the request is refused.

        ConfigurationError from a strategy propagates.
        """
        auth_method = AuthMethod.parse(method)
        if auth_method is None:
            self.logger.warning("Unknown auth method", method=str(method))
            return None

        strategy = self.strategies[auth_method]
        try:
            identity = await asyncio.wait_for(
                strategy.verify(normalize_headers(headers), cert, method_config or {}),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            self.logger.warning("Trust verification timed out", method=auth_method.value, timeout=self.timeout)
            identity = None

        if self.metrics:
            self.metrics.record_auth_decision(auth_method.value, "success" if identity else "refused")
        return identity

    async def close(self) -> None:
        for strategy in self.strategies.values():
            await strategy.close()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
