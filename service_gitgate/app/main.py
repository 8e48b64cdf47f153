"""
GitGate release gateway service.
"""

import argparse
import ssl
from typing import Any, Dict, Optional
from urllib.parse import unquote

from fastapi import HTTPException, Request, Response

from shared.base_service import BaseService
from shared.metrics import MetricsCollector

from .config import GatewaySettings, load_config, validate_config
from .domain import GatewayContext, RequestPipeline, build_context
from .models import AuthMethod
from .tls import ClientCertificateH11Protocol

SERVICE_NAME = "gitgate"
CHECKSUM_HEADER = "X-Checksum-SHA256"
SIGNATURE_HEADER = "X-Signature-RSA-SHA256"


class GatewayService(BaseService):
    """Release gateway service implementation."""

    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        *,
        context: Optional[GatewayContext] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        if settings is None:
            settings = context.settings if context is not None else load_config()
        if metrics is None and context is not None:
            metrics = context.metrics
        super().__init__(SERVICE_NAME, settings, metrics)

        self.settings = settings
        self.context = context or build_context(settings, metrics=self.metrics)
        self.pipeline = RequestPipeline(self.context)

        self._setup_gateway_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.gateway_service = self

    async def _on_shutdown(self) -> None:
        await self.context.close()

    def _set_rate_limit_headers(self, response: Response, rate_result: Dict[str, Any]) -> None:
        """Propagate rate limiting metadata via standard headers."""
        limit = rate_result.get("limit")
        remaining = rate_result.get("remaining")
        reset = rate_result.get("reset_in_seconds")

        if limit is not None:
            response.headers["X-RateLimit-Limit"] = str(limit)
        if remaining is not None:
            response.headers["X-RateLimit-Remaining"] = str(remaining)
        if reset is not None:
            response.headers["X-RateLimit-Reset"] = str(reset)

    def _get_client_cert(self, request: Request) -> Optional[str]:
        """Client certificate presented on the connection, as PEM text.

        Prefers the ASGI TLS extension, which the built-in listener fills
        from the verified peer certificate. Falls back to a header set by a
        trusted TLS-terminating proxy when one is configured.
        """
        tls = (request.scope.get("extensions") or {}).get("tls") or {}
        chain = tls.get("client_cert_chain") or []
        if chain:
            return chain[0]

        header = self.settings.auth.certificate_subject.get("client_cert_header")
        if header:
            value = request.headers.get(header)
            if value:
                return unquote(value)
        return None

    def _setup_gateway_routes(self):
        """Set up release delivery routes."""

        @self.app.get("/releases/{owner}/{repo}")
        async def list_releases(owner: str, repo: str, request: Request, response: Response):
            """List releases of a repository for a trusted device."""
            listing = await self.pipeline.list_releases(
                owner,
                repo,
                dict(request.headers),
                self._get_client_cert(request),
            )
            self._set_rate_limit_headers(response, listing.rate_limit)
            response.headers["X-Cache"] = "HIT" if listing.cached else "MISS"
            return listing.releases

        @self.app.get("/release/{owner}/{repo}/{version}/{asset}")
        async def download_asset(owner: str, repo: str, version: str, asset: str, request: Request):
            """Deliver a release asset with checksum and optional signature."""
            delivery = await self.pipeline.download_asset(
                owner,
                repo,
                version,
                asset,
                dict(request.headers),
                self._get_client_cert(request),
            )

            response = Response(content=delivery.data, media_type="application/octet-stream")
            response.headers[CHECKSUM_HEADER] = delivery.checksum
            if delivery.signature:
                response.headers[SIGNATURE_HEADER] = delivery.signature
            response.headers["X-Cache"] = "HIT" if delivery.cached else "MISS"
            self._set_rate_limit_headers(response, delivery.rate_limit)
            return response

        @self.app.get("/signing/public-key")
        async def signing_public_key():
            """PEM public key for verifying asset signatures."""
            signer = self.context.signer
            pem = signer.public_key_pem() if signer is not None else None
            if not pem:
                raise HTTPException(status_code=404, detail="Signing is not enabled")
            return Response(content=pem, media_type="application/x-pem-file")

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"cache": await self.context.cache.check_health()}

    def _uvicorn_options(self) -> Dict[str, Any]:
        tls = self.settings.tls
        if not (tls.certfile and tls.keyfile):
            return {}

        options: Dict[str, Any] = {"ssl_certfile": tls.certfile, "ssl_keyfile": tls.keyfile}
        ca_cert_path = self.settings.auth.certificate_subject.get("ca_cert_path")
        if AuthMethod.parse(self.settings.auth.method) is AuthMethod.CERTIFICATE_SUBJECT and ca_cert_path:
            # The listener verifies client certificates against the CA and
            # hands the peer certificate to the app
            options["ssl_ca_certs"] = ca_cert_path
            options["ssl_cert_reqs"] = ssl.CERT_REQUIRED
            options["http"] = ClientCertificateH11Protocol
        return options


def create_app(settings: Optional[GatewaySettings] = None, **kwargs):
    """Create FastAPI application."""
    service = GatewayService(settings, **kwargs)
    return service.app


def main(argv=None):
    parser = argparse.ArgumentParser(description="Device-trusted GitHub release gateway")
    parser.add_argument("--config", help="Path to the JSON config file (default: $GITGATE_CONFIG or ./config.json)")
    args = parser.parse_args(argv)

    settings = load_config(args.config)
    validate_config(settings)

    service = GatewayService(settings)
    service.logger.info(
        "GitGate service starting",
        host=settings.host,
        port=settings.port,
        auth_method=settings.auth.method,
        cache_backend=settings.github.cache_backend,
        cache_dir=settings.github.cache_dir,
    )
    service.run()


if __name__ == "__main__":
    main()
