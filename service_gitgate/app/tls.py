"""
Client certificate hand-off from the TLS listener to the application.

uvicorn verifies client certificates when started with ``ssl_cert_reqs``
but does not pass them to the application. The protocol below reads the
peer certificate once per connection and exposes it to every request on
that connection through the ASGI TLS extension
(``scope["extensions"]["tls"]["client_cert_chain"]``).
"""

import ssl
from typing import Any, Optional

from uvicorn.protocols.http.h11_impl import H11Protocol


def peer_certificate_pem(transport: Any) -> Optional[str]:
    """PEM text of the certificate the peer presented, if any."""
    ssl_object = transport.get_extra_info("ssl_object")
    if ssl_object is None:
        return None

    der = ssl_object.getpeercert(binary_form=True)
    if not der:
        return None
    return ssl.DER_cert_to_PEM_cert(der)


def with_client_certificate(app, pem: str):
    """Wrap an ASGI app so HTTP scopes carry ``pem`` as the client chain."""

    async def app_with_client_certificate(scope, receive, send):
        if scope["type"] == "http":
            extensions = scope.get("extensions") or {}
            tls = dict(extensions.get("tls") or {})
            tls["client_cert_chain"] = [pem]
            extensions["tls"] = tls
            scope["extensions"] = extensions
        await app(scope, receive, send)

    return app_with_client_certificate


class ClientCertificateH11Protocol(H11Protocol):
    """h11 protocol that forwards the verified peer certificate."""

    def connection_made(self, transport) -> None:
        super().connection_made(transport)
        pem = peer_certificate_pem(transport)
        if pem:
            self.app = with_client_certificate(self.app, pem)
