"""
Certificate-subject strategy.

The device identifier is the Common Name of the presented client
certificate. Only the subject is read: the chain, signature and validity
period are NOT checked against the configured CA. This is safe only when
the listener (or a terminating proxy) already requires and verifies client
certificates.
"""

import asyncio
import re
from pathlib import Path
from typing import Any, Mapping, Optional

from cryptography import x509

from shared.errors import ConfigurationError

from ..models import AuthMethod, DeviceIdentity
from .base import TrustStrategy

PEM_MARKER = "-----BEGIN CERTIFICATE-----"
SUBJECT_MARKER = "Subject:"
COMMON_NAME = re.compile(r"CN\s*=\s*([^,]+)")


def subject_line(cert: str) -> Optional[str]:
    """Printed subject line of a certificate.

    Accepts either a textual dump (``openssl x509 -text``) or a PEM block,
    which is rendered into the same ``Subject: ...`` form.
    """
    if PEM_MARKER in cert:
        certificate = x509.load_pem_x509_certificate(cert.encode("ascii"))
        return f"{SUBJECT_MARKER} {certificate.subject.rfc4514_string()}"

    for line in cert.splitlines():
        if SUBJECT_MARKER in line:
            return line
    return None


def common_name(line: str) -> Optional[str]:
    match = COMMON_NAME.search(line)
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


class CertificateSubjectStrategy(TrustStrategy):
    """Identify a device by its client certificate's subject CN."""

    method = AuthMethod.CERTIFICATE_SUBJECT

    async def verify(
        self,
        headers: Mapping[str, str],
        cert: Optional[str] = None,
        config: Optional[Mapping[str, Any]] = None,
    ) -> Optional[DeviceIdentity]:
        if not cert:
            return None

        config = config or {}
        ca_cert_path = config.get("ca_cert_path")
        if not ca_cert_path:
            raise ConfigurationError("mTLS CA certificate path not configured")

        try:
            # The CA is loaded to confirm the deployment is wired up; it is not used for chain checks.
            await asyncio.to_thread(Path(ca_cert_path).read_text, encoding="utf-8")

            line = subject_line(cert)
            if line is None:
                self.logger.info("Client certificate has no subject line")
                return None

            device_id = common_name(line)
            if device_id is None:
                self.logger.info("Client certificate subject has no CN")
                return None

            return DeviceIdentity(device_id=device_id, auth_method=self.method)
        except Exception as e:
            self.logger.warning("Client certificate could not be read", error=str(e))
            return None
