"""
Detached RSA-SHA256 signatures over delivered asset bytes.
"""

import base64
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from shared.errors import SigningUnavailableError
from shared.logging import get_logger


class AssetSigner:
    """Signs bytes with a private key loaded once at construction.

    If the key cannot be loaded the signer stays unavailable: ``sign``
    returns None and callers simply omit the signature.
    """

    def __init__(self, private_key_path: Optional[Union[str, Path]], password: Optional[bytes] = None):
        self.private_key_path = private_key_path
        self.logger = get_logger("gitgate.signing")
        self._private_key: Optional[rsa.RSAPrivateKey] = None

        try:
            self._private_key = self._load_key(private_key_path, password)
        except SigningUnavailableError as e:
            self.logger.warning("Failed to load signing key", path=str(private_key_path), error=e.message)

    @staticmethod
    def _load_key(path: Optional[Union[str, Path]], password: Optional[bytes]) -> rsa.RSAPrivateKey:
        if not path:
            raise SigningUnavailableError("No signing key path configured")
        try:
            pem = Path(path).read_bytes()
            key = serialization.load_pem_private_key(pem, password=password)
        except (OSError, ValueError, TypeError) as e:
            raise SigningUnavailableError(str(e)) from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise SigningUnavailableError("Signing key is not an RSA private key")
        return key

    @property
    def available(self) -> bool:
        return self._private_key is not None

    def sign(self, data: bytes) -> Optional[str]:
        """Base64 RSA PKCS#1 v1.5 signature over SHA-256 of data."""
        if self._private_key is None:
            return None
        signature = self._private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())
        return base64.b64encode(signature).decode("ascii")

    def verify(self, data: bytes, signature: str) -> bool:
        if self._private_key is None:
            return False
        try:
            self._private_key.public_key().verify(
                base64.b64decode(signature), data, padding.PKCS1v15(), hashes.SHA256()
            )
        except (InvalidSignature, ValueError):
            return False
        return True

    def public_key_pem(self) -> Optional[str]:
        if self._private_key is None:
            return None
        return self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")
