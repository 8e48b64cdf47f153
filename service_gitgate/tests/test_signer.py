"""
Unit tests for AssetSigner.
"""

import base64

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding

from service_gitgate.app.signing import AssetSigner


class TestAssetSigner:
    """Test cases for AssetSigner."""

    def test_signature_verifies_with_public_key(self, signing_key_path, rsa_private_key):
        signer = AssetSigner(signing_key_path)
        signature = signer.sign(b"hello")

        assert signer.available
        rsa_private_key.public_key().verify(
            base64.b64decode(signature), b"hello", padding.PKCS1v15(), hashes.SHA256()
        )

    def test_signatures_are_deterministic(self, signing_key_path):
        signer = AssetSigner(signing_key_path)
        assert signer.sign(b"data") == signer.sign(b"data")
        assert signer.sign(b"data") != signer.sign(b"other")

    def test_verify_round_trip(self, signing_key_path):
        signer = AssetSigner(signing_key_path)
        signature = signer.sign(b"payload")

        assert signer.verify(b"payload", signature)
        assert not signer.verify(b"tampered", signature)

    def test_missing_key_file_leaves_signer_unavailable(self, tmp_path):
        signer = AssetSigner(tmp_path / "missing.pem")

        assert not signer.available
        assert signer.sign(b"hello") is None
        assert signer.public_key_pem() is None

    def test_garbage_key_leaves_signer_unavailable(self, tmp_path):
        path = tmp_path / "bad.pem"
        path.write_text("not a key")

        assert not AssetSigner(path).available

    def test_non_rsa_key_leaves_signer_unavailable(self, tmp_path):
        key = ec.generate_private_key(ec.SECP256R1())
        path = tmp_path / "ec.pem"
        path.write_bytes(key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ))

        assert not AssetSigner(path).available

    def test_public_key_pem(self, signing_key_path):
        pem = AssetSigner(signing_key_path).public_key_pem()
        assert pem.startswith("-----BEGIN PUBLIC KEY-----")

    @pytest.mark.parametrize("path", [None, ""])
    def test_no_path_is_unavailable(self, path):
        assert not AssetSigner(path).available
