"""
Shared fixtures for gateway unit tests.
"""

import json
from typing import Any, Dict, List, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from service_gitgate.app.config import GatewaySettings
from service_gitgate.app.models import ReleaseSummary


class FakeReleaseSource:
    """In-memory release source that counts upstream calls."""

    def __init__(self, releases: Optional[Dict[str, List[Dict[str, Any]]]] = None,
                 assets: Optional[Dict[int, bytes]] = None):
        self.releases = releases or {}
        self.assets = assets or {}
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.closed = False

    async def list_releases(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        self.calls.append(("list_releases", owner, repo))
        if self.fail_with:
            raise self.fail_with
        return list(self.releases.get(f"{owner}/{repo}", []))

    async def get_release(self, owner: str, repo: str, version: str) -> Optional[ReleaseSummary]:
        self.calls.append(("get_release", owner, repo, version))
        if self.fail_with:
            raise self.fail_with
        for release in self.releases.get(f"{owner}/{repo}", []):
            if release.get("tag_name") == version:
                return ReleaseSummary.model_validate(release)
        return None

    async def download_asset(self, owner: str, repo: str, asset_id: int) -> Optional[bytes]:
        self.calls.append(("download_asset", owner, repo, asset_id))
        return self.assets.get(asset_id)

    async def close(self) -> None:
        self.closed = True

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)


@pytest.fixture
def make_release_source():
    """Factory for fake upstreams with custom releases and assets."""
    return FakeReleaseSource


@pytest.fixture
def release_source():
    """Fake upstream with one repository, one release and one asset."""
    return FakeReleaseSource(
        releases={
            "acme/tool": [
                {
                    "id": 10,
                    "tag_name": "v1.0.0",
                    "name": "First",
                    "assets": [{"id": 42, "name": "tool.tar.gz", "size": 5}],
                }
            ]
        },
        assets={42: b"hello"},
    )


@pytest.fixture
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def signing_key_path(tmp_path, rsa_private_key):
    """PEM-encoded RSA private key on disk."""
    path = tmp_path / "signing.pem"
    path.write_bytes(
        rsa_private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def settings_factory(tmp_path):
    """Build GatewaySettings rooted in the test's temporary directory."""

    def _make(**overrides) -> GatewaySettings:
        data: Dict[str, Any] = {
            "github": {"token": "ghp_test", "cache_dir": str(tmp_path / "cache")},
            "auth": {"method": "none"},
            "audit": {"log_file": str(tmp_path / "audit.log")},
        }
        for section, values in overrides.items():
            if isinstance(values, dict) and isinstance(data.get(section), dict):
                data[section] = {**data[section], **values}
            else:
                data[section] = values
        return GatewaySettings(**data)

    return _make


@pytest.fixture
def read_audit_log():
    """Parse the JSON-lines audit file written during a test."""

    def _read(settings: GatewaySettings) -> List[Dict[str, Any]]:
        with open(settings.audit.log_file, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    return _read
