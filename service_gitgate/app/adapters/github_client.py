"""
GitHub Releases client for the gateway.
"""

from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

import httpx

from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception

from ..models import ReleaseSummary

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
LATEST_VERSION = "latest"
# Upstream hiccups worth another attempt
RETRYABLE_STATUS = frozenset({502, 503, 504})


class ReleaseSource(Protocol):
    """Where release metadata and asset bytes come from."""

    async def list_releases(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        """Release summaries; an empty list means the repository was not found."""

    async def get_release(self, owner: str, repo: str, version: str) -> Optional[ReleaseSummary]:
        ...

    async def download_asset(self, owner: str, repo: str, asset_id: int) -> Optional[bytes]:
        ...


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class GitHubClient:
    """Release source backed by the GitHub REST API."""

    def __init__(
        self,
        token: Optional[str],
        api_url: str = GITHUB_API_URL,
        *,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.logger = get_logger("gitgate.github_client")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        headers = {
            "Accept": accept,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "gitgate",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    @retry_on_exception(
        (httpx.TransportError,),
        config=RetryConfig(max_attempts=3, base_delay=0.5),
        retry_if=lambda response: response.status_code in RETRYABLE_STATUS,
    )
    async def _get(self, path: str, *, accept: str = "application/vnd.github+json",
                   params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        return await self._client.get(
            f"{self.api_url}{path}",
            headers=self._headers(accept),
            params=params,
            follow_redirects=True,
        )

    async def list_releases(self, owner: str, repo: str) -> List[Dict[str, Any]]:
        path = f"/repos/{_segment(owner)}/{_segment(repo)}/releases"
        try:
            response = await self._get(path, params={"per_page": 100})
            if response.status_code != 200:
                self.logger.info("Release listing unavailable", owner=owner, repo=repo, status_code=response.status_code)
                return []
            payload = response.json()
            if not isinstance(payload, list):
                return []
            return [
                ReleaseSummary.model_validate(item).model_dump(mode="json")
                for item in payload
            ]
        except (httpx.HTTPError, RetryError, ValueError) as e:
            self.logger.error("Release listing failed", owner=owner, repo=repo, error=str(e))
            return []

    async def get_release(self, owner: str, repo: str, version: str) -> Optional[ReleaseSummary]:
        base = f"/repos/{_segment(owner)}/{_segment(repo)}/releases"
        path = f"{base}/latest" if version == LATEST_VERSION else f"{base}/tags/{_segment(version)}"
        try:
            response = await self._get(path)
            if response.status_code != 200:
                self.logger.info("Release lookup unavailable", owner=owner, repo=repo, version=version,
                                 status_code=response.status_code)
                return None
            return ReleaseSummary.model_validate(response.json())
        except (httpx.HTTPError, RetryError, ValueError) as e:
            self.logger.error("Release lookup failed", owner=owner, repo=repo, version=version, error=str(e))
            return None

    async def download_asset(self, owner: str, repo: str, asset_id: int) -> Optional[bytes]:
        path = f"/repos/{_segment(owner)}/{_segment(repo)}/releases/assets/{_segment(asset_id)}"
        try:
            response = await self._get(path, accept="application/octet-stream")
            if response.status_code != 200:
                self.logger.warning("Asset download refused", owner=owner, repo=repo, asset_id=asset_id,
                                    status_code=response.status_code)
                return None
            return response.content
        except (httpx.HTTPError, RetryError) as e:
            self.logger.error("Asset download failed", owner=owner, repo=repo, asset_id=asset_id, error=str(e))
            return None

