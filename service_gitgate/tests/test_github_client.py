"""
Unit tests for GitHubClient.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from service_gitgate.app.adapters import GitHubClient


RELEASE = {
    "id": 1,
    "tag_name": "v1.0.0",
    "name": "First",
    "draft": False,
    "prerelease": False,
    "html_url": "https://github.com/acme/tool/releases/tag/v1.0.0",
    "author": {"login": "someone"},
    "assets": [{"id": 42, "name": "tool.tar.gz", "size": 5, "uploader": {}}],
}


def make_client(handler, token="ghp_test"):
    transport = httpx.MockTransport(handler)
    return GitHubClient(
        token,
        "https://api.github.test",
        client=httpx.AsyncClient(transport=transport),
    )


class TestGitHubClient:
    """Test cases for GitHubClient."""

    @pytest.mark.asyncio
    async def test_list_releases(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[RELEASE])

        releases = await make_client(handler).list_releases("acme", "tool")

        assert seen["path"] == "/repos/acme/tool/releases"
        assert seen["params"] == {"per_page": "100"}
        assert seen["auth"] == "Bearer ghp_test"
        assert releases[0]["tag_name"] == "v1.0.0"
        assert releases[0]["assets"][0]["id"] == 42
        assert "author" not in releases[0]

    @pytest.mark.asyncio
    async def test_list_releases_not_found_is_empty(self):
        releases = await make_client(lambda r: httpx.Response(404)).list_releases("acme", "missing")
        assert releases == []

    @pytest.mark.asyncio
    async def test_no_token_sends_no_authorization(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        await make_client(handler, token=None).list_releases("acme", "tool")
        assert seen["auth"] is None

    @pytest.mark.asyncio
    async def test_get_release_by_tag(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json=RELEASE)

        release = await make_client(handler).get_release("acme", "tool", "v1.0.0")

        assert seen["path"] == "/repos/acme/tool/releases/tags/v1.0.0"
        assert release.find_asset("tool.tar.gz").id == 42

    @pytest.mark.asyncio
    async def test_get_latest_release(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            return httpx.Response(200, json=RELEASE)

        await make_client(handler).get_release("acme", "tool", "latest")
        assert seen["path"] == "/repos/acme/tool/releases/latest"

    @pytest.mark.asyncio
    async def test_get_release_missing(self):
        release = await make_client(lambda r: httpx.Response(404)).get_release("acme", "tool", "v9")
        assert release is None

    @pytest.mark.asyncio
    async def test_download_asset_follows_redirect(self):
        def handler(request):
            if request.url.host == "api.github.test":
                assert request.headers["Accept"] == "application/octet-stream"
                return httpx.Response(302, headers={"Location": "https://objects.example.com/blob"})
            return httpx.Response(200, content=b"hello")

        data = await make_client(handler).download_asset("acme", "tool", 42)
        assert data == b"hello"

    @pytest.mark.asyncio
    async def test_download_asset_failure(self):
        assert await make_client(lambda r: httpx.Response(500)).download_asset("acme", "tool", 42) is None

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[RELEASE])

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock):
            releases = await make_client(handler).list_releases("acme", "tool")

        assert len(attempts) == 3
        assert len(releases) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_read_as_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock):
            assert await make_client(handler).get_release("acme", "tool", "v1.0.0") is None

    @pytest.mark.asyncio
    async def test_unavailable_upstream_is_retried(self):
        statuses = iter([503, 502, 200])

        def handler(request):
            status = next(statuses)
            return httpx.Response(status, json=RELEASE if status == 200 else {})

        with patch("shared.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            release = await make_client(handler).get_release("acme", "tool", "v1.0.0")

        assert release.tag_name == "v1.0.0"
        assert mock_sleep.await_count == 2
