"""Tests for the GitHub contents client.

These tests use respx to mock outbound HTTP calls.
"""

import base64

import httpx
import pytest
import respx

from clawd.github import GitHubAPIError, GitHubContentsClient, GitHubRateLimitError

TODO_URL = "https://api.github.com/repos/giquina/judo/contents/TODO.md"


def _file_payload(text: str) -> dict:
    return {
        "type": "file",
        "encoding": "base64",
        "content": base64.b64encode(text.encode()).decode(),
    }


class TestFetchFile:
    """Test fetching repository files."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_decodes_file_content(self) -> None:
        route = respx.get(TODO_URL).mock(
            return_value=httpx.Response(200, json=_file_payload("- [ ] ship it\n"))
        )

        client = GitHubContentsClient(token="ghp_test")
        content = await client.fetch_file("giquina", "judo", "TODO.md")

        assert content == "- [ ] ship it\n"
        assert route.called
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer ghp_test"

    @pytest.mark.asyncio
    @respx.mock
    async def test_anonymous_request(self) -> None:
        route = respx.get(TODO_URL).mock(
            return_value=httpx.Response(200, json=_file_payload("x"))
        )

        await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md")

        assert "Authorization" not in route.calls.last.request.headers

    @pytest.mark.asyncio
    @respx.mock
    async def test_not_found_returns_none(self) -> None:
        respx.get(TODO_URL).mock(return_value=httpx.Response(404, json={"message": "Not Found"}))

        assert await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_directory_returns_none(self) -> None:
        respx.get(TODO_URL).mock(return_value=httpx.Response(200, json=[{"type": "file"}]))

        assert await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit(self) -> None:
        respx.get(TODO_URL).mock(
            return_value=httpx.Response(
                403,
                headers={"X-RateLimit-Remaining": "0"},
                json={"message": "API rate limit exceeded"},
            )
        )

        with pytest.raises(GitHubRateLimitError) as exc_info:
            await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    @respx.mock
    async def test_forbidden_without_rate_limit(self) -> None:
        respx.get(TODO_URL).mock(
            return_value=httpx.Response(403, json={"message": "Resource not accessible"})
        )

        with pytest.raises(GitHubAPIError) as exc_info:
            await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md")
        assert not isinstance(exc_info.value, GitHubRateLimitError)

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error(self) -> None:
        respx.get(TODO_URL).mock(return_value=httpx.Response(502, text="bad gateway"))

        with pytest.raises(GitHubAPIError, match="502"):
            await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md")

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error(self) -> None:
        respx.get(TODO_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(GitHubAPIError, match="request failed"):
            await GitHubContentsClient().fetch_file("giquina", "judo", "TODO.md")
