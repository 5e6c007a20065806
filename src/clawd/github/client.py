"""GitHub contents API client for fetching repository documents.

Uses httpx with timeouts. Missing files are reported as None rather than
raised; rate limiting and other HTTP failures raise GitHubAPIError.
"""

import base64
import logging

import httpx

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubAPIError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubRateLimitError(GitHubAPIError):
    """Raised when the GitHub API rate limit is exceeded."""


class GitHubContentsClient:
    """Fetch file contents from GitHub repositories."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: Optional GitHub token; anonymous requests are used without one
            base_url: API base URL
            timeout: Request timeout in seconds (default: 10.0)
        """
        self._token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get_headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "Clawd-Action-Dispatcher/1.0",
        }
        if self._token:
            # SECURITY: Token is in memory only, never logged
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch_file(self, owner: str, repo: str, path: str) -> str | None:
        """Fetch a file from a repository.

        Args:
            owner: Repository owner
            repo: Repository name
            path: File path within the repository

        Returns:
            Decoded file content, or None if the file does not exist

        Raises:
            GitHubRateLimitError: If the rate limit is exceeded
            GitHubAPIError: For other HTTP or network failures
        """
        url = f"{self.base_url}/repos/{owner}/{repo}/contents/{path}"
        logger.debug("Fetching %s/%s/%s", owner, repo, path)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers=self._get_headers())
        except httpx.TimeoutException as e:
            logger.error("GitHub API request timed out: %s", e)
            raise GitHubAPIError(f"GitHub API request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error("GitHub API request error: %s", e)
            raise GitHubAPIError(f"GitHub API request failed: {e}") from e

        if response.status_code == 404:
            logger.info("File not found: %s/%s/%s", owner, repo, path)
            return None

        if response.status_code in (403, 429) and (
            response.status_code == 429
            or response.headers.get("X-RateLimit-Remaining") == "0"
            or "rate limit" in response.text.lower()
        ):
            logger.error("GitHub API rate limit exceeded")
            raise GitHubRateLimitError(
                "GitHub API rate limit exceeded. Please try again later.",
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            logger.error(
                "GitHub API request failed: HTTP %d - %s",
                response.status_code,
                response.text[:200],
            )
            raise GitHubAPIError(
                f"GitHub API request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        payload = response.json()
        if not isinstance(payload, dict) or payload.get("type") != "file":
            return None
        content = payload.get("content")
        if not content:
            return None
        return base64.b64decode(content).decode("utf-8")
