"""GitHub document access for status checks."""

from .cache import with_ttl_cache
from .client import GitHubAPIError, GitHubContentsClient, GitHubRateLimitError

__all__ = [
    "GitHubContentsClient",
    "GitHubAPIError",
    "GitHubRateLimitError",
    "with_ttl_cache",
]
