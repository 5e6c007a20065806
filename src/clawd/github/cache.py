"""TTL caching wrapper for document fetch capabilities."""

import functools
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 60 * 60

FetchFile = Callable[[str, str, str], Awaitable[str | None]]


def with_ttl_cache(
    fetch: FetchFile,
    ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
    clock: Callable[[], float] = time.monotonic,
) -> FetchFile:
    """Wrap a fetch capability with a per-key TTL cache.

    Missing documents (None) are not cached, so a file added later is picked
    up on the next call.

    Args:
        fetch: Async callable ``(owner, repo, path) -> content | None``
        ttl_seconds: Cache entry lifetime (default: 60 minutes)
        clock: Time source in seconds

    Returns:
        A new async callable with the same signature. Its ``cache_clear()``
        attribute drops every cached entry.
    """
    cache: dict[str, tuple[float, str]] = {}

    @functools.wraps(fetch)
    async def cached(owner: str, repo: str, path: str) -> str | None:
        key = f"{owner}/{repo}/{path}"
        entry = cache.get(key)
        if entry is not None:
            stored_at, content = entry
            if clock() - stored_at <= ttl_seconds:
                logger.debug("Cache HIT %s", key)
                return content
            logger.debug("Cache EXPIRED %s", key)
            del cache[key]
        else:
            logger.debug("Cache MISS %s", key)

        content = await fetch(owner, repo, path)
        if content is not None:
            cache[key] = (clock(), content)
        return content

    def cache_clear() -> None:
        cache.clear()

    cached.cache_clear = cache_clear  # type: ignore[attr-defined]
    return cached
