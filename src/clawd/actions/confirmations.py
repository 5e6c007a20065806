"""Per-user pending confirmation storage with expiry."""

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime

import redis

from ..config import DEFAULT_EXPIRY_SECONDS, DEFAULT_SWEEP_INTERVAL_SECONDS
from .types import PendingConfirmation

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ConfirmationStoreError(RuntimeError):
    """Raised when a pending confirmation cannot be stored."""


class ConfirmationStore:
    """Hold at most one pending confirmation per user.

    Expiry is evaluated lazily on access (``peek``) and by ``sweep``; there
    is no timer per entry.
    """

    def __init__(
        self,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the store.

        Args:
            expiry_seconds: Age after which a pending entry expires (default: 10 minutes)
            clock: Wall-clock source returning timezone-aware datetimes
        """
        self.expiry_seconds = expiry_seconds
        self.clock = clock
        # user_id -> PendingConfirmation
        self._pending: dict[str, PendingConfirmation] = {}

    def now(self) -> datetime:
        return self.clock()

    def is_expired(self, pending: PendingConfirmation) -> bool:
        return pending.is_expired(self.clock(), self.expiry_seconds)

    def put(self, user_id: str, pending: PendingConfirmation) -> None:
        """Store a pending entry, replacing any previous one for the user."""
        self._pending[user_id] = pending

    def get(self, user_id: str) -> PendingConfirmation | None:
        """Return the raw entry without checking expiry."""
        return self._pending.get(user_id)

    def peek(self, user_id: str) -> PendingConfirmation | None:
        """Return the live entry for a user, deleting it if expired."""
        pending = self._pending.get(user_id)
        if pending is None:
            return None

        if self.is_expired(pending):
            self._pending.pop(user_id, None)
            return None

        return pending

    def pop(self, user_id: str) -> PendingConfirmation | None:
        return self._pending.pop(user_id, None)

    def sweep(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of expired entries removed
        """
        removed = 0
        # Iterate a snapshot so concurrent put/pop never see a resized dict
        for user_id, pending in list(self._pending.items()):
            if not self.is_expired(pending):
                continue
            # Only drop the entry we judged expired, not a newer replacement
            if self._pending.get(user_id) is pending:
                del self._pending[user_id]
                removed += 1
                logger.info("Cleaned up expired confirmation for user %s", user_id)
        return removed

    def __len__(self) -> int:
        return len(self._pending)


class RedisConfirmationStore:
    """Redis-backed confirmation store.

    Entries are stored as JSON under ``key_prefix + user_id`` with a Redis TTL
    of twice the expiry window, so an expired-but-present entry can still be
    reported as expired on access. Falls back to in-memory storage when no
    client is given.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        key_prefix: str = "pending_confirmation:",
        clock: Clock = utc_now,
    ) -> None:
        self.redis = redis_client
        self.expiry_seconds = expiry_seconds
        self.key_prefix = key_prefix
        self.clock = clock

        if self.redis is None:
            logger.warning("Redis not available, using in-memory fallback for confirmations")
            self._fallback: ConfirmationStore | None = ConfirmationStore(expiry_seconds, clock)
        else:
            logger.info("Using Redis-backed confirmation storage")
            self._fallback = None

    def _make_redis_key(self, user_id: str) -> str:
        return f"{self.key_prefix}{user_id}"

    def _load(self, key: str) -> PendingConfirmation | None:
        data = self.redis.get(key)
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode()
        return PendingConfirmation.from_dict(json.loads(data))

    def now(self) -> datetime:
        return self.clock()

    def is_expired(self, pending: PendingConfirmation) -> bool:
        return pending.is_expired(self.clock(), self.expiry_seconds)

    def put(self, user_id: str, pending: PendingConfirmation) -> None:
        """Store a pending entry, replacing any previous one for the user.

        Raises:
            ConfirmationStoreError: If the entry is not JSON-serializable or
                Redis rejects the write
        """
        if self._fallback is not None:
            self._fallback.put(user_id, pending)
            return

        try:
            data = json.dumps(pending.to_dict())
        except (TypeError, ValueError) as e:
            logger.error("Error serializing pending confirmation: %s", e)
            raise ConfirmationStoreError(f"pending entry is not serializable: {e}") from e

        ttl = max(1, int(self.expiry_seconds * 2))
        try:
            self.redis.setex(self._make_redis_key(user_id), ttl, data)
            logger.debug("Stored pending confirmation for %s with TTL %ds", user_id, ttl)
        except redis.RedisError as e:
            logger.error("Redis error storing pending confirmation: %s", e)
            raise ConfirmationStoreError(f"Redis write failed: {e}") from e

    def get(self, user_id: str) -> PendingConfirmation | None:
        if self._fallback is not None:
            return self._fallback.get(user_id)

        try:
            return self._load(self._make_redis_key(user_id))
        except redis.RedisError as e:
            logger.error("Redis error retrieving pending confirmation: %s", e)
            return None
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing pending confirmation: %s", e)
            return None

    def peek(self, user_id: str) -> PendingConfirmation | None:
        if self._fallback is not None:
            return self._fallback.peek(user_id)

        pending = self.get(user_id)
        if pending is None:
            return None
        if self.is_expired(pending):
            self.pop(user_id)
            return None
        return pending

    def pop(self, user_id: str) -> PendingConfirmation | None:
        """Atomically read and delete a user's entry."""
        if self._fallback is not None:
            return self._fallback.pop(user_id)

        key = self._make_redis_key(user_id)
        try:
            pipe = self.redis.pipeline()
            pipe.get(key)
            pipe.delete(key)
            data, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error("Redis error consuming pending confirmation: %s", e)
            return None

        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode()
        try:
            return PendingConfirmation.from_dict(json.loads(data))
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.error("Error deserializing pending confirmation: %s", e)
            return None

    def sweep(self) -> int:
        if self._fallback is not None:
            return self._fallback.sweep()

        removed = 0
        try:
            for key in self.redis.scan_iter(match=f"{self.key_prefix}*"):
                data = self.redis.get(key)
                if data is None:
                    continue
                try:
                    raw = data.decode() if isinstance(data, bytes) else data
                    pending = PendingConfirmation.from_dict(json.loads(raw))
                except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                    logger.warning("Dropping unreadable pending confirmation %s: %s", key, e)
                    removed += self._delete_if_unchanged(key, data)
                    continue
                if self.is_expired(pending):
                    removed += self._delete_if_unchanged(key, data)
        except redis.RedisError as e:
            logger.error("Redis error sweeping confirmations: %s", e)
        return removed

    def _delete_if_unchanged(self, key: str | bytes, expected: str | bytes) -> int:
        """Delete a key only if it still holds ``expected``.

        A put that replaces the entry after it was read wins over the sweep.
        """
        pipe = self.redis.pipeline()
        try:
            pipe.watch(key)
            if pipe.get(key) != expected:
                pipe.unwatch()
                return 0
            pipe.multi()
            pipe.delete(key)
            (deleted,) = pipe.execute()
            return deleted
        except redis.WatchError:
            logger.debug("Pending confirmation %s replaced during sweep", key)
            return 0
        finally:
            pipe.reset()

    def __len__(self) -> int:
        if self._fallback is not None:
            return len(self._fallback)
        return sum(1 for _ in self.redis.scan_iter(match=f"{self.key_prefix}*"))


class ConfirmationSweeper:
    """Background task that periodically sweeps expired confirmations."""

    def __init__(
        self,
        store: ConfirmationStore | RedisConfirmationStore,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.store = store
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="confirmation-sweeper")
        logger.info("Confirmation sweeper started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Confirmation sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                removed = self.store.sweep()
            except Exception:
                logger.exception("Confirmation sweep failed")
                continue
            if removed:
                logger.info("Swept %d expired confirmation(s)", removed)
