"""Short-lived read cache for loaded weight maps.

Owned and passed around by the calling layer. Entries expire after a TTL
measured on an injected clock, and must be invalidated explicitly after any
mutation of the user's weights.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from signal_feedback.weights.constants import DEFAULT_CACHE_TTL_SECONDS
from signal_feedback.weights.models import WeightRecord


@dataclass(frozen=True)
class _CacheEntry:
    records: tuple[WeightRecord, ...]
    stored_at: float


class WeightCache:
    """Per-user cache of weight records with TTL expiry."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Entry lifetime; 0 disables caching.
            clock: Monotonic clock returning seconds.
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _CacheEntry] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0

    @property
    def ttl_seconds(self) -> float:
        """Get the entry lifetime."""
        return self._ttl

    def get(self, user_id: str) -> list[WeightRecord] | None:
        """Get cached records for a user.

        Args:
            user_id: User identifier.

        Returns:
            The records, or None when absent or expired.
        """
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self._ttl:
                del self._entries[user_id]
                return None
            return list(entry.records)

    def generation(self, user_id: str) -> int:
        """Get the invalidation generation of a user.

        Read it before loading records from the store and pass it to
        :meth:`put`, so a load that raced with an invalidation is discarded.

        Args:
            user_id: User identifier.

        Returns:
            Number of invalidations seen for the user, clears included.
        """
        with self._lock:
            return self._generation_locked(user_id)

    def _generation_locked(self, user_id: str) -> int:
        return self._epoch + self._generations.get(user_id, 0)

    def put(
        self,
        user_id: str,
        records: list[WeightRecord],
        generation: int | None = None,
    ) -> bool:
        """Cache records for a user.

        Args:
            user_id: User identifier.
            records: Freshly loaded records.
            generation: Generation read before the records were loaded.

        Returns:
            True if the records were stored.
        """
        if self._ttl <= 0:
            return False
        with self._lock:
            current = self._generation_locked(user_id)
            if generation is not None and current != generation:
                return False
            self._entries[user_id] = _CacheEntry(
                records=tuple(records), stored_at=self._clock()
            )
            return True

    def invalidate(self, user_id: str) -> None:
        """Drop the cached records of a user.

        Loads started before this call can no longer be cached.

        Args:
            user_id: User identifier.
        """
        with self._lock:
            self._entries.pop(user_id, None)
            self._generations[user_id] = self._generations.get(user_id, 0) + 1

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()
            self._epoch += 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
