"""Generic TTL cache entry with double-checked refresh."""

import logging
import threading
import time
from typing import Callable, Dict, Generic, Optional, TypeVar

from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheEntry(Generic[T]):
    """
    A single cached value produced by a fetch function.

    Readers take the shared lock and return the value while it is fresh.
    On a miss the caller upgrades to the exclusive lock and checks freshness
    again, so of many concurrent callers only the first one to win the lock
    runs ``fetch``; the rest observe the value it stored.

    The exclusive lock is held while ``fetch`` runs. Readers arriving during
    a refresh wait for it instead of returning stale data.

    A failed fetch leaves the previous value in place and re-raises the
    error. There is no retry at this layer.
    """

    def __init__(
        self,
        fetch: Callable[[], T],
        ttl: Optional[float] = None,
        name: str = "entry",
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache entry.

        Args:
            fetch: Callable producing a fresh value
            ttl: Seconds a value stays fresh; None means it never expires
            name: Label used in log messages
            clock: Monotonic time source, replaceable in tests
        """
        self._fetch = fetch
        self._ttl = ttl
        self._name = name
        self._clock = clock
        self._lock = ReadWriteLock()
        self._value: Optional[T] = None
        self._captured_at: Optional[float] = None

        self._stats = {"hits": 0, "misses": 0, "fetches": 0, "errors": 0}
        self._stats_lock = threading.Lock()

    @property
    def ttl(self) -> Optional[float]:
        return self._ttl

    @property
    def captured_at(self) -> Optional[float]:
        """Clock reading of the last successful fetch, or None."""
        return self._captured_at

    def _is_fresh(self) -> bool:
        # Caller must hold either lock
        if self._captured_at is None:
            return False
        if self._ttl is None:
            return True
        return (self._clock() - self._captured_at) < self._ttl

    def is_fresh(self) -> bool:
        """Whether a get() right now would be served without fetching."""
        with self._lock.read_locked():
            return self._is_fresh()

    def get(self) -> T:
        """
        Return the cached value, fetching it first if missing or expired.

        Returns:
            The cached value

        Raises:
            Exception: Whatever ``fetch`` raised; the stale value is kept
        """
        with self._lock.read_locked():
            if self._is_fresh():
                self._record("hits")
                return self._value  # type: ignore[return-value]

        with self._lock.write_locked():
            # Another thread may have refreshed while we waited for the lock
            if self._is_fresh():
                self._record("hits")
                return self._value  # type: ignore[return-value]

            self._record("misses")
            self._record("fetches")
            logger.debug(f"Refreshing cache entry '{self._name}'")
            try:
                value = self._fetch()
            except Exception:
                self._record("errors")
                raise

            self._value = value
            self._captured_at = self._clock()
            return value

    def peek(self) -> Optional[T]:
        """Return the stored value without fetching, even if stale."""
        with self._lock.read_locked():
            return self._value

    def invalidate(self) -> None:
        """Mark the value stale so the next get() fetches again."""
        with self._lock.write_locked():
            self._captured_at = None
            logger.debug(f"Invalidated cache entry '{self._name}'")

    def clear(self) -> None:
        """Drop the stored value entirely."""
        with self._lock.write_locked():
            self._value = None
            self._captured_at = None

    def _record(self, counter: str) -> None:
        with self._stats_lock:
            self._stats[counter] += 1

    def get_stats(self) -> Dict[str, int]:
        """Return a copy of hit/miss/fetch counters."""
        with self._stats_lock:
            return dict(self._stats)
