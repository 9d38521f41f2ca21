"""
In-memory TTL cache for marketplace search results.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable

from .models import Listing

logger = logging.getLogger(__name__)


class ProductCache:
    """
    Search results keyed by search term, expiring ``ttl_seconds`` after insert.

    Expired entries are dropped when read, and every ``set`` sweeps out
    whatever else has expired so terms that are never asked for again do
    not pile up. A lock keeps the store consistent when several requests
    share one cache.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: dict[str, tuple[float, tuple[Listing, ...]]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(term: str) -> str:
        return f"product:{term}"

    def get(self, term: str) -> tuple[Listing, ...] | None:
        """
        Return cached listings for ``term``, or None if absent or expired.

        Listings come back as a tuple holding the stored sequence in its
        original order, so callers cannot mutate the cached entry.
        """
        key = self._key(term)
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, listings = entry
            if expires_at <= self._clock():
                self._store.pop(key, None)
                logger.debug(f"Cache entry expired for {term!r}")
                return None
            return listings

    def set(self, term: str, listings: Iterable[Listing]) -> None:
        """Store listings for ``term``, replacing any previous entry."""
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            self._store[self._key(term)] = (now + self.ttl_seconds, tuple(listings))

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [key for key, (expires_at, _) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
