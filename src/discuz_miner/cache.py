"""
Staleness-aware LRU caches.

Entries never expire on their own. ``get`` returns whatever is stored,
stale or not, and the caller decides whether to serve it, refresh it, or
both (stale-while-revalidate). Only capacity evicts.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

from .config import Settings

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the clock reading at which it was stored."""
    value: T
    stored_at: float


def is_stale(entry: CacheEntry, window: float, now: float) -> bool:
    """True once ``entry`` is at least ``window`` seconds old."""
    return now - entry.stored_at >= window


class StalenessCache(Generic[T]):
    """
    Bounded LRU cache that reports, but does not act on, staleness.

    Usage:
        cache = StalenessCache(capacity=20, window=45.0)
        cache.put(url, listing)
        entry = cache.get(url)
        if entry is not None and not cache.is_stale(entry):
            return entry.value
    """

    def __init__(self, capacity: int, window: float,
                 clock: Callable[[], float] = time.monotonic):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.window = window
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry[T]]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: Hashable, value: T) -> CacheEntry[T]:
        """Store ``value``, replacing any previous entry for ``key``."""
        entry = CacheEntry(value=value, stored_at=self._clock())
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)
        return entry

    def is_stale(self, entry: CacheEntry[T]) -> bool:
        return is_stale(entry, self.window, self._clock())

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PageCaches:
    """The three caches a ``ForumService`` keeps, sized from ``Settings``."""

    def __init__(self, settings: Optional[Settings] = None,
                 clock: Callable[[], float] = time.monotonic):
        settings = settings or Settings()
        self.listings = StalenessCache(settings.listing_cache_size, settings.listing_ttl, clock)
        self.threads = StalenessCache(settings.thread_cache_size, settings.thread_ttl, clock)
        # Decoded documents, so a QUICK parse can be followed by a FULL parse
        # of the same page without a second request
        self.documents = StalenessCache(settings.document_cache_size, settings.document_ttl, clock)

    def clear(self) -> None:
        self.listings.clear()
        self.threads.clear()
        self.documents.clear()
