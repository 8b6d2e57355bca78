"""
In-memory TTL cache for upstream responses.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A stored value and the moment it was stored."""

    value: T
    stored_at: float


class TTLCache(Generic[T]):
    """Key/value store whose entries expire ``ttl_seconds`` after being set.

    Expired entries are dropped lazily on lookup or in bulk by
    ``purge_expired``. There is no size bound: the key space is the small set
    of symbols and queries the dashboard asks for.
    """

    def __init__(self, ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def purge_expired(self) -> int:
        """Remove every stale entry and return how many were dropped."""
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if now - entry.stored_at > self.ttl_seconds]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
