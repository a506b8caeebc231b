"""In-process result cache with per-entry expiry."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from fxconv.lib.config import DEFAULT_CACHE_TTL_HOURS

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cached payload with its absolute expiry instant (epoch seconds)."""

    data: Any
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Whether the entry's expiry has passed."""
        return (time.time() if now is None else now) > self.expires_at


class ResultCache:
    """Flat key-value cache used to memoize upstream rate snapshots.

    Features:
    - Per-entry TTL with a configurable default (1 hour)
    - Lazy expiry: an expired entry is evicted when read through get()
    - Stale reads on request, for fallback when the provider is down
    """

    def __init__(self, default_ttl_hours: float = DEFAULT_CACHE_TTL_HOURS):
        """
        Initialize result cache.

        Args:
            default_ttl_hours: TTL applied when set() gets no override
        """
        self.default_ttl_hours = default_ttl_hours
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, key: str, check_expiry: bool = True) -> Optional[Any]:
        """
        Retrieve a cached value.

        Args:
            key: Cache key
            check_expiry: When False, return the value even if it has expired

        Returns:
            Cached value, or None on miss/expiry
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if check_expiry and entry.is_expired():
                del self._entries[key]
                logger.debug(f"Cache entry expired: {key}")
                return None

            return entry.data

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Entry for a key without checking or evicting on expiry."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: Any, ttl_hours: Optional[float] = None) -> None:
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl_hours: TTL override in hours (default: cache default)
        """
        ttl = self.default_ttl_hours if ttl_hours is None else ttl_hours
        with self._lock:
            self._entries[key] = CacheEntry(data=value, expires_at=time.time() + ttl * 3600)

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns False if it was not cached."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def cleanup_expired(self, keep: Iterable[str] = ()) -> int:
        """
        Evict all expired entries.

        Args:
            keep: Keys to retain even when expired (stale fallbacks)

        Returns:
            Number of entries removed
        """
        retained = set(keep)
        now = time.time()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if entry.is_expired(now) and key not in retained
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} entries")
        return len(expired)

    def size(self) -> int:
        """Number of stored entries, expired or not."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
