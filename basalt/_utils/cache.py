"""
In-memory cache with per-entry expiry.

Entries are only masked once expired; ``purge_expired`` drops them from
the backing store.
"""

import math
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class MemoryCache:
    """
    Key/value store whose entries expire after a TTL in seconds.

    Example:
        >>> cache = MemoryCache()
        >>> cache.set("greeting", "Hello", ttl=300)
        >>> cache.get("greeting")
        'Hello'
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the value for ``key``, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expire_at = entry
        if self._clock() > expire_at:
            return None
        return value

    def set(self, key: Hashable, value: Any, ttl: float = math.inf) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        self._entries[key] = (value, self._clock() + ttl)

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        expired = [key for key, (_, expire_at) in self._entries.items() if now > expire_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
