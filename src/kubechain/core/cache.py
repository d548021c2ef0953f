# src/kubechain/core/cache.py
"""
A small thread-safe key/value cache whose entries expire a fixed duration
after they were written.

The cache is shared by concurrent ownership resolutions and survives across
discovery cycles; expiry is driven only by the clock, never by cycle
boundaries. The lock guards dictionary access only and is never held while
a caller performs I/O.
"""

import threading
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """Key/value store with per-entry time-to-live."""

    def __init__(self, ttl: timedelta, clock: Callable[[], float] = time.monotonic):
        if ttl.total_seconds() <= 0:
            raise ValueError("Cache TTL must be positive.")
        self.ttl = ttl
        self._clock = clock
        # key -> (expires_at, value)
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Returns the value stored under key, or None if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl: Optional[timedelta] = None):
        """Stores value under key; ttl overrides the cache default for this entry."""
        ttl = self.ttl if ttl is None else ttl
        if ttl.total_seconds() <= 0:
            raise ValueError("Cache TTL must be positive.")
        lifetime = ttl.total_seconds()
        expires_at = self._clock() + lifetime
        with self._lock:
            self._entries[key] = (expires_at, value)

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Drops every expired entry and returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
