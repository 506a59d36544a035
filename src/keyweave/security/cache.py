"""Bounded in-memory cache of recovered plaintexts.

Entries expire after ``ttl_seconds`` (0 disables expiry) and the least
recently used entry is evicted once ``capacity`` is reached. A capacity of
0 disables the cache: ``put`` is a no-op and ``get`` always misses.
"""
from __future__ import annotations

from collections import OrderedDict
import threading
import time
from typing import Callable, Optional, Tuple


class PlaintextCache:
    def __init__(
        self,
        capacity: int = 1024,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[bytes, Tuple[bytes, Optional[float]]]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.capacity > 0

    def get(self, key: bytes) -> Optional[bytes]:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def put(self, key: bytes, value: bytes) -> None:
        if not self.enabled:
            return
        expires_at = self._clock() + self.ttl_seconds if self.ttl_seconds else None
        with self._lock:
            # last writer wins; the value for a given key never changes
            self._entries[key] = (value, expires_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        """Drop every cached plaintext."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
