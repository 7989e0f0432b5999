"""A thread-safe LRU cache of string keys and string values, bounded by size."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable, Optional

EvictionCallback = Callable[[str, str], None]


def _size(text: str) -> int:
    return len(text.encode("utf-8"))


class StringLRUCache:
    """LRU cache holding strings, limited by the byte length of keys plus values.

    A ``max_bytes`` of zero or less means the cache never evicts.
    Empty keys and empty values are ignored by :meth:`add`.
    """

    def __init__(self, max_bytes: int = 0, on_evicted: Optional[EvictionCallback] = None) -> None:
        self.max_bytes = max_bytes
        self.on_evicted = on_evicted
        self._entries: OrderedDict[str, str] = OrderedDict()
        self._n_bytes = 0
        self._lock = threading.RLock()

    def add(self, key: str, value: str) -> None:
        """Insert or update ``key``, marking it most recently used."""
        if not key or not value:
            return
        with self._lock:
            if key in self._entries:
                # The byte count keeps the size recorded when the key was first added.
                self._entries[key] = value
                self._entries.move_to_end(key)
            else:
                self._entries[key] = value
                self._n_bytes += _size(key) + _size(value)
            while self._entries and 0 < self.max_bytes < self._n_bytes:
                self.remove_oldest()

    def remove_oldest(self) -> None:
        """Evict the least recently used entry, if there is one."""
        with self._lock:
            if not self._entries:
                return
            key, value = self._entries.popitem(last=False)
            self._n_bytes = max(0, self._n_bytes - (_size(key) + _size(value)))
            if self.on_evicted is not None:
                self.on_evicted(key, value)

    def get(self, key: str) -> str:
        """Return the value for ``key`` (marking it recently used), or "" if absent."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
            return ""