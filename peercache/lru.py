"""A size-bounded LRU cache whose values report their own length."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Callable, Optional

EvictionCallback = Callable[[str, Any], None]


def _key_size(key: str) -> int:
    return len(key.encode("utf-8"))


class LRUCache:
    """LRU cache limited by the byte length of keys plus ``len(value)``.

    Values may be any object supporting ``len()``. A ``max_bytes`` of zero or
    less means the cache never evicts. Not thread-safe on its own.
    """

    def __init__(self, max_bytes: int = 0, on_evicted: Optional[EvictionCallback] = None) -> None:
        self.max_bytes = max_bytes
        self.on_evicted = on_evicted
        self._entries: OrderedDict[str, Any] = OrderedDict()
        self._n_bytes = 0

    def add(self, key: str, value: Any) -> None:
        """Insert or update ``key``, marking it most recently used. Empty keys are ignored."""
        if not key:
            return
        if key in self._entries:
            # The byte count keeps the size recorded when the key was first added.
            self._entries[key] = value
            self._entries.move_to_end(key)
        else:
            self._entries[key] = value
            self._n_bytes += _key_size(key) + len(value)
        while self._entries and 0 < self.max_bytes < self._n_bytes:
            self.remove_oldest()

    def remove_oldest(self) -> None:
        """Evict the least recently used entry, if there is one."""
        if not self._entries:
            return
        key, value = self._entries.popitem(last=False)
        self._n_bytes = max(0, self._n_bytes - (_key_size(key) + len(value)))
        if self.on_evicted is not None:
            self.on_evicted(key, value)

    def get(self, key: str) -> Optional[Any]:
        """Return the value for ``key`` (marking it recently used), or None if absent."""
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)