"""Consistent hashing ring with virtual nodes."""

from __future__ import annotations

import bisect
import zlib
from typing import Callable, Optional

HashFunc = Callable[[bytes], int]


class HashRing:
    """Maps keys to nodes; each node is placed on the ring ``replicas`` times."""

    def __init__(self, replicas: int, hash_func: Optional[HashFunc] = None) -> None:
        self.replicas = replicas
        self._hash = hash_func if hash_func is not None else zlib.crc32
        self._ring: list[int] = []
        self._nodes: dict[int, str] = {}

    def add(self, *args: str) -> None:
        """Place each given node on the ring."""
        for node in args:
            for replica in range(self.replicas):
                point = self._hash(f"{node}{replica}".encode("utf-8"))
                bisect.insort(self._ring, point)
                self._nodes[point] = node

    def get(self, key: str) -> str:
        """Return the node responsible for ``key``, or "" for an empty key.

        Raises LookupError if the ring holds no nodes.
        """
        if not key:
            return ""
        if not self._ring:
            raise LookupError("hash ring is empty")
        point = self._hash(key.encode("utf-8"))
        index = bisect.bisect_left(self._ring, point) % len(self._ring)
        return self._nodes[self._ring[index]]