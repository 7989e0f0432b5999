"""Named cache groups that load missing values from peers or a local getter."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol

from .byteview import ByteView
from .lru import LRUCache
from .singleflight import SingleFlight

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

Getter = Callable[[str], bytes]

# Backing store consulted by groups built with create_group.
DB: dict[str, str] = {}


class PeerGetter(Protocol):
    """Fetches a value for a key of a named group from a remote node."""

    def get(self, group: str, key: str) -> bytes:
        """Return the bytes stored under ``key`` in ``group`` on the remote node."""


class PeerPicker(Protocol):
    """Chooses the node that owns a key."""

    def pick_peer(self, key: str) -> Optional[PeerGetter]:
        """Return the remote node owning ``key``, or None if it is this node."""


class _Cache:
    """Thread-safe wrapper around an LRU cache, created on first write."""

    def __init__(self, cache_bytes: int) -> None:
        self.cache_bytes = cache_bytes
        self._lock = threading.Lock()
        self._lru: Optional[LRUCache] = None

    def add(self, key: str, value: ByteView) -> None:
        with self._lock:
            if self._lru is None:
                self._lru = LRUCache(self.cache_bytes)
            self._lru.add(key, value)

    def get(self, key: str) -> Optional[ByteView]:
        with self._lock:
            if self._lru is None:
                return None
            return self._lru.get(key)


class Group:
    """A cache namespace with its own size limit and loader for missing keys."""

    def __init__(self, name: str, cache_bytes: int, getter: Optional[Getter]) -> None:
        if getter is None:
            raise ValueError("getter func nil")
        self.name = name
        self._getter = getter
        self._main_cache = _Cache(cache_bytes)
        self._peers: Optional[PeerPicker] = None
        self._loader = SingleFlight()

    def get(self, key: str) -> ByteView:
        """Return the value for ``key``, loading it if it is not cached."""
        if not key:
            raise ValueError("key can't be empty")
        cached = self._main_cache.get(key)
        if cached is not None and len(cached) != 0:
            return cached
        return self._load(key)

    def register_peers(self, peers: PeerPicker) -> None:
        """Attach the picker used to route keys to remote nodes; only once."""
        if self._peers is not None:
            raise RuntimeError("register_peers called more than once")
        self._peers = peers

    def _load(self, key: str) -> ByteView:
        return self._loader.do(key, lambda: self._load_once(key))

    def _load_once(self, key: str) -> ByteView:
        if self._peers is not None:
            peer = self._peers.pick_peer(key)
            if peer is not None:
                try:
                    return ByteView(peer.get(self.name, key))
                except Exception as exc:
                    logger.warning("Failed to get from peer: %s", exc)
        return self.load_locally(key)

    def load_locally(self, key: str) -> ByteView:
        """Fetch ``key`` through the group's getter and cache the result."""
        value = ByteView(self._getter(key))
        self.populate_cache(key, value)
        return value

    def populate_cache(self, key: str, value: ByteView) -> None:
        """Store ``value`` under ``key`` in this group's local cache."""
        self._main_cache.add(key, value)

    def __repr__(self) -> str:
        return f"Group({self.name!r})"


_registry_lock = threading.RLock()
_groups: dict[str, Group] = {}


def new_group(name: str, cache_bytes: int, getter: Optional[Getter]) -> Group:
    """Create a group and register it under ``name``, replacing any previous one."""
    group = Group(name, cache_bytes, getter)
    with _registry_lock:
        _groups[name] = group
    return group


def get_group(name: str) -> Optional[Group]:
    """Return the registered group called ``name``, or None."""
    with _registry_lock:
        return _groups.get(name)


def create_group(config: "Config", group_data: Any) -> Group:
    """Register a group named after ``group_data.group`` that loads from :data:`DB`."""

    def lookup(key: str) -> bytes:
        logger.info("[SlowDb] search key %s", key)
        if key in DB:
            return DB[key].encode("utf-8")
        raise KeyError(f"{key} not exists")

    return new_group(group_data.group, config.server.max_cache_bytes, lookup)