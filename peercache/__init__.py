"""Distributed in-memory cache: LRU caches, consistent hashing, request coalescing, HTTP peers and a register center."""

__version__ = "0.1.0"
__all__ = [
    "byteview",
    "config",
    "consistenthash",
    "group",
    "http_pool",
    "loaders",
    "lru",
    "register",
    "server",
    "singleflight",
    "string_lru",
]