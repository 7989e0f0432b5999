"""An immutable view over a cached byte value."""

from __future__ import annotations


class ByteView:
    """Read-only bytes held in the cache; its length is its cache cost."""

    __slots__ = ("_data",)

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytes(data)

    def __len__(self) -> int:
        return len(self._data)

    def byte_slice(self) -> bytes:
        """Return a copy of the held bytes."""
        return bytes(self._data)

    def __bytes__(self) -> bytes:
        return self.byte_slice()

    def __str__(self) -> str:
        return self._data.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"ByteView({self._data!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ByteView):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data)