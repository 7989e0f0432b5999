"""Loaders that create groups and preload their caches at start-up."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from .byteview import ByteView
from .group import Group, create_group

if TYPE_CHECKING:
    from .config import Config


class OwnershipChecker(Protocol):
    """Tells whether this node owns a key."""

    def is_self(self, key: str) -> bool:
        """Return True if this node owns ``key``."""


class DataLoader(Protocol):
    """Creates the groups of a node and fills them with initial data."""

    def load(self, config: "Config", peer: OwnershipChecker) -> list[Group]:
        """Return the groups created."""


@dataclass
class GroupData:
    """One group and the values to preload into it."""

    group: str = ""
    data: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, item: Any) -> "GroupData":
        """Build from a decoded JSON object, checking the field types."""
        if item is None:
            return cls()
        if not isinstance(item, dict):
            raise ValueError(f"group entry must be an object, got {item!r}")
        name = item.get("group")
        if name is None:
            name = ""
        if not isinstance(name, str):
            raise ValueError(f"group name must be a string, got {name!r}")
        data = item.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
            raise ValueError(f"data of group {name!r} must map strings to strings")
        return cls(group=name, data=dict(data))


class JsonLoader:
    """Reads groups from the JSON file named by ``pre_task.file_path``.

    Only the keys this node owns are placed into the local cache.
    """

    def load(self, config: "Config", peer: OwnershipChecker) -> list[Group]:
        text = Path(config.pre_task.file_path).read_text(encoding="utf-8")
        decoded = json.loads(text)
        if decoded is None:
            decoded = []
        if not isinstance(decoded, list):
            raise ValueError("preload data must be a JSON array of groups")

        groups = []
        for entry in map(GroupData.from_json, decoded):
            group = create_group(config, entry)
            groups.append(group)
            for key, value in entry.data.items():
                if peer.is_self(key):
                    group.populate_cache(key, ByteView(value.encode("utf-8")))
        return groups


class FileLoader:
    """Loader for plain files; creates no groups."""

    def load(self, config: "Config", peer: OwnershipChecker) -> list[Group]:
        return []


class DbLoader:
    """Loader for a database; creates no groups."""

    def load(self, config: "Config", peer: OwnershipChecker) -> list[Group]:
        return []


_LOADERS = {
    "json": JsonLoader,
    "file": FileLoader,
    "db": DbLoader,
}


def create_loader(config: "Config") -> DataLoader:
    """Return the loader for ``config.pre_task.data_type``; ValueError if unknown."""
    data_type = config.pre_task.data_type
    try:
        return _LOADERS[data_type]()
    except KeyError:
        raise ValueError(f"unsupported loader, {data_type}") from None


def run_pretask(config: "Config", peer: OwnershipChecker) -> list[Group]:
    """Create the configured loader and return the groups it loads."""
    return create_loader(config).load(config, peer)