"""Server configuration read from a YAML file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import yaml


def _as_int(section: dict, key: str) -> int:
    value = section.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


def _as_str(section: dict, key: str) -> str:
    value = section.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"{key} must be a scalar, got {value!r}")
    return str(value)


def _as_mapping(value: Any, name: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping")
    return value


@dataclass
class PretaskConfig:
    """Where preloaded data comes from."""

    data_type: str = ""
    file_path: str = ""
    dsn: str = ""


@dataclass
class ServerConfig:
    """Settings of a cache node."""

    max_cache_bytes: int = 0
    base_path: str = ""
    replicas: int = 0
    default_group: str = ""
    register_center: str = ""


@dataclass
class Config:
    """Whole configuration file."""

    server: ServerConfig = field(default_factory=ServerConfig)
    pre_task: PretaskConfig = field(default_factory=PretaskConfig)


def load_config(path: Union[str, Path]) -> Config:
    """Read and parse the YAML configuration at ``path``.

    Missing keys keep their zero defaults; unknown keys are ignored.
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    root = _as_mapping(data, "configuration")
    server = _as_mapping(root.get("server"), "server")
    pre_task = _as_mapping(root.get("preTask"), "preTask")
    return Config(
        server=ServerConfig(
            max_cache_bytes=_as_int(server, "max_cache_bytes"),
            base_path=_as_str(server, "base_path"),
            replicas=_as_int(server, "replicas"),
            default_group=_as_str(server, "default_group"),
            register_center=_as_str(server, "register_center"),
        ),
        pre_task=PretaskConfig(
            data_type=_as_str(pre_task, "data_type"),
            file_path=_as_str(pre_task, "file_path"),
            dsn=_as_str(pre_task, "dsn"),
        ),
    )