import json

import pytest

from peercache.byteview import ByteView
from peercache.config import Config, PretaskConfig, ServerConfig
from peercache.group import get_group
from peercache.http_pool import HTTPPool
from peercache.loaders import (
    DbLoader,
    FileLoader,
    GroupData,
    JsonLoader,
    create_loader,
    run_pretask,
)


class _Owner:
    def __init__(self, owned):
        self.owned = owned

    def is_self(self, key):
        return key in self.owned


class _Everything:
    def is_self(self, key):
        return True


def _config(tmp_path, payload, data_type="json"):
    path = tmp_path / "data.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return Config(
        server=ServerConfig(max_cache_bytes=2 << 10, replicas=3),
        pre_task=PretaskConfig(data_type=data_type, file_path=str(path)),
    )


def test_json_loader_preloads_owned_keys(tmp_path):
    config = _config(tmp_path, [{"group": "loaders-owned", "data": {"Tom": "630", "Jack": "589"}}])
    groups = JsonLoader().load(config, _Everything())
    assert [g.name for g in groups] == ["loaders-owned"]
    assert get_group("loaders-owned") is groups[0]
    assert groups[0].get("Tom") == ByteView(b"630")
    assert groups[0].get("Jack") == ByteView(b"589")


def test_json_loader_skips_keys_of_other_nodes(tmp_path):
    config = _config(tmp_path, [{"group": "loaders-partial", "data": {"Tom": "630", "Jack": "589"}}])
    (group,) = JsonLoader().load(config, _Owner({"Tom"}))
    assert group.get("Tom") == ByteView(b"630")
    with pytest.raises(KeyError):
        group.get("Jack")


def test_json_loader_with_pool_owning_everything(tmp_path):
    config = _config(tmp_path, [{"group": "loaders-pool", "data": {"Sam": "567"}}])
    pool = HTTPPool("http://localhost:8001", config, auto_register=False)
    pool.set(config, "http://localhost:8001")
    (group,) = JsonLoader().load(config, pool)
    assert group.get("Sam").byte_slice() == b"567"


def test_json_loader_several_groups(tmp_path):
    payload = [
        {"group": "loaders-a", "data": {"k": "1"}},
        {"group": "loaders-b", "data": {"k": "2"}},
    ]
    groups = JsonLoader().load(_config(tmp_path, payload), _Everything())
    assert [g.name for g in groups] == ["loaders-a", "loaders-b"]
    assert [str(g.get("k")) for g in groups] == ["1", "2"]


def test_json_loader_invalid_json(tmp_path):
    with pytest.raises(ValueError):
        JsonLoader().load(_config(tmp_path, "{not json"), _Everything())


def test_json_loader_rejects_non_array(tmp_path):
    with pytest.raises(ValueError):
        JsonLoader().load(_config(tmp_path, {"group": "x"}), _Everything())


def test_json_loader_rejects_non_string_values(tmp_path):
    with pytest.raises(ValueError):
        JsonLoader().load(_config(tmp_path, [{"group": "loaders-bad", "data": {"k": 1}}]), _Everything())


def test_json_loader_missing_file(tmp_path):
    config = Config(pre_task=PretaskConfig(data_type="json", file_path=str(tmp_path / "absent.json")))
    with pytest.raises(FileNotFoundError):
        JsonLoader().load(config, _Everything())


def test_group_data_from_json_defaults():
    assert GroupData.from_json({}) == GroupData(group="", data={})
    assert GroupData.from_json({"group": "g", "data": {"a": "b"}}) == GroupData("g", {"a": "b"})


def test_file_and_db_loaders_create_nothing(tmp_path):
    config = _config(tmp_path, [])
    assert FileLoader().load(config, _Everything()) == []
    assert DbLoader().load(config, _Everything()) == []


@pytest.mark.parametrize(
    "data_type, expected",
    [("json", JsonLoader), ("file", FileLoader), ("db", DbLoader)],
)
def test_create_loader(data_type, expected):
    config = Config(pre_task=PretaskConfig(data_type=data_type))
    assert type(create_loader(config)) is expected


def test_create_loader_unsupported():
    with pytest.raises(ValueError, match="unsupported loader, xml"):
        create_loader(Config(pre_task=PretaskConfig(data_type="xml")))


def test_run_pretask_json(tmp_path):
    config = _config(tmp_path, [{"group": "loaders-pretask", "data": {"Tom": "630"}}])
    groups = run_pretask(config, _Everything())
    assert [g.name for g in groups] == ["loaders-pretask"]
    assert get_group("loaders-pretask").get("Tom") == ByteView(b"630")


def test_run_pretask_file_loader(tmp_path):
    assert run_pretask(_config(tmp_path, [], data_type="file"), _Everything()) == []


def test_run_pretask_unsupported(tmp_path):
    with pytest.raises(ValueError):
        run_pretask(_config(tmp_path, [], data_type=""), _Everything())