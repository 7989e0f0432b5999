import pytest
import yaml

from peercache.config import Config, PretaskConfig, ServerConfig, load_config

FULL = """\
server:
  max_cache_bytes: 2048
  base_path: /_gocache/
  replicas: 50
  default_group: scores
  register_center: http://localhost:8000/register
preTask:
  data_type: json
  file_path: ./data.json
  dsn: db-dsn
"""


def test_load_full_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(FULL)
    config = load_config(path)
    assert config == Config(
        server=ServerConfig(
            max_cache_bytes=2048,
            base_path="/_gocache/",
            replicas=50,
            default_group="scores",
            register_center="http://localhost:8000/register",
        ),
        pre_task=PretaskConfig(data_type="json", file_path="./data.json", dsn="db-dsn"),
    )


def test_accepts_string_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(FULL)
    assert load_config(str(path)).server.replicas == 50


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config(path) == Config()


def test_missing_keys_keep_defaults_and_unknown_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  replicas: 3\n  extra: 1\nother: true\n")
    config = load_config(path)
    assert config.server.replicas == 3
    assert config.server.base_path == ""
    assert config.pre_task == PretaskConfig()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.yaml")


def test_malformed_yaml_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server: [unclosed\n")
    with pytest.raises(yaml.YAMLError):
        load_config(path)


def test_wrong_type_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  replicas: many\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_non_mapping_root_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(path)