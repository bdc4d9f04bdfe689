# python
"""
tests/test_config.py
Unit tests for environment-driven configuration and Limits.
"""
from jsonfs.config import DEFAULT_CONFIG, Limits, load_config


def test_defaults_are_copied() -> None:
    config = load_config()
    config["limits"]["max_objects"] = 1
    assert DEFAULT_CONFIG["limits"]["max_objects"] != 1


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("JSONFS_MAX_OBJECTS", "12")
    monkeypatch.setenv("JSONFS_SNAPSHOT", "/tmp/other.json")
    monkeypatch.setenv("JSONFS_PORT", "not-a-port")
    monkeypatch.setenv("JSONFS_LOG_LEVEL", "debug")
    config = load_config()
    assert config["limits"]["max_objects"] == 12
    assert config["paths"]["snapshot"] == "/tmp/other.json"
    assert config["server"]["port"] == DEFAULT_CONFIG["server"]["port"]
    assert config["log_level"] == "DEBUG"


def test_overrides_merge_one_level(monkeypatch) -> None:
    monkeypatch.delenv("JSONFS_MAX_DIR_ENTRIES", raising=False)
    config = load_config({"limits": {"max_file_size": 10}})
    assert config["limits"]["max_file_size"] == 10
    assert config["limits"]["max_dir_entries"] == DEFAULT_CONFIG["limits"]["max_dir_entries"]


def test_limits_from_config() -> None:
    limits = Limits.from_config({"limits": {"max_objects": 5, "max_file_size": 6}})
    assert limits == Limits(max_objects=5, max_file_size=6)
    assert Limits.from_config({}) == Limits()
