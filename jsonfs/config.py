# python
"""
jsonfs/config.py
Default configuration and environment overrides (read after .env is loaded).
"""
import copy
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .env import load_env

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "server": {"host": "127.0.0.1", "port": 2323, "banner": "jsonfs shell"},
    "paths": {
        "snapshot": "fs.json",
        "logs_dir": "logs",
        "tty_dir": "logs/tty",
        "events_file": "logs/events.jsonl",
    },
    "limits": {
        "max_objects": 65536,
        "max_file_size": 16 * 1024 * 1024,
        "max_dir_entries": 4096,
        "max_output_bytes": 16384,
    },
    "log_level": "INFO",
    "hostname": "jsonfs",
}

# env var -> (section, key, type)
_ENV_OVERRIDES = {
    "JSONFS_SNAPSHOT": ("paths", "snapshot", str),
    "JSONFS_HOST": ("server", "host", str),
    "JSONFS_PORT": ("server", "port", int),
    "JSONFS_MAX_OBJECTS": ("limits", "max_objects", int),
    "JSONFS_MAX_FILE_SIZE": ("limits", "max_file_size", int),
    "JSONFS_MAX_DIR_ENTRIES": ("limits", "max_dir_entries", int),
}


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Return DEFAULT_CONFIG merged with JSONFS_* environment variables and then
    with `overrides` (merged one section deep).
    """
    load_env()
    config = copy.deepcopy(DEFAULT_CONFIG)
    for var, (section, key, cast) in _ENV_OVERRIDES.items():
        raw = os.getenv(var)
        if raw is None or raw == "":
            continue
        try:
            config[section][key] = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: expected %s", var, raw, cast.__name__)
    level = os.getenv("JSONFS_LOG_LEVEL")
    if level:
        config["log_level"] = level.upper()
    for section, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(config.get(section), dict):
            config[section] = {**config[section], **value}
        else:
            config[section] = value
    return config


@dataclass(frozen=True)
class Limits:
    """Capacity ceilings for a tree that lives entirely in memory."""

    max_objects: int = DEFAULT_CONFIG["limits"]["max_objects"]
    max_file_size: int = DEFAULT_CONFIG["limits"]["max_file_size"]
    max_dir_entries: int = DEFAULT_CONFIG["limits"]["max_dir_entries"]

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "Limits":
        limits = config.get("limits", {})
        return cls(
            max_objects=int(limits.get("max_objects", cls.max_objects)),
            max_file_size=int(limits.get("max_file_size", cls.max_file_size)),
            max_dir_entries=int(limits.get("max_dir_entries", cls.max_dir_entries)),
        )
