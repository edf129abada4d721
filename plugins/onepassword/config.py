"""
Plugin configuration, read from ~/.config/hamr/plugins/onepassword.json.

    {
        "max_entries": 10,     # most items listed per query
        "op_path": "op",       # 1Password CLI, looked up in PATH
        "prefix": ""           # only answer queries starting with this
    }

Every key is optional. A broken file falls back to the defaults.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from op_cli import OP_DEFAULT

logger = logging.getLogger(__name__)

CONFIG_PATH = (
    Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    / "hamr"
    / "plugins"
    / "onepassword.json"
)


@dataclass(frozen=True)
class Config:
    max_entries: int = 10
    op_path: str = OP_DEFAULT
    prefix: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        defaults = cls()
        max_entries = data.get("max_entries", defaults.max_entries)
        if (
            not isinstance(max_entries, int)
            or isinstance(max_entries, bool)
            or max_entries < 0
        ):
            logger.warning("max_entries must be a non-negative integer, using default")
            max_entries = defaults.max_entries

        op_path = data.get("op_path", defaults.op_path)
        if not isinstance(op_path, str) or not op_path:
            logger.warning("op_path must be a non-empty string, using default")
            op_path = defaults.op_path

        prefix = data.get("prefix", defaults.prefix)
        if not isinstance(prefix, str):
            logger.warning("prefix must be a string, using default")
            prefix = defaults.prefix

        return cls(max_entries=max_entries, op_path=op_path, prefix=prefix)


def load_config(path: Path = CONFIG_PATH) -> Config:
    """Load configuration from file."""
    if not path.exists():
        return Config()
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Error reading %s: %s", path, e)
        return Config()
    if not isinstance(data, dict):
        logger.warning("Error reading %s: not a JSON object", path)
        return Config()
    return Config.from_dict(data)
