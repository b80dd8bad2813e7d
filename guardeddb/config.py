"""
Configuration loading for GuardedDB.

Configuration is read once, when a handler is built. It comes from three
layers, later ones winning: built-in defaults, an optional JSON file, and
keyword overrides.
"""

import copy
import json
import logging
import os
from typing import Dict, Any, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GUARDEDDB_CONFIG"

DEFAULT_CONFIG: Dict[str, Any] = {
    "debug": False,
    "log_file": os.path.join("logs", "guardeddb.log"),
    "allowed_tables": [],
    "allowed_columns": [],
    "allowed_functions": [],
    "db": {
        "driver": "mysql",
        "host": "localhost",
        "port": 3306,
    },
}

_LIST_KEYS = ("allowed_tables", "allowed_columns", "allowed_functions")


def _read_config_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def _merge(conf: Dict[str, Any], layer: Dict[str, Any]) -> None:
    for key, value in layer.items():
        if value is None:
            continue
        if key == "db":
            if not isinstance(value, dict):
                raise ConfigurationError("'db' must be a mapping of connection parameters")
            conf["db"].update(value)
        else:
            conf[key] = value


def _validate(conf: Dict[str, Any]) -> None:
    for key in _LIST_KEYS:
        value = conf[key]
        if not isinstance(value, (list, tuple, set, frozenset)) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(f"'{key}' must be a list of names")
    if not isinstance(conf["debug"], bool):
        raise ConfigurationError("'debug' must be true or false")
    if not conf["log_file"] or not isinstance(conf["log_file"], str):
        raise ConfigurationError("'log_file' must be a non-empty path")


def load_config(config_path: Optional[str] = None, **overrides) -> Dict[str, Any]:
    """
    Build the handler configuration.

    Args:
        config_path: Optional JSON config file. Falls back to the
            ``GUARDEDDB_CONFIG`` environment variable.
        **overrides: Values applied last, e.g. ``debug=True`` or
            ``log_file="..."``. None values are ignored.

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing or unreadable, or a value
            has the wrong type
    """
    conf = copy.deepcopy(DEFAULT_CONFIG)

    path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if path:
        _merge(conf, _read_config_file(path))
        logger.debug(f"Loaded configuration from {path}")

    _merge(conf, overrides)
    _validate(conf)
    return conf
