"""
User configuration file support.

Reads/writes ``~/.speedbench/config.json``.  Command-line flags override
whatever is stored here.

Supported keys::

    servers = [12345, 678]   # preferred server IDs (empty = nearest)
    probe_timeout = 60.0     # seconds before a probe is abandoned
    concurrency = 1          # targets benchmarked in parallel
    connections = 4          # concurrent transfer connections
    ping_count = 10
    download_duration = 10.0
    upload_duration = 10.0
    saving_mode = false
    log_file = ""            # write the report here instead of the console
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from .constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_CONNECTIONS,
    DEFAULT_DURATION,
    DEFAULT_PING_COUNT,
    DEFAULT_PROBE_TIMEOUT,
)

logger = logging.getLogger(__name__)

_CONFIG_DIR = os.path.join(Path.home(), ".speedbench")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(_CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "servers": [],
    "probe_timeout": DEFAULT_PROBE_TIMEOUT,
    "concurrency": DEFAULT_CONCURRENCY,
    "connections": DEFAULT_CONNECTIONS,
    "ping_count": DEFAULT_PING_COUNT,
    "download_duration": DEFAULT_DURATION,
    "upload_duration": DEFAULT_DURATION,
    "saving_mode": False,
    "log_file": "",
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def _server_ids(value: Any, path: str) -> List[int]:
    """Coerce the ``servers`` entry to a list of integer ids."""
    if not isinstance(value, list):
        logger.warning("Ignoring servers in %s: expected a list, got %r", path, value)
        return []
    ids: List[int] = []
    for item in value:
        try:
            if isinstance(item, bool):
                raise ValueError
            ids.append(int(item))
        except (TypeError, ValueError):
            logger.warning("Ignoring server id %r in %s: not an integer", item, path)
    return ids


def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return config

    if isinstance(user, dict):
        config.update({k: v for k, v in user.items() if k in DEFAULTS})
        if "servers" in user:
            config["servers"] = _server_ids(user["servers"], path)
    else:
        logger.warning("Ignoring config %s: top level is not an object", path)

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path
