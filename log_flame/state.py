"""
Last-used pattern defaults, kept between runs.

Stored as a small JSON file under XDG_DATA_HOME/log-flame/ unless
LOG_FLAME_STATE_FILE points somewhere else. The file is a convenience
only: reading a missing or corrupt file yields an empty state and write
failures are logged, never raised.
"""

import json
import os
from typing import Optional

import structlog

logger = structlog.get_logger()

SERVICE_NAME = "log-flame"
DATE_PATTERN_KEY = "date_pattern"
BLOCK_PATTERN_KEY = "block_pattern"


def state_path() -> str:
    override = os.environ.get("LOG_FLAME_STATE_FILE")
    if override:
        return os.path.expanduser(override)
    xdg = os.environ.get("XDG_DATA_HOME", os.path.expanduser("~/.local/share"))
    return os.path.join(xdg, SERVICE_NAME, "state.json")


def load_state() -> dict:
    path = state_path()
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.warning("state_unreadable", path=path, error=str(exc))
        return {}
    return data if isinstance(data, dict) else {}


def get_stored(key: str) -> Optional[str]:
    value = load_state().get(key)
    return value if isinstance(value, str) else None


def store(key: str, value: str) -> None:
    path = state_path()
    state = load_state()
    state[key] = value
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w") as f:
            json.dump(state, f, indent=2)
    except OSError as exc:
        logger.warning("state_not_saved", path=path, error=str(exc))
