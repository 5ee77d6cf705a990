"""Load optional tracker configuration from `.task_tracker/config.yaml`."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from .constants import (
    CONFIG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NOTIFICATION_HISTORY,
    LOG_LEVEL_ENV_VAR,
    STATE_DIR_NAME,
    STORE_FILE,
    TASKS_KEY,
)
from .io_utils import read_document

VALID_BACKENDS = {"file", "memory"}


def load_tracker_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional tracker config file.

    Args:
        project_dir: Directory holding the `.task_tracker/` state directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    project_dir = project_dir.resolve()
    path = project_dir / STATE_DIR_NAME / CONFIG_FILE
    data, err = read_document(path, {})
    if not path.exists():
        return {}, None
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def get_storage_config(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve the storage block with defaults applied.

    Returns:
        A mapping with `backend`, `file` and `key`.
    """
    backend = _get_nested(config, "storage", "backend")
    file_name = _get_nested(config, "storage", "file")
    key = _get_nested(config, "storage", "key")
    return {
        "backend": backend if backend in VALID_BACKENDS else "file",
        "file": file_name if isinstance(file_name, str) and file_name else STORE_FILE,
        "key": key if isinstance(key, str) and key else TASKS_KEY,
    }


def get_notifications_config(config: dict[str, Any]) -> dict[str, Any]:
    enabled = _get_nested(config, "notifications", "enabled")
    history = _get_nested(config, "notifications", "history")
    return {
        "enabled": enabled if isinstance(enabled, bool) else True,
        "history": history if isinstance(history, int) and history > 0 else DEFAULT_NOTIFICATION_HISTORY,
    }


def get_logging_config(config: dict[str, Any]) -> dict[str, Any]:
    """Resolve logging settings; the environment variable wins over the file."""
    level = os.getenv(LOG_LEVEL_ENV_VAR) or _get_nested(config, "logging", "level")
    log_file = _get_nested(config, "logging", "file")
    return {
        "level": str(level).upper() if level else DEFAULT_LOG_LEVEL,
        "file": log_file if isinstance(log_file, str) and log_file else None,
    }
