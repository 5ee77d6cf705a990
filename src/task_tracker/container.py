"""Per-project wiring of config, storage backend, notifications and the task store."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .config import (
    get_notifications_config,
    get_storage_config,
    load_tracker_config,
)
from .constants import STATE_DIR_NAME
from .notifications import NotificationManager, create_notification_manager
from .tracker.persistence import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .tracker.store import TaskStore


class TrackerContainer:
    """Everything one project directory needs: config, backend, sink and store.

    Parameters
    ----------
    project_dir:
        Directory whose ``.task_tracker/`` holds config and persisted tasks.
    config:
        Pre-loaded config; read from ``.task_tracker/config.yaml`` when omitted.
    """

    def __init__(self, project_dir: Path, config: Optional[dict[str, Any]] = None) -> None:
        self.project_dir = Path(project_dir).resolve()
        self.state_dir = self.project_dir / STATE_DIR_NAME
        if config is None:
            config, err = load_tracker_config(self.project_dir)
            if err:
                logger.warning("Ignoring invalid tracker config: {}", err)
        self.config = config

        storage = get_storage_config(config)
        self.notifications: NotificationManager = create_notification_manager(
            get_notifications_config(config)
        )
        self.kv = self._build_backend(storage)
        self.store = TaskStore(self.kv, key=storage["key"], sink=self.notifications)
        self.lock = threading.RLock()
        logger.debug("Opened task store for {} ({} tasks)", self.project_dir, len(self.store))

    def _build_backend(self, storage: dict[str, Any]) -> KeyValueStore:
        if storage["backend"] == "memory":
            return MemoryKeyValueStore()
        return FileKeyValueStore(self.state_dir / storage["file"])

    def close(self) -> None:
        with self.lock:
            self.store.close()
