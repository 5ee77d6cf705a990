"""User-facing feedback for task store events.

The store publishes semantic events; this module turns them into the short
messages a person actually sees ("Task added successfully") and logs them.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from .constants import DEFAULT_NOTIFICATION_HISTORY

COLUMN_TITLES = {
    "todo": "To Do",
    "inprogress": "In Progress",
    "done": "Done",
}

# kind -> severity shown to the user
_LEVELS = {
    "created": "success",
    "updated": "success",
    "deleted": "info",
    "moved": "success",
    "reordered": "success",
    "error": "error",
}


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    kind: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level, "message": self.message, "kind": self.kind}


def render_message(kind: str, payload: dict[str, Any]) -> str:
    """Text for a single event."""
    if kind == "created":
        return "Task added successfully"
    if kind == "updated":
        return "Task updated"
    if kind == "deleted":
        return "Task deleted"
    if kind == "moved":
        status = str(payload.get("status") or "todo")
        return f"Task moved to {COLUMN_TITLES.get(status, status)}"
    if kind == "reordered":
        return "Task order updated"
    if kind == "error":
        return str(payload.get("message") or "Something went wrong")
    return kind


class NotificationManager:
    """Notification sink that keeps a bounded history of rendered messages."""

    def __init__(self, enabled: bool = True, history: int = DEFAULT_NOTIFICATION_HISTORY):
        """Initialize notification manager.

        Args:
            enabled: Whether notifications are recorded.
            history: Number of recent notifications kept.
        """
        self.enabled = enabled
        self._recent: deque[Notification] = deque(maxlen=max(1, history))

    def notify(self, kind: str, payload: dict[str, Any]) -> None:
        if not self.enabled:
            return
        note = Notification(
            level=_LEVELS.get(kind, "info"),
            message=render_message(kind, payload),
            kind=kind,
        )
        self._recent.append(note)
        if note.level == "error":
            logger.warning("Notification [{}]: {}", kind, note.message)
        else:
            logger.debug("Notification [{}]: {}", kind, note.message)

    def recent(self, limit: Optional[int] = None) -> list[Notification]:
        items = list(self._recent)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._recent.clear()


def create_notification_manager(config: dict[str, Any]) -> NotificationManager:
    """Create a notification manager from a resolved ``notifications`` block."""
    return NotificationManager(
        enabled=bool(config.get("enabled", True)),
        history=int(config.get("history", DEFAULT_NOTIFICATION_HISTORY)),
    )

