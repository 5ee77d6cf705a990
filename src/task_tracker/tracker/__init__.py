"""Task collection engine.

This package provides the task model, the key-value backed store, the list
and board projections, and the reorder resolver that maps a drag performed
on a filtered view back onto the canonical order.
"""

from .events import EventKind, NotificationSink, RecordingSink, TaskEvent
from .model import (
    InvariantError,
    ListFilter,
    NotFoundError,
    Task,
    TaskPriority,
    TaskStatus,
    TaskTrackerError,
    ValidationError,
)
from .persistence import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .reorder import move_item, resolve_reorder
from .store import TaskStats, TaskStore
from .views import BOARD_COLUMNS, board_column_of, project_board, project_list

__all__ = [
    "BOARD_COLUMNS",
    "EventKind",
    "FileKeyValueStore",
    "InvariantError",
    "KeyValueStore",
    "ListFilter",
    "MemoryKeyValueStore",
    "NotFoundError",
    "NotificationSink",
    "RecordingSink",
    "Task",
    "TaskEvent",
    "TaskPriority",
    "TaskStats",
    "TaskStatus",
    "TaskStore",
    "TaskTrackerError",
    "ValidationError",
    "board_column_of",
    "move_item",
    "project_board",
    "project_list",
    "resolve_reorder",
]
