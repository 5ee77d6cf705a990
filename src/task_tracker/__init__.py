"""Provide the public `task_tracker` package exports."""

from __future__ import annotations

__version__ = "1.0.0"

from .tracker import (  # noqa: E402
    InvariantError,
    ListFilter,
    NotFoundError,
    Task,
    TaskPriority,
    TaskStatus,
    TaskStore,
    TaskTrackerError,
    ValidationError,
)

__all__ = [
    "InvariantError",
    "ListFilter",
    "NotFoundError",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TaskStore",
    "TaskTrackerError",
    "ValidationError",
    "__version__",
]
