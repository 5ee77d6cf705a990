"""Task model for the personal task tracker.

This module defines the task record, the enums used by the list and board
views, and the error taxonomy shared by every store operation.  Tasks
serialize to the camelCase record format used by the persisted collection
(``createdAt``, ``dueDate``) while Python code uses snake_case attributes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TaskTrackerError(Exception):
    """Base class for all recoverable tracker errors."""


class ValidationError(TaskTrackerError, ValueError):
    """Rejected input: empty text or an unknown enum value."""


class NotFoundError(TaskTrackerError, LookupError):
    """The operation targets a task id that is not in the collection."""

    def __init__(self, task_id: Any) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvariantError(TaskTrackerError, ValueError):
    """Reorder input does not match the canonical collection."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskPriority(str, Enum):
    """Optional user-assigned priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    """Board column a task lives in."""

    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"


class ListFilter(str, Enum):
    """Filters offered by the flat list view."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


def coerce_enum(enum_cls: type[Enum], raw: Any, field_name: str) -> Any:
    """Return ``enum_cls(raw)`` or raise :class:`ValidationError`."""
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw))
    except ValueError:
        valid = [e.value for e in enum_cls]
        raise ValidationError(f"'{field_name}' must be one of {valid}, got '{raw}'") from None


def require_text(text: Any) -> str:
    """Reject text that is missing or trims to empty."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Task cannot be empty")
    return text


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A single tracked task.

    ``status`` may be ``None`` for records written before the board existed;
    such tasks read as :attr:`TaskStatus.TODO`.
    """

    id: int
    text: str
    completed: bool = False
    created_at: str = ""
    due_date: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = TaskStatus.TODO

    @property
    def column(self) -> TaskStatus:
        return self.status or TaskStatus.TODO

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted record format."""
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "createdAt": self.created_at,
            "dueDate": self.due_date,
            "priority": self.priority.value if self.priority else None,
            "status": self.status.value if self.status else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize a persisted record, coercing enums gracefully.

        Unknown priority or status values load as absent.  Raises
        :class:`ValueError` when the record has no usable id or text.
        """
        d = dict(data)

        def _enum(enum_cls: type[Enum], key: str) -> Optional[Any]:
            raw = d.get(key)
            if raw is None:
                return None
            try:
                return enum_cls(str(raw))
            except ValueError:
                return None

        raw_id = d.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (int, float, str)):
            raise ValueError(f"Task record has no usable id: {raw_id!r}")
        try:
            task_id = int(raw_id)
        except (ValueError, OverflowError):
            raise ValueError(f"Task record has no usable id: {raw_id!r}") from None
        text = d.get("text")
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"Task record {task_id} has no text")

        due = d.get("dueDate")
        return cls(
            id=task_id,
            text=text,
            completed=d.get("completed") is True,
            created_at=str(d.get("createdAt") or ""),
            due_date=str(due) if due else None,
            priority=_enum(TaskPriority, "priority"),
            status=_enum(TaskStatus, "status"),
        )
