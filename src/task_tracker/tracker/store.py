"""Canonical task collection with key-value persistence.

:class:`TaskStore` is the single owner of the task sequence.  Every mutation
runs inside :meth:`TaskStore._transaction`, which works on a copy of the
sequence, writes the full copy to the key-value store and only then makes it
the canonical state.  A failed operation therefore leaves both memory and
storage exactly as they were.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Iterable, Iterator, Optional, Union

from ..constants import TASKS_KEY
from ..utils import _now_iso, _now_ms, normalize_due_date
from .events import EventKind, NotificationSink, TaskEvent
from .model import (
    InvariantError,
    ListFilter,
    NotFoundError,
    Task,
    TaskPriority,
    TaskStatus,
    TaskTrackerError,
    ValidationError,
    coerce_enum,
    require_text,
)
from .persistence import KeyValueStore
from .reorder import move_item, resolve_reorder
from .views import board_column_of, project_board, project_list

logger = logging.getLogger(__name__)

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Status synchronization
# ---------------------------------------------------------------------------

def _apply_toggle(task: Task) -> None:
    task.completed = not task.completed
    if task.completed:
        task.status = TaskStatus.DONE
    elif task.status == TaskStatus.DONE:
        task.status = TaskStatus.TODO


def _apply_status(task: Task, status: TaskStatus) -> None:
    task.status = status
    task.completed = status == TaskStatus.DONE


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

@dataclass
class TaskStats:
    total: int = 0
    completed: int = 0
    active: int = 0
    columns: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "active": self.active,
            "columns": dict(self.columns),
        }


# ---------------------------------------------------------------------------
# TaskStore
# ---------------------------------------------------------------------------

class TaskStore:
    """Owns the canonical ordered task sequence.

    Parameters
    ----------
    kv:
        Synchronous key-value backend holding the serialized collection.
    key:
        Key the collection lives under.
    sink:
        Optional receiver for semantic events (created, updated, ...).
    clock:
        Returns the current time in milliseconds; used for id allocation.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        key: str = TASKS_KEY,
        sink: Optional[NotificationSink] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self._kv = kv
        self._key = key
        self._sink = sink
        self._clock = clock or _now_ms
        self._tasks: list[Task] = self._load()
        self._last_id = max((t.id for t in self._tasks), default=0)
        self._closed = False
        self.last_event: Optional[TaskEvent] = None

    # -- persistence --------------------------------------------------------

    def _load(self) -> list[Task]:
        raw = self._kv.get(self._key)
        if raw is None:
            return []
        try:
            records = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Stored value under %r is not valid JSON; starting empty", self._key)
            return []
        if not isinstance(records, list):
            logger.warning("Stored value under %r is not a list; starting empty", self._key)
            return []

        tasks: list[Task] = []
        seen: set[int] = set()
        for record in records:
            if not isinstance(record, dict):
                logger.warning("Skipping non-object task record: %r", record)
                continue
            try:
                task = Task.from_dict(record)
            except ValueError as exc:
                logger.warning("Skipping malformed task record: %s", exc)
                continue
            if task.id in seen:
                logger.warning("Skipping duplicate task id %s", task.id)
                continue
            if task.completed and task.status != TaskStatus.DONE:
                task.status = TaskStatus.DONE
            seen.add(task.id)
            tasks.append(task)
        logger.debug("Loaded %d tasks from %r", len(tasks), self._key)
        return tasks

    def _save(self, tasks: list[Task]) -> None:
        self._kv.set(self._key, json.dumps([t.to_dict() for t in tasks]))

    @contextmanager
    def _transaction(self) -> Iterator[_TaskTx]:
        """Yield a working copy; persist and commit it if the block succeeds."""
        if self._closed:
            raise TaskTrackerError("Task store is closed")
        tx = _TaskTx([replace(t) for t in self._tasks])
        yield tx
        if tx.dirty:
            self._save(tx.tasks)
            self._tasks = tx.tasks

    def close(self) -> None:
        """Flush the canonical sequence one last time and refuse further writes."""
        if self._closed:
            return
        self._save(self._tasks)
        self._closed = True
        logger.debug("Task store closed with %d tasks", len(self._tasks))

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -- events -------------------------------------------------------------

    def _publish(self, kind: EventKind, **payload: Any) -> TaskEvent:
        event = TaskEvent(kind=kind, payload=payload)
        self.last_event = event
        if self._sink is not None:
            try:
                self._sink.notify(kind.value, payload)
            except Exception:
                logger.exception("Notification sink failed for %s event", kind.value)
        return event

    def report_error(self, exc: BaseException) -> TaskEvent:
        """Forward a failed operation to the sink as an ``error`` event."""
        return self._publish(EventKind.ERROR, error_type=type(exc).__name__, message=str(exc))

    # -- helpers ------------------------------------------------------------

    def _allocate_id(self) -> int:
        nid = max(int(self._clock()), self._last_id + 1)
        self._last_id = nid
        return nid

    @staticmethod
    def _due(value: Optional[str]) -> Optional[str]:
        try:
            return normalize_due_date(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None

    @staticmethod
    def _priority(value: Union[TaskPriority, str, None]) -> Optional[TaskPriority]:
        if value is None or value == "":
            return None
        return coerce_enum(TaskPriority, value, "priority")

    # -- queries ------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._tasks)

    def list_tasks(self) -> list[Task]:
        """Copies of every task in canonical order."""
        return [replace(t) for t in self._tasks]

    def get(self, task_id: int) -> Task:
        for t in self._tasks:
            if t.id == task_id:
                return replace(t)
        raise NotFoundError(task_id)

    def project_list(self, view_filter: Union[ListFilter, str] = ListFilter.ALL) -> list[Task]:
        return project_list(self.list_tasks(), view_filter)

    def project_board(self) -> dict[str, list[Task]]:
        return project_board(self.list_tasks())

    def stats(self) -> TaskStats:
        done = sum(1 for t in self._tasks if t.completed)
        board = project_board(self._tasks)
        return TaskStats(
            total=len(self._tasks),
            completed=done,
            active=len(self._tasks) - done,
            columns={col: len(members) for col, members in board.items()},
        )

    # -- CRUD ---------------------------------------------------------------

    def create(
        self,
        text: str,
        due_date: Optional[str] = None,
        priority: Union[TaskPriority, str, None] = None,
    ) -> Task:
        """Append a new task to the end of the collection."""
        require_text(text)
        due = self._due(due_date)
        prio = self._priority(priority)
        with self._transaction() as tx:
            task = Task(
                id=self._allocate_id(),
                text=text,
                completed=False,
                created_at=_now_iso(),
                due_date=due,
                priority=prio,
                status=TaskStatus.TODO,
            )
            tx.add(task)
        logger.info("Created task %s: %s", task.id, text)
        self._publish(EventKind.CREATED, task=task.to_dict())
        return replace(task)

    def update(
        self,
        task_id: int,
        *,
        text: Any = _UNSET,
        due_date: Any = _UNSET,
        priority: Any = _UNSET,
    ) -> Task:
        """Apply only the provided fields; ``None`` clears due date or priority."""
        with self._transaction() as tx:
            task = tx.get(task_id)
            changes: dict[str, Any] = {}
            if text is not _UNSET:
                changes["text"] = require_text(text)
            if due_date is not _UNSET:
                changes["due_date"] = self._due(due_date)
            if priority is not _UNSET:
                changes["priority"] = self._priority(priority)
            for name, value in changes.items():
                setattr(task, name, value)
            tx.dirty = True
        self._publish(EventKind.UPDATED, task=task.to_dict(), fields=sorted(changes))
        return replace(task)

    def delete(self, task_id: int) -> None:
        """Remove a task permanently.  Missing ids raise :class:`NotFoundError`."""
        with self._transaction() as tx:
            task = tx.remove(task_id)
        logger.info("Deleted task %s", task_id)
        self._publish(EventKind.DELETED, task_id=task_id, text=task.text)

    # -- status -------------------------------------------------------------

    def toggle_complete(self, task_id: int) -> Task:
        """Flip ``completed`` and keep the board column in sync.  Silent."""
        with self._transaction() as tx:
            task = tx.get(task_id)
            _apply_toggle(task)
            tx.dirty = True
        return replace(task)

    def set_status(self, task_id: int, status: Union[TaskStatus, str]) -> Task:
        """Move a task to a board column; ``done`` and ``completed`` go together."""
        target = coerce_enum(TaskStatus, status, "status")
        with self._transaction() as tx:
            task = tx.get(task_id)
            _apply_status(task, target)
            tx.dirty = True
        self._publish(EventKind.MOVED, task=task.to_dict(), status=target.value)
        return replace(task)

    # -- ordering -----------------------------------------------------------

    def reorder(self, task_ids: Iterable[Any]) -> None:
        """Replace the canonical order; *task_ids* must be a permutation of it."""
        ids = [getattr(item, "id", item) for item in task_ids]
        with self._transaction() as tx:
            tx.set_order_by_ids(ids)
        self._publish(EventKind.REORDERED, task_ids=ids)

    def reorder_view(self, old_view: Iterable[Any], new_view: Iterable[Any]) -> list[Task]:
        """Commit a reorder performed on a filtered view of the collection."""
        with self._transaction() as tx:
            tx.set_order(resolve_reorder(tx.tasks, list(old_view), list(new_view)))
        ids = [t.id for t in self._tasks]
        self._publish(EventKind.REORDERED, task_ids=ids)
        return self.list_tasks()

    def move_in_list(
        self,
        view_filter: Union[ListFilter, str],
        source_index: int,
        destination_index: int,
    ) -> list[Task]:
        """Drag one task within the filtered list view."""
        view = project_list(self._tasks, view_filter)
        new_view = move_item(view, source_index, destination_index)
        if source_index == destination_index:
            return self.list_tasks()
        return self.reorder_view(view, new_view)

    def move_on_board(
        self,
        task_id: int,
        column: Union[TaskStatus, str],
        index: Optional[int] = None,
    ) -> Task:
        """Drop a task into *column*, optionally at *index* within that column."""
        target = coerce_enum(TaskStatus, column, "column")
        with self._transaction() as tx:
            task = tx.get(task_id)
            column_changed = board_column_of(task) != target
            if column_changed:
                _apply_status(task, target)
                tx.dirty = True

            position_changed = False
            if index is not None:
                column_view = [t for t in tx.tasks if board_column_of(t) == target]
                current = [t.id for t in column_view].index(task.id)
                new_view = move_item(column_view, current, index)
                if current != index:
                    tx.set_order(resolve_reorder(tx.tasks, column_view, new_view))
                    position_changed = True

        if column_changed:
            self._publish(EventKind.MOVED, task=task.to_dict(), status=target.value)
        elif position_changed:
            self._publish(EventKind.REORDERED, task_ids=[t.id for t in self._tasks])
        return replace(task)


class _TaskTx:
    """Working copy of the sequence used by a single store operation."""

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = tasks
        self.dirty = False

    def get(self, task_id: int) -> Task:
        for t in self.tasks:
            if t.id == task_id:
                return t
        raise NotFoundError(task_id)

    def add(self, task: Task) -> Task:
        if any(t.id == task.id for t in self.tasks):
            raise InvariantError(f"Task {task.id} already exists")
        self.tasks.append(task)
        self.dirty = True
        return task

    def remove(self, task_id: int) -> Task:
        task = self.get(task_id)
        self.tasks = [t for t in self.tasks if t.id != task_id]
        self.dirty = True
        return task

    def set_order(self, tasks: list[Task]) -> None:
        self.tasks = list(tasks)
        self.dirty = True

    def set_order_by_ids(self, task_ids: list[Any]) -> None:
        current = Counter(t.id for t in self.tasks)
        requested = Counter(task_ids)
        if requested != current:
            unknown = sorted(set(requested) - set(current), key=str)
            omitted = sorted(set(current) - set(requested), key=str)
            raise InvariantError(
                "Reorder must be a permutation of the current tasks "
                f"(unknown: {unknown}, missing: {omitted})"
            )
        by_id = {t.id: t for t in self.tasks}
        self.set_order([by_id[tid] for tid in task_ids])
