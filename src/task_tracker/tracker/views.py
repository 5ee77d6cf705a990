"""Read-only projections of the canonical task sequence.

Nothing here mutates its input; every function returns a new list (or dict
of lists) that shares the task objects it was given.
"""

from __future__ import annotations

from typing import Iterable, Union

from .model import ListFilter, Task, TaskStatus, coerce_enum

BOARD_COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
)


def board_column_of(task: Task) -> TaskStatus:
    """Column a task belongs to; decided by ``status`` alone."""
    return task.status or TaskStatus.TODO


def project_list(tasks: Iterable[Task], view_filter: Union[ListFilter, str] = ListFilter.ALL) -> list[Task]:
    """Stable filter of *tasks* for the list view."""
    flt = coerce_enum(ListFilter, view_filter, "filter")
    if flt == ListFilter.ACTIVE:
        return [t for t in tasks if not t.completed]
    if flt == ListFilter.COMPLETED:
        return [t for t in tasks if t.completed]
    return list(tasks)


def project_board(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    """Group *tasks* into the three board columns, in display order."""
    columns: dict[str, list[Task]] = {col.value: [] for col in BOARD_COLUMNS}
    for t in tasks:
        columns[board_column_of(t).value].append(t)
    return columns
