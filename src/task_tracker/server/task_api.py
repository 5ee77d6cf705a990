"""Task API endpoints for the list and board views.

This module provides a FastAPI router exposing the task store's mutation
surface and its two projections.  It is mounted under ``/api/tasks`` by the
``create_app`` factory.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from fastapi import APIRouter, HTTPException, Query
from loguru import logger
from pydantic import BaseModel

from ..container import TrackerContainer
from ..tracker.model import (
    InvariantError,
    ListFilter,
    NotFoundError,
    TaskTrackerError,
    ValidationError,
)

R = TypeVar("R")


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class CreateTaskRequest(BaseModel):
    text: str
    due_date: Optional[str] = None
    priority: Optional[str] = "medium"


class UpdateTaskRequest(BaseModel):
    text: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[str] = None


class SetStatusRequest(BaseModel):
    status: str


class BoardMoveRequest(BaseModel):
    column: str
    index: Optional[int] = None


class ReorderRequest(BaseModel):
    task_ids: list[int]


class ReorderViewRequest(BaseModel):
    old_ids: list[int]
    new_ids: list[int]


class MoveRequest(BaseModel):
    filter: str = ListFilter.ALL.value
    source_index: int
    destination_index: int


class TaskResponse(BaseModel):
    task: dict[str, Any]


class TaskListResponse(BaseModel):
    tasks: list[dict[str, Any]]
    total: int


class BoardResponse(BaseModel):
    columns: dict[str, list[dict[str, Any]]]


class StatsResponse(BaseModel):
    total: int
    completed: int
    active: int
    columns: dict[str, int]


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_CODES: dict[type[TaskTrackerError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    InvariantError: 409,
}


def _run(container: TrackerContainer, op: Callable[[], R]) -> R:
    """Run *op* under the container lock, mapping tracker errors to HTTP errors."""
    with container.lock:
        try:
            return op()
        except TaskTrackerError as exc:
            container.store.report_error(exc)
            status_code = next(
                (code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)),
                400,
            )
            logger.info("Task operation rejected ({}): {}", status_code, exc)
            raise HTTPException(status_code=status_code, detail=str(exc))


def _listing(tasks: list[Any]) -> TaskListResponse:
    data = [t.to_dict() for t in tasks]
    return TaskListResponse(tasks=data, total=len(data))


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------

def create_task_router(get_container: Callable[[Optional[str]], TrackerContainer]) -> APIRouter:
    """Create the task API router.

    Parameters
    ----------
    get_container:
        A callable ``(project_dir_param: str | None) -> TrackerContainer`` that
        resolves the container for the current request's project directory.
    """
    router = APIRouter(prefix="/api/tasks", tags=["tasks"])

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @router.get("", response_model=TaskListResponse)
    async def list_tasks(
        project_dir: Optional[str] = Query(None),
        filter: str = Query(ListFilter.ALL.value),
    ) -> TaskListResponse:
        c = get_container(project_dir)
        return _listing(_run(c, lambda: c.store.project_list(filter)))

    @router.get("/board", response_model=BoardResponse)
    async def get_board(
        project_dir: Optional[str] = Query(None),
    ) -> BoardResponse:
        c = get_container(project_dir)
        board = _run(c, c.store.project_board)
        return BoardResponse(
            columns={col: [t.to_dict() for t in tasks] for col, tasks in board.items()}
        )

    @router.get("/stats", response_model=StatsResponse)
    async def get_stats(
        project_dir: Optional[str] = Query(None),
    ) -> StatsResponse:
        c = get_container(project_dir)
        return StatsResponse(**_run(c, c.store.stats).to_dict())

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    @router.post("", response_model=TaskResponse, status_code=201)
    async def create_task(
        body: CreateTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        c = get_container(project_dir)
        task = _run(c, lambda: c.store.create(body.text, body.due_date, body.priority))
        return TaskResponse(task=task.to_dict())

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    @router.post("/reorder")
    async def reorder_tasks(
        body: ReorderRequest,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, str]:
        c = get_container(project_dir)
        _run(c, lambda: c.store.reorder(body.task_ids))
        return {"status": "ok"}

    @router.post("/reorder-view", response_model=TaskListResponse)
    async def reorder_view(
        body: ReorderViewRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskListResponse:
        c = get_container(project_dir)
        return _listing(_run(c, lambda: c.store.reorder_view(body.old_ids, body.new_ids)))

    @router.post("/move", response_model=TaskListResponse)
    async def move_in_list(
        body: MoveRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskListResponse:
        c = get_container(project_dir)
        tasks = _run(
            c,
            lambda: c.store.move_in_list(body.filter, body.source_index, body.destination_index),
        )
        return _listing(tasks)

    # ------------------------------------------------------------------
    # Single task
    # ------------------------------------------------------------------

    @router.get("/{task_id}", response_model=TaskResponse)
    async def get_task(
        task_id: int,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        c = get_container(project_dir)
        return TaskResponse(task=_run(c, lambda: c.store.get(task_id)).to_dict())

    @router.patch("/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: int,
        body: UpdateTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        c = get_container(project_dir)
        changes = body.model_dump(exclude_unset=True)
        task = _run(c, lambda: c.store.update(task_id, **changes))
        return TaskResponse(task=task.to_dict())

    @router.delete("/{task_id}")
    async def delete_task(
        task_id: int,
        project_dir: Optional[str] = Query(None),
    ) -> dict[str, str]:
        c = get_container(project_dir)
        _run(c, lambda: c.store.delete(task_id))
        return {"status": "deleted"}

    @router.post("/{task_id}/toggle", response_model=TaskResponse)
    async def toggle_task(
        task_id: int,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        c = get_container(project_dir)
        return TaskResponse(task=_run(c, lambda: c.store.toggle_complete(task_id)).to_dict())

    @router.post("/{task_id}/status", response_model=TaskResponse)
    async def set_status(
        task_id: int,
        body: SetStatusRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        c = get_container(project_dir)
        return TaskResponse(task=_run(c, lambda: c.store.set_status(task_id, body.status)).to_dict())

    @router.post("/{task_id}/board-move", response_model=TaskResponse)
    async def board_move(
        task_id: int,
        body: BoardMoveRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        c = get_container(project_dir)
        task = _run(c, lambda: c.store.move_on_board(task_id, body.column, body.index))
        return TaskResponse(task=task.to_dict())

    return router
