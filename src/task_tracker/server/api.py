from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from .. import __version__
from ..container import TrackerContainer
from .task_api import create_task_router


def create_app(
    project_dir: Optional[Path] = None,
    enable_cors: bool = True,
    config: Optional[dict[str, Any]] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        project_dir: Default project directory.
        enable_cors: Whether to enable CORS.
        config: Tracker config used for every project instead of each
            project's ``.task_tracker/config.yaml``.

    Returns:
        Configured FastAPI app.
    """
    containers: dict[Path, TrackerContainer] = {}

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        for container in containers.values():
            container.close()
        logger.info("Flushed {} task store(s) on shutdown", len(containers))

    app = FastAPI(
        title="Task Tracker",
        description="Personal task list and status board",
        version=__version__,
        lifespan=lifespan,
    )

    # Enable CORS for development
    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.default_project_dir = project_dir
    app.state.containers = containers

    def _get_project_dir(project_dir_param: Optional[str] = None) -> Path:
        """Get project directory from parameter or default."""
        if project_dir_param:
            return Path(project_dir_param)
        if app.state.default_project_dir:
            return Path(app.state.default_project_dir)
        return Path.cwd()

    def get_container(project_dir_param: Optional[str] = None) -> TrackerContainer:
        path = _get_project_dir(project_dir_param).resolve()
        container = containers.get(path)
        if container is None:
            container = TrackerContainer(path, config=config)
            containers[path] = container
        return container

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Task Tracker",
            "version": __version__,
            "status": "running",
        }

    @app.get("/api/notifications")
    async def recent_notifications(
        project_dir: Optional[str] = Query(None),
        limit: int = Query(20, ge=0),
    ) -> dict[str, list[dict[str, str]]]:
        container = get_container(project_dir)
        notes = container.notifications.recent(limit)
        return {"notifications": [n.to_dict() for n in notes]}

    app.include_router(create_task_router(get_container))
    return app
