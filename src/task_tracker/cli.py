from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

from loguru import logger

from .config import get_logging_config, load_tracker_config
from .constants import STATE_DIR_NAME
from .container import TrackerContainer
from .logging_utils import configure_logging
from .tracker.model import ListFilter, Task, TaskPriority, TaskStatus, TaskTrackerError

PRIORITY_LABELS: dict[Optional[TaskPriority], str] = {
    TaskPriority.HIGH: "[high]",
    TaskPriority.MEDIUM: "[medium]",
    TaskPriority.LOW: "[low]",
    None: "",
}


def _resolve_project_dir(project_dir: Optional[str]) -> Path:
    return Path(project_dir).expanduser().resolve() if project_dir else Path.cwd().resolve()


def _emit(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2) + '\n')


def _format_task(task: Task) -> str:
    box = "[x]" if task.completed else "[ ]"
    parts = [box, str(task.id), task.text]
    label = PRIORITY_LABELS[task.priority]
    if label:
        parts.append(label)
    if task.due_date:
        parts.append(f"(due {task.due_date.split('T')[0]})")
    return " ".join(parts)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------

def _add(c: TrackerContainer, args: argparse.Namespace) -> int:
    task = c.store.create(args.text, args.due, args.priority)
    _emit({'task': task.to_dict()})
    return 0


def _edit(c: TrackerContainer, args: argparse.Namespace) -> int:
    changes: dict[str, Any] = {}
    if args.text is not None:
        changes['text'] = args.text
    if args.clear_due:
        changes['due_date'] = None
    elif args.due is not None:
        changes['due_date'] = args.due
    if args.clear_priority:
        changes['priority'] = None
    elif args.priority is not None:
        changes['priority'] = args.priority
    task = c.store.update(args.task_id, **changes)
    _emit({'task': task.to_dict()})
    return 0


def _delete(c: TrackerContainer, args: argparse.Namespace) -> int:
    c.store.delete(args.task_id)
    _emit({'deleted': args.task_id})
    return 0


def _toggle(c: TrackerContainer, args: argparse.Namespace) -> int:
    _emit({'task': c.store.toggle_complete(args.task_id).to_dict()})
    return 0


def _status(c: TrackerContainer, args: argparse.Namespace) -> int:
    _emit({'task': c.store.set_status(args.task_id, args.column).to_dict()})
    return 0


def _list(c: TrackerContainer, args: argparse.Namespace) -> int:
    tasks = c.store.project_list(args.filter)
    if args.plain:
        for task in tasks:
            sys.stdout.write(_format_task(task) + '\n')
        stats = c.store.stats()
        sys.stdout.write(f"{stats.completed} of {stats.total} tasks completed\n")
        return 0
    _emit({'tasks': [t.to_dict() for t in tasks], 'total': len(tasks)})
    return 0


def _board(c: TrackerContainer, args: argparse.Namespace) -> int:
    board = c.store.project_board()
    _emit({'columns': {col: [t.to_dict() for t in tasks] for col, tasks in board.items()}})
    return 0


def _stats(c: TrackerContainer, args: argparse.Namespace) -> int:
    _emit(c.store.stats().to_dict())
    return 0


def _reorder(c: TrackerContainer, args: argparse.Namespace) -> int:
    c.store.reorder(args.task_ids)
    _emit({'task_ids': [t.id for t in c.store.list_tasks()]})
    return 0


def _move(c: TrackerContainer, args: argparse.Namespace) -> int:
    tasks = c.store.move_in_list(args.filter, args.source_index, args.destination_index)
    _emit({'task_ids': [t.id for t in tasks]})
    return 0


def _board_move(c: TrackerContainer, args: argparse.Namespace) -> int:
    task = c.store.move_on_board(args.task_id, args.column, args.index)
    _emit({'task': task.to_dict()})
    return 0


def _server(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError:
        sys.stderr.write("Install server extras: pip install 'task-tracker[server]'\n")
        return 1

    from .server import create_app

    app = create_app(project_dir=_resolve_project_dir(args.project_dir))
    uvicorn.run(app, host=args.host, port=args.port, reload=args.reload)
    return 0


def _with_store(handler: Callable[[TrackerContainer, argparse.Namespace], int]) -> Callable[[argparse.Namespace], int]:
    def run(args: argparse.Namespace) -> int:
        container = TrackerContainer(_resolve_project_dir(args.project_dir), config=args.config)
        try:
            return handler(container, args)
        except TaskTrackerError as exc:
            container.store.report_error(exc)
            sys.stderr.write(str(exc) + '\n')
            return 1
        finally:
            container.close()

    return run


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Personal task tracker')
    parser.add_argument('--project-dir', default=None, help='Directory holding .task_tracker/ (default: current working directory)')
    parser.add_argument('--log-level', default=None, help='Log level (default: from config or INFO)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    priorities = [p.value for p in TaskPriority]
    columns = [s.value for s in TaskStatus]
    filters = [f.value for f in ListFilter]

    add = subparsers.add_parser('add', help='Create a task')
    add.add_argument('text')
    add.add_argument('--due', default=None, help='Due date (YYYY-MM-DD or ISO timestamp)')
    add.add_argument('--priority', default='medium', choices=priorities)
    add.set_defaults(func=_with_store(_add))

    edit = subparsers.add_parser('edit', help='Edit a task')
    edit.add_argument('task_id', type=int)
    edit.add_argument('--text', default=None)
    edit.add_argument('--due', default=None)
    edit.add_argument('--priority', default=None, choices=priorities)
    edit.add_argument('--clear-due', action='store_true')
    edit.add_argument('--clear-priority', action='store_true')
    edit.set_defaults(func=_with_store(_edit))

    delete = subparsers.add_parser('delete', help='Delete a task')
    delete.add_argument('task_id', type=int)
    delete.set_defaults(func=_with_store(_delete))

    toggle = subparsers.add_parser('toggle', help='Toggle completion')
    toggle.add_argument('task_id', type=int)
    toggle.set_defaults(func=_with_store(_toggle))

    status = subparsers.add_parser('status', help='Move a task to a board column')
    status.add_argument('task_id', type=int)
    status.add_argument('column', choices=columns)
    status.set_defaults(func=_with_store(_status))

    tlist = subparsers.add_parser('list', help='List tasks')
    tlist.add_argument('--filter', default='all', choices=filters)
    tlist.add_argument('--plain', action='store_true', help='Human-readable output')
    tlist.set_defaults(func=_with_store(_list))

    board = subparsers.add_parser('board', help='Show the status board')
    board.set_defaults(func=_with_store(_board))

    stats = subparsers.add_parser('stats', help='Show task counts')
    stats.set_defaults(func=_with_store(_stats))

    reorder = subparsers.add_parser('reorder', help='Set the full task order')
    reorder.add_argument('task_ids', type=int, nargs='+')
    reorder.set_defaults(func=_with_store(_reorder))

    move = subparsers.add_parser('move', help='Move a task within a filtered list')
    move.add_argument('filter', choices=filters)
    move.add_argument('source_index', type=int)
    move.add_argument('destination_index', type=int)
    move.set_defaults(func=_with_store(_move))

    bmove = subparsers.add_parser('board-move', help='Drop a task into a board column')
    bmove.add_argument('task_id', type=int)
    bmove.add_argument('column', choices=columns)
    bmove.add_argument('--index', type=int, default=None)
    bmove.set_defaults(func=_with_store(_board_move))

    server = subparsers.add_parser('server', help='Start the web server')
    server.add_argument('--host', default='127.0.0.1')
    server.add_argument('--port', default=8000, type=int)
    server.add_argument('--reload', action='store_true')
    server.set_defaults(func=_server)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1

    project_dir = _resolve_project_dir(args.project_dir)
    config, err = load_tracker_config(project_dir)
    log_cfg = get_logging_config(config)
    log_file = project_dir / STATE_DIR_NAME / log_cfg['file'] if log_cfg['file'] else None
    configure_logging(args.log_level or log_cfg['level'], log_file)
    if err:
        logger.warning("Ignoring invalid tracker config: {}", err)
    args.config = config
    return int(handler(args) or 0)


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
