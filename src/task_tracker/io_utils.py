"""Read and write the small YAML/JSON documents kept under `.task_tracker/`."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, TextIO

import yaml
from filelock import FileLock

__all__ = ["FileLock", "read_document", "write_document"]

_YAML_SUFFIXES = {".yaml", ".yml"}


def _is_yaml(path: Path) -> bool:
    return path.suffix in _YAML_SUFFIXES


def _dump_yaml(data: dict[str, Any], handle: TextIO) -> None:
    yaml.safe_dump(data, handle, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _dump_json(data: dict[str, Any], handle: TextIO) -> None:
    json.dump(data, handle, indent=2)


def _replace_atomically(path: Path, dump: Callable[[dict[str, Any], TextIO], None], data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as handle:
        dump(data, handle)
        handle.flush()
        os.fsync(handle.fileno())
    os.replace(tmp_path, path)


def read_document(path: Path, default: dict[str, Any]) -> tuple[dict[str, Any], str | None]:
    """Load a mapping from *path*.

    Returns ``(data, error_message)``.  A missing or empty file yields
    ``(default, None)``; unreadable or non-mapping content yields *default*
    together with a message describing the problem.
    """
    if not path.exists():
        return default, None
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) if _is_yaml(path) else json.load(handle)
    except OSError as exc:
        return default, f"{path.name}: {exc.__class__.__name__}: {exc}"
    except json.JSONDecodeError as exc:
        return default, f"{path.name}: JSONDecodeError: {exc}"
    except yaml.YAMLError as exc:
        return default, f"{path.name}: YAMLError: {exc}"
    if data is None:
        return default, None
    if not isinstance(data, dict):
        return default, f"{path.name}: expected object, got {type(data).__name__}"
    return data, None


def write_document(path: Path, data: dict[str, Any]) -> None:
    """Replace *path* with *data*, as YAML for ``.yaml``/``.yml`` and JSON otherwise."""
    _replace_atomically(path, _dump_yaml if _is_yaml(path) else _dump_json, data)
