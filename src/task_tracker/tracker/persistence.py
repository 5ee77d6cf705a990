"""Key-value persistence backends for the task store.

The store only needs a synchronous ``get``/``set`` of string values.  Two
backends are provided: an in-memory dict and a single YAML/JSON document on
disk that is rewritten atomically under a file lock.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol

from ..constants import LOCK_FILE
from ..io_utils import FileLock, read_document, write_document

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Dict-backed store; nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class FileKeyValueStore:
    """Keys and string values kept in one document on disk.

    Parameters
    ----------
    path:
        Target file.  ``.yaml``/``.yml`` suffixes are written as YAML,
        anything else as JSON.
    lock_path:
        Advisory lock file; defaults to ``store.lock`` next to *path*.
    """

    def __init__(self, path: Path, lock_path: Optional[Path] = None) -> None:
        self.path = Path(path)
        self.lock_path = Path(lock_path or self.path.parent / LOCK_FILE)
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = FileLock(str(self.lock_path))

    def _read(self) -> dict[str, str]:
        data, err = read_document(self.path, {})
        if err:
            logger.warning("Ignoring unreadable store file %s", err)
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            write_document(self.path, data)
