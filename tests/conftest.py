from __future__ import annotations

import itertools
from typing import Callable

import pytest

from task_tracker.tracker.events import RecordingSink
from task_tracker.tracker.persistence import MemoryKeyValueStore
from task_tracker.tracker.store import TaskStore


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> Callable[[], int]:
    """Frozen millisecond clock so allocated ids are predictable."""
    return lambda: 1_000


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store(kv: MemoryKeyValueStore, sink: RecordingSink, clock: Callable[[], int]) -> TaskStore:
    return TaskStore(kv, sink=sink, clock=clock)


@pytest.fixture
def ticking_clock() -> Callable[[], int]:
    counter = itertools.count(5_000, 7)
    return lambda: next(counter)
