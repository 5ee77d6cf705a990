"""Semantic events published by the task store.

The store never talks to a feedback channel directly.  Each notifying
mutation produces a :class:`TaskEvent`, and whatever implements
:class:`NotificationSink` decides what the user sees.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from ..utils import _now_iso


class EventKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    MOVED = "moved"
    REORDERED = "reordered"
    ERROR = "error"


@dataclass(frozen=True)
class TaskEvent:
    kind: EventKind
    payload: dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.ts, "kind": self.kind.value, "payload": dict(self.payload)}


class NotificationSink(Protocol):
    """Fire-and-forget receiver for user-facing feedback."""

    def notify(self, kind: str, payload: dict[str, Any]) -> None: ...


class RecordingSink:
    """Sink that keeps every notification in memory.

    Handy when embedding the store somewhere that polls for feedback instead
    of pushing it.
    """

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def notify(self, kind: str, payload: dict[str, Any]) -> None:
        self.events.append((kind, dict(payload)))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]
