"""Tests for the task store (tracker/store.py)."""

from __future__ import annotations

import json
from typing import Callable

import pytest

from task_tracker.tracker.events import EventKind, RecordingSink
from task_tracker.tracker.model import (
    InvariantError,
    NotFoundError,
    TaskPriority,
    TaskStatus,
    TaskTrackerError,
    ValidationError,
)
from task_tracker.tracker.persistence import MemoryKeyValueStore
from task_tracker.tracker.store import TaskStore


class FailingKV(MemoryKeyValueStore):
    """Key-value store whose writes can be switched off."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def set(self, key: str, value: str) -> None:
        if self.fail:
            raise OSError("disk full")
        super().set(key, value)


class ExplodingSink:
    def notify(self, kind: str, payload: dict) -> None:
        raise RuntimeError("toast service down")


def _persisted(kv: MemoryKeyValueStore) -> list[dict]:
    raw = kv.get("tasks")
    assert raw is not None
    return json.loads(raw)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreate:
    def test_defaults(self, store: TaskStore) -> None:
        t = store.create("Write report")
        assert t.text == "Write report"
        assert t.completed is False
        assert t.status == TaskStatus.TODO
        assert t.priority is None
        assert t.due_date is None
        assert t.created_at

    def test_with_due_date_and_priority(self, store: TaskStore) -> None:
        t = store.create("Pay rent", due_date="2026-11-01", priority="high")
        assert t.priority == TaskPriority.HIGH
        assert t.due_date == "2026-11-01T00:00:00+00:00"

    def test_appends_in_creation_order(self, store: TaskStore) -> None:
        a = store.create("A")
        b = store.create("B")
        c = store.create("C")
        assert [t.id for t in store.list_tasks()] == [a.id, b.id, c.id]

    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_empty_text_rejected(self, store: TaskStore, kv: MemoryKeyValueStore, sink: RecordingSink, text: str) -> None:
        store.create("Existing")
        before = kv.get("tasks")
        with pytest.raises(ValidationError):
            store.create(text)
        assert len(store) == 1
        assert kv.get("tasks") == before
        assert sink.kinds() == ["created"]

    def test_unknown_priority_rejected(self, store: TaskStore) -> None:
        with pytest.raises(ValidationError, match="priority"):
            store.create("Task", priority="urgent")
        assert len(store) == 0

    def test_bad_due_date_rejected(self, store: TaskStore) -> None:
        with pytest.raises(ValidationError):
            store.create("Task", due_date="next tuesday")

    def test_persists_and_notifies(self, store: TaskStore, kv: MemoryKeyValueStore, sink: RecordingSink) -> None:
        t = store.create("Persist me")
        records = _persisted(kv)
        assert records == [t.to_dict()]
        assert sink.events[0][0] == "created"
        assert sink.events[0][1]["task"]["id"] == t.id
        assert store.last_event is not None
        assert store.last_event.kind == EventKind.CREATED


class TestIds:
    def test_ids_unique_with_frozen_clock(self, store: TaskStore) -> None:
        ids = [store.create(f"Task {i}").id for i in range(20)]
        assert len(set(ids)) == 20
        assert ids == sorted(ids)

    def test_ids_never_reused_after_delete(self, store: TaskStore) -> None:
        seen: set[int] = set()
        for i in range(10):
            t = store.create(f"Task {i}")
            assert t.id not in seen
            seen.add(t.id)
            if i % 2 == 0:
                store.delete(t.id)
        ids = [t.id for t in store.list_tasks()]
        assert len(ids) == len(set(ids))

    def test_ids_follow_clock(self, ticking_clock: Callable[[], int]) -> None:
        store = TaskStore(MemoryKeyValueStore(), clock=ticking_clock)
        assert store.create("A").id == 5_000
        assert store.create("B").id == 5_007

    def test_ids_continue_after_reload(self, kv: MemoryKeyValueStore) -> None:
        first = TaskStore(kv, clock=lambda: 9_000)
        first.create("Old")
        second = TaskStore(kv, clock=lambda: 10)
        assert second.create("New").id == 9_001


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

class TestUpdate:
    def test_applies_only_given_fields(self, store: TaskStore) -> None:
        t = store.create("Draft", due_date="2026-01-01", priority="low")
        updated = store.update(t.id, text="Final")
        assert updated.text == "Final"
        assert updated.priority == TaskPriority.LOW
        assert updated.due_date == t.due_date
        assert updated.created_at == t.created_at

    def test_none_clears_optional_fields(self, store: TaskStore) -> None:
        t = store.create("Draft", due_date="2026-01-01", priority="low")
        updated = store.update(t.id, due_date=None, priority=None)
        assert updated.due_date is None
        assert updated.priority is None

    def test_does_not_touch_status_or_completion(self, store: TaskStore) -> None:
        t = store.create("Draft")
        store.set_status(t.id, "inprogress")
        updated = store.update(t.id, text="Still going", priority="high")
        assert updated.status == TaskStatus.IN_PROGRESS
        assert updated.completed is False
        assert updated.id == t.id

    def test_missing_id(self, store: TaskStore) -> None:
        with pytest.raises(NotFoundError):
            store.update(42, text="x")

    def test_empty_text_rejected_and_state_unchanged(self, store: TaskStore, kv: MemoryKeyValueStore) -> None:
        t = store.create("Keep me")
        before = kv.get("tasks")
        with pytest.raises(ValidationError):
            store.update(t.id, text="  ", priority="high")
        assert store.get(t.id).text == "Keep me"
        assert store.get(t.id).priority is None
        assert kv.get("tasks") == before

    def test_notifies_updated(self, store: TaskStore, sink: RecordingSink) -> None:
        t = store.create("Draft")
        store.update(t.id, text="Final")
        kind, payload = sink.events[-1]
        assert kind == "updated"
        assert payload["fields"] == ["text"]


class TestDelete:
    def test_removes_and_preserves_order(self, store: TaskStore, sink: RecordingSink) -> None:
        a, b, c = (store.create(x) for x in "ABC")
        store.delete(b.id)
        assert [t.id for t in store.list_tasks()] == [a.id, c.id]
        assert sink.events[-1] == ("deleted", {"task_id": b.id, "text": "B"})

    def test_missing_id_raises_and_leaves_bytes_unchanged(self, store: TaskStore, kv: MemoryKeyValueStore) -> None:
        store.create("A")
        store.create("B")
        before = kv.get("tasks")
        with pytest.raises(NotFoundError):
            store.delete(123456)
        assert kv.get("tasks") == before
        assert len(store) == 2

    def test_deleted_task_is_gone(self, store: TaskStore) -> None:
        t = store.create("A")
        store.delete(t.id)
        with pytest.raises(NotFoundError):
            store.get(t.id)


# ---------------------------------------------------------------------------
# Status synchronization
# ---------------------------------------------------------------------------

class TestToggleComplete:
    def test_completing_forces_done(self, store: TaskStore) -> None:
        t = store.toggle_complete(store.create("A").id)
        assert t.completed is True
        assert t.status == TaskStatus.DONE

    def test_uncompleting_done_resets_to_todo(self, store: TaskStore) -> None:
        t = store.create("A")
        store.toggle_complete(t.id)
        t = store.toggle_complete(t.id)
        assert t.completed is False
        assert t.status == TaskStatus.TODO

    def test_round_trip_from_todo(self, store: TaskStore) -> None:
        t = store.create("A")
        store.toggle_complete(t.id)
        back = store.toggle_complete(t.id)
        assert (back.completed, back.status) == (t.completed, t.status)

    def test_round_trip_from_done(self, store: TaskStore) -> None:
        t = store.set_status(store.create("A").id, "done")
        store.toggle_complete(t.id)
        back = store.toggle_complete(t.id)
        assert (back.completed, back.status) == (True, TaskStatus.DONE)

    def test_round_trip_from_inprogress_lands_in_todo(self, store: TaskStore) -> None:
        # Completing an in-progress task and reopening it does not restore
        # the in-progress column; it comes back as todo.
        t = store.set_status(store.create("A").id, "inprogress")
        store.toggle_complete(t.id)
        back = store.toggle_complete(t.id)
        assert back.completed is False
        assert back.status == TaskStatus.TODO

    def test_reopening_legacy_completed_record(self, kv: MemoryKeyValueStore) -> None:
        kv.set("tasks", json.dumps([
            {"id": 1, "text": "A", "completed": True, "createdAt": "", "status": "inprogress"},
        ]))
        store = TaskStore(kv)
        t = store.toggle_complete(1)
        assert t.completed is False
        assert t.status == TaskStatus.TODO

    def test_is_silent(self, store: TaskStore, sink: RecordingSink) -> None:
        t = store.create("A")
        store.toggle_complete(t.id)
        assert sink.kinds() == ["created"]

    def test_persists(self, store: TaskStore, kv: MemoryKeyValueStore) -> None:
        t = store.create("A")
        store.toggle_complete(t.id)
        assert _persisted(kv)[0]["completed"] is True

    def test_missing_id(self, store: TaskStore) -> None:
        with pytest.raises(NotFoundError):
            store.toggle_complete(1)


class TestSetStatus:
    @pytest.mark.parametrize(
        ("status", "completed"),
        [("todo", False), ("inprogress", False), ("done", True)],
    )
    def test_completion_follows_status(self, store: TaskStore, status: str, completed: bool) -> None:
        t = store.create("A")
        store.toggle_complete(t.id)
        moved = store.set_status(t.id, status)
        assert moved.status == TaskStatus(status)
        assert moved.completed is completed

    def test_notifies_moved(self, store: TaskStore, sink: RecordingSink) -> None:
        t = store.create("A")
        store.set_status(t.id, "inprogress")
        kind, payload = sink.events[-1]
        assert kind == "moved"
        assert payload["status"] == "inprogress"

    def test_unknown_status(self, store: TaskStore) -> None:
        t = store.create("A")
        with pytest.raises(ValidationError):
            store.set_status(t.id, "blocked")

    def test_missing_id(self, store: TaskStore) -> None:
        with pytest.raises(NotFoundError):
            store.set_status(99, "done")


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

class TestReorder:
    def test_full_permutation(self, store: TaskStore, sink: RecordingSink) -> None:
        t1, t2, t3 = (store.create(x) for x in ("T1", "T2", "T3"))
        store.reorder([t3.id, t1.id, t2.id])
        assert [t.id for t in store.list_tasks()] == [t3.id, t1.id, t2.id]
        assert sink.events[-1][0] == "reordered"

    def test_accepts_tasks(self, store: TaskStore) -> None:
        t1, t2 = store.create("T1"), store.create("T2")
        store.reorder([t2, t1])
        assert [t.id for t in store.list_tasks()] == [t2.id, t1.id]

    @pytest.mark.parametrize("mutate", ["drop", "add", "duplicate"])
    def test_non_permutation_rejected(self, store: TaskStore, kv: MemoryKeyValueStore, mutate: str) -> None:
        ids = [store.create(x).id for x in "ABC"]
        before = kv.get("tasks")
        if mutate == "drop":
            bad = ids[:2]
        elif mutate == "add":
            bad = ids + [1]
        else:
            bad = [ids[0], ids[0], ids[1]]
        with pytest.raises(InvariantError):
            store.reorder(bad)
        assert [t.id for t in store.list_tasks()] == ids
        assert kv.get("tasks") == before

    def test_reorder_unfiltered_view(self, store: TaskStore) -> None:
        t1, t2, t3 = (store.create(x) for x in ("T1", "T2", "T3"))
        view = store.project_list("all")
        store.reorder_view(view, [t3, t1, t2])
        assert [t.id for t in store.list_tasks()] == [t3.id, t1.id, t2.id]

    def test_reorder_with_hidden_tasks(self, store: TaskStore) -> None:
        a, b, c, d = (store.create(x) for x in "ABCD")
        store.toggle_complete(a.id)
        store.toggle_complete(c.id)

        view = store.project_list("active")
        assert [t.id for t in view] == [b.id, d.id]

        store.reorder_view([b.id, d.id], [d.id, b.id])
        assert [t.id for t in store.list_tasks()] == [a.id, d.id, c.id, b.id]

    def test_move_in_list(self, store: TaskStore, sink: RecordingSink) -> None:
        a, b, c, d = (store.create(x) for x in "ABCD")
        store.toggle_complete(a.id)
        store.toggle_complete(c.id)
        result = store.move_in_list("active", 0, 1)
        assert [t.id for t in result] == [a.id, d.id, c.id, b.id]
        assert sink.events[-1][0] == "reordered"

    def test_move_in_list_same_index_is_noop(self, store: TaskStore, kv: MemoryKeyValueStore, sink: RecordingSink) -> None:
        store.create("A")
        store.create("B")
        before = kv.get("tasks")
        events = len(sink.events)
        store.move_in_list("all", 1, 1)
        assert kv.get("tasks") == before
        assert len(sink.events) == events

    def test_move_in_list_out_of_range(self, store: TaskStore) -> None:
        store.create("A")
        with pytest.raises(InvariantError):
            store.move_in_list("all", 0, 3)

    def test_reorder_view_rejects_unknown_tasks(self, store: TaskStore) -> None:
        a = store.create("A")
        with pytest.raises(InvariantError):
            store.reorder_view([a.id, 77], [77, a.id])


class TestMoveOnBoard:
    def test_change_column_applies_status_rules(self, store: TaskStore, sink: RecordingSink) -> None:
        t = store.create("A")
        moved = store.move_on_board(t.id, "done")
        assert moved.status == TaskStatus.DONE
        assert moved.completed is True
        assert sink.events[-1][0] == "moved"

    def test_reposition_within_column(self, store: TaskStore, sink: RecordingSink) -> None:
        t1, t2, t3 = (store.create(x) for x in ("T1", "T2", "T3"))
        store.move_on_board(t3.id, "todo", 0)
        assert [t.id for t in store.project_board()["todo"]] == [t3.id, t1.id, t2.id]
        assert sink.events[-1][0] == "reordered"

    def test_change_column_at_index(self, store: TaskStore) -> None:
        t1, t2, t3 = (store.create(x) for x in ("T1", "T2", "T3"))
        store.set_status(t1.id, "inprogress")
        store.move_on_board(t3.id, "inprogress", 0)
        board = store.project_board()
        assert [t.id for t in board["inprogress"]] == [t3.id, t1.id]
        assert [t.id for t in board["todo"]] == [t2.id]
        # todo task t2 keeps its canonical slot
        assert [t.id for t in store.list_tasks()] == [t3.id, t2.id, t1.id]

    def test_drop_in_place_changes_nothing(self, store: TaskStore, kv: MemoryKeyValueStore, sink: RecordingSink) -> None:
        t = store.create("A")
        before = kv.get("tasks")
        events = len(sink.events)
        store.move_on_board(t.id, "todo", 0)
        assert kv.get("tasks") == before
        assert len(sink.events) == events

    def test_bad_index_rolls_back_status_change(self, store: TaskStore) -> None:
        t = store.create("A")
        with pytest.raises(InvariantError):
            store.move_on_board(t.id, "done", 5)
        assert store.get(t.id).status == TaskStatus.TODO
        assert store.get(t.id).completed is False


# ---------------------------------------------------------------------------
# Loading, atomicity, lifecycle
# ---------------------------------------------------------------------------

class TestLoading:
    def test_missing_value_is_empty(self) -> None:
        assert TaskStore(MemoryKeyValueStore()).list_tasks() == []

    @pytest.mark.parametrize("raw", ["not json", "{\"tasks\": 1}", "42", "null"])
    def test_unparsable_value_is_empty(self, raw: str) -> None:
        store = TaskStore(MemoryKeyValueStore({"tasks": raw}))
        assert store.list_tasks() == []

    def test_bad_records_skipped(self) -> None:
        raw = json.dumps([
            {"id": 1, "text": "Good", "completed": False, "createdAt": "x"},
            {"id": 2, "text": ""},
            {"text": "no id"},
            "junk",
            {"id": 1, "text": "duplicate"},
            {"id": 3, "text": "Odd enums", "priority": "urgent", "status": "blocked"},
            {"id": float("inf"), "text": "infinite id"},
            {"id": float("nan"), "text": "nan id"},
        ])
        raw = raw[:-1] + ', {"id": 1e400, "text": "huge id"}]'
        store = TaskStore(MemoryKeyValueStore({"tasks": raw}))
        tasks = store.list_tasks()
        assert [t.id for t in tasks] == [1, 3]
        assert tasks[1].priority is None
        assert tasks[1].status is None

    def test_completed_record_without_status_lands_in_done(self) -> None:
        raw = json.dumps([
            {"id": 1, "text": "old", "completed": True},
            {"id": 2, "text": "half moved", "completed": True, "status": "inprogress"},
            {"id": 3, "text": "open", "completed": False},
        ])
        store = TaskStore(MemoryKeyValueStore({"tasks": raw}))
        board = store.project_board()
        assert [t.id for t in board["done"]] == [1, 2]
        assert [t.id for t in board["todo"]] == [3]
        assert board["inprogress"] == []
        assert store.get(1).status == TaskStatus.DONE

    def test_round_trip_through_kv(self, kv: MemoryKeyValueStore) -> None:
        first = TaskStore(kv)
        a = first.create("A", priority="medium")
        first.set_status(a.id, "inprogress")
        second = TaskStore(kv)
        assert second.list_tasks() == first.list_tasks()

    def test_custom_key(self, kv: MemoryKeyValueStore) -> None:
        store = TaskStore(kv, key="work")
        store.create("A")
        assert kv.get("work") is not None
        assert kv.get("tasks") is None


class TestAtomicity:
    def test_failed_write_keeps_memory_state(self) -> None:
        kv = FailingKV()
        store = TaskStore(kv)
        t = store.create("A")
        kv.fail = True
        with pytest.raises(OSError):
            store.create("B")
        with pytest.raises(OSError):
            store.toggle_complete(t.id)
        assert [x.text for x in store.list_tasks()] == ["A"]
        assert store.get(t.id).completed is False

    def test_returned_tasks_are_copies(self, store: TaskStore) -> None:
        t = store.create("A")
        t.text = "mutated outside"
        store.list_tasks()[0].completed = True
        assert store.get(t.id).text == "A"
        assert store.get(t.id).completed is False

    def test_sink_failure_does_not_break_store(self, kv: MemoryKeyValueStore) -> None:
        store = TaskStore(kv, sink=ExplodingSink())
        t = store.create("A")
        assert store.get(t.id).text == "A"


class TestLifecycle:
    def test_close_flushes_and_blocks_writes(self, kv: MemoryKeyValueStore) -> None:
        store = TaskStore(kv)
        store.close()
        assert kv.get("tasks") == "[]"
        with pytest.raises(TaskTrackerError):
            store.create("late")

    def test_context_manager(self, kv: MemoryKeyValueStore) -> None:
        with TaskStore(kv) as store:
            store.create("A")
        assert len(_persisted(kv)) == 1

    def test_report_error(self, store: TaskStore, sink: RecordingSink) -> None:
        event = store.report_error(NotFoundError(5))
        assert event.kind == EventKind.ERROR
        assert sink.events[-1] == ("error", {"error_type": "NotFoundError", "message": "Task 5 not found"})


class TestEndToEnd:
    def test_complete_then_reopen_on_board(self, store: TaskStore) -> None:
        t1, t2, t3 = (store.create(x) for x in ("First", "Second", "Third"))
        store.toggle_complete(t2.id)

        board = store.project_board()
        assert [t.id for t in board["done"]] == [t2.id]
        assert t2.id not in [t.id for t in board["todo"] + board["inprogress"]]

        store.toggle_complete(t2.id)
        board = store.project_board()
        assert [t.id for t in board["todo"]] == [t1.id, t2.id, t3.id]
        assert board["inprogress"] == []
        assert board["done"] == []

    def test_stats(self, store: TaskStore) -> None:
        a, b, c = (store.create(x) for x in "ABC")
        store.toggle_complete(a.id)
        store.set_status(b.id, "inprogress")
        stats = store.stats()
        assert stats.to_dict() == {
            "total": 3,
            "completed": 1,
            "active": 2,
            "columns": {"todo": 1, "inprogress": 1, "done": 1},
        }
