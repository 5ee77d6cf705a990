"""Map a reorder performed on a projected view back onto the canonical order.

A filtered view hides some tasks.  When the user drags within that view we
only learn the view's new order, so the canonical sequence has to be
rewritten without disturbing anything the user could not see.  The rule is
simple: hidden tasks never change index, and the slots held by visible tasks
are refilled, left to right, from the view's new order.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Sequence, TypeVar

from .model import InvariantError

T = TypeVar("T")


def _key(item: Any) -> Any:
    return getattr(item, "id", item)


def resolve_reorder(canonical: Sequence[T], old_view: Sequence[Any], new_view: Sequence[Any]) -> list[T]:
    """Return the canonical sequence rewritten to follow *new_view*.

    Items are matched by ``id`` when they have one, otherwise by value, so
    callers may pass either tasks or raw ids for the two views.  The result
    always contains the canonical items themselves.

    Raises :class:`InvariantError` when *old_view* is not a sub-multiset of
    *canonical* or when *new_view* is not a permutation of *old_view*.
    """
    canonical_counts = Counter(_key(item) for item in canonical)
    old_counts = Counter(_key(item) for item in old_view)
    new_counts = Counter(_key(item) for item in new_view)

    missing = old_counts - canonical_counts
    if missing:
        raise InvariantError(f"View contains tasks not in the collection: {sorted(missing, key=str)}")
    if old_counts != new_counts:
        raise InvariantError("Reordered view is not a permutation of the original view")
    if any(canonical_counts[k] != n for k, n in old_counts.items()):
        raise InvariantError("View must contain every copy of the tasks it shows")

    by_key = {_key(item): item for item in canonical}
    members = set(old_counts)
    replacements = iter(new_view)
    out: list[T] = []
    for item in canonical:
        if _key(item) in members:
            out.append(by_key[_key(next(replacements))])
        else:
            out.append(item)
    return out


def move_item(sequence: Sequence[T], source_index: int, destination_index: int) -> list[T]:
    """Remove the item at *source_index* and reinsert it at *destination_index*."""
    size = len(sequence)
    for name, idx in (("source_index", source_index), ("destination_index", destination_index)):
        if not 0 <= idx < size:
            raise InvariantError(f"{name} {idx} is out of range for a view of {size} tasks")
    out = list(sequence)
    moved = out.pop(source_index)
    out.insert(destination_index, moved)
    return out
