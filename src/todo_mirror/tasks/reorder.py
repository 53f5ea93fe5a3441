# src/todo_mirror/tasks/reorder.py

from __future__ import annotations

"""
Reorder resolver.

Turns a "move the item at position i to position j" gesture over the rendered,
order-sorted list into new order values. Pure functions: the cache applies the
plan and talks to the remote store.

Two policies, picked once per cache:
- FULL_REINDEX: every item gets order = position; one patch per changed item.
- SINGLE_ITEM: only the moved item gets order = destination; one patch total.
  Other items keep their stored order, so values may be duplicated or sparse
  until the next full reload normalizes them.
"""

from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import StrEnum

from ..core.errors import ValidationError
from .task_models import Task


class ReorderPolicy(StrEnum):
    FULL_REINDEX = "full_reindex"
    SINGLE_ITEM = "single_item"


@dataclass(frozen=True, slots=True)
class MovePlan:
    """
    items: the whole list after the move, in display position order.
    changes: (task_id, new_order) for every item whose order must be patched.
    """

    items: list[Task]
    changes: list[tuple[str, int]]


def plan_move(
    sequence: Sequence[Task],
    source_index: int,
    destination_index: int,
    policy: ReorderPolicy = ReorderPolicy.FULL_REINDEX,
) -> MovePlan | None:
    """Return None when nothing moves (source == destination)."""
    n = len(sequence)
    if not 0 <= source_index < n:
        raise ValidationError(f"source position {source_index} is outside the list (size {n})")
    if not 0 <= destination_index < n:
        raise ValidationError(f"destination position {destination_index} is outside the list (size {n})")
    if source_index == destination_index:
        return None

    items = list(sequence)
    moved = items.pop(source_index)
    items.insert(destination_index, moved)

    if policy is ReorderPolicy.SINGLE_ITEM:
        items[destination_index] = replace(moved, order=destination_index)
        return MovePlan(items=items, changes=[(moved.id, destination_index)])

    out: list[Task] = []
    changes: list[tuple[str, int]] = []
    for pos, task in enumerate(items):
        if task.order != pos:
            task = replace(task, order=pos)
            changes.append((task.id, pos))
        out.append(task)
    return MovePlan(items=out, changes=changes)
