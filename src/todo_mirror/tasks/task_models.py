# src/todo_mirror/tasks/task_models.py

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError

# Order sent with a create request: "end of list, real rank pending".
END_OF_LIST_ORDER = 99999

PLACEHOLDER_PREFIX = "tmp-"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_wire(cls, raw: Any) -> Priority:
        """Lenient read for remote payloads: anything unknown is MEDIUM."""
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.MEDIUM

    @classmethod
    def parse(cls, raw: str | Priority | None) -> Priority:
        """Strict read for user input."""
        if raw is None:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValidationError(f"priority must be one of: {choices}") from None


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    order: int = 0

    @property
    def is_placeholder(self) -> bool:
        return self.id.startswith(PLACEHOLDER_PREFIX)

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Task:
        raw_order = payload.get("order")
        try:
            order = int(raw_order) if raw_order is not None else 0
        except (TypeError, ValueError):
            order = 0
        return cls(
            id=str(payload["id"]),
            title=str(payload.get("title") or ""),
            completed=payload.get("completed") is True,
            priority=Priority.from_wire(payload.get("priority")),
            order=order,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
            "priority": self.priority.value,
            "order": self.order,
        }


@dataclass(frozen=True, slots=True)
class NewTask:
    """Validated create input, not yet sent anywhere."""

    title: str
    priority: Priority = Priority.MEDIUM

    def placeholder(self, order: int) -> Task:
        return Task(
            id=f"{PLACEHOLDER_PREFIX}{uuid.uuid4().hex}",
            title=self.title,
            completed=False,
            priority=self.priority,
            order=order,
        )


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("title must not be empty")
    return cleaned


def normalize_for_create(title: str | None, priority: str | Priority | None = None) -> NewTask:
    return NewTask(title=_clean_title(title), priority=Priority.parse(priority))


def normalize_for_list(tasks: Iterable[Task]) -> list[Task]:
    """
    Sort by order and rewrite order to the dense 0..n-1 sequence.

    Ties keep their input position (sorted() is stable), so the result is
    deterministic for duplicate order values coming from the remote store.
    """
    ordered = sorted(tasks, key=lambda t: t.order)
    return [t if t.order == pos else replace(t, order=pos) for pos, t in enumerate(ordered)]


# ---- update commands ----


@dataclass(frozen=True, slots=True)
class SetTitle:
    title: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "title", _clean_title(self.title))

    def apply(self, task: Task) -> Task:
        return replace(task, title=self.title)

    def wire(self) -> dict[str, Any]:
        return {"title": self.title}


@dataclass(frozen=True, slots=True)
class SetPriority:
    priority: Priority

    def __post_init__(self) -> None:
        object.__setattr__(self, "priority", Priority.parse(self.priority))

    def apply(self, task: Task) -> Task:
        return replace(task, priority=self.priority)

    def wire(self) -> dict[str, Any]:
        return {"priority": self.priority.value}


@dataclass(frozen=True, slots=True)
class SetCompleted:
    completed: bool

    def apply(self, task: Task) -> Task:
        return replace(task, completed=bool(self.completed))

    def wire(self) -> dict[str, Any]:
        return {"completed": bool(self.completed)}


@dataclass(frozen=True, slots=True)
class SetOrder:
    order: int

    def apply(self, task: Task) -> Task:
        return replace(task, order=int(self.order))

    def wire(self) -> dict[str, Any]:
        return {"order": int(self.order)}


TaskChange = SetTitle | SetPriority | SetCompleted | SetOrder


def changes_from_fields(
    *,
    title: str | None = None,
    priority: str | Priority | None = None,
    completed: bool | None = None,
    order: int | None = None,
) -> list[TaskChange]:
    """Turn a partial set of fields (None = untouched) into update commands."""
    changes: list[TaskChange] = []
    if title is not None:
        changes.append(SetTitle(title))
    if priority is not None:
        changes.append(SetPriority(Priority.parse(priority)))
    if completed is not None:
        changes.append(SetCompleted(completed))
    if order is not None:
        changes.append(SetOrder(order))
    return changes


def apply_changes(task: Task, changes: Iterable[TaskChange]) -> Task:
    for change in changes:
        task = change.apply(task)
    return task


def wire_patch(changes: Iterable[TaskChange]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for change in changes:
        body.update(change.wire())
    return body
