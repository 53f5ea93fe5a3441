# src/todo_mirror/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The cache depends on a Protocol instead of the concrete HTTP client.
This keeps the remote store swappable and makes testing easier.
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import NewTask, Task


class TodoRemote(Protocol):
    """
    The remote collection endpoint: list, create, partial update, delete.

    Every method is one request/response round trip. Implementations raise
    TransportError (or NotFoundError for patch/remove on a missing id) and
    never retry.
    """

    async def list(self) -> list[Task]: ...

    async def create(self, new_task: NewTask, *, order: int) -> Task: ...

    async def patch(self, task_id: str, fields: dict[str, Any]) -> Task: ...

    async def remove(self, task_id: str) -> None: ...
