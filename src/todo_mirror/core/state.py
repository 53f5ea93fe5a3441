# src/todo_mirror/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..remote.client import TodoApiClient
from ..tasks.task_cache import TaskCache


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    remote: TodoApiClient
    cache: TaskCache

    async def aclose(self) -> None:
        """End of session: let in-flight confirms finish, then close the HTTP client."""
        await self.cache.wait_idle()
        await self.remote.aclose()
