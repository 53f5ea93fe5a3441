# src/todo_mirror/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the HTTP client and the task cache into AppState,
- performs the initial list load.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.errors import TransportError
from ..core.state import AppState
from ..remote.client import TodoApiClient
from ..tasks.task_cache import TaskCache

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, remote: TodoApiClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the remote client) injectable makes the app easier to test
    and avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if remote is None:
        remote = TodoApiClient(
            settings.api_base_url,
            timeout_seconds=settings.request_timeout_seconds,
        )

    return AppState(
        settings=settings,
        remote=remote,
        cache=TaskCache(remote, reorder_policy=settings.reorder_policy),
    )


async def load_initial_tasks(state: AppState) -> bool:
    """
    First list load. Returns False (and keeps an empty cache) when the
    remote store is unreachable, so the session can still start and /reload later.
    """
    try:
        tasks = await state.cache.refresh()
    except TransportError as e:
        logger.warning("Initial load from %s failed: %s", state.remote.base_url, e)
        return False
    logger.info("Loaded %d tasks from %s", len(tasks), state.remote.base_url)
    return True
