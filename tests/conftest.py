# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_mirror.core.state import AppState
from todo_mirror.tasks.task_cache import TaskCache

from .fakes import FakeRemote, make_tasks


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="todo-mirror-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        api_base_url="http://fake.test",
        request_timeout_seconds=1.0,
        reorder_policy="full_reindex",
        console_enabled=False,
    )


@pytest.fixture()
def remote() -> FakeRemote:
    """Remote store seeded with A, B, C (ids "1", "2", "3", order 0..2)."""
    return FakeRemote(make_tasks("A", "B", "C"))


@pytest.fixture()
def cache(remote: FakeRemote) -> TaskCache:
    """Cache already holding what the remote store holds."""
    return TaskCache(remote, tasks=list(remote.tasks.values()))


@pytest.fixture()
def state(settings: SimpleNamespace, remote: FakeRemote, cache: TaskCache) -> AppState:
    return AppState(settings=settings, remote=remote, cache=cache)  # type: ignore[arg-type]
