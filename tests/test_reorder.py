# tests/test_reorder.py

from __future__ import annotations

import pytest

from todo_mirror.core.errors import TransportError, ValidationError
from todo_mirror.tasks.reorder import ReorderPolicy, plan_move
from todo_mirror.tasks.task_cache import TaskCache

from .fakes import FakeRemote, make_tasks


def _pairs(cache: TaskCache) -> list[tuple[str, int]]:
    return [(t.title, t.order) for t in cache.snapshot()]


def test_plan_move_same_position_is_noop() -> None:
    tasks = make_tasks("A", "B", "C")
    for i in range(3):
        assert plan_move(tasks, i, i) is None
        assert plan_move(tasks, i, i, ReorderPolicy.SINGLE_ITEM) is None


@pytest.mark.parametrize("source,destination", [(-1, 0), (0, 3), (3, 0), (0, -1)])
def test_plan_move_rejects_positions_outside_list(source: int, destination: int) -> None:
    with pytest.raises(ValidationError):
        plan_move(make_tasks("A", "B", "C"), source, destination)


def test_plan_move_full_reindex_patches_only_changed_items() -> None:
    tasks = make_tasks("A", "B", "C", "D")
    plan = plan_move(tasks, 3, 2)
    assert plan is not None
    assert [(t.title, t.order) for t in plan.items] == [("A", 0), ("B", 1), ("D", 2), ("C", 3)]
    assert plan.changes == [("4", 2), ("3", 3)]


def test_plan_move_single_item_touches_only_the_moved_item() -> None:
    tasks = make_tasks("A", "B", "C", "D")
    plan = plan_move(tasks, 0, 2, ReorderPolicy.SINGLE_ITEM)
    assert plan is not None
    assert [(t.title, t.order) for t in plan.items] == [("B", 1), ("C", 2), ("A", 2), ("D", 3)]
    assert plan.changes == [("1", 2)]


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", list(ReorderPolicy))
async def test_move_to_same_position_sends_nothing(remote: FakeRemote, policy: ReorderPolicy) -> None:
    cache = TaskCache(remote, reorder_policy=policy, tasks=list(remote.tasks.values()))
    before = cache.snapshot()

    assert await cache.move_item(1, 1) == []
    assert cache.snapshot() == before
    assert remote.calls == []


@pytest.mark.asyncio
async def test_full_reindex_move_applies_now_and_patches_every_changed_item(
    cache: TaskCache, remote: FakeRemote
) -> None:
    pending = cache.move_item(0, 2)
    assert _pairs(cache) == [("B", 0), ("C", 1), ("A", 2)]

    confirmed = await pending
    assert len(confirmed) == 3
    assert remote.ops("patch") == [
        ("patch", "2", {"order": 0}),
        ("patch", "3", {"order": 1}),
        ("patch", "1", {"order": 2}),
    ]
    assert _pairs(cache) == [("B", 0), ("C", 1), ("A", 2)]


@pytest.mark.asyncio
async def test_full_reindex_failed_patch_reverts_that_item_only(cache: TaskCache, remote: FakeRemote) -> None:
    remote.fail("patch", TransportError("down"), task_id="1")

    with pytest.raises(TransportError):
        await cache.move_item(0, 2)
    await cache.wait_idle()

    assert {t.id: t.order for t in cache.snapshot()} == {"1": 0, "2": 0, "3": 1}
    assert remote.tasks["2"].order == 0
    assert remote.tasks["3"].order == 1


@pytest.mark.asyncio
async def test_single_item_move_sends_one_patch(remote: FakeRemote) -> None:
    cache = TaskCache(remote, reorder_policy="single_item", tasks=list(remote.tasks.values()))

    pending = cache.move_item(0, 2)
    assert _pairs(cache) == [("B", 1), ("C", 2), ("A", 2)]

    await pending
    assert remote.ops("patch") == [("patch", "1", {"order": 2})]


@pytest.mark.asyncio
async def test_single_item_order_is_repaired_by_refresh(remote: FakeRemote) -> None:
    cache = TaskCache(remote, reorder_policy="single_item", tasks=list(remote.tasks.values()))
    await cache.move_item(2, 0)
    assert _pairs(cache) == [("C", 0), ("A", 0), ("B", 1)]

    await cache.refresh()
    assert [t.order for t in cache.snapshot()] == [0, 1, 2]


@pytest.mark.asyncio
async def test_single_item_failed_move_restores_previous_list(remote: FakeRemote) -> None:
    cache = TaskCache(remote, reorder_policy="single_item", tasks=list(remote.tasks.values()))
    remote.fail("patch", TransportError("down"))

    with pytest.raises(TransportError):
        await cache.move_item(0, 1)
    assert _pairs(cache) == [("A", 0), ("B", 1), ("C", 2)]


@pytest.mark.asyncio
async def test_full_reindex_moves_placeholder_locally_without_request(
    cache: TaskCache, remote: FakeRemote
) -> None:
    remote.hold()
    creating = cache.add_task("D")

    moving = cache.move_item(3, 0)
    assert [t.title for t in cache.snapshot()] == ["D", "A", "B", "C"]

    remote.release()
    created = await creating
    await moving

    assert [t.id for t in cache.snapshot()] == [created.id, "1", "2", "3"]
    assert sorted(c[1] for c in remote.ops("patch")) == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_full_reindex_first_patch_failure_keeps_confirmed_siblings(
    cache: TaskCache, remote: FakeRemote
) -> None:
    remote.fail("patch", TransportError("down"), task_id="2")

    with pytest.raises(TransportError):
        await cache.move_item(0, 2)
    await cache.wait_idle()

    local = {t.id: t.order for t in cache.snapshot()}
    server = {t.id: t.order for t in remote.tasks.values()}
    assert local == server == {"1": 2, "2": 1, "3": 1}
    assert [t.title for t in cache.snapshot()] == ["B", "C", "A"]


@pytest.mark.asyncio
async def test_single_item_consecutive_moves_render_at_destination(remote: FakeRemote) -> None:
    cache = TaskCache(remote, reorder_policy="single_item", tasks=list(remote.tasks.values()))

    await cache.move_item(0, 2)
    assert [t.title for t in cache.snapshot()] == ["B", "C", "A"]

    await cache.move_item(0, 1)
    assert [t.title for t in cache.snapshot()] == ["C", "B", "A"]
    assert remote.ops("patch") == [
        ("patch", "1", {"order": 2}),
        ("patch", "2", {"order": 1}),
    ]
