# src/todo_mirror/tasks/task_cache.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from dataclasses import replace
from typing import Any, TypeVar

from ..core.errors import NotFoundError, ValidationError
from ..core.ports import TodoRemote
from .reorder import ReorderPolicy, plan_move
from .task_models import (
    END_OF_LIST_ORDER,
    PLACEHOLDER_PREFIX,
    NewTask,
    Priority,
    SetCompleted,
    SetOrder,
    Task,
    TaskChange,
    apply_changes,
    normalize_for_create,
    normalize_for_list,
    wire_patch,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Items = tuple[Task, ...]


class TaskCache:
    """
    Optimistic in-memory mirror of the remote task list.

    Every mutation runs in two phases:
    - apply (synchronous): the new collection is installed before the entry
      point returns, and the collection it replaced is kept as the rollback
      target of *this* mutation only;
    - confirm (asynchronous): the remote call runs as an asyncio task that the
      entry point returns. On failure the saved collection is restored and the
      error is raised to whoever awaits it.

    Collections are immutable tuples of frozen Tasks, so keeping a reference is
    a complete snapshot. The tuple is kept in display sequence: sorted by order
    after every load, with moves placing items at their destination.

    Full-reindex order patches are the exception to whole-list rollback: a
    failed one reverts only that item's order, so sibling patches that the
    server accepted stay visible.

    Known limitation: if an earlier mutation fails after a later one was
    applied, restoring the earlier snapshot also drops the later optimistic
    change. Callers that need strict consistency await each intent.

    Entry points must be called from a running event loop.
    """

    def __init__(
        self,
        remote: TodoRemote,
        *,
        reorder_policy: ReorderPolicy | str = ReorderPolicy.FULL_REINDEX,
        tasks: list[Task] | None = None,
    ) -> None:
        self._remote = remote
        self.reorder_policy = ReorderPolicy(reorder_policy)
        self._items: Items = tuple(normalize_for_list(tasks or []))
        self._pending: set[asyncio.Task[Any]] = set()
        # placeholder id -> server task (confirmed) or None (create failed)
        self._settled: dict[str, Task | None] = {}
        # bumped on every apply; refresh() uses it to spot lists that raced a mutation
        self._revision = 0
        logger.info(
            "TaskCache ready policy=%s total=%d", self.reorder_policy.value, len(self._items)
        )

    # ---- read side ----

    def snapshot(self) -> list[Task]:
        """Current tasks in display sequence."""
        return list(self._items)

    def get(self, task_id: str) -> Task | None:
        for task in self._items:
            if task.id == task_id:
                return task
        return None

    def __len__(self) -> int:
        return len(self._items)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ---- low-level helpers ----

    def _install(self, items: Items) -> Items:
        before = self._items
        self._items = items
        self._revision += 1
        return before

    @staticmethod
    def _by_order(items: Iterable[Task]) -> Items:
        # sorted() is stable: ties keep their current display position
        return tuple(sorted(items, key=lambda t: t.order))

    def _restore(self, items: Items) -> Items:
        """Map placeholders that settled since `items` was captured."""
        out: list[Task] = []
        for task in items:
            if task.id in self._settled:
                server_task = self._settled[task.id]
                if server_task is None:
                    continue
                task = replace(server_task, order=task.order)
            out.append(task)
        return tuple(out)

    def _rollback(self, before: Items, label: str, task_id: str | None, err: Exception) -> None:
        self._items = self._restore(before)
        if isinstance(err, NotFoundError) and task_id is not None:
            # Provably stale: the remote store no longer has it.
            self._items = tuple(t for t in self._items if t.id != task_id)
        logger.warning("%s failed task_id=%s (%s); rolled back", label, task_id, err)

    def _spawn(self, coro: Coroutine[Any, Any, T], name: str) -> asyncio.Task[T]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if not self._pending:
            # No confirm left holding a rollback list, so no placeholder can come back.
            self._settled.clear()
        if not task.cancelled():
            # Failures are logged by _rollback; don't let asyncio warn again
            # when a caller fires and forgets.
            task.exception()

    @staticmethod
    def _resolved(value: T) -> asyncio.Future[T]:
        fut: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        fut.set_result(value)
        return fut

    def _locate(self, task_id: str) -> tuple[int, Task | None]:
        for pos, task in enumerate(self._items):
            if task.id == task_id:
                return pos, task
        return -1, None

    def _mutate(
        self,
        items: Items,
        *,
        label: str,
        task_id: str,
        send: Callable[[], Awaitable[T]],
    ) -> asyncio.Task[T]:
        asyncio.get_running_loop()  # fail before applying if there is no loop
        before = self._install(items)
        logger.debug("%s applied task_id=%s", label, task_id)
        return self._spawn(self._confirm(before, label, task_id, send), name=f"{label}:{task_id}")

    async def _confirm(
        self,
        before: Items,
        label: str,
        task_id: str,
        send: Callable[[], Awaitable[T]],
    ) -> T:
        try:
            result = await send()
        except Exception as e:
            self._rollback(before, label, task_id, e)
            raise
        logger.debug("%s confirmed task_id=%s", label, task_id)
        return result

    @staticmethod
    def _check_not_placeholder(task: Task) -> None:
        if task.is_placeholder:
            raise ValidationError("task is still being saved; try again in a moment")

    # ---- mutations ----

    def add_task(self, title: str, priority: str | Priority | None = None) -> asyncio.Task[Task]:
        """Append a placeholder now; resolves to the server-assigned task."""
        new_task = normalize_for_create(title, priority)
        asyncio.get_running_loop()

        placeholder = new_task.placeholder(order=len(self._items))
        before = self._install(self._items + (placeholder,))
        logger.debug("create applied placeholder=%s", placeholder.id)
        return self._spawn(
            self._confirm_create(before, placeholder, new_task), name=f"create:{placeholder.id}"
        )

    async def _confirm_create(self, before: Items, placeholder: Task, new_task: NewTask) -> Task:
        try:
            created = await self._remote.create(new_task, order=END_OF_LIST_ORDER)
        except Exception as e:
            self._settled[placeholder.id] = None
            self._rollback(before, "create", None, e)
            raise

        self._settled[placeholder.id] = created
        items = list(self._items)
        for pos, task in enumerate(items):
            if task.id == placeholder.id:
                # The wire order is only a sentinel; keep the local rank.
                final = replace(created, order=task.order)
                items[pos] = final
                self._items = tuple(items)
                logger.info("Task created id=%s (placeholder %s)", final.id, placeholder.id)
                return final

        logger.warning(
            "create confirmed id=%s but placeholder %s is no longer cached", created.id, placeholder.id
        )
        return created

    def toggle_completed(self, task_id: str) -> asyncio.Future[Task | None]:
        """Flip completed as of now. Unknown ids are a silent no-op (resolves to None)."""
        task = self.get(task_id)
        if task is None:
            logger.debug("toggle ignored, task_id=%s not cached", task_id)
            return self._resolved(None)
        return self.update_fields(task_id, SetCompleted(not task.completed))

    def update_fields(self, task_id: str, *changes: TaskChange) -> asyncio.Future[Task | None]:
        """Apply update commands to one task. Unknown ids are a silent no-op."""
        pos, task = self._locate(task_id)
        if task is None or not changes:
            logger.debug("update ignored task_id=%s changes=%d", task_id, len(changes))
            return self._resolved(None)
        self._check_not_placeholder(task)

        items = list(self._items)
        items[pos] = apply_changes(task, changes)
        new_items = tuple(items)
        if any(isinstance(c, SetOrder) for c in changes):
            new_items = self._by_order(new_items)
        body = wire_patch(changes)
        return self._mutate(
            new_items, label="update", task_id=task_id, send=lambda: self._remote.patch(task_id, body)
        )

    def delete_task(self, task_id: str) -> asyncio.Future[None]:
        """Remove now, confirm later. Unknown ids are a silent no-op."""
        task = self.get(task_id)
        if task is None:
            logger.debug("delete ignored, task_id=%s not cached", task_id)
            return self._resolved(None)
        self._check_not_placeholder(task)

        items = tuple(t for t in self._items if t.id != task_id)
        return self._mutate(items, label="delete", task_id=task_id, send=lambda: self._remote.remove(task_id))

    def move_item(self, source_index: int, destination_index: int) -> asyncio.Future[list[Task]]:
        """
        Move by display positions. Resolves to the confirmed tasks, or raises
        the first failure (each patch rolls back on its own).
        """
        plan = plan_move(self.snapshot(), source_index, destination_index, self.reorder_policy)
        asyncio.get_running_loop()
        if plan is None:
            return self._resolved([])

        pending: list[asyncio.Future[Any]] = []

        if self.reorder_policy is ReorderPolicy.SINGLE_ITEM:
            task_id, order = plan.changes[0]
            moved = self.get(task_id)
            if moved is not None and moved.is_placeholder:
                # Nothing remote to patch yet; the create keeps the local rank.
                self._install(tuple(plan.items))
                return self._resolved([])
            pending.append(
                self._mutate(
                    tuple(plan.items),
                    label="reorder",
                    task_id=task_id,
                    send=lambda: self._remote.patch(task_id, SetOrder(order).wire()),
                )
            )
        else:
            previous = {t.id: t.order for t in self._items}
            self._install(tuple(plan.items))
            for task_id, order in plan.changes:
                if task_id.startswith(PLACEHOLDER_PREFIX):
                    # Nothing remote to patch yet; the create keeps the local rank.
                    continue
                pending.append(
                    self._spawn(
                        self._confirm_order(task_id, previous[task_id], order),
                        name=f"reorder:{task_id}",
                    )
                )

        logger.info(
            "move %d -> %d policy=%s patches=%d",
            source_index,
            destination_index,
            self.reorder_policy.value,
            len(pending),
        )
        if not pending:
            return self._resolved([])
        return asyncio.gather(*pending)

    async def _confirm_order(self, task_id: str, previous: int, order: int) -> Task:
        try:
            result = await self._remote.patch(task_id, SetOrder(order).wire())
        except Exception as e:
            self._revert_order(task_id, previous, order, e)
            raise
        logger.debug("reorder confirmed task_id=%s order=%d", task_id, order)
        return result

    def _revert_order(self, task_id: str, previous: int, order: int, err: Exception) -> None:
        if isinstance(err, NotFoundError):
            self._items = tuple(t for t in self._items if t.id != task_id)
        else:
            pos, task = self._locate(task_id)
            # A later move owns the value now; leave it alone.
            if task is not None and task.order == order:
                items = list(self._items)
                items[pos] = replace(task, order=previous)
                self._items = self._by_order(items)
        logger.warning("reorder failed task_id=%s order=%d (%s); reverted to %d", task_id, order, err, previous)

    # ---- full reload ----

    async def refresh(self) -> list[Task]:
        """
        Replace the cache with the remote list, normalized to dense order.

        In-flight confirms finish first, and a list that raced a new local
        mutation is fetched again, so an accepted change is never painted
        over by an older server view. On failure the cache is untouched.
        """
        while True:
            await self.wait_idle()
            revision = self._revision
            remote_tasks = await self._remote.list()
            if revision == self._revision and not self._pending:
                break
            logger.debug("list raced a local mutation; fetching again")

        self._install(tuple(normalize_for_list(remote_tasks)))
        logger.info("Cache refreshed: %d tasks", len(self._items))
        return self.snapshot()

    async def wait_idle(self) -> None:
        """Wait until every in-flight confirm has finished (success or failure)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
