# src/todo_mirror/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, cast

from ..core.errors import NotFoundError, TodoError, TransportError, ValidationError, friendly_error_message
from ..core.state import AppState
from ..tasks.task_models import Task, changes_from_fields

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Errors raised synchronously by the cache (bad input) become a reply;
        anything else propagates to the connector.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return await h3(state, args, emit)

            h2 = cast(CommandHandler2, handler)
            return await h2(state, args)
        except TodoError as e:
            return friendly_error_message(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering / parsing helpers ----


def render_tasks(tasks: Sequence[Task]) -> str:
    if not tasks:
        return "No tasks."
    lines = []
    for pos, t in enumerate(tasks, start=1):
        mark = "x" if t.completed else " "
        saving = " (saving)" if t.is_placeholder else ""
        lines.append(f"{pos:>3}. [{mark}] {t.title}  <{t.priority.value}>{saving}")
    return "\n".join(lines)


def _position(raw: str, size: int) -> int:
    """1-based position typed by the user -> 0-based index."""
    try:
        pos = int(raw)
    except ValueError:
        raise ValidationError(f"not a position: {raw!r}") from None
    if not 1 <= pos <= size:
        raise ValidationError(f"position must be between 1 and {size}" if size else "the list is empty")
    return pos - 1


def _task_at(state: AppState, raw: str) -> Task:
    tasks = state.cache.snapshot()
    return tasks[_position(raw, len(tasks))]


async def _confirm(
    state: AppState,
    pending: Awaitable[Any],
    emit: CommandEmitter | None,
    done: str,
) -> str:
    """Show the optimistic list right away, then wait for the server."""
    if emit is not None:
        emit(render_tasks(state.cache.snapshot()))

    try:
        await pending
    except NotFoundError as e:
        return f"{friendly_error_message(e)}\n{render_tasks(state.cache.snapshot())}"
    except TransportError as e:
        logger.info("Intent failed: %s", e)
        return f"{friendly_error_message(e)} Change reverted.\n{render_tasks(state.cache.snapshot())}"

    if emit is not None:
        return done
    return f"{done}\n{render_tasks(state.cache.snapshot())}"


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    return (
        "Status:\n"
        f"  Server: {state.remote.base_url}\n"
        f"  Reorder policy: {state.cache.reorder_policy.value}\n"
        f"  Tasks: {len(state.cache)}\n"
        f"  Requests in flight: {state.cache.pending_count}\n"
        f"  Log dir: {getattr(settings, 'data_dir', '-')}"
    )


async def cmd_list(state: AppState, args: list[str]) -> str:
    return render_tasks(state.cache.snapshot())


async def cmd_reload(state: AppState, args: list[str]) -> str:
    try:
        tasks = await state.cache.refresh()
    except TransportError as e:
        return f"{friendly_error_message(e)} Showing the cached list.\n{render_tasks(state.cache.snapshot())}"
    return render_tasks(tasks)


async def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <title>               -> medium priority
    /add -p high <title>       -> explicit priority
    """
    priority: str | None = None
    if args[:1] == ["-p"]:
        if len(args) < 2:
            return "Usage: /add [-p low|medium|high] <title>"
        priority = args[1]
        args = args[2:]

    pending = state.cache.add_task(" ".join(args), priority)
    return await _confirm(state, pending, emit, done="Added.")


async def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /done <n>"
    task = _task_at(state, args[0])
    pending = state.cache.toggle_completed(task.id)
    return await _confirm(state, pending, emit, done="Updated.")


async def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) < 2:
        return "Usage: /edit <n> <new title>"
    task = _task_at(state, args[0])
    pending = state.cache.update_fields(task.id, *changes_from_fields(title=" ".join(args[1:])))
    return await _confirm(state, pending, emit, done="Renamed.")


async def cmd_prio(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /prio <n> <low|medium|high>"
    task = _task_at(state, args[0])
    pending = state.cache.update_fields(task.id, *changes_from_fields(priority=args[1]))
    return await _confirm(state, pending, emit, done="Priority changed.")


async def cmd_rm(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 1:
        return "Usage: /rm <n>"
    task = _task_at(state, args[0])
    pending = state.cache.delete_task(task.id)
    return await _confirm(state, pending, emit, done="Deleted.")


async def cmd_mv(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /mv <from> <to>"
    size = len(state.cache.snapshot())
    source = _position(args[0], size)
    destination = _position(args[1], size)
    pending = state.cache.move_item(source, destination)
    return await _confirm(state, pending, emit, done="Moved.")


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show server, reorder policy and counters.")
registry.register("list", cmd_list, help_text="Show the task list.", aliases=["ls"])
registry.register("reload", cmd_reload, help_text="Reload the list from the server.")
registry.register("add", cmd_add, help_text="Add a task: /add [-p low|medium|high] <title>.")
registry.register("done", cmd_done, help_text="Toggle completed: /done <n>.")
registry.register("edit", cmd_edit, help_text="Rename: /edit <n> <title>.")
registry.register("prio", cmd_prio, help_text="Change priority: /prio <n> <low|medium|high>.")
registry.register("rm", cmd_rm, help_text="Delete: /rm <n>.")
registry.register("mv", cmd_mv, help_text="Move: /mv <from> <to>.")
