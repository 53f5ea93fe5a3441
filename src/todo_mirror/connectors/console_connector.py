# src/todo_mirror/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_tasks
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def run_console_loop(state: AppState) -> None:
    """
    Read one line at a time and run it as a command.

    Every intent is awaited before the next line is read, so mutations issued
    from the console never overlap.
    """
    logger.info("Console connector started (server=%s).", state.remote.base_url)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    print(render_tasks(state.cache.snapshot()), flush=True)

    def emit(text: str) -> None:
        # Optimistic view, printed before the server answers.
        print(text, flush=True)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break

        _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            response = await command_registry.handle(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is None:
            response = "Commands start with '/'. Use /help to list available commands."

        print(f"[{_ts_local()}] {response}", flush=True)

    logger.info("Console connector finished.")
