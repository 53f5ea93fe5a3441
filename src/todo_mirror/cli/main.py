# src/todo_mirror/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads the list, then runs the console
REPL (or prints the list once when the console is disabled).
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import create_initial_state, load_initial_tasks
from ..cli.commands import render_tasks
from ..config import Settings, get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if state.cache.pending_count:
        logger.info("Waiting for %d request(s) in flight...", state.cache.pending_count)
    try:
        await state.aclose()
    except Exception:
        logger.exception("Shutdown failed.")


async def _run(settings: Settings) -> None:
    state = create_initial_state(settings=settings)
    try:
        await load_initial_tasks(state)

        if settings.console_enabled:
            await run_console_loop(state)
        else:
            logger.info("Console disabled. Printing the list once.")
            print(render_tasks(state.cache.snapshot()))
    finally:
        await _shutdown(state)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s, logging to %s", settings.app_name, log_file)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")

    logger.info("Bye.")


if __name__ == "__main__":
    main()
