# src/veloce/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_task
from ..core.events import ChangeEvent
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _on_change(event: ChangeEvent) -> None:
    if event.field == "is_loading_ai" and event.value:
        _print_ts("[AI] Thinking...")


async def run_console_loop(state: AppState) -> None:
    """
    Interactive detail session over one task.

    The task is saved through the store after every command.
    """
    logger.info("Console session started task_id=%s", getattr(state.controller.task, "id", None))
    unsubscribe = state.controller.notifier.subscribe(_on_change)

    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
    print(render_task(state), flush=True)

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not line:
                continue

            if line.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not line.startswith("/"):
                line = "/add " + line

            try:
                response = await command_registry.handle(state, line)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            try:
                state.save()
            except Exception:
                logger.exception("Failed to save task.")
                _print_ts("[STORE] Could not save the task; see log for details.")

            if response is not None:
                _print_ts(response)
    finally:
        unsubscribe()
        state.controller.close()
        logger.info("Console session finished.")
