# src/veloce/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, opens the task named on the command line
and runs the console detail session until /exit.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging
from ..tasks.task_models import TaskType
from .bootstrap import create_initial_state, open_task

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="veloce", description="Task detail console.")
    parser.add_argument("title", nargs="*", help='Task title ("*" prefixes set priority).')
    parser.add_argument(
        "--type",
        dest="task_type",
        choices=[t.value for t in TaskType],
        default=TaskType.COORDINATE.value,
        help="Task type for new tasks.",
    )
    parser.add_argument("--minutes", type=int, default=None, help="Duration for new tasks.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    title = " ".join(args.title).strip()
    if not title:
        try:
            title = input("Task title: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return 1

    try:
        open_task(
            state,
            title,
            task_type=TaskType(args.task_type),
            estimated_minutes=args.minutes,
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 2

    try:
        asyncio.run(run_console_loop(state))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
