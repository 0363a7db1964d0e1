# src/veloce/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, the AI client and a detail controller into AppState,
- opens (or creates) the task the session is about.
"""

from __future__ import annotations

import logging

from ..ai.client import PerplexityClient
from ..ai.offline import OfflineAIClient
from ..config import get_settings
from ..core.ports import AIAnalysisClient
from ..core.state import AppState
from ..detail.controller import TaskDetailController
from ..tasks.task_models import Task, TaskPriority, TaskType
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_ai_client(settings) -> AIAnalysisClient:
    client = PerplexityClient(settings)
    if client.is_ready:
        return client
    logger.info("No Perplexity API key configured; AI insights run offline.")
    return OfflineAIClient()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    ai = build_ai_client(settings)
    controller = TaskDetailController(
        ai,
        fallback_delay=float(getattr(settings, "fallback_delay", 0.5)),
    )
    return AppState(
        settings=settings,
        store=TaskStore(settings.tasks_db_path),
        ai=ai,
        controller=controller,
    )


def open_task(
    state: AppState,
    title: str,
    *,
    task_type: TaskType = TaskType.COORDINATE,
    estimated_minutes: int | None = None,
) -> Task:
    """
    Find a task by title or create it, then start the detail session on it.

    A "*"/"**"/"***" prefix on a new title sets its priority.
    """
    priority, clean_title = TaskPriority.parse(title)
    if not clean_title:
        raise ValueError("title is required")

    store = state.store
    task = store.find_task_by_title(clean_title)
    if task is None:
        task = Task(
            title=clean_title,
            task_type=task_type,
            estimated_minutes=estimated_minutes,
            star_rating=priority.stars,
        )
        store.save_task(task)
        logger.info("Created task id=%s title=%r", task.id, task.title)
    else:
        logger.info("Opened task id=%s title=%r", task.id, task.title)

    state.controller.setup(task)
    return task
