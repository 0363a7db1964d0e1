# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from veloce.core.events import ChangeEvent
from veloce.core.state import AppState
from veloce.detail.controller import TaskDetailController
from veloce.tasks.task_models import Task, TaskType

from .fakes import FakeAIClient, FakeCalendar, InMemoryTaskRepo, RecordingFeedback

# Monday 2026-10-19 08:00 UTC
FIXED_NOW = datetime(2026, 10, 19, 8, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the client, store and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="veloce-test",
        log_level="DEBUG",
        perplexity_api_key=None,
        perplexity_base_url="https://api.perplexity.ai",
        ai_model="sonar",
        ai_connect_timeout=1.0,
        ai_read_timeout=1.0,
        ai_min_request_interval=0.0,
        fallback_delay=0.0,
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
    )


@pytest.fixture()
def ai() -> FakeAIClient:
    return FakeAIClient()


@pytest.fixture()
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture()
def feedback() -> RecordingFeedback:
    return RecordingFeedback()


@pytest.fixture()
def task() -> Task:
    return Task(title="Draft proposal", estimated_minutes=30, task_type=TaskType.CREATE)


@pytest.fixture()
def controller(ai, calendar, feedback, task) -> TaskDetailController:
    ctl = TaskDetailController(
        ai,
        calendar=calendar,
        feedback=feedback,
        clock=lambda: FIXED_NOW,
        fallback_delay=0.0,
    )
    ctl.setup(task)
    return ctl


@pytest.fixture()
def events(controller) -> list[ChangeEvent]:
    seen: list[ChangeEvent] = []
    controller.notifier.subscribe(seen.append)
    return seen


@pytest.fixture()
def state(settings, controller) -> AppState:
    """AppState wired with deterministic fakes and an in-memory repo."""
    return AppState(
        settings=settings,
        store=InMemoryTaskRepo(),
        ai=FakeAIClient(ready=False),
        controller=controller,
    )
