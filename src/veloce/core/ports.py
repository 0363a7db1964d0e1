# src/veloce/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task-detail core.

The controller depends on Protocols instead of concrete implementations.
This keeps the AI provider, calendar and storage swappable and makes testing easier.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..ai.models import AIResponse
    from ..tasks.task_models import Task


class AIAnalysisClient(Protocol):
    """External task analysis (Perplexity Sonar or an offline stand-in)."""

    @property
    def is_ready(self) -> bool: ...

    async def analyze_task(
        self,
        title: str,
        notes: str | None = None,
        context: str | None = None,
    ) -> AIResponse: ...


class CalendarSync(Protocol):
    """
    External calendar: creates or moves one event per task.

    The returned event id is opaque and stored on the task.
    """

    async def create_event(self, task: Task, start: datetime, duration_minutes: int) -> str: ...

    async def update_event(
        self,
        event_id: str,
        *,
        title: str | None = None,
        start: datetime | None = None,
        duration_minutes: int | None = None,
    ) -> None: ...


class TaskRepo(Protocol):
    def get_task(self, task_id: str) -> Task | None: ...
    def find_task_by_title(self, title: str) -> Task | None: ...
    def save_task(self, task: Task) -> None: ...


class FeedbackSink(Protocol):
    """Haptic / sound cues ("impact_light", "task_complete", "ai_complete", ...)."""

    def signal(self, name: str) -> None: ...
