# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

from veloce.ai.errors import AIErrorKind, AIServiceError
from veloce.ai.models import AIResponse
from veloce.tasks.task_models import Task


class FakeAIClient:
    """
    Deterministic AIAnalysisClient for unit tests.

    - Captures calls for assertions
    - Returns `response`, or raises `error` when set
    - Optional per-call gates let tests hold a call open
    """

    def __init__(
        self,
        response: AIResponse | None = None,
        *,
        ready: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.response = response or AIResponse(advice="Start with the hardest part.")
        self.ready = ready
        self.error = error
        self.calls: list[tuple[str, str | None, str | None]] = []
        self.gates: list[asyncio.Event] = []
        self.responses: list[AIResponse] = []

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def analyze_task(
        self,
        title: str,
        notes: str | None = None,
        context: str | None = None,
    ) -> AIResponse:
        n = len(self.calls)
        self.calls.append((title, notes, context))
        if n < len(self.gates):
            await self.gates[n].wait()
        if self.error is not None:
            raise self.error
        if n < len(self.responses):
            return self.responses[n]
        return self.response


def failing_ai(kind: AIErrorKind = AIErrorKind.TIMEOUT) -> FakeAIClient:
    return FakeAIClient(error=AIServiceError(kind, "simulated"))


@dataclass(slots=True)
class CalendarCall:
    op: str
    event_id: str | None
    start: datetime | None
    duration_minutes: int | None


@dataclass
class FakeCalendar:
    """In-memory CalendarSync."""

    calls: list[CalendarCall] = field(default_factory=list)
    fail: bool = False
    next_id: str = "evt-1"

    async def create_event(self, task: Task, start: datetime, duration_minutes: int) -> str:
        if self.fail:
            raise RuntimeError("calendar not authorized")
        self.calls.append(CalendarCall("create", None, start, duration_minutes))
        return self.next_id

    async def update_event(
        self,
        event_id: str,
        *,
        title: str | None = None,
        start: datetime | None = None,
        duration_minutes: int | None = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("event not found")
        self.calls.append(CalendarCall("update", event_id, start, duration_minutes))


@dataclass
class RecordingFeedback:
    cues: list[str] = field(default_factory=list)

    def signal(self, name: str) -> None:
        self.cues.append(name)


class InMemoryTaskRepo:
    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.saves = 0

    def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def find_task_by_title(self, title: str) -> Task | None:
        for t in self.tasks.values():
            if t.title.lower() == title.strip().lower():
                return t
        return None

    def save_task(self, task: Task) -> None:
        self.saves += 1
        self.tasks[task.id] = task
