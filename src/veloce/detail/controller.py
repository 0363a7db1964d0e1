# src/veloce/detail/controller.py

"""
Task detail session controller.

One controller per detail session:
- seeds editable copies of a Task's fields and sub-tasks (setup),
- writes every sub-task / field mutation straight back onto the Task,
- runs one AI analysis per refresh and keeps the result in a transient snapshot,
- degrades to deterministic local insights whenever the AI service is unavailable.

State changes are broadcast through a ChangeNotifier; nothing here knows about rendering.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from ..ai.errors import AIServiceError
from ..ai.models import AIResponse
from ..core.events import ChangeNotifier, LoggingFeedback
from ..core.ports import AIAnalysisClient, CalendarSync, FeedbackSink
from ..tasks.task_models import SubTask, SubTaskStatus, Task, utcnow
from .fallback import (
    FALLBACK_BEST_TIME_REASON,
    fallback_advice,
    fallback_duration_estimate,
    fallback_sub_tasks,
    fallback_time_of_day,
)
from .insights import (
    DEFAULT_RELEVANCE,
    DEFAULT_SUGGESTION_MINUTES,
    AIInsightSnapshot,
    SuggestedSubTask,
    VideoResource,
    suggested_time_from_time_of_day,
    web_sources_from_urls,
)
from .prompt import chatgpt_url, format_duration, generate_ai_prompt

logger = logging.getLogger(__name__)

DURATION_STEPS: tuple[int, ...] = (15, 30, 45, 60, 90, 120)
DEFAULT_DURATION = 30

GENERIC_AI_ERROR = "AI analysis failed. Please try again."


class InsightPhase(StrEnum):
    IDLE = "idle"
    LOADING_AI = "loading_ai"
    INSIGHTS_READY = "insights_ready"
    INSIGHTS_FAILED = "insights_failed"
    FALLBACK_READY = "fallback_ready"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class TaskDetailController:
    def __init__(
        self,
        ai_client: AIAnalysisClient,
        *,
        calendar: CalendarSync | None = None,
        feedback: FeedbackSink | None = None,
        notifier: ChangeNotifier | None = None,
        clock: Callable[[], datetime] = _local_now,
        fallback_delay: float = 0.5,
    ) -> None:
        self._ai = ai_client
        self._calendar = calendar
        self._feedback: FeedbackSink = feedback or LoggingFeedback()
        self.notifier = notifier or ChangeNotifier()
        self._clock = clock
        self._fallback_delay = max(0.0, float(fallback_delay))

        self.task: Task | None = None

        # editable state
        self.editable_title = ""
        self.editable_notes = ""
        self.estimated_minutes = DEFAULT_DURATION
        self.sub_tasks: list[SubTask] = []

        # AI state
        self.ai_context = ""
        self.ai_error: str | None = None
        self.ai_prompt = ""
        self.insights = AIInsightSnapshot()
        self.insights_source: str | None = None  # "ai" | "fallback"
        self.phase = InsightPhase.IDLE

        self._loads_in_flight = 0
        self._generation = 0

    # ---- notifications ----

    def _changed(self, field: str, value: object = None) -> None:
        self.notifier.emit(field, value)

    def _set_phase(self, phase: InsightPhase) -> None:
        self.phase = phase
        self._changed("phase", phase)

    def _write_back_sub_tasks(self) -> None:
        if self.task is not None:
            self.task.subtasks = list(self.sub_tasks)
            self.task.touch()
        self._changed("sub_tasks", len(self.sub_tasks))

    # ---- setup ----

    def setup(self, task: Task) -> None:
        self.task = task
        self.editable_title = task.title
        self.editable_notes = task.notes or ""
        self.estimated_minutes = (
            task.estimated_minutes if task.estimated_minutes is not None else DEFAULT_DURATION
        )
        self.sub_tasks = list(task.subtasks)
        self.ai_prompt = generate_ai_prompt(task, self.ai_context)
        self._changed("task", task.id)

    def close(self) -> None:
        """Drop the session: snapshot discarded, in-flight results ignored."""
        self._generation += 1
        self.insights = AIInsightSnapshot()
        self.insights_source = None
        self.ai_error = None
        self.task = None
        self._set_phase(InsightPhase.IDLE)

    # ---- editable fields ----

    def update_title(self, title: str) -> bool:
        title = title.strip()
        if not title:
            return False
        self.editable_title = title
        if self.task is not None:
            self.task.title = title
            self.task.touch()
        self._changed("title", title)
        return True

    def update_notes(self, notes: str) -> None:
        self.editable_notes = notes
        if self.task is not None:
            self.task.notes = notes.strip() or None
            self.task.touch()
        self._changed("notes", notes)

    def set_ai_context(self, context: str) -> None:
        self.ai_context = context.strip()
        if self.task is not None:
            self.ai_prompt = generate_ai_prompt(self.task, self.ai_context)
        self._changed("ai_context", self.ai_context)

    def cycle_duration(self) -> int:
        try:
            idx = DURATION_STEPS.index(self.estimated_minutes)
            self.estimated_minutes = DURATION_STEPS[(idx + 1) % len(DURATION_STEPS)]
        except ValueError:
            self.estimated_minutes = DEFAULT_DURATION

        if self.task is not None:
            self.task.estimated_minutes = self.estimated_minutes
            self.task.touch()
        self._feedback.signal("impact_light")
        self._changed("estimated_minutes", self.estimated_minutes)
        return self.estimated_minutes

    # ---- sub-tasks ----

    def _find_index(self, sub_task_id: str) -> int | None:
        for i, st in enumerate(self.sub_tasks):
            if st.id == sub_task_id:
                return i
        return None

    def add_sub_task(self, title: str) -> SubTask | None:
        title = title.strip()
        if not title:
            return None

        sub_task = SubTask(
            title=title,
            status=SubTaskStatus.PENDING,
            order_index=len(self.sub_tasks),
            task_id=self.task.id if self.task else None,
        )
        self.sub_tasks.append(sub_task)
        self._write_back_sub_tasks()
        self._feedback.signal("button_tap")
        return sub_task

    def toggle_sub_task(self, sub_task_id: str) -> bool:
        idx = self._find_index(sub_task_id)
        if idx is None:
            return False

        sub_task = self.sub_tasks[idx]
        if sub_task.status == SubTaskStatus.COMPLETED:
            sub_task.status = SubTaskStatus.PENDING
            sub_task.completed_at = None
            self._feedback.signal("impact_light")
        else:
            sub_task.status = SubTaskStatus.COMPLETED
            sub_task.completed_at = utcnow()
            self._feedback.signal("task_complete")

        self._write_back_sub_tasks()
        return True

    def delete_sub_task(self, sub_task_id: str) -> bool:
        before = len(self.sub_tasks)
        self.sub_tasks = [st for st in self.sub_tasks if st.id != sub_task_id]
        if len(self.sub_tasks) == before:
            return False
        self._write_back_sub_tasks()
        self._feedback.signal("impact_medium")
        return True

    def reorder_sub_tasks(self, from_index: int, to_index: int) -> None:
        """
        Move one sub-task and renumber the whole list 0..n-1.

        An out-of-range source only renumbers; the target is clamped.
        """
        if not self.sub_tasks:
            return
        if 0 <= from_index < len(self.sub_tasks):
            moved = self.sub_tasks.pop(from_index)
            to_index = min(max(to_index, 0), len(self.sub_tasks))
            self.sub_tasks.insert(to_index, moved)
        for i, st in enumerate(self.sub_tasks):
            st.order_index = i
        self._write_back_sub_tasks()

    @property
    def sub_task_progress(self) -> float:
        if not self.sub_tasks:
            return 0.0
        done = sum(1 for st in self.sub_tasks if st.status == SubTaskStatus.COMPLETED)
        return done / len(self.sub_tasks)

    # ---- AI suggestions -> sub-tasks ----

    def _materialize(self, suggestion: SuggestedSubTask) -> SubTask:
        sub_task = SubTask(
            title=suggestion.title,
            estimated_minutes=suggestion.estimated_minutes,
            status=SubTaskStatus.PENDING,
            order_index=len(self.sub_tasks),
            ai_reasoning=suggestion.reasoning,
            task_id=self.task.id if self.task else None,
        )
        self.sub_tasks.append(sub_task)
        return sub_task

    def add_all_ai_suggested_sub_tasks(self) -> list[SubTask]:
        added = [self._materialize(s) for s in self.insights.suggested_sub_tasks]
        self.insights.suggested_sub_tasks = []
        self._write_back_sub_tasks()
        self._changed("suggested_sub_tasks", 0)
        if added:
            self._feedback.signal("ai_complete")
        return added

    def add_single_ai_suggested_sub_task(self, suggestion: SuggestedSubTask) -> SubTask:
        sub_task = self._materialize(suggestion)
        self.insights.suggested_sub_tasks = [
            s for s in self.insights.suggested_sub_tasks if s.id != suggestion.id
        ]
        self._write_back_sub_tasks()
        self._changed("suggested_sub_tasks", len(self.insights.suggested_sub_tasks))
        self._feedback.signal("button_tap")
        return sub_task

    async def generate_ai_sub_tasks(self) -> list[SubTask]:
        """Add pending suggestions, fetching (or falling back) first when there are none."""
        if not self.insights.suggested_sub_tasks:
            await self.load_ai_insights()
        return self.add_all_ai_suggested_sub_tasks()

    # ---- AI insights ----

    @property
    def is_loading_ai(self) -> bool:
        return self._loads_in_flight > 0

    async def retry_ai_insights(self) -> None:
        await self.load_ai_insights()

    async def load_ai_insights(self) -> None:
        """
        Refresh the insight snapshot.

        Never raises for AI failures: they are logged, kept in `ai_error`, and
        replaced by local insights. Overlapping calls are allowed; only the most
        recently started call updates the snapshot.
        """
        task = self.task
        if task is None:
            return

        self._generation += 1
        generation = self._generation
        self._loads_in_flight += 1
        if self._loads_in_flight == 1:
            self._changed("is_loading_ai", True)

        self.ai_error = None
        self._set_phase(InsightPhase.LOADING_AI)

        try:
            self.ai_prompt = generate_ai_prompt(task, self.ai_context)

            if not self._ai.is_ready:
                logger.info("AI not configured; using local insights task_id=%s", task.id)
                snapshot = await self._fallback_snapshot(task)
                if generation == self._generation:
                    self._apply(snapshot, source="fallback")
                    self._set_phase(InsightPhase.FALLBACK_READY)
                return

            response: AIResponse | None = None
            error: str | None = None
            try:
                response = await self._ai.analyze_task(
                    task.title,
                    notes=self.editable_notes or None,
                    context=self.ai_context or None,
                )
            except AIServiceError as e:
                error = e.friendly_message
                logger.info("AI analysis unavailable task_id=%s kind=%s: %s", task.id, e.kind.value, e)
            except Exception:
                error = GENERIC_AI_ERROR
                logger.exception("AI analysis crashed task_id=%s", task.id)

            if generation != self._generation:
                logger.debug("Discarding superseded AI result task_id=%s", task.id)
                return

            if response is not None:
                self._apply(self._snapshot_from_response(response), source="ai")
                self._set_phase(InsightPhase.INSIGHTS_READY)
                return

            self.ai_error = error
            self._changed("ai_error", error)
            self._set_phase(InsightPhase.INSIGHTS_FAILED)

            snapshot = await self._fallback_snapshot(task)
            if generation == self._generation:
                self._apply(snapshot, source="fallback")
                self._set_phase(InsightPhase.FALLBACK_READY)

        finally:
            self._loads_in_flight -= 1
            self._changed("ai_load_finished", generation)
            if self._loads_in_flight == 0:
                self._changed("is_loading_ai", False)
                self._set_phase(InsightPhase.IDLE)

    def _apply(self, snapshot: AIInsightSnapshot, *, source: str) -> None:
        self.insights = snapshot
        self.insights_source = source
        self._changed("insights", source)

    def _snapshot_from_response(self, response: AIResponse) -> AIInsightSnapshot:
        snap = AIInsightSnapshot(
            advice=response.advice,
            thought_process=response.thought_process or "",
            estimated_minutes=response.estimated_minutes or self.estimated_minutes,
            estimate_confidence=response.estimate_confidence or "medium",
        )

        schedule = response.schedule_suggestion
        if schedule is not None:
            snap.best_time_reason = schedule.reasoning or ""
            snap.best_time = suggested_time_from_time_of_day(
                schedule.suggested_time_of_day, self._clock()
            )

        if response.sub_tasks:
            snap.suggested_sub_tasks = [
                SuggestedSubTask(
                    title=st.title,
                    estimated_minutes=st.estimated_minutes or DEFAULT_SUGGESTION_MINUTES,
                    reasoning=st.reasoning or "",
                )
                for st in response.sub_tasks
            ]

        if response.youtube_resources:
            snap.video_resources = [
                VideoResource(
                    search_query=yt.search_query,
                    relevance_score=(
                        yt.relevance_score if yt.relevance_score is not None else DEFAULT_RELEVANCE
                    ),
                    reasoning=yt.reasoning or "",
                )
                for yt in response.youtube_resources
            ]

        if response.sources:
            snap.web_sources = web_sources_from_urls(response.sources)

        return snap

    async def _fallback_snapshot(self, task: Task) -> AIInsightSnapshot:
        if self._fallback_delay > 0:
            await asyncio.sleep(self._fallback_delay)

        minutes = self.estimated_minutes if self.estimated_minutes > 0 else DEFAULT_DURATION
        _, confidence, _ = fallback_duration_estimate(task.task_type)
        return AIInsightSnapshot(
            advice=fallback_advice(task.task_type),
            estimated_minutes=minutes,
            estimate_confidence=confidence,
            best_time=suggested_time_from_time_of_day(
                fallback_time_of_day(task.task_type), self._clock()
            ),
            best_time_reason=FALLBACK_BEST_TIME_REASON,
            suggested_sub_tasks=fallback_sub_tasks(self.estimated_minutes),
        )

    # ---- scheduling / calendar ----

    async def schedule(self, when: datetime, duration_minutes: int | None = None) -> bool:
        """
        Set the task's scheduled time and mirror it to the calendar.

        Returns True when the calendar accepted the change. Calendar failures are
        logged and leave the stored event id untouched.
        """
        task = self.task
        if task is None:
            return False

        task.scheduled_time = when
        task.touch()
        self._changed("scheduled_time", when)

        if self._calendar is None:
            return False

        duration = duration_minutes or self.estimated_minutes
        if task.calendar_event_id:
            try:
                await self._calendar.update_event(
                    task.calendar_event_id,
                    title=task.title,
                    start=when,
                    duration_minutes=duration,
                )
            except Exception:
                logger.warning(
                    "Failed to update calendar event=%s task_id=%s",
                    task.calendar_event_id,
                    task.id,
                    exc_info=True,
                )
                return False
            return True

        try:
            event_id = await self._calendar.create_event(task, when, duration)
        except Exception:
            logger.warning("Failed to create calendar event task_id=%s", task.id, exc_info=True)
            return False

        task.calendar_event_id = event_id
        task.touch()
        self._changed("calendar_event_id", event_id)
        return True

    # ---- display helpers ----

    @property
    def has_ai_insights(self) -> bool:
        return self.insights.has_insights

    @property
    def estimated_time_display(self) -> str:
        if self.insights.estimated_minutes > 0:
            return format_duration(self.insights.estimated_minutes)
        if self.estimated_minutes > 0:
            return format_duration(self.estimated_minutes)
        return "Not set"

    @property
    def best_time_display(self) -> str:
        best = self.insights.best_time
        if best is None:
            return "Not suggested"
        hour12 = best.hour % 12 or 12
        meridiem = "AM" if best.hour < 12 else "PM"
        return f"{best.strftime('%A')} {hour12}:{best.minute:02d} {meridiem}"

    def chatgpt_url(self) -> str:
        return chatgpt_url(self.ai_prompt)
