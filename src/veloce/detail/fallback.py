# src/veloce/detail/fallback.py

"""Deterministic insights for when the AI service is unavailable."""

from __future__ import annotations

from ..tasks.task_models import TaskType
from .insights import SuggestedSubTask

FALLBACK_BEST_TIME_REASON = "Based on typical productivity patterns"

_ADVICE: dict[TaskType, str] = {
    TaskType.CREATE: (
        "Block distractions and set a clear goal before starting. "
        "Creative work benefits from uninterrupted focus time."
    ),
    TaskType.COMMUNICATE: (
        "Prepare your key points beforehand. Be clear and concise to save everyone's time."
    ),
    TaskType.CONSUME: (
        "Take notes as you go and summarize key points. Active engagement improves retention."
    ),
    TaskType.COORDINATE: (
        "Batch similar administrative tasks together. Set a timer to prevent scope creep."
    ),
}

_BEST_TIME_OF_DAY: dict[TaskType, str] = {
    TaskType.CREATE: "morning",
    TaskType.COMMUNICATE: "afternoon",
    TaskType.CONSUME: "morning",
    TaskType.COORDINATE: "afternoon",
}

_DURATION_ESTIMATES: dict[TaskType, tuple[int, str, str]] = {
    TaskType.CREATE: (90, "medium", "Creative tasks typically need 60-120 minutes of focused time"),
    TaskType.COMMUNICATE: (
        30,
        "medium",
        "Communication tasks usually take 15-45 minutes with preparation",
    ),
    TaskType.CONSUME: (45, "medium", "Learning tasks work well in 30-60 minute focused sessions"),
    TaskType.COORDINATE: (15, "high", "Administrative tasks are typically quick, 10-20 minutes"),
}


def fallback_advice(task_type: TaskType) -> str:
    return _ADVICE[task_type]


def fallback_time_of_day(task_type: TaskType) -> str:
    return _BEST_TIME_OF_DAY[task_type]


def fallback_duration_estimate(task_type: TaskType) -> tuple[int, str, str]:
    """(minutes, confidence, reasoning) by task type."""
    return _DURATION_ESTIMATES[task_type]


def fallback_sub_tasks(estimated_minutes: int) -> list[SuggestedSubTask]:
    """Prepare / do / review, with the middle step scaled from the estimate."""
    return [
        SuggestedSubTask(
            title="Review requirements and gather materials",
            estimated_minutes=5,
            reasoning="Start with preparation",
        ),
        SuggestedSubTask(
            title="Complete main action",
            estimated_minutes=max(estimated_minutes - 10, 15),
            reasoning="Core task execution",
        ),
        SuggestedSubTask(
            title="Review and finalize",
            estimated_minutes=5,
            reasoning="Quality check before completion",
        ),
    ]
