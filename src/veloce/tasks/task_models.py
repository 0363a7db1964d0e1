# src/veloce/tasks/task_models.py

from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class SubTaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> SubTaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskType(StrEnum):
    """
    Task classification by cognitive load.

    Drives the offline advice, best-time and duration heuristics.
    """

    CREATE = "create"  # writing, coding, designing
    COMMUNICATE = "communicate"  # emails, calls, meetings
    CONSUME = "consume"  # reading, courses, videos
    COORDINATE = "coordinate"  # scheduling, organizing

    @classmethod
    def from_db(cls, raw: str | None) -> TaskType:
        if not raw:
            return cls.COORDINATE
        try:
            return cls(raw)
        except ValueError:
            return cls.COORDINATE

    @property
    def display_name(self) -> str:
        return {
            TaskType.CREATE: "Create",
            TaskType.COMMUNICATE: "Communicate",
            TaskType.CONSUME: "Learn",
            TaskType.COORDINATE: "Coordinate",
        }[self]

    @property
    def suggested_duration(self) -> int:
        return {
            TaskType.CREATE: 90,
            TaskType.COMMUNICATE: 30,
            TaskType.CONSUME: 45,
            TaskType.COORDINATE: 15,
        }[self]


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def stars(self) -> int:
        return {TaskPriority.LOW: 1, TaskPriority.MEDIUM: 2, TaskPriority.HIGH: 3}[self]

    @classmethod
    def from_stars(cls, stars: int) -> TaskPriority:
        if stars >= 3:
            return cls.HIGH
        if stars <= 1:
            return cls.LOW
        return cls.MEDIUM

    @classmethod
    def parse(cls, text: str) -> tuple[TaskPriority, str]:
        """
        Parse a star prefix ("***", "**", "*") off a task line.

        Returns (priority, cleaned_text). No prefix means medium.
        """
        trimmed = text.strip()
        if trimmed.startswith("***"):
            return cls.HIGH, trimmed[3:].strip()
        if trimmed.startswith("**"):
            return cls.MEDIUM, trimmed[2:].strip()
        if trimmed.startswith("*"):
            return cls.LOW, trimmed[1:].strip()
        return cls.MEDIUM, trimmed


class RecurringType(StrEnum):
    ONCE = "once"
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"

    @classmethod
    def from_db(cls, raw: str | None) -> RecurringType:
        if not raw:
            return cls.ONCE
        try:
            return cls(raw)
        except ValueError:
            return cls.ONCE


def _sunday_based_weekday(dt: datetime) -> int:
    # datetime.weekday(): Mon=0..Sun=6 -> Sun=0..Sat=6
    return (dt.weekday() + 1) % 7


def _add_months(dt: datetime, months: int) -> datetime:
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


@dataclass(slots=True)
class SubTask:
    title: str
    id: str = field(default_factory=new_id)
    task_id: str | None = None
    status: SubTaskStatus = SubTaskStatus.PENDING
    order_index: int = 0
    estimated_minutes: int | None = None
    ai_reasoning: str | None = None
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SubTaskStatus.COMPLETED

    @property
    def is_ai_generated(self) -> bool:
        return bool(self.ai_reasoning)


@dataclass(slots=True)
class Task:
    title: str
    id: str = field(default_factory=new_id)
    is_completed: bool = False
    star_rating: int = 2  # 1 = *, 2 = **, 3 = ***
    estimated_minutes: int | None = None
    scheduled_time: datetime | None = None
    notes: str | None = None
    task_type: TaskType = TaskType.COORDINATE

    recurring_type: RecurringType = RecurringType.ONCE
    recurring_days: list[int] | None = None  # 0-6 for Sun-Sat (custom recurring)
    recurring_end_date: datetime | None = None

    calendar_event_id: str | None = None

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    subtasks: list[SubTask] = field(default_factory=list)

    @property
    def priority(self) -> TaskPriority:
        return TaskPriority.from_stars(self.star_rating)

    @property
    def is_recurring(self) -> bool:
        return self.recurring_type != RecurringType.ONCE

    @property
    def recurring_days_formatted(self) -> str | None:
        if not self.recurring_days:
            return None
        names = [DAY_NAMES[d] for d in sorted(self.recurring_days) if 0 <= d <= 6]
        return ", ".join(names)

    def touch(self) -> None:
        self.updated_at = utcnow()

    def set_recurring(
        self,
        recurring_type: RecurringType,
        *,
        custom_days: set[int] | None = None,
        end_date: datetime | None = None,
    ) -> None:
        self.recurring_type = recurring_type
        self.recurring_days = sorted(custom_days) if custom_days is not None else None
        self.recurring_end_date = end_date
        self.touch()

    def can_create_next_recurrence(self, now: datetime | None = None) -> bool:
        if not self.is_recurring or not self.is_completed:
            return False
        now = now or utcnow()
        if self.recurring_end_date is not None and now > self.recurring_end_date:
            return False
        return True

    def next_occurrence(self, now: datetime | None = None) -> datetime | None:
        """
        Next date for a recurring task, measured from completed_at (or now).

        Returns None for one-off tasks and for custom schedules with no valid days.
        """
        if not self.is_recurring:
            return None

        base = self.completed_at or now or utcnow()
        rt = self.recurring_type

        if rt == RecurringType.DAILY:
            return base + timedelta(days=1)

        if rt == RecurringType.WEEKDAYS:
            nxt = base + timedelta(days=1)
            wd = _sunday_based_weekday(nxt)
            if wd == 0:
                nxt += timedelta(days=1)
            elif wd == 6:
                nxt += timedelta(days=2)
            return nxt

        if rt == RecurringType.WEEKLY:
            return base + timedelta(weeks=1)

        if rt == RecurringType.BIWEEKLY:
            return base + timedelta(weeks=2)

        if rt == RecurringType.MONTHLY:
            return _add_months(base, 1)

        if rt == RecurringType.YEARLY:
            return _add_months(base, 12)

        if rt == RecurringType.CUSTOM:
            days = {d for d in (self.recurring_days or []) if 0 <= d <= 6}
            if not days:
                return None
            for offset in range(1, 8):
                candidate = base + timedelta(days=offset)
                if _sunday_based_weekday(candidate) in days:
                    return candidate

        return None
