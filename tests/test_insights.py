# tests/test_insights.py

from __future__ import annotations

from datetime import UTC, datetime

from veloce.core.events import ChangeNotifier
from veloce.detail.fallback import fallback_duration_estimate, fallback_sub_tasks
from veloce.detail.insights import (
    extract_domain,
    suggested_time_from_time_of_day,
    web_sources_from_urls,
)
from veloce.detail.prompt import format_duration
from veloce.tasks.task_models import TaskType


def test_suggested_time_rolls_to_tomorrow_when_past() -> None:
    evening_now = datetime(2026, 10, 19, 15, 30, tzinfo=UTC)
    assert suggested_time_from_time_of_day("morning", evening_now) == datetime(
        2026, 10, 20, 9, 0, tzinfo=UTC
    )
    assert suggested_time_from_time_of_day("Evening", evening_now) == datetime(
        2026, 10, 19, 18, 0, tzinfo=UTC
    )
    assert suggested_time_from_time_of_day(None, evening_now).hour == 9


def test_web_sources_are_numbered_with_domains() -> None:
    sources = web_sources_from_urls(["https://www.python.org/doc", "https://docs.pytest.org"])
    assert [(s.title, s.source) for s in sources] == [
        ("Source 1", "python.org"),
        ("Source 2", "docs.pytest.org"),
    ]
    assert extract_domain("") == "Web"


def test_fallback_sub_tasks_scale_middle_step() -> None:
    assert [s.estimated_minutes for s in fallback_sub_tasks(90)] == [5, 80, 5]
    assert [s.estimated_minutes for s in fallback_sub_tasks(15)] == [5, 15, 5]
    assert fallback_duration_estimate(TaskType.COORDINATE)[:2] == (15, "high")


def test_format_duration() -> None:
    assert format_duration(45) == "45 min"
    assert format_duration(120) == "2h"
    assert format_duration(90) == "1h 30m"


def test_notifier_unsubscribe_and_failing_listener() -> None:
    notifier = ChangeNotifier()
    seen: list[str] = []

    def broken(event) -> None:
        raise RuntimeError("listener bug")

    notifier.subscribe(broken)
    unsubscribe = notifier.subscribe(lambda e: seen.append(e.field))

    notifier.emit("phase", "idle")
    assert seen == ["phase"]

    unsubscribe()
    notifier.emit("phase", "idle")
    assert seen == ["phase"]
    assert notifier.listener_count == 1


def test_extract_domain_only_strips_leading_www() -> None:
    assert extract_domain("https://www.example.com/a") == "example.com"
    assert extract_domain("https://docs.www.example.com/a") == "docs.www.example.com"
