# src/veloce/detail/insights.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from urllib.parse import quote, urlparse

from ..tasks.task_models import new_id

DEFAULT_RELEVANCE = 0.8
DEFAULT_SUGGESTION_MINUTES = 10

_TIME_OF_DAY_HOURS = {"morning": 9, "afternoon": 14, "evening": 18}


@dataclass(slots=True)
class SuggestedSubTask:
    """AI suggestion not yet materialised as a SubTask."""

    title: str
    estimated_minutes: int = DEFAULT_SUGGESTION_MINUTES
    reasoning: str = ""
    id: str = field(default_factory=new_id)


@dataclass(slots=True)
class WebSource:
    title: str
    url: str
    source: str


@dataclass(slots=True)
class VideoResource:
    search_query: str
    relevance_score: float = DEFAULT_RELEVANCE
    reasoning: str = ""

    @property
    def search_url(self) -> str:
        return "https://www.youtube.com/results?search_query=" + quote(self.search_query)


@dataclass(slots=True)
class AIInsightSnapshot:
    """
    Results of one analysis call for one detail session.

    Never persisted; dropped when the session closes.
    """

    advice: str = ""
    thought_process: str = ""
    suggested_sub_tasks: list[SuggestedSubTask] = field(default_factory=list)
    web_sources: list[WebSource] = field(default_factory=list)
    video_resources: list[VideoResource] = field(default_factory=list)
    estimated_minutes: int = 0
    estimate_confidence: str = "medium"
    best_time: datetime | None = None
    best_time_reason: str = ""

    @property
    def has_insights(self) -> bool:
        return bool(self.advice or self.web_sources or self.video_resources)


def extract_domain(url: str) -> str:
    """Host without a leading "www."; "Web" when the URL has no host."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        host = None
    if not host:
        return "Web"
    return host.removeprefix("www.")


def web_sources_from_urls(urls: list[str]) -> list[WebSource]:
    return [
        WebSource(title=f"Source {i}", url=url, source=extract_domain(url))
        for i, url in enumerate(urls, start=1)
    ]


def suggested_time_from_time_of_day(time_of_day: str | None, now: datetime) -> datetime:
    """
    Today at 09:00 / 14:00 / 18:00 for morning / afternoon / evening.

    Anything else maps to 09:00. A time already in the past moves to tomorrow.
    """
    hour = _TIME_OF_DAY_HOURS.get((time_of_day or "").strip().lower(), 9)
    suggested = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if suggested < now:
        suggested += timedelta(days=1)
    return suggested
