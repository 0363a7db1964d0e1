# src/veloce/ai/models.py

"""
Analysis response shapes and tolerant JSON parsing.

Models reply with snake_case keys as asked, but camelCase and Markdown-fenced
JSON show up in practice, so both are accepted.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any

from .errors import AIErrorKind, AIServiceError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AISubTaskSuggestion:
    title: str
    estimated_minutes: int | None = None
    reasoning: str | None = None


@dataclass(slots=True)
class AIYouTubeResource:
    search_query: str
    relevance_score: float | None = None
    reasoning: str | None = None


@dataclass(slots=True)
class AIScheduleSuggestion:
    suggested_time_of_day: str | None = None
    reasoning: str | None = None
    energy_level: str | None = None
    optimal_duration: int | None = None


@dataclass(slots=True)
class AIResponse:
    advice: str
    priority: str | None = None
    estimated_minutes: int | None = None
    estimate_confidence: str | None = None
    thought_process: str | None = None
    sources: list[str] | None = None
    sub_tasks: list[AISubTaskSuggestion] | None = None
    youtube_resources: list[AIYouTubeResource] | None = None
    schedule_suggestion: AIScheduleSuggestion | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


def clean_json_response(text: str) -> str:
    """Strip surrounding whitespace and ```json fences."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _get(d: dict[str, Any], snake: str) -> Any:
    if snake in d:
        return d[snake]
    head, *rest = snake.split("_")
    camel = head + "".join(p.capitalize() for p in rest)
    return d.get(camel)


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _opt_float(v: Any) -> float | None:
    """Finite float or None; NaN, Infinity and out-of-range numbers count as missing."""
    if isinstance(v, bool):
        return None
    try:
        if isinstance(v, (int, float)):
            f = float(v)
        elif isinstance(v, str):
            f = float(v.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return f if math.isfinite(f) else None


def _opt_int(v: Any) -> int | None:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    f = _opt_float(v)
    if f is None:
        return None
    return int(round(f))


def _parse_sub_tasks(raw: Any) -> list[AISubTaskSuggestion] | None:
    if not isinstance(raw, list):
        return None
    out: list[AISubTaskSuggestion] = []
    for item in raw:
        if isinstance(item, str) and item.strip():
            out.append(AISubTaskSuggestion(title=item.strip()))
            continue
        if not isinstance(item, dict):
            continue
        title = _opt_str(_get(item, "title"))
        if not title:
            continue
        out.append(
            AISubTaskSuggestion(
                title=title,
                estimated_minutes=_opt_int(_get(item, "estimated_minutes")),
                reasoning=_opt_str(_get(item, "reasoning")),
            )
        )
    return out


def _parse_youtube(raw: Any) -> list[AIYouTubeResource] | None:
    if not isinstance(raw, list):
        return None
    out: list[AIYouTubeResource] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        query = _opt_str(_get(item, "search_query"))
        if not query:
            continue
        out.append(
            AIYouTubeResource(
                search_query=query,
                relevance_score=_opt_float(_get(item, "relevance_score")),
                reasoning=_opt_str(_get(item, "reasoning")),
            )
        )
    return out


def _parse_schedule(raw: Any) -> AIScheduleSuggestion | None:
    if not isinstance(raw, dict):
        return None
    return AIScheduleSuggestion(
        suggested_time_of_day=_opt_str(_get(raw, "suggested_time_of_day")),
        reasoning=_opt_str(_get(raw, "reasoning")),
        energy_level=_opt_str(_get(raw, "energy_level")),
        optimal_duration=_opt_int(_get(raw, "optimal_duration")),
    )


def _load_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(clean_json_response(text))
    except json.JSONDecodeError as e:
        raise AIServiceError(AIErrorKind.PARSING_FAILED, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIServiceError(AIErrorKind.PARSING_FAILED, "expected a JSON object")
    return data


def parse_partial_response(data: dict[str, Any]) -> AIResponse:
    """Keep only the basic fields when the full shape doesn't parse."""
    return AIResponse(
        advice=_opt_str(_get(data, "advice")) or "Unable to parse AI response",
        priority=_opt_str(_get(data, "priority")),
        estimated_minutes=_opt_int(_get(data, "estimated_minutes")),
        thought_process=_opt_str(_get(data, "thought_process")),
        raw=data,
    )


def parse_ai_response(text: str, citations: list[str] | None = None) -> AIResponse:
    """
    Parse a model reply into AIResponse.

    Raises AIServiceError(PARSING_FAILED) if the reply is not a JSON object.
    A JSON object without usable advice degrades to parse_partial_response().
    """
    data = _load_object(text)

    advice = _opt_str(_get(data, "advice"))
    if advice is None:
        logger.debug("AI reply has no advice field; using partial parse")
        resp = parse_partial_response(data)
        resp.sources = list(citations) if citations else None
        return resp

    sources = citations
    if not sources:
        raw_sources = _get(data, "sources")
        if isinstance(raw_sources, list):
            sources = [str(s) for s in raw_sources if isinstance(s, str) and s.strip()]

    return AIResponse(
        advice=advice,
        priority=_opt_str(_get(data, "priority")),
        estimated_minutes=_opt_int(_get(data, "estimated_minutes")),
        estimate_confidence=_opt_str(_get(data, "confidence")),
        thought_process=_opt_str(_get(data, "thought_process")),
        sources=list(sources) if sources else None,
        sub_tasks=_parse_sub_tasks(_get(data, "sub_tasks")),
        youtube_resources=_parse_youtube(_get(data, "youtube_resources")),
        schedule_suggestion=_parse_schedule(_get(data, "schedule_suggestion")),
        raw=data,
    )


def parse_duration_estimate(text: str) -> tuple[int, str, str]:
    """
    Parse {"minutes", "confidence", "reasoning"}; minutes clamped to 5..480.

    Raises AIServiceError(PARSING_FAILED) if the reply is not a JSON object.
    """
    data = _load_object(text)
    minutes = _opt_int(data.get("minutes"))
    if minutes is None:
        minutes = 30
    confidence = _opt_str(data.get("confidence")) or "medium"
    reasoning = (
        _opt_str(data.get("reasoning")) or "Estimated based on task type and complexity."
    )
    return min(max(minutes, 5), 480), confidence, reasoning
