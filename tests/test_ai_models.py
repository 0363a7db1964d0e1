# tests/test_ai_models.py

from __future__ import annotations

import pytest

from veloce.ai.errors import AIErrorKind, AIServiceError
from veloce.ai.models import (
    clean_json_response,
    parse_ai_response,
    parse_duration_estimate,
)


def test_clean_json_strips_fences() -> None:
    assert clean_json_response('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert clean_json_response('```\n{"a": 1}```') == '{"a": 1}'
    assert clean_json_response('  {"a": 1} ') == '{"a": 1}'


def test_parse_full_response() -> None:
    text = """```json
    {
        "advice": "Outline first.",
        "priority": "high",
        "estimated_minutes": 60,
        "thought_process": "Structure helps.",
        "sub_tasks": [
            {"title": "Outline", "estimated_minutes": 10, "reasoning": "Structure"},
            {"title": "   "},
            "Write draft"
        ],
        "youtube_resources": [{"search_query": "proposal tips", "relevance_score": 0.7}],
        "schedule_suggestion": {"suggested_time_of_day": "morning", "reasoning": "Fresh mind"}
    }
    ```"""
    resp = parse_ai_response(text, citations=["https://example.com/x"])

    assert resp.advice == "Outline first."
    assert resp.priority == "high"
    assert resp.estimated_minutes == 60
    assert resp.sources == ["https://example.com/x"]
    assert resp.sub_tasks is not None
    assert [st.title for st in resp.sub_tasks] == ["Outline", "Write draft"]
    assert resp.youtube_resources is not None
    assert resp.youtube_resources[0].relevance_score == 0.7
    assert resp.schedule_suggestion is not None
    assert resp.schedule_suggestion.suggested_time_of_day == "morning"


def test_parse_accepts_camel_case_keys() -> None:
    text = (
        '{"advice": "Go.", "estimatedMinutes": "25", "thoughtProcess": "Quick",'
        ' "subTasks": [{"title": "Step", "estimatedMinutes": 5}],'
        ' "sources": ["https://a.example"]}'
    )
    resp = parse_ai_response(text)
    assert resp.estimated_minutes == 25
    assert resp.thought_process == "Quick"
    assert resp.sub_tasks is not None and resp.sub_tasks[0].estimated_minutes == 5
    assert resp.sources == ["https://a.example"]


def test_missing_advice_degrades_to_partial() -> None:
    resp = parse_ai_response('{"priority": "low", "estimated_minutes": 15}')
    assert resp.advice == "Unable to parse AI response"
    assert resp.priority == "low"
    assert resp.estimated_minutes == 15
    assert resp.sub_tasks is None


@pytest.mark.parametrize("text", ["not json at all", "[1, 2, 3]", ""])
def test_invalid_reply_raises_parsing_failed(text: str) -> None:
    with pytest.raises(AIServiceError) as ei:
        parse_ai_response(text)
    assert ei.value.kind == AIErrorKind.PARSING_FAILED


def test_duration_estimate_clamped_and_defaulted() -> None:
    assert parse_duration_estimate('{"minutes": 900, "confidence": "low"}')[:2] == (480, "low")
    assert parse_duration_estimate('{"minutes": 1}')[0] == 5
    minutes, confidence, reasoning = parse_duration_estimate("{}")
    assert (minutes, confidence) == (30, "medium")
    assert reasoning


def test_friendly_messages_and_retryability() -> None:
    assert (
        AIServiceError(AIErrorKind.NOT_CONFIGURED).friendly_message
        == "AI not configured. Please add your API key in Settings."
    )
    assert "invalid or expired" in AIServiceError(AIErrorKind.HTTP, status_code=401).friendly_message
    assert AIServiceError(AIErrorKind.API, "Monthly quota reached").friendly_message == (
        "API quota exceeded. Please try again later."
    )

    assert AIServiceError(AIErrorKind.TIMEOUT).is_retryable
    assert AIServiceError(AIErrorKind.HTTP, status_code=503).is_retryable
    assert not AIServiceError(AIErrorKind.HTTP, status_code=400).is_retryable
    assert not AIServiceError(AIErrorKind.PARSING_FAILED).is_retryable


@pytest.mark.parametrize("raw", ["Infinity", "-Infinity", "NaN", '"1e400"', '"nan"'])
def test_non_finite_numbers_count_as_missing(raw: str) -> None:
    text = (
        f'{{"advice": "Do it", "estimated_minutes": {raw},'
        f' "sub_tasks": [{{"title": "Step", "estimated_minutes": {raw}}}],'
        f' "youtube_resources": [{{"search_query": "q", "relevance_score": {raw}}}]}}'
    )
    resp = parse_ai_response(text, citations=["https://example.com"])

    assert resp.advice == "Do it"
    assert resp.sources == ["https://example.com"]
    assert resp.estimated_minutes is None
    assert resp.sub_tasks is not None and resp.sub_tasks[0].estimated_minutes is None
    assert resp.youtube_resources is not None
    assert resp.youtube_resources[0].relevance_score is None


@pytest.mark.parametrize("raw", ["Infinity", "NaN", '"1e400"'])
def test_duration_estimate_non_finite_minutes_use_default(raw: str) -> None:
    assert parse_duration_estimate(f'{{"minutes": {raw}}}')[0] == 30
