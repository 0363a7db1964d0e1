# tests/test_perplexity_client.py

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

from veloce.ai.client import PerplexityClient
from veloce.ai.errors import AIErrorKind, AIServiceError
from veloce.ai.offline import OfflineAIClient
from veloce.tasks.task_models import Task, TaskType

_REQUEST = httpx.Request("POST", "https://api.perplexity.ai/chat/completions")


class FakeCompletions:
    def __init__(self, *, content: str | None = None, citations: Any = None, error=None) -> None:
        self.content = content
        self.citations = citations
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)], citations=self.citations)


def _client(settings, completions: FakeCompletions) -> PerplexityClient:
    sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return PerplexityClient(settings, client=sdk)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_analyze_task_parses_reply_and_citations(settings) -> None:
    reply = json.dumps({"advice": "Outline first.", "estimated_minutes": 40})
    completions = FakeCompletions(
        content=f"```json\n{reply}\n```", citations=["https://example.com/guide"]
    )
    client = _client(settings, completions)

    resp = await client.analyze_task("Draft proposal", notes="Budget", context="For Monday")

    assert resp.advice == "Outline first."
    assert resp.estimated_minutes == 40
    assert resp.sources == ["https://example.com/guide"]

    call = completions.calls[0]
    assert call["model"] == "sonar"
    assert call["extra_body"]["return_citations"] is True
    user_prompt = call["messages"][1]["content"]
    assert "Task: Draft proposal" in user_prompt
    assert "Notes: Budget" in user_prompt
    assert "Context: For Monday" in user_prompt
    assert user_prompt.endswith("just the raw JSON object.")


@pytest.mark.asyncio
async def test_empty_content_is_empty_response(settings) -> None:
    client = _client(settings, FakeCompletions(content=""))
    with pytest.raises(AIServiceError) as ei:
        await client.analyze_task("x")
    assert ei.value.kind == AIErrorKind.EMPTY_RESPONSE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "kind", "status"),
    [
        (openai.APITimeoutError(request=_REQUEST), AIErrorKind.TIMEOUT, None),
        (openai.APIConnectionError(request=_REQUEST), AIErrorKind.NETWORK, None),
        (
            openai.RateLimitError(
                "slow down", response=httpx.Response(429, request=_REQUEST), body=None
            ),
            AIErrorKind.RATE_LIMITED,
            429,
        ),
        (
            openai.InternalServerError(
                "boom", response=httpx.Response(503, request=_REQUEST), body=None
            ),
            AIErrorKind.HTTP,
            503,
        ),
        (
            openai.BadRequestError(
                "bad",
                response=httpx.Response(400, request=_REQUEST),
                body={"error": {"message": "Invalid model 'x'"}},
            ),
            AIErrorKind.API,
            400,
        ),
    ],
)
async def test_sdk_errors_are_mapped(settings, error, kind, status) -> None:
    client = _client(settings, FakeCompletions(error=error))
    with pytest.raises(AIServiceError) as ei:
        await client.analyze_task("x")
    assert ei.value.kind == kind
    assert ei.value.status_code == status


@pytest.mark.asyncio
async def test_unparseable_duration_falls_back_to_task_type(settings) -> None:
    client = _client(settings, FakeCompletions(content="about an hour"))
    task = Task(title="Read chapter 3", task_type=TaskType.CONSUME)

    minutes, confidence, _ = await client.estimate_duration(task)

    assert (minutes, confidence) == (45, "medium")


@pytest.mark.asyncio
async def test_not_configured_without_key(settings) -> None:
    client = PerplexityClient(settings)
    assert not client.is_ready
    with pytest.raises(AIServiceError) as ei:
        await client.analyze_task("x")
    assert ei.value.kind == AIErrorKind.NOT_CONFIGURED


def test_ready_with_key(settings) -> None:
    settings.perplexity_api_key = "pplx-test"
    assert PerplexityClient(settings).is_ready


@pytest.mark.asyncio
async def test_offline_client_is_never_ready() -> None:
    client = OfflineAIClient()
    assert not client.is_ready
    with pytest.raises(AIServiceError) as ei:
        await client.analyze_task("x")
    assert ei.value.kind == AIErrorKind.NOT_CONFIGURED


@pytest.mark.asyncio
async def test_non_finite_estimate_keeps_rest_of_reply(settings) -> None:
    completions = FakeCompletions(content='{"advice": "Do it", "estimated_minutes": Infinity}')
    client = _client(settings, completions)

    resp = await client.analyze_task("x")

    assert resp.advice == "Do it"
    assert resp.estimated_minutes is None


@pytest.mark.asyncio
async def test_duration_with_overflowing_minutes_uses_default(settings) -> None:
    client = _client(settings, FakeCompletions(content='{"minutes": "1e400", "confidence": "low"}'))

    minutes, confidence, _ = await client.estimate_duration(Task(title="x"))

    assert (minutes, confidence) == (30, "low")
