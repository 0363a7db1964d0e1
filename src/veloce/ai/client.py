# src/veloce/ai/client.py

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..detail.fallback import fallback_duration_estimate
from ..tasks.task_models import Task
from .errors import AIErrorKind, AIServiceError
from .models import AIResponse, parse_ai_response, parse_duration_estimate

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful productivity assistant."

JSON_ONLY_SUFFIX = (
    "\n\nIMPORTANT: Respond ONLY with valid JSON. No markdown, no code blocks, "
    "just the raw JSON object."
)

ANALYZE_TASK_PROMPT = """You are a productivity expert. Analyze this task and provide helpful advice.

Task: {title}
{notes_section}
{context_section}

Provide:
1. Brief, actionable advice (2-3 sentences)
2. Priority level (low, medium, high) based on typical urgency
3. Estimated time in minutes (be realistic)
4. Your thought process explaining your reasoning
5. 3-5 sub-tasks to break this down (if applicable)
6. YouTube search queries that would help learn skills for this task

Respond in this exact JSON format:
{{
    "advice": "Your actionable advice here",
    "priority": "medium",
    "estimated_minutes": 45,
    "thought_process": "Brief explanation of your reasoning",
    "sub_tasks": [
        {{"title": "First step", "estimated_minutes": 10, "reasoning": "Why this step"}}
    ],
    "youtube_resources": [
        {{"search_query": "how to X tutorial", "relevance_score": 0.9, "reasoning": "Why helpful"}}
    ],
    "schedule_suggestion": {{
        "suggested_time_of_day": "morning",
        "reasoning": "Best time because...",
        "energy_level": "high",
        "optimal_duration": 45
    }}
}}"""

ESTIMATE_DURATION_PROMPT = """Estimate how long this task will take for an average person.

TASK: "{title}"
TYPE: {task_type}
{notes_section}

Respond in this exact JSON format:
{{
    "minutes": 45,
    "confidence": "high|medium|low",
    "reasoning": "Brief explanation of your estimate (1-2 sentences)"
}}

GUIDELINES:
- high confidence: Clear, well-defined task (e.g., "reply to email")
- medium confidence: Some unknowns but reasonable scope
- low confidence: Vague or complex task with many unknowns
- Round to sensible numbers (5, 10, 15, 20, 30, 45, 60, 90, 120)"""


def _to_service_error(exc: Exception) -> AIServiceError:
    """Map an openai SDK exception onto AIServiceError."""
    if isinstance(exc, AIServiceError):
        return exc
    if isinstance(exc, openai.APITimeoutError):
        return AIServiceError(AIErrorKind.TIMEOUT, str(exc))
    if isinstance(exc, openai.APIConnectionError):
        return AIServiceError(AIErrorKind.NETWORK, str(exc))
    if isinstance(exc, openai.RateLimitError):
        return AIServiceError(AIErrorKind.RATE_LIMITED, str(exc), status_code=429)
    if isinstance(exc, openai.APIStatusError):
        message = _api_error_message(exc)
        if message:
            return AIServiceError(AIErrorKind.API, message, status_code=exc.status_code)
        return AIServiceError(AIErrorKind.HTTP, str(exc), status_code=exc.status_code)
    return AIServiceError(AIErrorKind.NETWORK, f"{exc.__class__.__name__}: {exc}")


def _api_error_message(exc: openai.APIStatusError) -> str | None:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        err = body.get("error", body)
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
    return None


class PerplexityClient:
    """
    Perplexity Sonar client (OpenAI-compatible chat completions).

    - No secrets required at construction; `is_ready` reports whether a key is set.
    - SDK retries are disabled; callers fall back locally instead of waiting.
    - Requests are spaced at least `ai_min_request_interval` seconds apart.
    """

    def __init__(self, settings: Any, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._api_key = (getattr(settings, "perplexity_api_key", None) or "").strip()
        self._base_url = str(getattr(settings, "perplexity_base_url", "") or "").strip()
        self._model = str(getattr(settings, "ai_model", "sonar") or "sonar")
        self._min_interval = float(getattr(settings, "ai_min_request_interval", 0.5))
        self._client = client
        self._last_request_at: float | None = None
        self._rate_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def _get_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise AIServiceError(AIErrorKind.NOT_CONFIGURED, "Perplexity API key is not set")
        if not self._base_url:
            raise AIServiceError(AIErrorKind.NOT_CONFIGURED, "Perplexity base URL is not set")

        timeout = httpx.Timeout(
            connect=float(getattr(self._settings, "ai_connect_timeout", 5.0)),
            read=float(getattr(self._settings, "ai_read_timeout", 30.0)),
            write=10.0,
            pool=float(getattr(self._settings, "ai_connect_timeout", 5.0)),
        )
        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=self._base_url,
            timeout=timeout,
            max_retries=0,
        )
        return self._client

    async def _enforce_rate_limit(self) -> None:
        async with self._rate_lock:
            if self._last_request_at is not None:
                elapsed = time.monotonic() - self._last_request_at
                if elapsed < self._min_interval:
                    await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_at = time.monotonic()

    async def generate_text(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ) -> tuple[str, list[str] | None]:
        """Single chat completion. Returns (text, citations)."""
        client = self._get_client()
        await self._enforce_rate_limit()

        messages = [
            {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

        t0 = time.monotonic()
        logger.debug("AI: request model=%s", self._model)
        try:
            completion = await client.chat.completions.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
                extra_body={"return_citations": True, "return_related_questions": False},
            )
        except Exception as e:
            err = _to_service_error(e)
            logger.info(
                "AI: request failed model=%s kind=%s status=%s",
                self._model,
                err.kind.value,
                err.status_code,
            )
            raise err from e

        choices = getattr(completion, "choices", None) or []
        content = None
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)
        if not content:
            raise AIServiceError(AIErrorKind.EMPTY_RESPONSE, f"no content from model {self._model}")

        raw_citations = getattr(completion, "citations", None)
        citations = [str(c) for c in raw_citations] if isinstance(raw_citations, list) else None

        logger.info("AI: response from model=%s (%.2fs)", self._model, time.monotonic() - t0)
        return str(content), citations

    async def generate_json(
        self, prompt: str, *, temperature: float = 0.3
    ) -> tuple[str, list[str] | None]:
        return await self.generate_text(
            prompt + JSON_ONLY_SUFFIX,
            temperature=temperature,
            max_tokens=4096,
        )

    async def analyze_task(
        self,
        title: str,
        notes: str | None = None,
        context: str | None = None,
    ) -> AIResponse:
        prompt = ANALYZE_TASK_PROMPT.format(
            title=title,
            notes_section=f"Notes: {notes}" if notes else "",
            context_section=f"Context: {context}" if context else "",
        )
        text, citations = await self.generate_json(prompt)
        return parse_ai_response(text, citations)

    async def estimate_duration(self, task: Task) -> tuple[int, str, str]:
        """
        (minutes, confidence, reasoning) for a task.

        A non-JSON reply falls back to the task-type estimate; transport errors propagate.
        """
        prompt = ESTIMATE_DURATION_PROMPT.format(
            title=task.title,
            task_type=task.task_type.display_name,
            notes_section=f"Notes: {task.notes}" if task.notes else "",
        )
        text, _ = await self.generate_json(prompt, temperature=0.4)
        try:
            return parse_duration_estimate(text)
        except AIServiceError:
            logger.info("AI: duration reply not parseable; using task-type estimate")
            return fallback_duration_estimate(task.task_type)
