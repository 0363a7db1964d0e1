# src/veloce/ai/errors.py

from __future__ import annotations

from enum import StrEnum


class AIErrorKind(StrEnum):
    NOT_CONFIGURED = "not_configured"
    NETWORK = "network"
    HTTP = "http"
    API = "api"
    EMPTY_RESPONSE = "empty_response"
    PARSING_FAILED = "parsing_failed"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"


def _http_message(code: int | None) -> str:
    if code == 400:
        return "Invalid request. Please try rephrasing your input."
    if code == 401:
        return "API key is invalid or expired. Please check your settings."
    if code == 403:
        return "Access denied. Your API key may not have proper permissions."
    if code == 404:
        return "AI service not found. Please try again later."
    if code == 429:
        return "Too many requests. Please wait a moment and try again."
    if code is not None and 500 <= code <= 599:
        return "AI service is temporarily unavailable. Please try again later."
    return f"Connection error (code {code}). Please try again."


def _api_message(detail: str) -> str:
    low = detail.lower()
    if "quota" in low or "limit" in low:
        return "API quota exceeded. Please try again later."
    if "invalid" in low and "key" in low:
        return "Invalid API key. Please check your settings."
    if "safety" in low or "blocked" in low:
        return "Content was filtered. Please try different input."
    if "model" in low and "not found" in low:
        return "AI model unavailable. Please try again later."
    return f"AI error: {detail[:100]}"


class AIServiceError(RuntimeError):
    """
    The one fallible class of the detail session: "AI fetch unavailable".

    `friendly_message` is safe to show to a user; str(err) keeps the raw detail for logs.
    """

    def __init__(
        self,
        kind: AIErrorKind,
        detail: str = "",
        *,
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail or kind.value)

    @property
    def friendly_message(self) -> str:
        k = self.kind
        if k == AIErrorKind.NOT_CONFIGURED:
            return "AI not configured. Please add your API key in Settings."
        if k == AIErrorKind.NETWORK:
            return "Network error. Please check your connection."
        if k == AIErrorKind.HTTP:
            return _http_message(self.status_code)
        if k == AIErrorKind.API:
            return _api_message(self.detail)
        if k == AIErrorKind.EMPTY_RESPONSE:
            return "AI returned no response. Please try again."
        if k == AIErrorKind.PARSING_FAILED:
            return "Couldn't understand AI response. Please try rephrasing."
        if k == AIErrorKind.RATE_LIMITED:
            return "Too many requests. Please wait a moment and try again."
        return "Request timed out. Check your connection and try again."

    @property
    def is_retryable(self) -> bool:
        if self.kind in {
            AIErrorKind.NETWORK,
            AIErrorKind.RATE_LIMITED,
            AIErrorKind.TIMEOUT,
            AIErrorKind.EMPTY_RESPONSE,
        }:
            return True
        if self.kind == AIErrorKind.HTTP and self.status_code is not None:
            return self.status_code == 429 or 500 <= self.status_code <= 599
        return False
