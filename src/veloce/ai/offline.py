# src/veloce/ai/offline.py

from __future__ import annotations

from .errors import AIErrorKind, AIServiceError
from .models import AIResponse


class OfflineAIClient:
    """
    AI client used when no external API is configured.

    Reports not-ready so the detail controller goes straight to its local
    deterministic insights; calling it anyway raises NOT_CONFIGURED.
    """

    @property
    def is_ready(self) -> bool:
        return False

    async def analyze_task(
        self,
        title: str,
        notes: str | None = None,
        context: str | None = None,
    ) -> AIResponse:
        raise AIServiceError(
            AIErrorKind.NOT_CONFIGURED,
            "Offline mode: set VELOCE_PERPLEXITY_API_KEY to enable AI insights.",
        )
