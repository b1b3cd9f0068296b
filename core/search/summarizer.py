# Path: core/search/summarizer.py
# Purpose: Summarize retrieved memories for a query through an external chat model.
# Layer: core/search.
# Details: Posts to an OpenAI-compatible /chat/completions endpoint with httpx; failures become SummarizationError.

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from config import SummarizerSettings
from core.errors import SummarizationError

logger = logging.getLogger(__name__)


class Summarizer(ABC):
    """Interface for the best-effort summarization collaborator."""

    @abstractmethod
    def summarize(self, query: str, context: str) -> str:
        """Answer ``query`` from ``context``; raise :class:`SummarizationError` on failure."""


class NullSummarizer(Summarizer):
    """Summarizer used when no endpoint is configured; echoes the context."""

    def summarize(self, query: str, context: str) -> str:
        return context


class ChatCompletionSummarizer(Summarizer):
    """Summarizer backed by an OpenAI-compatible chat completions API."""

    def __init__(self, settings: SummarizerSettings, client: Optional[httpx.Client] = None) -> None:
        self.settings = settings
        headers = {"Authorization": f"Bearer {settings.api_key}"} if settings.api_key else {}
        self._client = client or httpx.Client(
            base_url=settings.base_url.rstrip("/"), headers=headers, timeout=settings.timeout_seconds
        )

    def summarize(self, query: str, context: str) -> str:
        payload: Dict[str, Any] = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": self.settings.system_prompt},
                {"role": "user", "content": f"Observations:\n{context}\n\nQuestion: {query}"},
            ],
            "stream": False,
        }
        try:
            response = self._client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise SummarizationError(
                f"Summarizer returned HTTP {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SummarizationError(f"Summarizer request failed: {exc}") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SummarizationError("Summarizer response has no message content.") from exc
        logger.debug("Summarizer replied with %d characters", len(content or ""))
        return (content or "").strip()

    def close(self) -> None:
        self._client.close()


def build_summarizer(settings: SummarizerSettings) -> Summarizer:
    if not settings.enabled:
        return NullSummarizer()
    return ChatCompletionSummarizer(settings)
