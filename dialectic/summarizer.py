"""Length-based summarization of debate history."""

import logging
import time
from datetime import datetime

from dialectic.models import CompletionRequest, SummaryMetadata
from dialectic.providers.base import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_MODEL = "gpt-4"
DEFAULT_SUMMARY_TEMPERATURE = 0.3
METHOD_LENGTH_BASED = "length-based"


class LengthBasedSummarizer:
    """One LLM call, output hard-truncated to max_length characters."""

    def __init__(
        self,
        provider: LLMProvider,
        model: str = DEFAULT_SUMMARY_MODEL,
        temperature: float = DEFAULT_SUMMARY_TEMPERATURE,
    ) -> None:
        self._provider = provider
        self._model = model
        self._temperature = temperature

    async def summarize(
        self,
        content: str,
        system_prompt: str,
        summary_prompt: str,
        max_length: int,
    ) -> tuple[str, SummaryMetadata]:
        """Summarize content using the already-rendered summary_prompt.

        Returns:
            (summary, metadata). before_chars is len(content), after_chars the
            length after truncation.

        Raises:
            ProviderError: If the completion fails.
        """
        start = time.monotonic()
        response = await self._provider.complete(
            CompletionRequest(
                model=self._model,
                temperature=self._temperature,
                system_prompt=system_prompt,
                user_prompt=summary_prompt,
            )
        )
        latency_ms = int((time.monotonic() - start) * 1000)

        summary = response.text.strip()[:max_length]
        logger.debug("Summarized %d -> %d chars in %dms", len(content), len(summary), latency_ms)

        metadata = SummaryMetadata(
            before_chars=len(content),
            after_chars=len(summary),
            method=METHOD_LENGTH_BASED,
            timestamp=datetime.now(),
            latency_ms=latency_ms,
            tokens_used=response.usage.total_tokens if response.usage else None,
            model=self._model,
            temperature=self._temperature,
            provider=self._provider.name(),
        )
        return summary, metadata
