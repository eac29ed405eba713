"""Abstract base for LLM completion providers."""

from abc import ABC, abstractmethod

from dialectic.models import CompletionRequest, CompletionResponse


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class LLMProvider(ABC):
    """Anything that can turn a CompletionRequest into a CompletionResponse."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openai', 'openrouter')."""
        ...

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Send one completion request.

        Args:
            request: Model, prompts or explicit messages, temperature and tools.

        Returns:
            CompletionResponse with text, and usage/tool_calls when the
            provider reported them (None otherwise).

        Raises:
            ProviderError: When the provider could not produce a reply.
        """
        ...
