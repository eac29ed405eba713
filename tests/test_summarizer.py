"""Tests for dialectic/summarizer.py."""

import pytest

from dialectic.models import CompletionResponse, CompletionUsage
from dialectic.providers.base import ProviderError
from dialectic.summarizer import METHOD_LENGTH_BASED, LengthBasedSummarizer
from tests.conftest import MockProvider


async def test_summarize_truncates_to_max_length():
    provider = MockProvider("openai", response_text="  " + "s" * 50 + "  ")
    summary, metadata = await LengthBasedSummarizer(provider).summarize("c" * 300, "sys", "prompt", max_length=20)
    assert summary == "s" * 20
    assert metadata.before_chars == 300
    assert metadata.after_chars == 20


async def test_summarize_metadata():
    provider = MockProvider("openrouter", response_text="short summary")
    summarizer = LengthBasedSummarizer(provider, model="gpt-4o", temperature=0.2)
    summary, metadata = await summarizer.summarize("content", "sys", "prompt", max_length=100)
    assert summary == "short summary"
    assert metadata.method == METHOD_LENGTH_BASED
    assert metadata.model == "gpt-4o"
    assert metadata.temperature == 0.2
    assert metadata.provider == "openrouter"
    assert metadata.tokens_used == 10
    assert metadata.latency_ms >= 0


async def test_summarize_sends_rendered_prompt():
    provider = MockProvider()
    await LengthBasedSummarizer(provider).summarize("content", "SYSTEM", "SUMMARY PROMPT", max_length=100)
    request = provider.complete.call_args.args[0]
    assert request.system_prompt == "SYSTEM"
    assert request.user_prompt == "SUMMARY PROMPT"
    assert request.temperature == 0.3


async def test_summarize_without_usage():
    provider = MockProvider()
    provider.complete.return_value = CompletionResponse(text="s", usage=CompletionUsage())
    _, metadata = await LengthBasedSummarizer(provider).summarize("c", "sys", "p", max_length=10)
    assert metadata.tokens_used is None


async def test_summarize_propagates_provider_error():
    provider = MockProvider()
    provider.complete.side_effect = ProviderError("mock", "down")
    with pytest.raises(ProviderError):
        await LengthBasedSummarizer(provider).summarize("c", "sys", "p", max_length=10)
