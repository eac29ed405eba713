"""OpenAI-compatible provider: Responses API first, Chat Completions as fallback."""

import asyncio
import json
import logging
import os
import time
from dataclasses import replace

from openai import AsyncOpenAI

from config.config_loader import ProviderConfig
from dialectic.models import CompletionRequest, CompletionResponse, CompletionUsage, ToolCall, ToolSchema
from dialectic.providers.base import LLMProvider, ProviderError

logger = logging.getLogger(__name__)


def build_messages(request: CompletionRequest) -> list[dict]:
    """Use explicit messages verbatim, otherwise a system + user pair."""
    if request.messages:
        return request.messages
    return [
        {"role": "system", "content": request.system_prompt},
        {"role": "user", "content": request.user_prompt},
    ]


def convert_tools(tools: list[ToolSchema] | None) -> list[dict] | None:
    """Convert tool schemas to function-calling format. None when there are none."""
    if not tools:
        return None
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameters,
            },
        }
        for t in tools
    ]


def _as_dict(reply: object) -> dict:
    """Normalize an SDK model or plain mapping into a dict."""
    if isinstance(reply, dict):
        return reply
    if hasattr(reply, "model_dump"):
        data = reply.model_dump()
        # output_text is a computed property on SDK Response objects, not a field
        output_text = getattr(reply, "output_text", None)
        if "output_text" not in data and isinstance(output_text, str):
            data["output_text"] = output_text
        return data
    raise ValueError(f"Unsupported reply type: {type(reply).__name__}")


def _first_present(raw: dict, *keys: str) -> int | None:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _parse_tool_call(raw: dict) -> ToolCall:
    function = raw.get("function") or {}
    arguments = function.get("arguments")
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments or {})
    return ToolCall(
        id=raw.get("id") or function.get("name") or "",
        name=function.get("name") or raw.get("name") or "",
        arguments=arguments,
    )


def _parse_tool_calls(raw: list | None) -> list[ToolCall] | None:
    if not raw:
        return None
    return [_parse_tool_call(tc) for tc in raw]


def parse_responses_reply(reply: object) -> CompletionResponse:
    """Normalize a Responses-API reply.

    Text comes from top-level output_text, or output[0].content[0].text when
    output is a list. Usage comes from the top level, or from output.usage
    only when output is an object. Array-shaped output never carries usage.

    Raises:
        ValueError: If the reply carries no non-empty text.
    """
    data = _as_dict(reply)
    output = data.get("output")

    first_content: dict | None = None
    if isinstance(output, list) and output:
        content = output[0].get("content") if isinstance(output[0], dict) else None
        if isinstance(content, list) and content and isinstance(content[0], dict):
            first_content = content[0]

    text = data.get("output_text")
    if not isinstance(text, str) or not text:
        text = first_content.get("text") if first_content else None
    if not isinstance(text, str) or not text:
        raise ValueError("Unexpected Responses API response shape")

    raw_usage = data.get("usage")
    if raw_usage is None and isinstance(output, dict):
        raw_usage = output.get("usage")
    usage: CompletionUsage | None = None
    if isinstance(raw_usage, dict):
        usage = CompletionUsage(
            input_tokens=_first_present(raw_usage, "input_tokens", "inputTokens"),
            output_tokens=_first_present(raw_usage, "output_tokens", "outputTokens"),
            total_tokens=_first_present(raw_usage, "total_tokens", "totalTokens"),
        )

    raw_tool_calls = data.get("tool_calls")
    if raw_tool_calls is None and first_content:
        raw_tool_calls = first_content.get("tool_calls")

    return CompletionResponse(text=text, usage=usage, tool_calls=_parse_tool_calls(raw_tool_calls))


def parse_chat_reply(reply: object) -> CompletionResponse:
    """Normalize a Chat-Completions reply. Missing content becomes an empty string."""
    data = _as_dict(reply)
    choices = data.get("choices") or []
    message = (choices[0].get("message") if choices else None) or {}
    text = message.get("content") or ""

    raw_usage = data.get("usage")
    usage: CompletionUsage | None = None
    if isinstance(raw_usage, dict):
        usage = CompletionUsage(
            input_tokens=_first_present(raw_usage, "prompt_tokens", "input_tokens"),
            output_tokens=_first_present(raw_usage, "completion_tokens", "output_tokens"),
            total_tokens=raw_usage.get("total_tokens"),
        )

    tool_calls: list[ToolCall] | None = None
    if message.get("tool_calls"):
        tool_calls = []
        for tc in message["tool_calls"]:
            function = tc.get("function") or {}
            tool_calls.append(
                ToolCall(
                    id=tc.get("id") or "",
                    name=function.get("name") or "",
                    arguments=function.get("arguments") or "{}",
                )
            )

    return CompletionResponse(text=text, usage=usage, tool_calls=tool_calls)


async def complete_with_fallback(
    client: AsyncOpenAI,
    request: CompletionRequest,
    provider_name: str = "openai",
    timeout_sec: float | None = None,
) -> CompletionResponse:
    """Try the Responses endpoint, fall back to Chat Completions on any failure.

    Args:
        client: AsyncOpenAI (or compatible) client.
        request: The canonical completion request.
        provider_name: Name used in error messages.
        timeout_sec: Per-attempt timeout, None for no limit.

    Returns:
        CompletionResponse. Callers cannot tell which endpoint answered.

    Raises:
        ProviderError: If both endpoints fail.
    """
    messages = build_messages(request)
    tools = convert_tools(request.tools)

    payload: dict = {"model": request.model, "temperature": request.temperature, "input": messages}
    if request.max_tokens is not None:
        payload["max_output_tokens"] = request.max_tokens
    if request.stop:
        payload["stop"] = request.stop
    if tools:
        payload["tools"] = tools

    try:
        reply = await asyncio.wait_for(client.responses.create(**payload), timeout=timeout_sec)
        return parse_responses_reply(reply)
    except Exception as exc:
        logger.debug("%s: Responses API failed (%s), falling back to Chat Completions", provider_name, exc)

    chat_payload: dict = {"model": request.model, "messages": messages, "temperature": request.temperature}
    if request.max_tokens is not None:
        chat_payload["max_tokens"] = request.max_tokens
    if request.stop:
        chat_payload["stop"] = request.stop
    if tools:
        chat_payload["tools"] = tools

    try:
        reply = await asyncio.wait_for(client.chat.completions.create(**chat_payload), timeout=timeout_sec)
    except TimeoutError as exc:
        raise ProviderError(provider_name, f"Request timed out after {timeout_sec}s") from exc
    except Exception as exc:
        raise ProviderError(provider_name, f"API call failed: {exc}") from exc
    return parse_chat_reply(reply)


class OpenAIProvider(LLMProvider):
    """OpenAI or OpenAI-compatible endpoint (e.g. OpenRouter via base_url)."""

    def __init__(self, config: ProviderConfig, client: AsyncOpenAI | None = None) -> None:
        self._config = config
        if client is None:
            api_key = os.environ.get(config.api_key_env, "").strip()
            if not api_key:
                raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
            client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)
        self._client = client

    def name(self) -> str:
        return self._config.name

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        if request.max_tokens is None and self._config.max_output_tokens is not None:
            request = replace(request, max_tokens=self._config.max_output_tokens)
        start = time.monotonic()
        response = await complete_with_fallback(
            self._client,
            request,
            provider_name=self._config.name,
            timeout_sec=self._config.timeout_sec,
        )
        latency = time.monotonic() - start
        logger.debug(
            "%s %s: %.2fs, %s tokens",
            self._config.name,
            request.model,
            latency,
            response.usage.total_tokens if response.usage else None,
        )
        return response
