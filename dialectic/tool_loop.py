"""Bounded tool-calling loop around a provider completion."""

import inspect
import json
import logging
from dataclasses import dataclass, replace

from dialectic.models import (
    CompletionRequest,
    CompletionResponse,
    DebateContext,
    DebateState,
    ToolCall,
    ToolResult,
)
from dialectic.providers.base import LLMProvider
from dialectic.providers.openai_provider import build_messages
from dialectic.tools.base import STATUS_ERROR, create_tool_result
from dialectic.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolLoopResult:
    final_text: str
    iterations: int
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None
    tokens_used: int | None = None


def _assistant_turn(response: CompletionResponse) -> dict:
    return {
        "role": "assistant",
        "content": response.text or "",
        "tool_calls": [
            {"id": tc.id, "type": "function", "function": {"name": tc.name, "arguments": tc.arguments}}
            for tc in response.tool_calls or []
        ],
    }


def _tool_turn(result: ToolResult) -> dict:
    return {"role": result.role, "tool_call_id": result.tool_call_id, "content": result.content}


async def execute_tool_call(
    call: ToolCall,
    registry: ToolRegistry,
    context: DebateContext | None = None,
    state: DebateState | None = None,
) -> ToolResult:
    """Run one tool call. Always returns a result; failures become error results."""
    tool = registry.get(call.name)
    if tool is None:
        logger.warning("Tool '%s' not found in registry", call.name)
        return create_tool_result(call.id, STATUS_ERROR, error=f"Tool {call.name} not found")

    try:
        args = json.loads(call.arguments) if call.arguments else {}
    except json.JSONDecodeError as exc:
        logger.warning("Tool '%s' called with invalid arguments: %s", call.name, exc)
        return create_tool_result(call.id, STATUS_ERROR, error=f"Invalid arguments JSON: {exc}")
    if not isinstance(args, dict):
        return create_tool_result(call.id, STATUS_ERROR, error="Tool arguments must be a JSON object")

    logger.info("Executing tool %s", call.name)
    try:
        output = tool.execute(args, context, state)
        if inspect.isawaitable(output):
            output = await output
    except Exception as exc:
        logger.warning("Tool '%s' failed: %s", call.name, exc)
        return create_tool_result(call.id, STATUS_ERROR, error=str(exc))

    logger.debug("Tool %s execution result: %s", call.name, output)
    return ToolResult(tool_call_id=call.id, content=str(output))


async def run_with_tools(
    provider: LLMProvider,
    request: CompletionRequest,
    registry: ToolRegistry,
    max_iterations: int,
    context: DebateContext | None = None,
    state: DebateState | None = None,
) -> ToolLoopResult:
    """Call the model, execute requested tools, resubmit, until no tool calls remain.

    Stops when a reply carries no tool calls or after max_iterations tool
    rounds, whichever comes first. When the cap is hit the last batch of tool
    results is recorded but not sent back to the model.

    Args:
        provider: Completion provider.
        request: Initial request; its tools are replaced by the registry's schemas.
        registry: Tools the model may call.
        max_iterations: Upper bound on tool rounds.
        context: Passed to each tool's execute.
        state: Live debate state, passed to each tool's execute.

    Returns:
        ToolLoopResult with the final text, every call and result made across
        iterations (None if there were none), the iteration count and the
        summed token usage.
    """
    messages = list(build_messages(request))
    request = replace(request, messages=messages, tools=registry.schemas() or None)

    all_calls: list[ToolCall] = []
    all_results: list[ToolResult] = []
    tokens: int | None = None

    response = await provider.complete(replace(request, messages=list(messages)))
    if response.usage and response.usage.total_tokens is not None:
        tokens = response.usage.total_tokens

    iterations = 0
    while response.tool_calls and iterations < max_iterations:
        iterations += 1
        messages.append(_assistant_turn(response))
        for call in response.tool_calls:
            result = await execute_tool_call(call, registry, context, state)
            all_calls.append(call)
            all_results.append(result)
            messages.append(_tool_turn(result))

        if iterations >= max_iterations:
            logger.info("Tool call limit (%d) reached, using last reply", max_iterations)
            break

        response = await provider.complete(replace(request, messages=list(messages)))
        if response.usage and response.usage.total_tokens is not None:
            tokens = (tokens or 0) + response.usage.total_tokens

    return ToolLoopResult(
        final_text=response.text,
        iterations=iterations,
        tool_calls=all_calls or None,
        tool_results=all_results or None,
        tokens_used=tokens,
    )
