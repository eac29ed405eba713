"""Debate agent: one role's prompts wrapped around the tool-calling loop."""

import json
import logging
import time

from config.config_loader import DEFAULT_TOOL_CALL_LIMIT, AgentConfig, SummarizationConfig, resolve_summarization
from dialectic.models import (
    PROPOSAL,
    REFINEMENT,
    AgentResponse,
    CompletionRequest,
    Contribution,
    ContributionMetadata,
    Critique,
    DebateContext,
    DebateState,
    DebateSummary,
    Proposal,
)
from dialectic.parsing import extract_json_object
from dialectic.prompts import RolePrompts
from dialectic.providers.base import LLMProvider
from dialectic.summarizer import LengthBasedSummarizer
from dialectic.tool_loop import run_with_tools
from dialectic.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class Agent:
    """A debate participant.

    Role behaviour lives in the RolePrompts strategy; every role shares this
    class. propose/critique/refine render a prompt, run it through the tool
    loop and return content plus metadata.
    """

    def __init__(
        self,
        config: AgentConfig,
        provider: LLMProvider,
        prompts: RolePrompts,
        summarization: SummarizationConfig | None = None,
        tools: ToolRegistry | None = None,
        tool_call_limit: int = DEFAULT_TOOL_CALL_LIMIT,
    ) -> None:
        self.config = config
        self._provider = provider
        self._prompts = prompts
        self._summarization = resolve_summarization(summarization or SummarizationConfig(), config)
        self._tools = tools or ToolRegistry()
        self._tool_call_limit = config.tool_call_limit if config.tool_call_limit is not None else tool_call_limit
        self._summarizer = LengthBasedSummarizer(provider, model=config.model)

    @property
    def system_prompt(self) -> str:
        return self.config.system_prompt or self._prompts.system_prompt()

    async def _call_llm(
        self,
        user_prompt: str,
        context: DebateContext | None,
        state: DebateState | None = None,
    ) -> AgentResponse:
        request = CompletionRequest(
            model=self.config.model,
            temperature=self.config.temperature,
            system_prompt=self.system_prompt,
            user_prompt=user_prompt,
        )
        start = time.monotonic()

        if not self._tools.has_tools():
            response = await self._provider.complete(request)
            return AgentResponse(
                content=response.text,
                metadata=ContributionMetadata(
                    latency_ms=int((time.monotonic() - start) * 1000),
                    model=self.config.model,
                    tokens_used=response.usage.total_tokens if response.usage else None,
                ),
            )

        result = await run_with_tools(
            self._provider,
            request,
            self._tools,
            self._tool_call_limit,
            context=context,
            state=state,
        )
        return AgentResponse(
            content=result.final_text,
            metadata=ContributionMetadata(
                latency_ms=int((time.monotonic() - start) * 1000),
                model=self.config.model,
                tokens_used=result.tokens_used,
                tool_calls=result.tool_calls,
                tool_results=result.tool_results,
                tool_call_iterations=result.iterations,
            ),
        )

    def _include_full_history(self, context: DebateContext | None) -> bool:
        return context.include_full_history if context is not None else True

    async def propose(self, problem: str, context: DebateContext | None, state: DebateState | None = None) -> Proposal:
        prompt = self._prompts.propose(problem, context, self.config.id, self._include_full_history(context))
        return await self._call_llm(prompt, context, state)

    async def critique(
        self,
        proposal: Proposal,
        context: DebateContext | None,
        state: DebateState | None = None,
    ) -> Critique:
        prompt = self._prompts.critique(proposal.content, context, self.config.id, self._include_full_history(context))
        return await self._call_llm(prompt, context, state)

    async def refine(
        self,
        original: Proposal,
        critiques: list[Critique],
        context: DebateContext | None,
        state: DebateState | None = None,
    ) -> Proposal:
        critiques_text = "\n\n".join(f"Critique {i}:\n{c.content}" for i, c in enumerate(critiques, start=1))
        prompt = self._prompts.refine(
            original.content,
            critiques_text,
            context,
            self.config.id,
            self._include_full_history(context),
        )
        return await self._call_llm(prompt, context, state)

    def _own_contributions(self, context: DebateContext) -> list[tuple[int, Contribution]]:
        return [
            (rnd.round_number, c)
            for rnd in context.history or []
            for c in rnd.contributions
            if c.agent_id == self.config.id and c.type in (PROPOSAL, REFINEMENT)
        ]

    def should_summarize(self, context: DebateContext | None) -> bool:
        """True when this agent's own proposals and refinements reach the threshold."""
        if not self._summarization.enabled or context is None or not context.history:
            return False
        own_chars = sum(len(c.content) for _, c in self._own_contributions(context))
        return own_chars >= self._summarization.threshold

    async def prepare_context(
        self,
        context: DebateContext,
        round_number: int,
    ) -> tuple[DebateContext, DebateSummary | None]:
        """Summarize this agent's history when it has grown past the threshold.

        Returns:
            (context, summary). summary is None when no summarization was needed.
        """
        if not self.should_summarize(context):
            return context, None

        content = "\n\n---\n\n".join(
            f"Round {n} - {c.type}:\n{c.content}" for n, c in self._own_contributions(context)
        )
        max_length = self._summarization.max_length
        prompt = self._prompts.summarize(content, max_length, template=self.config.summary_prompt)
        summary_text, metadata = await self._summarizer.summarize(content, self.system_prompt, prompt, max_length)
        logger.info(
            "[Round %d] %s summarized history: %d -> %d chars",
            round_number,
            self.config.name,
            metadata.before_chars,
            metadata.after_chars,
        )
        summary = DebateSummary(
            agent_id=self.config.id,
            agent_role=self.config.role,
            summary=summary_text,
            metadata=metadata,
        )
        return context, summary

    async def ask_clarifying_questions(self, problem: str, context: DebateContext | None = None) -> list[str]:
        """Ask the model which questions it needs answered before proposing.

        Returns:
            Question texts; empty if the reply holds no usable JSON.
        """
        prompt = self._prompts.clarify(problem, context, self.config.id, self._include_full_history(context))
        response = await self._call_llm(prompt, context)

        raw = extract_json_object(response.content)
        if raw is None:
            logger.warning("%s: no JSON object in clarifying questions reply", self.config.name)
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("%s: invalid clarifying questions JSON: %s", self.config.name, exc)
            return []

        questions = parsed.get("questions") if isinstance(parsed, dict) else None
        if not isinstance(questions, list):
            return []
        return [
            q["text"].strip()
            for q in questions
            if isinstance(q, dict) and isinstance(q.get("text"), str) and q["text"].strip()
        ]
