"""Judge: synthesizes the final Solution from all debate rounds."""

import json
import logging
from dataclasses import dataclass, field

from config.config_loader import AgentConfig, JudgePromptTemplates, SummarizationConfig, resolve_summarization
from dialectic.context import format_clarifications
from dialectic.models import (
    PROPOSAL,
    REFINEMENT,
    CompletionRequest,
    DebateContext,
    DebateRound,
    DebateSummary,
    Solution,
)
from dialectic.parsing import extract_json_object
from dialectic.providers.base import LLMProvider
from dialectic.summarizer import LengthBasedSummarizer

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 50
UNFULFILLED_CONFIDENCE_CAP = 40

SYNTHESIS_INSTRUCTIONS = """## Instructions

You MUST respond with **ONLY valid JSON** (no markdown code blocks, no prose). Use this exact schema:

{
  "solutionMarkdown": "Full solution in Markdown, concrete and specific to this problem and the debate.",
  "tradeoffs": ["Trade-offs considered, each as a separate string"],
  "recommendations": ["Recommendations that apply to this problem, each as a separate string"],
  "unfulfilledMajorRequirements": ["Major requirements the solution does not fulfil, empty if all are met"],
  "openQuestions": ["Open questions or ambiguities, empty if none"],
  "confidence": 75
}

1. Infer the major requirements from the problem, the clarifications and the Requirements Coverage sections.
2. Check whether the synthesized solution fulfils each of them.
3. If ANY major requirement is unfulfilled, confidence must be 40 or lower.
4. Always produce solutionMarkdown, even when confidence is low.

Respond with ONLY the JSON object, no other text."""


@dataclass
class SynthesisOutput:
    solution_markdown: str
    confidence: int
    tradeoffs: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    unfulfilled_major_requirements: list[str] = field(default_factory=list)
    open_questions: list[str] = field(default_factory=list)


def clamp_confidence(value: float) -> int:
    return max(0, min(100, round(value)))


def _string_list(value: object) -> list[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


def parse_synthesis_output(text: str) -> SynthesisOutput | None:
    """Parse the judge's JSON reply. None when it is missing or invalid."""
    raw = extract_json_object(text)
    if raw is None:
        logger.warning("No JSON object found in judge synthesis response, falling back to plain markdown")
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse judge synthesis JSON, falling back to plain markdown: %s", exc)
        return None

    markdown = parsed.get("solutionMarkdown") if isinstance(parsed, dict) else None
    if not isinstance(markdown, str) or not markdown:
        logger.warning('Judge synthesis JSON has no valid "solutionMarkdown", falling back to plain markdown')
        return None

    confidence = parsed.get("confidence")
    if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
        confidence = clamp_confidence(confidence)
    else:
        confidence = FALLBACK_CONFIDENCE

    unfulfilled = _string_list(parsed.get("unfulfilledMajorRequirements"))
    if unfulfilled:
        confidence = min(confidence, UNFULFILLED_CONFIDENCE_CAP)

    return SynthesisOutput(
        solution_markdown=markdown,
        confidence=confidence,
        tradeoffs=_string_list(parsed.get("tradeoffs")),
        recommendations=_string_list(parsed.get("recommendations")),
        unfulfilled_major_requirements=unfulfilled,
        open_questions=_string_list(parsed.get("openQuestions")),
    )


def final_round_content(rounds: list[DebateRound]) -> str:
    """Proposals and refinements of the last round, one block per contribution."""
    if not rounds:
        return ""
    return "\n\n".join(
        f"[{c.agent_role}] {c.type}:\n{c.content}"
        for c in rounds[-1].contributions
        if c.type in (PROPOSAL, REFINEMENT)
    )


class JudgeAgent:
    """Synthesizes the debate. Not a debater: never proposes or critiques."""

    def __init__(
        self,
        config: AgentConfig,
        provider: LLMProvider,
        prompts: JudgePromptTemplates,
        summarization: SummarizationConfig | None = None,
    ) -> None:
        self.config = config
        self._provider = provider
        self._prompts = prompts
        self._summarization = resolve_summarization(summarization or SummarizationConfig(), config)
        self._summarizer = LengthBasedSummarizer(provider, model=config.model)

    @property
    def system_prompt(self) -> str:
        return self.config.system_prompt or self._prompts.system

    def should_summarize(self, rounds: list[DebateRound]) -> bool:
        if not self._summarization.enabled or not rounds:
            return False
        return len(final_round_content(rounds)) >= self._summarization.threshold

    async def prepare_context(self, rounds: list[DebateRound]) -> DebateSummary | None:
        """Summarize the final round when it is too large to hand over verbatim."""
        if not self.should_summarize(rounds):
            return None

        content = final_round_content(rounds)
        max_length = self._summarization.max_length
        template = self.config.summary_prompt or self._prompts.summarize
        prompt = template.format(content=content, max_length=max_length)
        summary_text, metadata = await self._summarizer.summarize(content, self.system_prompt, prompt, max_length)
        logger.info("Judge %s summarized final round: %d -> %d chars", self.config.name, metadata.before_chars, metadata.after_chars)
        return DebateSummary(
            agent_id=self.config.id,
            agent_role=self.config.role,
            summary=summary_text,
            metadata=metadata,
        )

    def build_synthesis_prompt(
        self,
        problem: str,
        rounds: list[DebateRound],
        context: DebateContext | None = None,
        summary: DebateSummary | None = None,
    ) -> str:
        text = f"Problem: {problem}\n\n"
        if context is not None:
            text += format_clarifications(context.clarifications)

        if self.should_summarize(rounds):
            if summary is not None:
                text += f"Debate Summary:\n{summary.summary}\n\n"
            content = final_round_content(rounds)
            if content:
                text += f"Final Round Key Contributions:\n{content}\n\n"
        else:
            for rnd in rounds:
                text += f"Round {rnd.round_number}\n"
                for c in rnd.contributions:
                    text += f"[{c.agent_role}] {c.type}:\n{c.content}\n\n"

        return f"{text}\n\n{SYNTHESIS_INSTRUCTIONS}"

    async def synthesize(
        self,
        problem: str,
        rounds: list[DebateRound],
        context: DebateContext | None = None,
        summary: DebateSummary | None = None,
    ) -> Solution:
        """Produce the final Solution.

        Args:
            problem: The debated problem.
            rounds: Every round of the debate.
            context: Debate context; its clarifications are shown to the judge.
            summary: Judge summary from prepare_context, if one was made.

        Returns:
            Solution synthesized by this judge. Unparseable replies become a
            plain markdown solution with fallback confidence.

        Raises:
            ProviderError: If the completion fails.
        """
        response = await self._provider.complete(
            CompletionRequest(
                model=self.config.model,
                temperature=self.config.temperature,
                system_prompt=self.system_prompt,
                user_prompt=self.build_synthesis_prompt(problem, rounds, context, summary),
            )
        )

        parsed = parse_synthesis_output(response.text)
        if parsed is None:
            return Solution(
                description=response.text,
                tradeoffs=[],
                recommendations=[],
                confidence=FALLBACK_CONFIDENCE,
                synthesized_by=self.config.id,
            )
        return Solution(
            description=parsed.solution_markdown,
            tradeoffs=parsed.tradeoffs,
            recommendations=parsed.recommendations,
            confidence=parsed.confidence,
            synthesized_by=self.config.id,
            unfulfilled_major_requirements=parsed.unfulfilled_major_requirements,
            open_questions=parsed.open_questions,
        )
