"""Shared pytest fixtures."""

import json
from collections import Counter
from unittest.mock import AsyncMock

import pytest

from config.config_loader import (
    AgentConfig,
    DebateConfig,
    JudgePromptTemplates,
    PromptsConfig,
    RolePromptTemplates,
    SummarizationConfig,
)
from dialectic.agent import Agent
from dialectic.judge import JudgeAgent
from dialectic.models import (
    PROPOSAL,
    CompletionRequest,
    CompletionResponse,
    CompletionUsage,
    Contribution,
    ContributionMetadata,
    DebateRound,
)
from dialectic.prompts import role_prompts_for
from dialectic.providers.base import LLMProvider

JUDGE_SOLUTION = {
    "solutionMarkdown": "## Cache\nUse a write-through cache in front of the database.",
    "tradeoffs": ["Memory cost vs read latency"],
    "recommendations": ["Track hit rate per key prefix"],
    "unfulfilledMajorRequirements": [],
    "openQuestions": [],
    "confidence": 82,
}


class MockProvider(LLMProvider):
    """Test double LLMProvider."""

    def __init__(self, provider_name: str = "mock", response_text: str = "Mock response") -> None:
        self._name = provider_name
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because complete is defined in the class body below.
        self.complete = AsyncMock(  # type: ignore[assignment]
            return_value=CompletionResponse(text=response_text, usage=CompletionUsage(total_tokens=10))
        )

    def name(self) -> str:
        return self._name

    async def complete(self, request: CompletionRequest) -> CompletionResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return CompletionResponse(text="Mock response")


class ScriptedReplies:
    """side_effect for MockProvider.complete that answers by prompt kind.

    Debater replies look like "refine from model-architect #2"; the judge
    answers with JUDGE_SOLUTION as JSON.
    """

    markers = (
        ("JUDGE SUMMARIZE", "judge summary"),
        ("SUMMARIZE in", "summary"),
        ("REFINE\n", "refine"),
        ("CRITIQUE\n", "critique"),
        ("PROPOSE\n", "propose"),
        ("CLARIFY\n", "clarify"),
    )

    def __init__(self) -> None:
        self.counts: Counter = Counter()

    def __call__(self, request: CompletionRequest) -> CompletionResponse:
        usage = CompletionUsage(input_tokens=3, output_tokens=2, total_tokens=5)
        prompt = request.user_prompt
        for marker, kind in self.markers:
            if marker in prompt:
                self.counts[(request.model, kind)] += 1
                n = self.counts[(request.model, kind)]
                return CompletionResponse(text=f"{kind} from {request.model} #{n}", usage=usage)
        return CompletionResponse(text=json.dumps(JUDGE_SOLUTION), usage=usage)


@pytest.fixture
def role_templates() -> RolePromptTemplates:
    return RolePromptTemplates(
        system="SYSTEM architect",
        propose="PROPOSE\n{problem}",
        critique="CRITIQUE\n{proposal}",
        refine="REFINE\n{original}\n---\n{critiques}",
        summarize="SUMMARIZE in {max_length} chars\n{content}",
        clarify="CLARIFY\n{problem}",
    )


@pytest.fixture
def sample_prompts_config(role_templates: RolePromptTemplates) -> PromptsConfig:
    performance = RolePromptTemplates(
        system="SYSTEM performance",
        propose=role_templates.propose,
        critique=role_templates.critique,
        refine=role_templates.refine,
        summarize=role_templates.summarize,
        clarify=role_templates.clarify,
    )
    return PromptsConfig(
        shared={},
        roles={"architect": role_templates, "performance": performance},
        judge=JudgePromptTemplates(
            system="SYSTEM judge",
            summarize="JUDGE SUMMARIZE in {max_length} chars\n{content}",
        ),
    )


@pytest.fixture
def architect_config() -> AgentConfig:
    return AgentConfig(id="agent-architect", name="System Architect", role="architect", model="model-architect")


@pytest.fixture
def performance_config() -> AgentConfig:
    return AgentConfig(id="agent-performance", name="Performance Engineer", role="performance", model="model-performance")


@pytest.fixture
def judge_config() -> AgentConfig:
    return AgentConfig(
        id="judge-main",
        name="Technical Judge",
        role="generalist",
        model="model-judge",
        temperature=0.3,
    )


@pytest.fixture
def sample_debate_config() -> DebateConfig:
    return DebateConfig(rounds=3)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def scripted_provider() -> MockProvider:
    provider = MockProvider("scripted")
    provider.complete = AsyncMock(side_effect=ScriptedReplies())
    return provider


@pytest.fixture
def make_agent(sample_prompts_config):
    """Build an Agent from a config and provider with the test prompts."""

    def _make(config: AgentConfig, provider: LLMProvider, **kwargs) -> Agent:
        return Agent(config, provider, role_prompts_for(config.role, sample_prompts_config), **kwargs)

    return _make


@pytest.fixture
def two_agents(make_agent, architect_config, performance_config, scripted_provider) -> list[Agent]:
    return [make_agent(architect_config, scripted_provider), make_agent(performance_config, scripted_provider)]


@pytest.fixture
def judge(judge_config, sample_prompts_config, scripted_provider) -> JudgeAgent:
    return JudgeAgent(judge_config, scripted_provider, sample_prompts_config.judge)


@pytest.fixture
def small_summarization() -> SummarizationConfig:
    return SummarizationConfig(enabled=True, threshold=50, max_length=20)


def make_contribution(agent_id: str, role: str, type_: str = PROPOSAL, content: str = "text", **kwargs) -> Contribution:
    return Contribution(
        agent_id=agent_id,
        agent_role=role,
        type=type_,
        content=content,
        metadata=ContributionMetadata(latency_ms=10, model="m", tokens_used=5),
        **kwargs,
    )


def make_round(round_number: int, *contributions: Contribution) -> DebateRound:
    return DebateRound(round_number=round_number, contributions=list(contributions))
