"""Collect clarifying questions from every agent before the debate starts."""

import asyncio
import logging

from dialectic.agent import Agent
from dialectic.models import AgentClarifications, ClarificationItem, DebateContext

logger = logging.getLogger(__name__)


async def _ask(
    agent: Agent,
    problem: str,
    max_per_agent: int,
    existing: list[AgentClarifications] | None,
) -> AgentClarifications:
    context = DebateContext(problem=problem, clarifications=existing)
    questions = await agent.ask_clarifying_questions(problem, context)
    if len(questions) > max_per_agent:
        logger.warning(
            "Agent %s returned %d questions; limited to %d.",
            agent.config.name,
            len(questions),
            max_per_agent,
        )
    return AgentClarifications(
        agent_id=agent.config.id,
        agent_name=agent.config.name,
        role=agent.config.role,
        items=[
            ClarificationItem(id=f"q{i}", question=q)
            for i, q in enumerate(questions[:max_per_agent], start=1)
        ],
    )


async def collect_clarifications(
    problem: str,
    agents: list[Agent],
    max_per_agent: int,
    existing: list[AgentClarifications] | None = None,
) -> list[AgentClarifications]:
    """Ask all agents concurrently. Answers start blank; the caller fills them in.

    Args:
        problem: The problem statement.
        agents: Debating agents (not the judge).
        max_per_agent: Questions beyond this are dropped with a warning.
        existing: Earlier clarifications, shown to the agents so they do not repeat them.

    Returns:
        One group per agent, in agent order.
    """
    return list(await asyncio.gather(*(_ask(a, problem, max_per_agent, existing) for a in agents)))
