"""Debate orchestration: rounds of proposal, critique and refinement, then judge synthesis."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from config.config_loader import MIN_ROUNDS_FOR_CRITIQUE, MIN_ROUNDS_FOR_REFINEMENT, DebateConfig
from dialectic.agent import Agent
from dialectic.judge import JudgeAgent
from dialectic.models import (
    CRITIQUE,
    PROPOSAL,
    REFINEMENT,
    AgentClarifications,
    AgentResponse,
    Contribution,
    ContributionMetadata,
    DebateContext,
    DebateMetadata,
    DebateResult,
    DebateRound,
    DebateState,
    Solution,
)
from dialectic.state import StateManager

logger = logging.getLogger(__name__)

PHASE_PROPOSAL = "proposal"
PHASE_CRITIQUE = "critique"
PHASE_REFINEMENT = "refinement"

# Activity labels passed to agent hooks
ACTIVITY_PROPOSING = "proposing"
ACTIVITY_CRITIQUING = "critiquing"
ACTIVITY_REFINING = "refining"


@dataclass
class OrchestratorHooks:
    """Optional progress callbacks. All are synchronous and must not raise."""

    on_round_start: Callable[[int, int], None] | None = None            # (round, total)
    on_phase_start: Callable[[int, str, int], None] | None = None       # (round, phase, expected tasks)
    on_phase_complete: Callable[[int, str], None] | None = None         # (round, phase)
    on_agent_start: Callable[[str, str], None] | None = None            # (agent name, activity)
    on_agent_complete: Callable[[str, str], None] | None = None         # (agent name, activity)
    on_summarization_start: Callable[[str], None] | None = None         # (agent name)
    on_summarization_complete: Callable[[str, int, int], None] | None = None  # (agent name, before, after)
    on_summarization_end: Callable[[str], None] | None = None           # (agent name)
    on_contribution_created: Callable[[Contribution, int], None] | None = None  # (contribution, round)
    on_synthesis_start: Callable[[], None] | None = None
    on_synthesis_complete: Callable[[], None] | None = None


async def _gather_or_cancel(coros: list[Awaitable[None]]) -> None:
    """Await all coros; on the first failure (or cancellation) cancel and drain the rest before re-raising."""
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def enhance_problem_with_context(problem: str, context: str | None) -> str:
    """Append caller-supplied context to the problem statement."""
    if not context or not context.strip():
        return problem
    return f"{problem}\n\n# Extra Context\n\n{context.strip()}"


class DebateOrchestrator:
    """Runs one debate to completion against a StateManager.

    Every contribution is persisted as soon as it exists; a failure at any
    point propagates and leaves the state as it was at the last persisted step.
    """

    def __init__(
        self,
        agents: list[Agent],
        judge: JudgeAgent,
        state_manager: StateManager,
        config: DebateConfig,
        hooks: OrchestratorHooks | None = None,
    ) -> None:
        self._agents = agents
        self._judge = judge
        self._state = state_manager
        self._config = config
        self._hooks = hooks or OrchestratorHooks()

    def _emit(self, hook_name: str, *args) -> None:
        hook = getattr(self._hooks, hook_name)
        if hook is not None:
            hook(*args)

    def rounds_to_run(self) -> int:
        """Full rounds need refinement to carry forward; otherwise a single round."""
        if self._config.rounds >= MIN_ROUNDS_FOR_REFINEMENT:
            return self._config.rounds
        return 1

    def build_context(self, state: DebateState) -> DebateContext:
        include_history = self._config.include_full_history
        return DebateContext(
            problem=state.problem,
            context=state.context,
            history=state.rounds if include_history else None,
            include_full_history=include_history,
            clarifications=state.clarifications,
        )

    def build_contribution(
        self,
        agent: Agent,
        contribution_type: str,
        response: AgentResponse,
        started_at: float,
        target_agent_id: str | None = None,
    ) -> Contribution:
        latency_ms = response.metadata.latency_ms
        if latency_ms is None:
            latency_ms = int((time.monotonic() - started_at) * 1000)
        return Contribution(
            agent_id=agent.config.id,
            agent_role=agent.config.role,
            type=contribution_type,
            content=response.content,
            metadata=replace(response.metadata, latency_ms=latency_ms, model=agent.config.model),
            target_agent_id=target_agent_id,
        )

    async def _record(self, state: DebateState, contribution: Contribution, round_number: int) -> None:
        await self._state.add_contribution(state.id, contribution)
        self._emit("on_contribution_created", contribution, round_number)

    async def _run_phase(self, round_number: int, phase: str, tasks: list[Awaitable[None]]) -> None:
        """Run a phase's tasks concurrently; the phase ends when all of them have."""
        self._emit("on_phase_start", round_number, phase, len(tasks))
        logger.info("[Round %d] %s phase: %d task(s)", round_number, phase, len(tasks))
        gathered = _gather_or_cancel(tasks)
        if self._config.timeout_per_round_sec is not None:
            await asyncio.wait_for(gathered, timeout=self._config.timeout_per_round_sec)
        else:
            await gathered
        self._emit("on_phase_complete", round_number, phase)

    async def _summarization_phase(self, state: DebateState, round_number: int) -> DebateContext:
        """Let each agent compress its history; summaries land in the current round."""
        for agent in self._agents:
            context = self.build_context(state)
            self._emit("on_summarization_start", agent.config.name)
            _, summary = await agent.prepare_context(context, round_number)
            if summary is not None:
                await self._state.add_summary(state.id, summary)
                self._emit(
                    "on_summarization_complete",
                    agent.config.name,
                    summary.metadata.before_chars,
                    summary.metadata.after_chars,
                )
            self._emit("on_summarization_end", agent.config.name)
        return self.build_context(state)

    async def _propose(self, agent: Agent, state: DebateState, context: DebateContext, round_number: int) -> None:
        self._emit("on_agent_start", agent.config.name, ACTIVITY_PROPOSING)
        started_at = time.monotonic()
        problem = enhance_problem_with_context(state.problem, state.context)
        proposal = await agent.propose(problem, context, state)
        await self._record(state, self.build_contribution(agent, PROPOSAL, proposal, started_at), round_number)
        self._emit("on_agent_complete", agent.config.name, ACTIVITY_PROPOSING)

    async def _carry_forward(
        self,
        agent: Agent,
        previous: DebateRound,
        state: DebateState,
        context: DebateContext,
        round_number: int,
    ) -> None:
        refinement = next(
            (c for c in previous.contributions if c.agent_id == agent.config.id and c.type == REFINEMENT),
            None,
        )
        if refinement is None:
            logger.warning(
                "[Round %d] Missing previous refinement for %s; falling back to LLM proposal.",
                round_number,
                agent.config.name,
            )
            await self._propose(agent, state, context, round_number)
            return

        contribution = Contribution(
            agent_id=agent.config.id,
            agent_role=agent.config.role,
            type=PROPOSAL,
            content=refinement.content,
            metadata=ContributionMetadata(latency_ms=0, model=agent.config.model, tokens_used=0),
        )
        await self._record(state, contribution, round_number)

    async def _proposal_phase(self, state: DebateState, context: DebateContext, round_number: int) -> None:
        if round_number == 1:
            tasks = [self._propose(agent, state, context, round_number) for agent in self._agents]
        else:
            previous = state.rounds[round_number - 2]
            tasks = [self._carry_forward(agent, previous, state, context, round_number) for agent in self._agents]
        await self._run_phase(round_number, PHASE_PROPOSAL, tasks)

    async def _critique(
        self,
        agent: Agent,
        target: Contribution,
        state: DebateState,
        context: DebateContext,
        round_number: int,
    ) -> None:
        self._emit("on_agent_start", agent.config.name, ACTIVITY_CRITIQUING)
        started_at = time.monotonic()
        critique = await agent.critique(AgentResponse(target.content, target.metadata), context, state)
        contribution = self.build_contribution(agent, CRITIQUE, critique, started_at, target_agent_id=target.agent_id)
        await self._record(state, contribution, round_number)
        self._emit("on_agent_complete", agent.config.name, ACTIVITY_CRITIQUING)

    async def _critique_phase(self, state: DebateState, context: DebateContext, round_number: int) -> None:
        proposals = [c for c in state.rounds[-1].contributions if c.type == PROPOSAL]
        tasks = [
            self._critique(agent, proposal, state, context, round_number)
            for agent in self._agents
            for proposal in proposals
            if proposal.agent_id != agent.config.id
        ]
        await self._run_phase(round_number, PHASE_CRITIQUE, tasks)

    async def _refine(self, agent: Agent, state: DebateState, context: DebateContext, round_number: int) -> None:
        current = state.rounds[-1]
        original = next(
            (c for c in current.contributions if c.type == PROPOSAL and c.agent_id == agent.config.id),
            None,
        )
        if original is None:
            logger.warning("[Round %d] No proposal from %s to refine; skipping.", round_number, agent.config.name)
            return
        critiques = [
            AgentResponse(c.content, c.metadata)
            for c in current.contributions
            if c.type == CRITIQUE and c.target_agent_id == agent.config.id
        ]

        self._emit("on_agent_start", agent.config.name, ACTIVITY_REFINING)
        started_at = time.monotonic()
        refined = await agent.refine(AgentResponse(original.content, original.metadata), critiques, context, state)
        await self._record(state, self.build_contribution(agent, REFINEMENT, refined, started_at), round_number)
        self._emit("on_agent_complete", agent.config.name, ACTIVITY_REFINING)

    async def _refinement_phase(self, state: DebateState, context: DebateContext, round_number: int) -> None:
        tasks = [self._refine(agent, state, context, round_number) for agent in self._agents]
        await self._run_phase(round_number, PHASE_REFINEMENT, tasks)

    async def _synthesis_phase(self, state: DebateState) -> Solution:
        self._emit("on_synthesis_start")
        summary = await self._judge.prepare_context(state.rounds)
        if summary is not None:
            await self._state.add_judge_summary(state.id, summary)
        solution = await self._judge.synthesize(state.problem, state.rounds, self.build_context(state), summary)
        self._emit("on_synthesis_complete")
        return solution

    async def run_debate(
        self,
        problem: str,
        context: str | None = None,
        clarifications: list[AgentClarifications] | None = None,
        debate_id: str | None = None,
    ) -> DebateResult:
        """Run the full debate.

        Args:
            problem: The design problem.
            context: Extra context appended to the problem for proposals.
            clarifications: Answered clarifying questions, shown to every agent.
            debate_id: Use this id instead of generating one.

        Returns:
            DebateResult with the judge's solution and every round.

        Raises:
            ProviderError, StateError, TimeoutError: Propagated unchanged from
                the failing phase. Nothing is retried.
        """
        start = time.monotonic()
        state = await self._state.create_debate(problem, context, debate_id)
        if clarifications:
            await self._state.set_clarifications(state.id, clarifications)

        total_rounds = self.rounds_to_run()
        for round_number in range(1, total_rounds + 1):
            await self._state.begin_round(state.id)
            self._emit("on_round_start", round_number, total_rounds)
            logger.info("Starting round %d/%d with %d agents", round_number, total_rounds, len(self._agents))

            round_context = await self._summarization_phase(state, round_number)
            await self._proposal_phase(state, round_context, round_number)
            if self._config.rounds >= MIN_ROUNDS_FOR_CRITIQUE:
                await self._critique_phase(state, round_context, round_number)
            if self._config.rounds >= MIN_ROUNDS_FOR_REFINEMENT:
                await self._refinement_phase(state, round_context, round_number)

        solution = await self._synthesis_phase(state)
        await self._state.complete_debate(state.id, solution)

        final_state = await self._state.get_debate(state.id) or state
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.info("Debate %s complete: %d rounds in %dms", state.id, len(final_state.rounds), duration_ms)
        return DebateResult(
            debate_id=state.id,
            solution=solution,
            rounds=final_state.rounds,
            metadata=DebateMetadata(total_rounds=len(final_state.rounds), duration_ms=duration_ms),
        )
