"""Tests for dialectic/orchestrator.py."""

import asyncio
import json
import logging
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config_loader import DebateConfig
from dialectic.models import (
    CRITIQUE,
    PROPOSAL,
    REFINEMENT,
    STATUS_COMPLETED,
    STATUS_RUNNING,
    AgentClarifications,
    ClarificationItem,
    CompletionResponse,
)
from dialectic.orchestrator import DebateOrchestrator, OrchestratorHooks, enhance_problem_with_context
from dialectic.providers.base import ProviderError
from dialectic.state import StateManager
from tests.conftest import MockProvider, make_contribution


def _by_type(rnd, type_):
    return [c for c in rnd.contributions if c.type == type_]


def _orchestrator(agents, judge, rounds=3, state_manager=None, hooks=None, **config_kwargs):
    config = DebateConfig(rounds=rounds, **config_kwargs)
    return DebateOrchestrator(agents, judge, state_manager or StateManager(), config, hooks)


def test_enhance_problem_with_context():
    assert enhance_problem_with_context("P", None) == "P"
    assert enhance_problem_with_context("P", "   ") == "P"
    assert enhance_problem_with_context("P", " on-prem only ") == "P\n\n# Extra Context\n\non-prem only"


@pytest.mark.parametrize("rounds, expected", [(1, 1), (2, 1), (3, 3), (5, 5)])
def test_rounds_to_run(two_agents, judge, rounds, expected):
    assert _orchestrator(two_agents, judge, rounds=rounds).rounds_to_run() == expected


async def test_single_round_has_proposals_only(two_agents, judge):
    result = await _orchestrator(two_agents, judge, rounds=1).run_debate("Design a caching system")
    assert len(result.rounds) == 1
    assert [c.type for c in result.rounds[0].contributions] == [PROPOSAL, PROPOSAL]
    assert result.solution.synthesized_by == "judge-main"


async def test_two_rounds_run_one_round_with_critiques(two_agents, judge):
    result = await _orchestrator(two_agents, judge, rounds=2).run_debate("Design a caching system")
    assert len(result.rounds) == 1
    rnd = result.rounds[0]
    assert len(_by_type(rnd, PROPOSAL)) == 2
    assert len(_by_type(rnd, CRITIQUE)) == 2
    assert _by_type(rnd, REFINEMENT) == []


async def test_full_debate_end_to_end(two_agents, judge, scripted_provider):
    result = await _orchestrator(two_agents, judge, rounds=3).run_debate("Design a caching system")

    assert len(result.rounds) == 3
    assert result.metadata.total_rounds == 3
    assert [r.round_number for r in result.rounds] == [1, 2, 3]
    for rnd in result.rounds:
        assert len(_by_type(rnd, PROPOSAL)) == 2
        assert len(_by_type(rnd, CRITIQUE)) == 2
        assert len(_by_type(rnd, REFINEMENT)) == 2
        for critique in _by_type(rnd, CRITIQUE):
            assert critique.target_agent_id is not None
            assert critique.target_agent_id != critique.agent_id

    assert result.solution.synthesized_by == "judge-main"
    assert result.solution.confidence == 82
    assert result.solution.description.startswith("## Cache")

    # 2 LLM proposals, then per round 2 critiques and 2 refinements, then synthesis
    assert scripted_provider.complete.call_count == 2 + 3 * 4 + 1


async def test_later_proposals_carry_previous_refinements(two_agents, judge):
    result = await _orchestrator(two_agents, judge, rounds=3).run_debate("Design a caching system")
    for previous, current in zip(result.rounds, result.rounds[1:]):
        for proposal in _by_type(current, PROPOSAL):
            refinement = next(c for c in _by_type(previous, REFINEMENT) if c.agent_id == proposal.agent_id)
            assert proposal.content == refinement.content
            assert proposal.metadata.tokens_used == 0
            assert proposal.metadata.latency_ms == 0


async def test_first_round_proposals_have_metadata(two_agents, judge):
    result = await _orchestrator(two_agents, judge, rounds=1).run_debate("Design a caching system")
    by_agent = {c.agent_id: c for c in result.rounds[0].contributions}
    assert by_agent["agent-architect"].content == "propose from model-architect #1"
    assert by_agent["agent-architect"].metadata.model == "model-architect"
    assert by_agent["agent-architect"].metadata.tokens_used == 5
    assert by_agent["agent-performance"].agent_role == "performance"
    assert by_agent["agent-performance"].metadata.latency_ms >= 0


async def test_refinement_receives_critiques_of_own_proposal(two_agents, judge, scripted_provider):
    await _orchestrator(two_agents, judge, rounds=3).run_debate("Design a caching system")
    refine_requests = [
        call.args[0]
        for call in scripted_provider.complete.call_args_list
        if call.args[0].model == "model-architect" and "REFINE\n" in call.args[0].user_prompt
    ]
    assert len(refine_requests) == 3
    assert "Critique 1:\ncritique from model-performance" in refine_requests[0].user_prompt
    assert "Critique 2:" not in refine_requests[0].user_prompt


async def test_extra_context_reaches_proposals(two_agents, judge, scripted_provider):
    await _orchestrator(two_agents, judge, rounds=1).run_debate("Design a cache", context="Must run on-prem")
    prompt = scripted_provider.complete.call_args_list[0].args[0].user_prompt
    assert "Design a cache\n\n# Extra Context\n\nMust run on-prem" in prompt


async def test_later_rounds_see_history(two_agents, judge, scripted_provider):
    await _orchestrator(two_agents, judge, rounds=3).run_debate("Design a caching system")
    prompts = [call.args[0].user_prompt for call in scripted_provider.complete.call_args_list]
    # Round 1 proposals come first and have nothing to look back on
    assert prompts[0].startswith("PROPOSE\n")
    assert prompts[1].startswith("PROPOSE\n")
    last_critique = [p for p in prompts if "CRITIQUE\n" in p][-1]
    assert last_critique.startswith("=== Previous Debate Rounds ===")
    assert "Round 2:\n" in last_critique


async def test_history_omitted_when_disabled(two_agents, judge, scripted_provider):
    orchestrator = _orchestrator(two_agents, judge, rounds=3, include_full_history=False)
    await orchestrator.run_debate("Design a caching system")
    for call in scripted_provider.complete.call_args_list:
        assert "=== Previous Debate Rounds ===" not in call.args[0].user_prompt


async def test_missing_refinement_falls_back_to_llm_proposal(two_agents, judge, caplog):
    state_manager = StateManager()
    orchestrator = _orchestrator(two_agents, judge, rounds=3, state_manager=state_manager)
    state = await state_manager.create_debate("Design a caching system")
    await state_manager.begin_round(state.id)
    await state_manager.add_contribution(state.id, make_contribution("agent-architect", "architect", PROPOSAL, "r1"))
    await state_manager.add_contribution(state.id, make_contribution("agent-performance", "performance", PROPOSAL, "r1"))
    await state_manager.add_contribution(
        state.id, make_contribution("agent-performance", "performance", REFINEMENT, "perf refined")
    )
    await state_manager.begin_round(state.id)

    with caplog.at_level(logging.WARNING):
        await orchestrator._proposal_phase(state, orchestrator.build_context(state), 2)

    assert "Missing previous refinement for System Architect" in caplog.text
    proposals = {c.agent_id: c for c in state.rounds[1].contributions}
    assert proposals["agent-architect"].content == "propose from model-architect #1"
    assert proposals["agent-performance"].content == "perf refined"
    assert proposals["agent-performance"].metadata.tokens_used == 0


async def test_summaries_recorded_in_current_round(
    make_agent, architect_config, performance_config, scripted_provider, judge, small_summarization
):
    agents = [
        make_agent(architect_config, scripted_provider, summarization=small_summarization),
        make_agent(performance_config, scripted_provider, summarization=small_summarization),
    ]
    completed = MagicMock()
    hooks = OrchestratorHooks(on_summarization_complete=completed)
    result = await _orchestrator(agents, judge, rounds=3, hooks=hooks).run_debate("Design a caching system")

    assert result.rounds[0].summaries == {}
    assert set(result.rounds[1].summaries) == {"agent-architect", "agent-performance"}
    summary = result.rounds[1].summaries["agent-architect"]
    assert summary.summary == "summary from model-a"
    assert summary.metadata.after_chars == 20
    assert completed.call_count == 4

    # Once summarized, an agent sees its summary instead of the transcript
    refine_prompts = [
        call.args[0].user_prompt
        for call in scripted_provider.complete.call_args_list
        if call.args[0].model == "model-architect" and "REFINE\n" in call.args[0].user_prompt
    ]
    assert "[SUMMARY from Round 2]" in refine_prompts[1]
    assert "[SUMMARY from Round 3]" in refine_prompts[2]


async def test_hooks_called(two_agents, judge):
    hooks = OrchestratorHooks(
        on_round_start=MagicMock(),
        on_phase_start=MagicMock(),
        on_phase_complete=MagicMock(),
        on_agent_start=MagicMock(),
        on_agent_complete=MagicMock(),
        on_summarization_start=MagicMock(),
        on_summarization_end=MagicMock(),
        on_contribution_created=MagicMock(),
        on_synthesis_start=MagicMock(),
        on_synthesis_complete=MagicMock(),
    )
    await _orchestrator(two_agents, judge, rounds=3, hooks=hooks).run_debate("Design a caching system")

    assert hooks.on_round_start.call_args_list[0].args == (1, 3)
    assert hooks.on_round_start.call_count == 3
    assert hooks.on_phase_start.call_count == 9
    assert hooks.on_phase_complete.call_count == 9
    assert hooks.on_phase_start.call_args_list[0].args == (1, "proposal", 2)
    assert hooks.on_contribution_created.call_count == 18
    assert hooks.on_summarization_start.call_count == 6
    assert hooks.on_summarization_end.call_count == 6
    # Carried-forward proposals are not agent activity
    assert hooks.on_agent_start.call_count == 2 + 3 * 4
    assert hooks.on_agent_complete.call_count == hooks.on_agent_start.call_count
    hooks.on_synthesis_start.assert_called_once()
    hooks.on_synthesis_complete.assert_called_once()


async def test_state_persisted_and_completed(two_agents, judge, tmp_path: Path):
    state_manager = StateManager(tmp_path)
    result = await _orchestrator(two_agents, judge, rounds=1, state_manager=state_manager).run_debate(
        "Design a caching system", debate_id="deb-test"
    )
    assert result.debate_id == "deb-test"
    state = await state_manager.get_debate("deb-test")
    assert state.status == STATUS_COMPLETED
    assert state.final_solution is result.solution

    saved = json.loads((tmp_path / "deb-test.json").read_text(encoding="utf-8"))
    assert saved["status"] == STATUS_COMPLETED
    assert len(saved["rounds"][0]["contributions"]) == 2


async def test_clarifications_stored_and_shown(two_agents, judge, scripted_provider):
    groups = [
        AgentClarifications("agent-architect", "System Architect", "architect", [ClarificationItem("q1", "QPS?", "10k")])
    ]
    state_manager = StateManager()
    orchestrator = _orchestrator(two_agents, judge, rounds=1, state_manager=state_manager)
    result = await orchestrator.run_debate("Design a caching system", clarifications=groups)

    state = await state_manager.get_debate(result.debate_id)
    assert state.clarifications == groups
    for call in scripted_provider.complete.call_args_list:
        assert "```text\n10k\n```" in call.args[0].user_prompt


async def test_provider_error_propagates(make_agent, architect_config, performance_config, judge, scripted_provider):
    failing = make_agent(architect_config, _failing_provider())
    healthy = make_agent(performance_config, scripted_provider)
    state_manager = StateManager()
    with pytest.raises(ProviderError):
        await _orchestrator([failing, healthy], judge, rounds=3, state_manager=state_manager).run_debate("p")
    [state] = await state_manager.list_debates()
    assert state.status == STATUS_RUNNING
    assert state.final_solution is None


async def test_failure_cancels_sibling_agents(make_agent, architect_config, performance_config, judge):
    async def slow(request):
        await asyncio.sleep(0.2)
        return CompletionResponse(text="late proposal")

    slow_provider = MockProvider("slow")
    slow_provider.complete = AsyncMock(side_effect=slow)
    agents = [make_agent(architect_config, _failing_provider()), make_agent(performance_config, slow_provider)]
    state_manager = StateManager()
    with pytest.raises(ProviderError):
        await _orchestrator(agents, judge, rounds=1, state_manager=state_manager).run_debate("p")

    [state] = await state_manager.list_debates()
    assert state.rounds[0].contributions == []
    await asyncio.sleep(0.4)
    assert state.rounds[0].contributions == []


async def test_phase_timeout(make_agent, architect_config, judge):
    async def slow(request):
        await asyncio.sleep(1)
        return CompletionResponse(text="late")

    provider = _failing_provider()
    provider.complete = AsyncMock(side_effect=slow)
    agent = make_agent(architect_config, provider)
    with pytest.raises(TimeoutError):
        await _orchestrator([agent], judge, rounds=1, timeout_per_round_sec=0.01).run_debate("p")


def _failing_provider() -> MockProvider:
    provider = MockProvider("failing")
    provider.complete.side_effect = ProviderError("failing", "API call failed: boom")
    return provider


async def test_single_agent_debate_has_no_critiques(make_agent, architect_config, scripted_provider, judge):
    agent = make_agent(architect_config, scripted_provider)
    result = await _orchestrator([agent], judge, rounds=3).run_debate("p")
    for rnd in result.rounds:
        assert _by_type(rnd, CRITIQUE) == []
        assert len(_by_type(rnd, REFINEMENT)) == 1

