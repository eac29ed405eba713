"""Debate state store: in memory, optionally mirrored to one JSON file per debate."""

import asyncio
import json
import logging
import secrets
from dataclasses import asdict
from datetime import datetime
from pathlib import Path

from dialectic.models import (
    STATUS_COMPLETED,
    STATUS_RUNNING,
    AgentClarifications,
    Contribution,
    DebateRound,
    DebateState,
    DebateSummary,
    Solution,
)

logger = logging.getLogger(__name__)


class StateError(Exception):
    """Raised for unknown debates or mutations that need an active round."""


def new_debate_id(now: datetime | None = None) -> str:
    """deb-YYYYMMDD-HHMMSS-xxxx"""
    now = now or datetime.now()
    return f"deb-{now.strftime('%Y%m%d-%H%M%S')}-{secrets.token_hex(2)}"


class StateManager:
    """Append-only store of debate rounds, contributions and summaries."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir
        self._debates: dict[str, DebateState] = {}
        self._write_lock = asyncio.Lock()
        if base_dir is not None:
            base_dir.mkdir(parents=True, exist_ok=True)

    def _require(self, debate_id: str) -> DebateState:
        state = self._debates.get(debate_id)
        if state is None:
            raise StateError(f"Debate {debate_id} not found")
        return state

    def _current_round(self, state: DebateState) -> DebateRound:
        if not state.rounds:
            raise StateError(f"No active round for debate {state.id}")
        return state.rounds[-1]

    async def _save(self, state: DebateState) -> None:
        """Snapshot state on the loop, write it in a worker thread; writes are serialized in call order."""
        state.updated_at = datetime.now()
        if self._base_dir is None:
            return
        path = self._base_dir / f"{state.id}.json"
        payload = json.dumps(asdict(state), indent=2, default=str)
        async with self._write_lock:
            await asyncio.to_thread(path.write_text, payload, encoding="utf-8")
        logger.debug("Debate state saved to: %s", path)

    def state_path(self, debate_id: str) -> Path | None:
        """Where the JSON snapshot of a debate lives, None when not persisting."""
        if self._base_dir is None:
            return None
        return self._base_dir / f"{debate_id}.json"

    async def create_debate(
        self,
        problem: str,
        context: str | None = None,
        debate_id: str | None = None,
    ) -> DebateState:
        debate_id = debate_id or new_debate_id()
        if debate_id in self._debates:
            raise StateError(f"Debate {debate_id} already exists")
        state = DebateState(
            id=debate_id,
            problem=problem,
            status=STATUS_RUNNING,
            current_round=0,
            context=context,
        )
        self._debates[debate_id] = state
        await self._save(state)
        logger.info("Created debate %s", debate_id)
        return state

    async def begin_round(self, debate_id: str) -> DebateRound:
        state = self._require(debate_id)
        rnd = DebateRound(round_number=len(state.rounds) + 1)
        state.rounds.append(rnd)
        state.current_round = rnd.round_number
        await self._save(state)
        return rnd

    async def add_contribution(self, debate_id: str, contribution: Contribution) -> None:
        state = self._require(debate_id)
        self._current_round(state).contributions.append(contribution)
        await self._save(state)

    async def add_summary(self, debate_id: str, summary: DebateSummary) -> None:
        state = self._require(debate_id)
        self._current_round(state).summaries[summary.agent_id] = summary
        await self._save(state)

    async def add_judge_summary(self, debate_id: str, summary: DebateSummary) -> None:
        state = self._require(debate_id)
        state.judge_summary = summary
        await self._save(state)

    async def set_clarifications(self, debate_id: str, clarifications: list[AgentClarifications]) -> None:
        state = self._require(debate_id)
        state.clarifications = clarifications
        await self._save(state)

    async def complete_debate(self, debate_id: str, solution: Solution) -> None:
        state = self._require(debate_id)
        state.final_solution = solution
        state.status = STATUS_COMPLETED
        await self._save(state)
        logger.info("Completed debate %s", debate_id)

    async def get_debate(self, debate_id: str) -> DebateState | None:
        return self._debates.get(debate_id)

    async def list_debates(self) -> list[DebateState]:
        return sorted(self._debates.values(), key=lambda s: s.created_at)
