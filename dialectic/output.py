"""Rich console output and markdown file save for debate results."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from dialectic.models import CRITIQUE, Contribution, DebateResult, DebateRound, Solution

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(contribution: Contribution, words: int = 50) -> str:
    """Return first N words of a contribution."""
    all_words = contribution.content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def _title(contribution: Contribution) -> str:
    title = f"[bold]{contribution.agent_role}[/bold] {contribution.type}"
    if contribution.type == CRITIQUE and contribution.target_agent_id:
        title += f" of {contribution.target_agent_id}"
    return title


def _subtitle(contribution: Contribution) -> str:
    meta = contribution.metadata
    parts = [f"{(meta.latency_ms or 0) / 1000:.1f}s"]
    if meta.tokens_used:
        parts.append(f"{meta.tokens_used} tokens")
    if meta.tool_call_iterations:
        parts.append(f"{meta.tool_call_iterations} tool rounds")
    return " | ".join(parts)


def print_round_summary(rnd: DebateRound) -> None:
    """Print a brief summary of a round's contributions to the console."""
    console.print(Rule(f"[bold cyan]Round {rnd.round_number} Summary[/bold cyan]"))
    for contribution in rnd.contributions:
        console.print(
            Panel(
                _preview(contribution),
                title=_title(contribution),
                subtitle=_subtitle(contribution),
                border_style="dim",
            )
        )


def _solution_lines(solution: Solution) -> list[str]:
    lines = [solution.description, ""]
    for heading, items in (
        ("Trade-offs", solution.tradeoffs),
        ("Recommendations", solution.recommendations),
        ("Unfulfilled Major Requirements", solution.unfulfilled_major_requirements),
        ("Open Questions", solution.open_questions),
    ):
        if items:
            lines += [f"### {heading}", ""] + [f"- {item}" for item in items] + [""]
    return lines


def print_solution(result: DebateResult) -> None:
    """Print the judge's solution to the console using Rich markdown."""
    console.print(Rule("[bold green]Final Solution[/bold green]"))
    console.print(
        Text(
            f"Synthesized by: {result.solution.synthesized_by} | "
            f"Confidence: {result.solution.confidence}/100 | "
            f"Duration: {result.metadata.duration_ms / 1000:.1f}s | "
            f"Rounds: {result.metadata.total_rounds}",
            style="dim",
        )
    )
    console.print(Markdown("\n".join(_solution_lines(result.solution))))


def save_to_file(
    result: DebateResult,
    problem: str,
    output_dir: Path,
    slug_override: str | None = None,
) -> Path:
    """Save the full debate transcript as a markdown file.

    Args:
        result: The completed DebateResult.
        problem: The problem statement that was debated.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the problem text.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(problem)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    lines: list[str] = [
        f"# Debate: {problem[:80]}",
        "",
        f"**Debate ID:** {result.debate_id}",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Rounds:** {result.metadata.total_rounds}",
        f"**Duration:** {result.metadata.duration_ms / 1000:.1f}s",
        f"**Judge:** {result.solution.synthesized_by}",
        f"**Confidence:** {result.solution.confidence}/100",
        "",
        "## Problem",
        "",
        problem,
        "",
        "---",
        "",
    ]

    for rnd in result.rounds:
        lines += [f"## Round {rnd.round_number}", ""]
        for contribution in rnd.contributions:
            heading = f"### {contribution.agent_role} ({contribution.agent_id}): {contribution.type}"
            if contribution.target_agent_id:
                heading += f" of {contribution.target_agent_id}"
            lines += [heading, "", contribution.content, "", f"*{_subtitle(contribution)}*", ""]

    lines += ["## Final Solution", ""] + _solution_lines(result.solution)

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Debate saved to: %s", filepath)
    return filepath
