"""Render debate history, summaries and clarifications into prompt text."""

from dialectic.models import AgentClarifications, DebateContext, DebateRound

PREVIEW_LENGTH = 100
SECTION_FOOTER = "==================================="


def _preview(content: str) -> str:
    """First non-empty line, cut to PREVIEW_LENGTH characters."""
    first_line = next((line.strip() for line in content.splitlines() if line.strip()), "")
    if len(first_line) > PREVIEW_LENGTH:
        return first_line[:PREVIEW_LENGTH] + "..."
    return first_line


def format_history(rounds: list[DebateRound]) -> str:
    """One block per round, one line per contribution. Rounds with no contributions yet are skipped."""
    blocks = []
    for rnd in rounds:
        if not rnd.contributions:
            continue
        lines = [f"Round {rnd.round_number}:"]
        lines += [f"  [{c.agent_role}] {c.type}: {_preview(c.content)}" for c in rnd.contributions]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def find_latest_summary(rounds: list[DebateRound], agent_id: str) -> tuple[int, str] | None:
    """Search from the most recent round backward for this agent's summary."""
    for rnd in reversed(rounds):
        summary = rnd.summaries.get(agent_id)
        if summary is not None:
            return rnd.round_number, summary.summary
    return None


def format_context_section(
    context: DebateContext | None,
    agent_id: str,
    include_full_history: bool = True,
) -> str:
    """Prior-round context for one agent.

    The agent's most recent summary wins over the raw transcript. Without a
    summary the transcript is used only when include_full_history is set.
    """
    if context is None or not context.history:
        return ""

    latest = find_latest_summary(context.history, agent_id)
    if latest is not None:
        round_number, summary = latest
        return (
            "=== Previous Debate Context ===\n\n"
            f"[SUMMARY from Round {round_number}]\n{summary}\n\n"
            f"{SECTION_FOOTER}\n\n"
        )

    history = format_history(context.history) if include_full_history else ""
    if history:
        return (
            "=== Previous Debate Rounds ===\n\n"
            f"{history}\n\n"
            f"{SECTION_FOOTER}\n\n"
        )
    return ""


def format_clarifications(groups: list[AgentClarifications] | None) -> str:
    """Render answered and unanswered clarifications. Blank answers show as NA."""
    if not groups:
        return ""
    text = "## Clarifications\n\n"
    for group in groups:
        text += f"### {group.agent_name} ({group.role})\n"
        for item in group.items:
            answer = item.answer.strip() or "NA"
            text += f"Question ({item.id}):\n\n```text\n{item.question}\n```\n\n"
            text += f"Answer:\n\n```text\n{answer}\n```\n\n"
    return text + "\n"


def prepend_context(
    prompt: str,
    context: DebateContext | None,
    agent_id: str,
    include_full_history: bool = True,
) -> str:
    """Put clarifications, then prior-round context, ahead of prompt."""
    if context is None:
        return prompt
    clarifications = format_clarifications(context.clarifications)
    history = format_context_section(context, agent_id, include_full_history)
    preamble = (clarifications + ("\n" if clarifications else "") + history).strip()
    if not preamble:
        return prompt
    return f"{preamble}\n\n{prompt}"
