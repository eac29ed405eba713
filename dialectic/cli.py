"""Click CLI: loads config, builds agents and judge, runs the debate, renders output."""

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AgentConfig, AppConfig, load_config
from dialectic.agent import Agent
from dialectic.clarifications import collect_clarifications
from dialectic.judge import JudgeAgent
from dialectic.models import AgentClarifications, Contribution, DebateResult
from dialectic.orchestrator import DebateOrchestrator, OrchestratorHooks
from dialectic.output import print_round_summary, print_solution, save_to_file
from dialectic.problem_file import parse_problem_file, read_context_file
from dialectic.prompts import role_prompts_for
from dialectic.providers.base import LLMProvider, ProviderError
from dialectic.providers.openai_provider import OpenAIProvider
from dialectic.state import StateError, StateManager
from dialectic.tools.registry import build_tool_registry

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

# Both speak the OpenAI wire protocol; openrouter differs only by base_url
PROVIDER_CLASSES: dict[str, type[OpenAIProvider]] = {
    "openai": OpenAIProvider,
    "openrouter": OpenAIProvider,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_providers(config: AppConfig) -> dict[str, LLMProvider]:
    """Build all providers with an API key. Returns dict keyed by name."""
    providers: dict[str, LLMProvider] = {}
    for name in sorted(config.available_providers):
        if name not in PROVIDER_CLASSES:
            logger.warning("Provider '%s' unknown, skipping", name)
            continue
        try:
            providers[name] = PROVIDER_CLASSES[name](config.providers[name])
        except ProviderError as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers


def _select_agents(config: AppConfig, agents_arg: str | list | None) -> list[AgentConfig]:
    """Pick agents by id (enabled or not); otherwise all enabled agents.

    agents_arg is a comma-separated string (--agents) or a list (frontmatter).
    """
    if not agents_arg:
        return [a for a in config.agents if a.enabled]
    by_id = {a.id: a for a in config.agents}
    raw = agents_arg.split(",") if isinstance(agents_arg, str) else agents_arg
    wanted = [str(a).strip() for a in raw if str(a).strip()]
    unknown = [a for a in wanted if a not in by_id]
    if unknown:
        raise click.BadParameter(f"Unknown agent id(s): {', '.join(unknown)}", param_hint="--agents")
    return [by_id[a] for a in wanted]


def build_agents(
    config: AppConfig,
    agent_configs: list[AgentConfig],
    providers: dict[str, LLMProvider],
) -> list[Agent]:
    agents = []
    for agent_cfg in agent_configs:
        provider = providers.get(agent_cfg.provider)
        if provider is None:
            logger.warning("Agent '%s' needs provider '%s', which is unavailable; skipping", agent_cfg.id, agent_cfg.provider)
            continue
        agents.append(
            Agent(
                agent_cfg,
                provider,
                role_prompts_for(agent_cfg.role, config.prompts),
                summarization=config.debate.summarization,
                tools=build_tool_registry(agent_cfg),
                tool_call_limit=config.debate.tool_call_limit,
            )
        )
    return agents


def build_judge(config: AppConfig, providers: dict[str, LLMProvider]) -> JudgeAgent:
    provider = providers.get(config.judge.provider)
    if provider is None:
        raise ProviderError(config.judge.provider, f"Judge '{config.judge.id}' provider is unavailable")
    return JudgeAgent(config.judge, provider, config.prompts.judge, summarization=config.debate.summarization)


def _answer_clarifications(groups: list[AgentClarifications]) -> list[AgentClarifications]:
    """Ask the user each question on the terminal. Blank answers stay blank (rendered as NA)."""
    for group in groups:
        if not group.items:
            continue
        console.print(f"\n[bold]{group.agent_name}[/bold] ({group.role})")
        for item in group.items:
            item.answer = click.prompt(f"  {item.id}: {item.question}", default="", show_default=False)
    return groups


async def _run(
    config: AppConfig,
    agents: list[Agent],
    judge: JudgeAgent,
    problem: str,
    context: str | None,
    clarify: bool,
    state_dir: Path,
) -> DebateResult:
    clarifications = None
    if clarify:
        groups = await collect_clarifications(problem, agents, config.debate.clarification_max_per_agent)
        clarifications = _answer_clarifications(groups)

    state_manager = StateManager(state_dir)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Starting debate...", total=None)

        def on_round_start(round_number: int, total: int) -> None:
            progress.update(task, description=f"Round {round_number}/{total}")

        def on_phase_start(round_number: int, phase: str, expected: int) -> None:
            progress.update(task, description=f"Round {round_number}: {phase} ({expected} tasks)")

        def on_contribution_created(contribution: Contribution, round_number: int) -> None:
            progress.print(
                f"[green]OK[/green] Round {round_number} {contribution.type} from {contribution.agent_id}"
            )

        def on_summarization_complete(agent_name: str, before: int, after: int) -> None:
            progress.print(f"[dim]{agent_name} summarized history: {before} -> {after} chars[/dim]")

        def on_synthesis_start() -> None:
            progress.update(task, description="Running synthesis...")

        hooks = OrchestratorHooks(
            on_round_start=on_round_start,
            on_phase_start=on_phase_start,
            on_contribution_created=on_contribution_created,
            on_summarization_complete=on_summarization_complete,
            on_synthesis_start=on_synthesis_start,
        )
        orchestrator = DebateOrchestrator(agents, judge, state_manager, config.debate, hooks)
        result = await orchestrator.run_debate(problem, context=context, clarifications=clarifications)

    console.print(f"[dim]State saved to: {state_manager.state_path(result.debate_id)}[/dim]")
    return result


@click.command()
@click.argument("problem", required=False)
@click.option("--file", "problem_file", type=click.Path(exists=True), help="Read problem from .md file")
@click.option("--rounds", default=None, type=int, help="Number of debate rounds (default: from config)")
@click.option("--agents", "agents_arg", default=None, help="Comma-separated agent ids (default: enabled agents)")
@click.option("--context", "context_text", default=None, help="Extra context appended to the problem")
@click.option("--context-file", type=click.Path(exists=True), default=None, help="Read extra context from a file")
@click.option("--clarify", is_flag=True, default=False, help="Collect and answer clarifying questions first")
@click.option("--output", "output_path", default=None, help="Output directory (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(
    problem: str | None,
    problem_file: str | None,
    rounds: int | None,
    agents_arg: str | None,
    context_text: str | None,
    context_file: str | None,
    clarify: bool,
    output_path: str | None,
    verbose: bool,
) -> None:
    """Dialectic -- multi-agent design debate.

    \b
    Examples:
      dialectic "Design a caching system" --rounds 1
      dialectic "Design a rate limiter" --agents agent-architect,agent-security
      dialectic --file problem.md --rounds 3 --clarify
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    meta: dict = {}
    if problem_file:
        try:
            problem_text, meta = parse_problem_file(Path(problem_file))
        except ValueError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(1)
    elif problem:
        problem_text = problem
    else:
        console.print("[bold red]Error:[/bold red] Provide a PROBLEM argument or --file.")
        sys.exit(1)

    # CLI flags always win; frontmatter only fills in when the flag is not set
    effective_rounds = (
        rounds if rounds is not None
        else int(meta["rounds"]) if "rounds" in meta
        else config.debate.rounds
    )
    if effective_rounds < 1:
        console.print("[bold red]Error:[/bold red] --rounds must be at least 1.")
        sys.exit(1)
    effective_agents = agents_arg if agents_arg is not None else meta.get("agents")
    if context_file:
        context = read_context_file(Path(context_file))
    else:
        context = context_text if context_text is not None else meta.get("context")
    effective_output = Path(output_path) if output_path else config.output_dir

    config = replace(config, debate=replace(config.debate, rounds=effective_rounds))

    providers = _build_all_providers(config)
    if not providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check API keys in .env.")
        sys.exit(1)

    agents = build_agents(config, _select_agents(config, effective_agents), providers)
    if not agents:
        console.print("[bold red]Error:[/bold red] No agents available. Check --agents and provider API keys.")
        sys.exit(1)

    console.print(f"\n[bold cyan]Dialectic[/bold cyan] -- {len(agents)} agents, {effective_rounds} rounds")
    console.print(f"Agents: {', '.join(a.config.name for a in agents)}")
    console.print(f"Problem: [italic]{problem_text[:80]}{'...' if len(problem_text) > 80 else ''}[/italic]\n")

    try:
        judge = build_judge(config, providers)
        result = asyncio.run(
            _run(
                config=config,
                agents=agents,
                judge=judge,
                problem=problem_text,
                context=context,
                clarify=clarify,
                state_dir=effective_output / "state",
            )
        )
    except (ProviderError, StateError, TimeoutError) as exc:
        console.print(f"[bold red]Debate failed:[/bold red] {exc}")
        sys.exit(1)

    for rnd in result.rounds:
        print_round_summary(rnd)
    print_solution(result)

    slug = Path(problem_file).stem if problem_file else None
    saved_path = save_to_file(result, problem_text, effective_output, slug_override=slug)
    console.print(f"\n[dim]Saved to: {saved_path}[/dim]")


if __name__ == "__main__":
    main()
