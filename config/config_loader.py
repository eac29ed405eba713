"""Load settings.yaml into typed dataclasses. Reports provider API key availability."""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

DEFAULT_ROLE = "architect"
DEFAULT_TOOL_CALL_LIMIT = 10

# Phase gating on configured round count
MIN_ROUNDS_FOR_CRITIQUE = 2
MIN_ROUNDS_FOR_REFINEMENT = 3

_SUMMARIZATION_KEYS = {"enabled", "threshold", "max_length", "method"}


@dataclass
class SummarizationConfig:
    enabled: bool = True
    threshold: int = 5000     # characters of the agent's own history
    max_length: int = 2500    # hard cap on summary output
    method: str = "length-based"


@dataclass
class AgentConfig:
    id: str
    name: str
    role: str
    model: str
    provider: str = "openai"
    temperature: float = 0.5
    system_prompt: str | None = None       # overrides the role system prompt
    summary_prompt: str | None = None      # overrides the role summarize template
    enabled: bool = True
    summarization: dict | None = None      # partial override of the debate-level config
    tool_call_limit: int | None = None
    tools: list[str] = field(default_factory=list)


@dataclass
class DebateConfig:
    rounds: int = 3
    termination_condition: str = "fixed"
    synthesis_method: str = "judge"
    include_full_history: bool = True
    timeout_per_round_sec: float | None = None
    summarization: SummarizationConfig = field(default_factory=SummarizationConfig)
    tool_call_limit: int = DEFAULT_TOOL_CALL_LIMIT
    clarification_max_per_agent: int = 5


@dataclass
class ProviderConfig:
    name: str
    api_key_env: str
    timeout_sec: int = 180
    base_url: str | None = None
    max_output_tokens: int | None = None


@dataclass
class RolePromptTemplates:
    system: str
    propose: str
    critique: str
    refine: str
    summarize: str
    clarify: str


@dataclass
class JudgePromptTemplates:
    system: str
    summarize: str


@dataclass
class PromptsConfig:
    shared: dict[str, str]
    roles: dict[str, RolePromptTemplates]
    judge: JudgePromptTemplates


@dataclass
class AppConfig:
    debate: DebateConfig
    agents: list[AgentConfig]
    judge: AgentConfig
    providers: dict[str, ProviderConfig]
    prompts: PromptsConfig
    output_dir: Path = Path("./debates")
    available_providers: set[str] = field(default_factory=set)


def resolve_summarization(debate: SummarizationConfig, agent: AgentConfig) -> SummarizationConfig:
    """Merge an agent's partial summarization override onto the debate-level config."""
    if not agent.summarization:
        return debate
    return replace(debate, **agent.summarization)


def _parse_summarization(raw: dict | None) -> SummarizationConfig:
    raw = raw or {}
    defaults = SummarizationConfig()
    return SummarizationConfig(
        enabled=bool(raw.get("enabled", defaults.enabled)),
        threshold=int(raw.get("threshold", defaults.threshold)),
        max_length=int(raw.get("max_length", defaults.max_length)),
        method=str(raw.get("method", defaults.method)),
    )


def _parse_agent(raw: dict) -> AgentConfig:
    for key in ("id", "name", "role", "model"):
        if key not in raw:
            raise ValueError(f"Agent config missing '{key}': {raw}")
    summarization = raw.get("summarization")
    if summarization is not None and not isinstance(summarization, dict):
        raise ValueError(f"Agent '{raw['id']}' summarization must be a mapping")
    if summarization:
        unknown = set(summarization) - _SUMMARIZATION_KEYS
        if unknown:
            raise ValueError(f"Agent '{raw['id']}' has unknown summarization keys: {sorted(unknown)}")
    return AgentConfig(
        id=str(raw["id"]),
        name=str(raw["name"]),
        role=str(raw["role"]),
        model=str(raw["model"]),
        provider=str(raw.get("provider", "openai")),
        temperature=float(raw.get("temperature", 0.5)),
        system_prompt=raw.get("system_prompt"),
        summary_prompt=raw.get("summary_prompt"),
        enabled=bool(raw.get("enabled", True)),
        summarization=summarization,
        tool_call_limit=int(raw["tool_call_limit"]) if raw.get("tool_call_limit") is not None else None,
        tools=[str(t) for t in raw.get("tools", [])],
    )


def _parse_debate(raw: dict) -> DebateConfig:
    rounds = int(raw.get("rounds", 3))
    if rounds < 1:
        raise ValueError(f"debate.rounds must be >= 1, got {rounds}")
    timeout = raw.get("timeout_per_round_sec")
    return DebateConfig(
        rounds=rounds,
        termination_condition=str(raw.get("termination_condition", "fixed")),
        synthesis_method=str(raw.get("synthesis_method", "judge")),
        include_full_history=bool(raw.get("include_full_history", True)),
        timeout_per_round_sec=float(timeout) if timeout is not None else None,
        summarization=_parse_summarization(raw.get("summarization")),
        tool_call_limit=int(raw.get("tool_call_limit", DEFAULT_TOOL_CALL_LIMIT)),
        clarification_max_per_agent=int(raw.get("clarification_max_per_agent", 5)),
    )


def _parse_prompts(raw: dict) -> PromptsConfig:
    roles = {
        name: RolePromptTemplates(
            system=tpl["system"],
            propose=tpl["propose"],
            critique=tpl["critique"],
            refine=tpl["refine"],
            summarize=tpl["summarize"],
            clarify=tpl["clarify"],
        )
        for name, tpl in raw["roles"].items()
    }
    if DEFAULT_ROLE not in roles:
        raise ValueError(f"prompts.roles must define the default role '{DEFAULT_ROLE}'")
    judge_raw = raw["judge"]
    return PromptsConfig(
        shared={k: str(v) for k, v in raw.get("shared", {}).items()},
        roles=roles,
        judge=JudgePromptTemplates(system=judge_raw["system"], summarize=judge_raw["summarize"]),
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on invalid
    values. Missing API keys are logged, not raised; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    debate = _parse_debate(raw.get("debate", {}))
    agents = [_parse_agent(a) for a in raw.get("agents", [])]
    judge = _parse_agent(raw["judge"])
    prompts = _parse_prompts(raw["prompts"])

    providers: dict[str, ProviderConfig] = {}
    available_providers: set[str] = set()

    for provider_name, provider_raw in raw.get("providers", {}).items():
        providers[provider_name] = ProviderConfig(
            name=provider_name,
            api_key_env=provider_raw["api_key_env"],
            timeout_sec=int(provider_raw.get("timeout_sec", 180)),
            base_url=provider_raw.get("base_url"),
            max_output_tokens=provider_raw.get("max_output_tokens"),
        )

        api_key = os.environ.get(provider_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s, set %s in .env",
                provider_name,
                provider_raw["api_key_env"],
            )

    return AppConfig(
        debate=debate,
        agents=agents,
        judge=judge,
        providers=providers,
        prompts=prompts,
        output_dir=Path(raw.get("output_dir", "./debates")),
        available_providers=available_providers,
    )
