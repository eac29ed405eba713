"""Pure dataclasses for the debate engine. No logic, no deps."""

from dataclasses import dataclass, field
from datetime import datetime

# Contribution types
PROPOSAL = "proposal"
CRITIQUE = "critique"
REFINEMENT = "refinement"

# Debate status
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"


@dataclass
class ToolSchema:
    name: str
    description: str
    parameters: dict = field(default_factory=dict)  # JSON schema object


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: str  # JSON-encoded


@dataclass
class ToolResult:
    tool_call_id: str
    content: str  # JSON-encoded
    role: str = "tool"


@dataclass
class CompletionUsage:
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None


@dataclass
class CompletionRequest:
    model: str
    temperature: float
    system_prompt: str = ""
    user_prompt: str = ""
    messages: list[dict] | None = None  # used verbatim when set
    max_tokens: int | None = None
    stop: list[str] | None = None
    tools: list[ToolSchema] | None = None


@dataclass
class CompletionResponse:
    text: str
    usage: CompletionUsage | None = None
    tool_calls: list[ToolCall] | None = None


@dataclass
class ContributionMetadata:
    latency_ms: int | None = None
    model: str | None = None
    tokens_used: int | None = None
    tool_calls: list[ToolCall] | None = None
    tool_results: list[ToolResult] | None = None
    tool_call_iterations: int | None = None


@dataclass
class AgentResponse:
    """Proposal or critique returned by an agent, before it becomes a Contribution."""

    content: str
    metadata: ContributionMetadata = field(default_factory=ContributionMetadata)


Proposal = AgentResponse
Critique = AgentResponse


@dataclass
class Contribution:
    agent_id: str
    agent_role: str
    type: str  # "proposal", "critique", "refinement"
    content: str
    metadata: ContributionMetadata = field(default_factory=ContributionMetadata)
    target_agent_id: str | None = None  # critiques only


@dataclass
class SummaryMetadata:
    before_chars: int
    after_chars: int
    method: str
    timestamp: datetime
    latency_ms: int | None = None
    tokens_used: int | None = None
    model: str | None = None
    temperature: float | None = None
    provider: str | None = None


@dataclass
class DebateSummary:
    agent_id: str
    agent_role: str
    summary: str
    metadata: SummaryMetadata


@dataclass
class DebateRound:
    round_number: int
    contributions: list[Contribution] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    summaries: dict[str, DebateSummary] = field(default_factory=dict)  # keyed by agent id


@dataclass
class ClarificationItem:
    id: str
    question: str
    answer: str = ""


@dataclass
class AgentClarifications:
    agent_id: str
    agent_name: str
    role: str
    items: list[ClarificationItem] = field(default_factory=list)


@dataclass
class Solution:
    description: str  # markdown
    tradeoffs: list[str]
    recommendations: list[str]
    confidence: int  # 0-100
    synthesized_by: str  # judge id
    implementation: str | None = None
    unfulfilled_major_requirements: list[str] = field(default_factory=list)
    open_questions: list[str] = field(default_factory=list)
    synthesized_at: datetime = field(default_factory=datetime.now)


@dataclass
class DebateState:
    id: str
    problem: str
    status: str  # "running" or "completed"
    current_round: int
    rounds: list[DebateRound] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    context: str | None = None
    clarifications: list[AgentClarifications] | None = None
    final_solution: Solution | None = None
    judge_summary: DebateSummary | None = None


@dataclass
class DebateContext:
    """What an agent sees when producing a contribution."""

    problem: str
    context: str | None = None
    history: list[DebateRound] | None = None
    include_full_history: bool = True
    clarifications: list[AgentClarifications] | None = None


@dataclass
class DebateMetadata:
    total_rounds: int
    duration_ms: int


@dataclass
class DebateResult:
    debate_id: str
    solution: Solution
    rounds: list[DebateRound]
    metadata: DebateMetadata
