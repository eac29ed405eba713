"""context_search tool: case-insensitive term search over the debate history."""

from dialectic.models import Contribution, DebateContext, DebateState, ToolSchema
from dialectic.tools.base import Tool, tool_error_json, tool_success_json

CONTEXT_SEARCH_TOOL_NAME = "context_search"
MAX_SNIPPET_LENGTH = 200


class ContextSearchTool(Tool):
    name = CONTEXT_SEARCH_TOOL_NAME
    schema = ToolSchema(
        name=CONTEXT_SEARCH_TOOL_NAME,
        description="Search for a term in the debate history. Returns relevant contributions containing the search term.",
        parameters={
            "type": "object",
            "properties": {
                "term": {"type": "string", "description": "The search term to find in debate history"},
            },
            "required": ["term"],
        },
    )

    def execute(self, args: dict, context: DebateContext | None = None, state: DebateState | None = None) -> str:
        if context is None:
            return tool_error_json("Context is required for context search")
        term = args.get("term")
        if not term or not isinstance(term, str):
            return tool_error_json("Search term is required and must be a string")

        # The live debate state sees rounds even when history is not passed to the agent
        history = state.rounds if state is not None else context.history
        if not history:
            return tool_success_json({"matches": []})

        needle = term.lower()
        matches = [
            _match(contribution, rnd.round_number)
            for rnd in history
            for contribution in rnd.contributions
            if needle in contribution.content.lower()
        ]
        return tool_success_json({"matches": matches})


def _match(contribution: Contribution, round_number: int) -> dict:
    snippet = contribution.content[:MAX_SNIPPET_LENGTH]
    if len(contribution.content) > MAX_SNIPPET_LENGTH:
        snippet += "..."
    return {
        "roundNumber": round_number,
        "agentId": contribution.agent_id,
        "agentRole": contribution.agent_role,
        "type": contribution.type,
        "contentSnippet": snippet,
    }
