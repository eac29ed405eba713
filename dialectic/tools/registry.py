"""Tool registry and per-agent registry construction."""

import logging
from collections.abc import Callable
from pathlib import Path

from config.config_loader import AgentConfig
from dialectic.models import ToolSchema
from dialectic.tools.base import Tool
from dialectic.tools.context_search import CONTEXT_SEARCH_TOOL_NAME, ContextSearchTool
from dialectic.tools.file_tools import FILE_READ_TOOL_NAME, LIST_FILES_TOOL_NAME, FileReadTool, ListFilesTool

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Name -> Tool mapping. Read-only once a debate starts, safe to share across agents."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def schemas(self) -> list[ToolSchema]:
        return [tool.schema for tool in self._tools.values()]

    def has_tools(self) -> bool:
        return bool(self._tools)


def _available_tools(context_directory: Path | None) -> dict[str, Callable[[], Tool]]:
    return {
        CONTEXT_SEARCH_TOOL_NAME: ContextSearchTool,
        FILE_READ_TOOL_NAME: lambda: FileReadTool(context_directory),
        LIST_FILES_TOOL_NAME: lambda: ListFilesTool(context_directory),
    }


def build_tool_registry(agent_config: AgentConfig, context_directory: Path | None = None) -> ToolRegistry:
    """Build the registry for one agent from its configured tool names.

    An agent with no tools gets an empty registry. Empty or unknown names are
    skipped with a warning.
    """
    registry = ToolRegistry()
    factories = _available_tools(context_directory)
    for tool_name in agent_config.tools:
        if not tool_name.strip():
            logger.warning("Invalid tool name (empty string) configured for agent '%s', skipping", agent_config.id)
            continue
        factory = factories.get(tool_name)
        if factory is None:
            logger.warning("Unknown tool '%s' configured for agent '%s', skipping", tool_name, agent_config.id)
            continue
        registry.register(factory())
    return registry
