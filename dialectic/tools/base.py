"""Tool interface and the JSON envelope tools answer with."""

import json
from abc import ABC, abstractmethod
from typing import Any

from dialectic.models import DebateContext, DebateState, ToolResult, ToolSchema

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


def tool_success_json(result: Any) -> str:
    return json.dumps({"status": STATUS_SUCCESS, "result": result})


def tool_error_json(message: str) -> str:
    return json.dumps({"status": STATUS_ERROR, "error": message})


def create_tool_result(call_id: str, status: str, result: Any = None, error: str | None = None) -> ToolResult:
    """Build a ToolResult whose content is the JSON envelope for status."""
    content: dict[str, Any] = {"status": status}
    if status == STATUS_SUCCESS and result is not None:
        content["result"] = result
    elif status == STATUS_ERROR and error is not None:
        content["error"] = error
    return ToolResult(tool_call_id=call_id, content=json.dumps(content))


class Tool(ABC):
    """A function the model may call while producing a contribution."""

    name: str
    schema: ToolSchema

    @abstractmethod
    def execute(self, args: dict, context: DebateContext | None = None, state: DebateState | None = None) -> str:
        """Run the tool and return a JSON string (see tool_success_json / tool_error_json).

        Implementations may also be coroutines; the tool loop awaits them.
        """
        ...
