"""Read-only filesystem tools: file_read and list_files."""

from pathlib import Path

from dialectic.models import DebateContext, DebateState, ToolSchema
from dialectic.tools.base import Tool, tool_error_json, tool_success_json

FILE_READ_TOOL_NAME = "file_read"
LIST_FILES_TOOL_NAME = "list_files"


def is_within_directory(path: Path, directory: Path) -> bool:
    """True if path resolves to directory itself or something below it."""
    try:
        path.resolve().relative_to(directory.resolve())
    except ValueError:
        return False
    return True


def _path_arg(args: dict) -> str | None:
    raw = args.get("path")
    if not raw or not isinstance(raw, str) or not raw.strip():
        return None
    return raw


class FileReadTool(Tool):
    name = FILE_READ_TOOL_NAME
    schema = ToolSchema(
        name=FILE_READ_TOOL_NAME,
        description="Read the contents of a text file. Returns the file content as a string, or an error message if the file cannot be read.",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "The absolute path to the file to read"},
            },
            "required": ["path"],
        },
    )

    def __init__(self, context_directory: Path | None = None) -> None:
        self._root = context_directory or Path.cwd()

    def execute(self, args: dict, context: DebateContext | None = None, state: DebateState | None = None) -> str:
        raw = _path_arg(args)
        if raw is None:
            return tool_error_json("File path is required and must be a non-empty string")

        path = Path(raw).resolve()
        if not is_within_directory(path, self._root):
            return tool_error_json("Access denied: path is outside the context directory")
        if not path.exists():
            return tool_error_json(f"File not found: {path}")
        if not path.is_file():
            return tool_error_json(f"Path is not a file: {path}")
        try:
            content = path.read_text(encoding="utf-8")
        except PermissionError:
            return tool_error_json(f"Permission denied: {raw}")
        except (OSError, UnicodeDecodeError) as exc:
            return tool_error_json(f"Error reading file {raw}: {exc}")
        return tool_success_json({"content": content})


class ListFilesTool(Tool):
    name = LIST_FILES_TOOL_NAME
    schema = ToolSchema(
        name=LIST_FILES_TOOL_NAME,
        description="List all files and directories in a given directory. Returns an array of entries with their absolute paths and types (file or directory).",
        parameters={
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "The absolute path to the directory to list"},
            },
            "required": ["path"],
        },
    )

    def __init__(self, context_directory: Path | None = None) -> None:
        self._root = context_directory or Path.cwd()

    def execute(self, args: dict, context: DebateContext | None = None, state: DebateState | None = None) -> str:
        raw = _path_arg(args)
        if raw is None:
            return tool_error_json("Directory path is required and must be a non-empty string")

        path = Path(raw).resolve()
        if not is_within_directory(path, self._root):
            return tool_error_json("Access denied: path is outside the context directory")
        if not path.exists():
            return tool_error_json(f"Directory not found: {path}")
        if not path.is_dir():
            return tool_error_json(f"Path is not a directory: {path}")
        try:
            entries = [
                {"path": str(child.resolve()), "type": "directory" if child.is_dir() else "file"}
                for child in sorted(path.iterdir())
                if is_within_directory(child, self._root)
            ]
        except PermissionError:
            return tool_error_json(f"Permission denied: {raw}")
        except OSError as exc:
            return tool_error_json(f"Error listing directory {raw}: {exc}")
        return tool_success_json({"entries": entries})
