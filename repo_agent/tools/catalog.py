from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..config import LandingMode
from ..errors import ToolInputError

"""
Tool catalog: what the model may call, and the typed input for each tool.

Tool: read_file            Args: {"path": "relative/path"}
Tool: list_directory       Args: {"path": ""}           ("" or "." is the root)
Tool: search_code          Args: {"query": "...", "file_extension": "py"}
Tool: write_file           Args: {"path": "...", "content": "...", "description": "..."}
Tool: create_pull_request  Args: {"title": "...", "body": "...", "branch_name": "..."}
Tool: commit_and_push      Args: {"commit_message": "..."}

Exactly one landing tool is offered per run, chosen by LandingMode.
"""

CATALOG_VERSION = "2"

READ_FILE = {
    "name": "read_file",
    "description": "Read the contents of a file from the repository. Returns the full file content as text.",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "File path relative to the repository root (e.g. 'server/index.ts')"
            }
        },
        "required": ["path"]
    }
}

LIST_DIRECTORY = {
    "name": "list_directory",
    "description": "List files and directories at a given path in the repository. Returns names with trailing / for directories.",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "Directory path relative to repo root. Use '' or '.' for root."
            }
        },
        "required": []
    }
}

SEARCH_CODE = {
    "name": "search_code",
    "description": "Search for a text pattern across all files in the repository. Returns matching file paths.",
    "input_schema": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "Search query string"
            },
            "file_extension": {
                "type": "string",
                "description": "Optional file extension filter (e.g. 'ts', 'sql')"
            }
        },
        "required": ["query"]
    }
}

WRITE_FILE = {
    "name": "write_file",
    "description": "Create or modify a file. Provide the COMPLETE new file content. The file is staged and committed when you land your changes.",
    "input_schema": {
        "type": "object",
        "properties": {
            "path": {
                "type": "string",
                "description": "File path relative to repo root"
            },
            "content": {
                "type": "string",
                "description": "Complete file content to write"
            },
            "description": {
                "type": "string",
                "description": "Brief description of what changed"
            }
        },
        "required": ["path", "content", "description"]
    }
}

CREATE_PULL_REQUEST = {
    "name": "create_pull_request",
    "description": "Create a GitHub Pull Request with all file changes made so far via write_file. Call this when you are finished making all changes.",
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {
                "type": "string",
                "description": "PR title"
            },
            "body": {
                "type": "string",
                "description": "PR description in markdown"
            },
            "branch_name": {
                "type": "string",
                "description": "Branch name to create (e.g. 'feature/svc-001-service-catalog')"
            }
        },
        "required": ["title", "body", "branch_name"]
    }
}

COMMIT_AND_PUSH = {
    "name": "commit_and_push",
    "description": "Commit all file changes made so far via write_file directly to the default branch. Call this when you are finished making all changes.",
    "input_schema": {
        "type": "object",
        "properties": {
            "commit_message": {
                "type": "string",
                "description": "Commit message summarising the change"
            }
        },
        "required": ["commit_message"]
    }
}

BASE_TOOLS = [READ_FILE, LIST_DIRECTORY, SEARCH_CODE, WRITE_FILE]
LANDING_TOOLS = {
    LandingMode.PULL_REQUEST: CREATE_PULL_REQUEST,
    LandingMode.DIRECT_PUSH: COMMIT_AND_PUSH,
}
LANDING_TOOL_NAMES = frozenset(t["name"] for t in LANDING_TOOLS.values())


def tool_definitions(mode: LandingMode = LandingMode.PULL_REQUEST) -> List[Dict[str, Any]]:
    """Tool definitions in Anthropic format for a run in the given mode."""
    return [*BASE_TOOLS, LANDING_TOOLS[LandingMode(mode)]]


def landing_tool_name(mode: LandingMode) -> str:
    return LANDING_TOOLS[LandingMode(mode)]["name"]


# ---------- Typed inputs ----------

@dataclass(frozen=True)
class ReadFileInput:
    path: str


@dataclass(frozen=True)
class ListDirectoryInput:
    path: str = ""


@dataclass(frozen=True)
class SearchCodeInput:
    query: str
    file_extension: Optional[str] = None


@dataclass(frozen=True)
class WriteFileInput:
    path: str
    content: str
    description: str


@dataclass(frozen=True)
class CreatePullRequestInput:
    title: str
    body: str
    branch_name: str


@dataclass(frozen=True)
class CommitAndPushInput:
    commit_message: str


INPUT_TYPES = {
    "read_file": ReadFileInput,
    "list_directory": ListDirectoryInput,
    "search_code": SearchCodeInput,
    "write_file": WriteFileInput,
    "create_pull_request": CreatePullRequestInput,
    "commit_and_push": CommitAndPushInput,
}

_SCHEMAS = {t["name"]: t["input_schema"] for t in [*BASE_TOOLS, *LANDING_TOOLS.values()]}


def parse_tool_input(name: str, raw: Optional[Mapping[str, Any]]):
    """Validate a model-supplied input dict against the tool schema.

    Returns the tool's input record. Raises ToolInputError for a non-string field,
    a missing required field, or a non-object payload. Unknown extra keys
    are ignored, as the model sometimes adds them.
    """
    if name not in INPUT_TYPES:
        raise ToolInputError(name, "unknown tool")
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ToolInputError(name, "input must be an object")
    schema = _SCHEMAS[name]
    values: Dict[str, Any] = {}
    for field in schema["required"]:
        if field not in raw or raw[field] is None:
            raise ToolInputError(name, f"missing required field '{field}'")
    for field in schema["properties"]:
        if field not in raw or raw[field] is None:
            continue
        value = raw[field]
        if not isinstance(value, str):
            raise ToolInputError(name, f"field '{field}' must be a string")
        values[field] = value
    return INPUT_TYPES[name](**values)
