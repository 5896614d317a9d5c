from __future__ import annotations
from typing import Dict, Iterable, Optional

from .config import LandingMode

MAX_CONTEXT_FILE_CHARS = 12000

SYSTEM_TEMPLATE = """You are an autonomous software engineer working on the GitHub repository {repo}.
You cannot run code. You can read files, list directories, search code, and write files.

<TASK>
{title}

{description}
</TASK>
{dependencies}{context_files}
<WORKFLOW>
1. Explore the repository with list_directory, search_code and read_file until you understand the code you need to change.
2. Make each change with write_file, always providing the COMPLETE new file content.
3. {landing_instruction}
Keep changes focused on the task. Do not rewrite files you do not need to touch.
</WORKFLOW>
"""

LANDING_INSTRUCTIONS = {
    LandingMode.PULL_REQUEST: (
        "When every file is written, call create_pull_request once with a clear title, "
        "a markdown body summarising the change, and a new branch name."
    ),
    LandingMode.DIRECT_PUSH: (
        "When every file is written, call commit_and_push once with a concise commit message."
    ),
}

USER_TEMPLATE = """Implement the task described in the system prompt.
{instructions}"""


def _render_dependencies(dependencies: Iterable[str]) -> str:
    deps = [d for d in dependencies if d]
    if not deps:
        return ""
    lines = "\n".join(f"- {d}" for d in deps)
    return f"\n<DEPENDENCIES>\nThis task builds on:\n{lines}\n</DEPENDENCIES>\n"


def _render_context_files(files: Dict[str, str]) -> str:
    if not files:
        return ""
    parts = []
    for path, content in files.items():
        if len(content) > MAX_CONTEXT_FILE_CHARS:
            content = content[:MAX_CONTEXT_FILE_CHARS] + "\n[... truncated ...]"
        parts.append(f'<FILE path="{path}">\n{content}\n</FILE>')
    return "\n<CONTEXT_FILES>\n" + "\n".join(parts) + "\n</CONTEXT_FILES>\n"


def make_system_prompt(repo: str, title: str, description: str = "",
                       mode: LandingMode = LandingMode.PULL_REQUEST,
                       context_files: Optional[Dict[str, str]] = None,
                       dependencies: Iterable[str] = ()) -> str:
    return SYSTEM_TEMPLATE.format(
        repo=repo,
        title=title,
        description=description or "(no further description)",
        dependencies=_render_dependencies(dependencies),
        context_files=_render_context_files(context_files or {}),
        landing_instruction=LANDING_INSTRUCTIONS[LandingMode(mode)],
    )


def make_user_message(instructions: Optional[str] = None) -> str:
    extra = f"\nAdditional instructions:\n{instructions.strip()}" if instructions and instructions.strip() else ""
    return USER_TEMPLATE.format(instructions=extra).rstrip() + "\n"
