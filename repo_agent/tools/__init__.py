from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import LandingMode
from ..errors import EmptyStagingError, LandingError, ToolInputError
from ..steps import AgentStep
from .catalog import (
    CommitAndPushInput,
    CreatePullRequestInput,
    ListDirectoryInput,
    ReadFileInput,
    SearchCodeInput,
    WriteFileInput,
    landing_tool_name,
    parse_tool_input,
    tool_definitions,
)
from .repository import DirectPushLanding, LandingResult, PullRequestLanding, RepositoryAdapter

logger = logging.getLogger(__name__)

SEARCH_SUMMARY_CHARS = 200


@dataclass
class ToolOutcome:
    """What one tool call produced: the text for the model, a short summary
    for the step stream, any extra steps to report, and a landing if one happened."""
    content: str
    summary: str
    steps: List[AgentStep] = field(default_factory=list)
    landing: Optional[LandingResult] = None


ToolFn = Callable[[Any], ToolOutcome]


class ToolRegistry:
    def __init__(self, adapter: RepositoryAdapter, mode: LandingMode = LandingMode.PULL_REQUEST):
        self.adapter = adapter
        self.mode = LandingMode(mode)
        self.landing: Optional[LandingResult] = None
        self._tools: Dict[str, ToolFn] = {
            "read_file": self._read_file,
            "list_directory": self._list_directory,
            "search_code": self._search_code,
            "write_file": self._write_file,
        }
        if self.mode is LandingMode.PULL_REQUEST:
            self._tools["create_pull_request"] = self._create_pull_request
        else:
            self._tools["commit_and_push"] = self._commit_and_push

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def definitions(self) -> List[Dict[str, Any]]:
        return tool_definitions(self.mode)

    def dispatch(self, tool: str, args: Optional[Mapping[str, Any]]) -> ToolOutcome:
        if tool not in self._tools:
            msg = f"Unknown tool: {tool}"
            return ToolOutcome(content=msg, summary=msg)
        try:
            parsed = parse_tool_input(tool, args)
        except ToolInputError as e:
            msg = f"Error: {e}"
            return ToolOutcome(content=msg, summary=msg)
        try:
            return self._tools[tool](parsed)
        except Exception as e:
            logger.exception("tool %s failed", tool)
            msg = f"Tool error: {type(e).__name__}: {e}"
            return ToolOutcome(content=msg, summary=msg, steps=[AgentStep(type="error", content=msg)])

    # ---------- Handlers ----------
    def _read_file(self, a: ReadFileInput) -> ToolOutcome:
        text = self.adapter.read_file(a.path)
        if text.startswith("Error:"):
            return ToolOutcome(content=text, summary=text)
        return ToolOutcome(content=text, summary=f"Read {a.path} ({len(text)} chars)")

    def _list_directory(self, a: ListDirectoryInput) -> ToolOutcome:
        text = self.adapter.list_directory(a.path)
        return ToolOutcome(content=text, summary=f"Listed {a.path or 'root'}")

    def _search_code(self, a: SearchCodeInput) -> ToolOutcome:
        text = self.adapter.search_code(a.query, a.file_extension)
        return ToolOutcome(content=text, summary=text[:SEARCH_SUMMARY_CHARS])

    def _write_file(self, a: WriteFileInput) -> ToolOutcome:
        text, original = self.adapter.write_file(a.path, a.content, a.description)
        step = AgentStep(
            type="file_write",
            path=a.path,
            file_content=a.content,
            description=a.description,
            content=original,
        )
        return ToolOutcome(content=text, summary=text, steps=[step])

    def _already_landed(self) -> Optional[ToolOutcome]:
        if self.landing is None:
            return None
        msg = "Error: Changes were already landed in this run. No further landing is possible."
        return ToolOutcome(content=msg, summary=msg, steps=[AgentStep(type="error", content=msg)])

    def _create_pull_request(self, a: CreatePullRequestInput) -> ToolOutcome:
        rejected = self._already_landed()
        if rejected:
            return rejected
        try:
            pr = self.adapter.create_pull_request(a.title, a.body, a.branch_name)
        except EmptyStagingError as e:
            msg = f"Error: {e}"
            return ToolOutcome(content=msg, summary=msg, steps=[AgentStep(type="error", content=msg)])
        except LandingError as e:
            logger.warning("pull request landing failed: %s", e)
            msg = f"Error creating PR: {e}"
            return ToolOutcome(content=msg, summary=msg, steps=[AgentStep(type="error", content=msg)])
        self.landing = pr
        msg = f"Pull Request #{pr.number} created successfully: {pr.url}"
        step = AgentStep(
            type="pr_created",
            pr_url=pr.url,
            pr_number=pr.number,
            branch_name=pr.branch_name,
            content=msg,
        )
        return ToolOutcome(content=msg, summary=msg, steps=[step], landing=pr)

    def _commit_and_push(self, a: CommitAndPushInput) -> ToolOutcome:
        rejected = self._already_landed()
        if rejected:
            return rejected
        try:
            push = self.adapter.commit_and_push(a.commit_message)
        except EmptyStagingError as e:
            msg = f"Error: {e}"
            return ToolOutcome(content=msg, summary=msg, steps=[AgentStep(type="error", content=msg)])
        except LandingError as e:
            logger.warning("direct push landing failed: %s", e)
            msg = f"Error pushing commit: {e}"
            return ToolOutcome(content=msg, summary=msg, steps=[AgentStep(type="error", content=msg)])
        self.landing = push
        step = push_step(push)
        return ToolOutcome(content=step.content, summary=step.content, steps=[step], landing=push)


def push_step(push: DirectPushLanding) -> AgentStep:
    msg = (f"Committed {push.files_committed} file(s) to {push.branch}"
           f" ({push.commit_sha[:7] or 'unknown'})")
    return AgentStep(
        type="push_created",
        commit_sha=push.commit_sha,
        files_committed=push.files_committed,
        branch_name=push.branch,
        content=msg,
    )


__all__ = [
    "DirectPushLanding",
    "LandingResult",
    "PullRequestLanding",
    "RepositoryAdapter",
    "ToolOutcome",
    "ToolRegistry",
    "landing_tool_name",
    "push_step",
    "tool_definitions",
]
