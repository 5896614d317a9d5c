from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import anthropic

from .config import LandingMode, RepositoryCoordinates, Settings
from .staging import StagedWrite
from .steps import AgentStep, StepCallback, StepEmitter
from .tools import LandingResult, PullRequestLanding, DirectPushLanding, RepositoryAdapter, ToolRegistry

logger = logging.getLogger(__name__)

FINISHED = "finished"
API_ERROR = "api_error"
BUDGET_EXHAUSTED = "budget_exhausted"

FINISH_STOP_REASONS = ("end_turn", "max_tokens")


@dataclass(frozen=True)
class Conversation:
    """Append-only message log. append() returns a new log and never mutates."""
    messages: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def start(cls, user_message: str) -> "Conversation":
        return cls(({"role": "user", "content": user_message},))

    def append(self, role: str, content: Any) -> "Conversation":
        return Conversation(self.messages + ({"role": role, "content": content},))

    def to_params(self) -> List[Dict[str, Any]]:
        return list(self.messages)

    def __len__(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class RunResult:
    pending_writes: Tuple[StagedWrite, ...]
    landing: Optional[LandingResult]
    reason: str
    iterations: int
    conversation: Conversation

    @property
    def landed(self) -> bool:
        return self.landing is not None

    @property
    def pr_url(self) -> Optional[str]:
        return self.landing.url if isinstance(self.landing, PullRequestLanding) else None

    @property
    def pr_number(self) -> Optional[int]:
        return self.landing.number if isinstance(self.landing, PullRequestLanding) else None

    @property
    def commit_sha(self) -> Optional[str]:
        return self.landing.commit_sha if isinstance(self.landing, DirectPushLanding) else None


def _block_to_param(block: Any) -> Dict[str, Any]:
    """Convert an SDK content block into a plain request param."""
    if block.type == "text":
        return {"type": "text", "text": block.text}
    if block.type == "tool_use":
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    if hasattr(block, "model_dump"):
        return block.model_dump(exclude_none=True)
    return dict(block)


class AgentLoop:
    """Drives the model through read/list/search/write/land tool calls.

    One run is strictly sequential: each model response is inspected, its tool
    calls run in the order given, and all results go back as a single
    tool_result turn. The loop ends when the model stops asking for tools, the
    model call fails, or max_iterations calls have been made.
    """

    def __init__(self, client: Any, coords: RepositoryCoordinates,
                 settings: Optional[Settings] = None,
                 mode: LandingMode = LandingMode.PULL_REQUEST,
                 adapter: Optional[RepositoryAdapter] = None):
        self.client = client
        self.coords = coords
        self.settings = settings or Settings()
        self.mode = LandingMode(mode)
        self.adapter = adapter or RepositoryAdapter(coords, settings=self.settings)
        self.tools = ToolRegistry(self.adapter, self.mode)

    def _call_model(self, system_prompt: str, conversation: Conversation):
        return self.client.messages.create(
            model=self.settings.model_id,
            max_tokens=self.settings.response_max_tokens,
            system=system_prompt,
            tools=self.tools.definitions(),
            messages=conversation.to_params(),
        )

    def _truncate(self, text: str) -> str:
        limit = self.settings.max_tool_result_chars
        if len(text) <= limit:
            return text
        return text[:limit] + f"\n[... Output truncated - {len(text) - limit} characters omitted ...]"

    def run(self, system_prompt: str, user_message: str,
            on_step: Optional[StepCallback] = None) -> RunResult:
        emit = on_step if isinstance(on_step, StepEmitter) else StepEmitter(on_step)
        conversation = Conversation.start(user_message)
        reason = BUDGET_EXHAUSTED
        iterations = 0

        while iterations < self.settings.max_iterations:
            logger.debug("iteration %d/%d for %s", iterations + 1,
                         self.settings.max_iterations, self.coords.full_name)
            try:
                response = self._call_model(system_prompt, conversation)
            except anthropic.APIError as e:
                logger.error("model call failed: %s", e)
                emit(AgentStep(type="error", content=f"API error: {e}"))
                reason = API_ERROR
                break

            text = "".join(b.text for b in response.content if b.type == "text")
            if text:
                emit(AgentStep(type="thinking", content=text))

            tool_uses = [b for b in response.content if b.type == "tool_use"]
            if response.stop_reason in FINISH_STOP_REASONS or not tool_uses:
                emit(AgentStep(type="done", content=text or "Agent finished."))
                reason = FINISHED
                iterations += 1
                break

            conversation = conversation.append(
                "assistant", [_block_to_param(b) for b in response.content]
            )

            results = []
            for block in tool_uses:
                emit(AgentStep(type="tool_call", tool=block.name, input=block.input))
                outcome = self.tools.dispatch(block.name, block.input)
                for step in outcome.steps:
                    emit(step)
                emit(AgentStep(type="tool_result", tool=block.name, result=outcome.summary))
                results.append({
                    "type": "tool_result",
                    "tool_use_id": block.id,
                    "content": self._truncate(outcome.content),
                })
            conversation = conversation.append("user", results)
            iterations += 1
        else:
            logger.warning("iteration budget (%d) exhausted with %d staged write(s)%s",
                           self.settings.max_iterations, len(self.adapter.buffer),
                           "" if self.tools.landing else " and nothing landed")

        return RunResult(
            pending_writes=self.adapter.buffer.snapshot(),
            landing=self.tools.landing,
            reason=reason,
            iterations=iterations,
            conversation=conversation,
        )

