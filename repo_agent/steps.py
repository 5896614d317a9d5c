"""Progress steps reported while an agent run is in flight."""
from __future__ import annotations
import json
import logging
import threading
from dataclasses import dataclass, fields
from queue import Queue
from typing import Any, Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

STEP_TYPES = (
    "thinking",
    "tool_call",
    "tool_result",
    "file_write",
    "pr_created",
    "push_created",
    "error",
    "done",
    "complete",
)

# Field names on the wire, as the UI feed expects them
_WIRE_NAMES = {
    "file_content": "fileContent",
    "pr_url": "prUrl",
    "pr_number": "prNumber",
    "branch_name": "branchName",
    "commit_sha": "commitSha",
    "files_committed": "filesCommitted",
}


@dataclass(frozen=True)
class AgentStep:
    type: str
    content: Optional[str] = None
    tool: Optional[str] = None
    input: Optional[Dict[str, Any]] = None
    result: Optional[str] = None
    path: Optional[str] = None
    file_content: Optional[str] = None
    description: Optional[str] = None
    pr_url: Optional[str] = None
    pr_number: Optional[int] = None
    branch_name: Optional[str] = None
    commit_sha: Optional[str] = None
    files_committed: Optional[int] = None

    def __post_init__(self):
        if self.type not in STEP_TYPES:
            raise ValueError(f"unknown step type: {self.type}")

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            out[_WIRE_NAMES.get(f.name, f.name)] = value
        return out

    def to_sse(self) -> str:
        return f"data: {json.dumps(self.to_dict())}\n\n"


StepCallback = Callable[[AgentStep], None]


class StepEmitter:
    """Hands each step to the consumer callback as soon as it is produced.

    Steps are delivered synchronously, in order, exactly once. The emitter
    also keeps the run's history so callers can inspect it after the fact.
    Exceptions raised by the callback propagate to whoever emitted the step.
    """

    def __init__(self, callback: Optional[StepCallback] = None):
        self._callback = callback
        self._steps: List[AgentStep] = []

    def emit(self, step: AgentStep) -> AgentStep:
        self._steps.append(step)
        if self._callback is not None:
            self._callback(step)
        return step

    def __call__(self, step: AgentStep) -> AgentStep:
        return self.emit(step)

    @property
    def steps(self) -> List[AgentStep]:
        return list(self._steps)

    def of_type(self, step_type: str) -> List[AgentStep]:
        return [s for s in self._steps if s.type == step_type]


_END = object()


class StepChannel:
    """Iterate over steps while a blocking run executes in a worker thread.

        channel = StepChannel(lambda on_step: loop.run(system, message, on_step))
        for step in channel:
            response.write(step.to_sse())
        result = channel.result

    The run cannot be interrupted. If the consumer stops iterating early the
    worker keeps going to the end of the run; the channel is marked abandoned
    and later steps are dropped instead of queued.
    """

    def __init__(self, target: Callable[[StepCallback], Any]):
        self._target = target
        self._queue: "Queue[Any]" = Queue()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self.result: Any = None
        self.abandoned = False

    def _put(self, step: AgentStep) -> None:
        if not self.abandoned:
            self._queue.put(step)

    def _worker(self) -> None:
        try:
            self.result = self._target(self._put)
        except BaseException as e:
            self._error = e
        finally:
            self._queue.put(_END)

    def __iter__(self) -> Iterator[AgentStep]:
        if self._thread is not None:
            raise RuntimeError("StepChannel can only be iterated once")
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()
        drained = False
        try:
            while True:
                item = self._queue.get()
                if item is _END:
                    drained = True
                    break
                yield item
        finally:
            if not drained:
                self.abandoned = True
                logger.warning("step consumer stopped early; the run continues without it")
        self._thread.join()
        if self._error is not None:
            raise self._error
