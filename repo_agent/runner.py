"""Run one agent task end to end: resolve the repository, run the loop,
auto-land anything left staged, report the outcome, record a summary."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .config import LandingMode, RepositoryCoordinates, Settings
from .errors import ConfigError
from .fallback import auto_land
from .prompts import make_system_prompt, make_user_message
from .runtime import AgentLoop, RunResult
from .steps import AgentStep, StepCallback, StepEmitter
from .tools import DirectPushLanding, LandingResult, PullRequestLanding, RepositoryAdapter

logger = logging.getLogger(__name__)


class RepositoryLookup(Protocol):
    def get_coordinates(self, key: str) -> Optional[RepositoryCoordinates]: ...


class SummaryRecorder(Protocol):
    def record_summary(self, key: str, content: str, files: List[str]) -> Any: ...


@dataclass
class StaticRepositoryLookup:
    """Lookup backed by a fixed mapping, or a single repository for every key."""
    repositories: Dict[str, RepositoryCoordinates] = field(default_factory=dict)
    default: Optional[RepositoryCoordinates] = None

    def get_coordinates(self, key: str) -> Optional[RepositoryCoordinates]:
        return self.repositories.get(key, self.default)


@dataclass
class TaskRequest:
    key: str
    title: str
    description: str = ""
    instructions: Optional[str] = None
    mode: LandingMode = LandingMode.PULL_REQUEST
    context_files: Dict[str, str] = field(default_factory=dict)
    dependencies: List[str] = field(default_factory=list)

    @property
    def commit_message(self) -> str:
        return f"{self.title} (auto-commit)"


@dataclass
class TaskOutcome:
    run: RunResult
    landing: Optional[LandingResult]
    auto_landed: bool
    summary: str
    steps: List[AgentStep]

    @property
    def files(self) -> List[str]:
        seen: Dict[str, None] = {}
        for w in self.run.pending_writes:
            seen.setdefault(w.path, None)
        return list(seen)


def summarize(landing: Optional[LandingResult], auto_landed: bool, files: List[str]) -> str:
    if isinstance(landing, PullRequestLanding):
        return f"Pull Request #{landing.number} opened: {landing.url} ({len(files)} file(s))"
    if isinstance(landing, DirectPushLanding):
        how = "Auto-committed" if auto_landed else "Committed"
        return (f"{how} {landing.files_committed} file(s) directly to {landing.branch}"
                f" ({landing.commit_sha[:7] or 'unknown'})")
    if files:
        return f"{len(files)} file(s) were staged but not landed."
    return "Agent finished without changing any files."


def run_task(request: TaskRequest, *, client: Any, lookup: RepositoryLookup,
             recorder: Optional[SummaryRecorder] = None,
             on_step: Optional[StepCallback] = None,
             settings: Optional[Settings] = None,
             adapter: Optional[RepositoryAdapter] = None) -> TaskOutcome:
    settings = settings or Settings()
    coords = lookup.get_coordinates(request.key)
    if coords is None:
        raise ConfigError(f"No repository is configured for {request.key!r}")

    emitter = StepEmitter(on_step)
    owns_adapter = adapter is None
    adapter = adapter or RepositoryAdapter(coords, settings=settings)
    loop = AgentLoop(client, coords, settings=settings, mode=request.mode, adapter=adapter)
    system_prompt = make_system_prompt(
        coords.full_name, request.title, request.description,
        mode=request.mode,
        context_files=request.context_files,
        dependencies=request.dependencies,
    )
    try:
        result = loop.run(system_prompt, make_user_message(request.instructions), emitter)
        landing = result.landing
        auto_landed = False
        if landing is None:
            pushed = auto_land(adapter, result, request.commit_message, emitter)
            if pushed is not None:
                landing, auto_landed = pushed, True
    finally:
        if owns_adapter:
            adapter.close()

    files = [w.path for w in adapter.buffer.flatten()]
    summary = summarize(landing, auto_landed, files)
    emitter(AgentStep(type="complete", content=summary))

    if recorder is not None:
        try:
            recorder.record_summary(request.key, summary, files)
        except Exception:
            logger.exception("failed to record run summary for %s", request.key)

    return TaskOutcome(run=result, landing=landing, auto_landed=auto_landed,
                       summary=summary, steps=emitter.steps)
