from .config import LandingMode, RepositoryCoordinates, Settings
from .runtime import AgentLoop, Conversation, RunResult
from .runner import TaskRequest, run_task
from .steps import AgentStep, StepChannel, StepEmitter

__all__ = [
    "AgentLoop",
    "AgentStep",
    "Conversation",
    "LandingMode",
    "RepositoryCoordinates",
    "RunResult",
    "Settings",
    "StepChannel",
    "StepEmitter",
    "TaskRequest",
    "run_task",
]
