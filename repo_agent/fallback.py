from __future__ import annotations
import logging
from typing import Optional

from .errors import LandingError
from .runtime import RunResult
from .steps import AgentStep, StepCallback
from .tools import DirectPushLanding, RepositoryAdapter, push_step

logger = logging.getLogger(__name__)


def needs_auto_land(result: RunResult) -> bool:
    return bool(result.pending_writes) and result.landing is None


def auto_land(adapter: RepositoryAdapter, result: RunResult, commit_message: str,
              on_step: Optional[StepCallback] = None) -> Optional[DirectPushLanding]:
    """Push staged writes straight to the default branch when the run never landed them.

    The model can run out of iterations, or stop calling tools, after writing
    files but before landing them. Returns the push, or None when there was
    nothing to do or the push failed (reported as a single error step).
    """
    if not needs_auto_land(result):
        return None
    logger.info("auto-landing %d staged write(s) on %s", len(result.pending_writes), adapter.coords.full_name)
    try:
        push = adapter.commit_and_push(commit_message)
    except LandingError as e:
        logger.warning("auto-land failed: %s", e)
        if on_step:
            on_step(AgentStep(type="error", content=f"Auto-commit failed: {e}"))
        return None
    if on_step:
        on_step(push_step(push))
    return push
