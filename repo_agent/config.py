from __future__ import annotations
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import anthropic

from .errors import ConfigError


class LandingMode(str, Enum):
    PULL_REQUEST = "pr"
    DIRECT_PUSH = "push"


@dataclass(frozen=True)
class RepositoryCoordinates:
    owner: str
    repo: str
    token: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __repr__(self) -> str:
        # Never leak the token into logs
        return f"RepositoryCoordinates(owner={self.owner!r}, repo={self.repo!r})"


@dataclass
class ModelSpec:
    id: str
    max_tokens: int = 8192
    context_window: int = 200000


MODEL_PRESETS = {
    "claude-sonnet-4.5": ModelSpec(id="claude-sonnet-4-5-20250929"),
    "claude-opus-4.1": ModelSpec(id="claude-opus-4-1-20250805", max_tokens=8192),
    "claude-haiku-4.5": ModelSpec(id="claude-haiku-4-5-20251001"),
}

DEFAULT_MODEL = "claude-sonnet-4.5"
DEFAULT_MAX_ITERATIONS = 25
GITHUB_API_URL = "https://api.github.com"


def resolve_model(name: str) -> ModelSpec:
    """Map a preset alias to its ModelSpec; unknown names are treated as raw model ids."""
    if name in MODEL_PRESETS:
        return MODEL_PRESETS[name]
    return ModelSpec(id=name)


@dataclass
class Settings:
    anthropic_api_key: Optional[str] = None
    anthropic_base_url: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_tokens: Optional[int] = None
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    max_tool_result_chars: int = 60000
    github_api_url: str = GITHUB_API_URL
    github_token: Optional[str] = None
    http_timeout: float = 30.0
    user_agent: str = "repo-agent"

    @property
    def model_id(self) -> str:
        return resolve_model(self.model).id

    @property
    def response_max_tokens(self) -> int:
        return self.max_tokens or resolve_model(self.model).max_tokens

    @classmethod
    def from_env(cls, env: Optional[dict] = None) -> "Settings":
        env = os.environ if env is None else env
        try:
            max_iterations = int(env.get("REPO_AGENT_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS))
            raw_tokens = env.get("REPO_AGENT_MAX_TOKENS")
            max_tokens = int(raw_tokens) if raw_tokens else None
            timeout = float(env.get("REPO_AGENT_HTTP_TIMEOUT", 30.0))
        except ValueError as e:
            raise ConfigError(f"invalid numeric setting: {e}") from e
        if max_iterations < 1:
            raise ConfigError("REPO_AGENT_MAX_ITERATIONS must be at least 1")
        return cls(
            anthropic_api_key=env.get("ANTHROPIC_API_KEY"),
            anthropic_base_url=env.get("ANTHROPIC_BASE_URL"),
            model=env.get("REPO_AGENT_MODEL", DEFAULT_MODEL),
            max_tokens=max_tokens,
            max_iterations=max_iterations,
            github_api_url=env.get("GITHUB_API_URL", GITHUB_API_URL).rstrip("/"),
            github_token=env.get("GITHUB_TOKEN"),
            http_timeout=timeout,
        )

    def make_client(self):
        """Build the Anthropic SDK client for these settings."""
        if not self.anthropic_api_key:
            raise ConfigError("Missing API key: set ANTHROPIC_API_KEY")
        return anthropic.Anthropic(
            api_key=self.anthropic_api_key,
            base_url=self.anthropic_base_url or None,
        )
