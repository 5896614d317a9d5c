from __future__ import annotations


class AgentError(Exception):
    """Base class for failures raised by the agent or its setup helpers."""


class ConfigError(AgentError):
    """Raised for invalid configuration (missing API key, unknown repository, etc.)."""


class ToolInputError(AgentError):
    """Raised when a tool call's input does not match the tool's schema."""

    def __init__(self, tool: str, message: str):
        super().__init__(f"invalid input for {tool}: {message}")
        self.tool = tool


class GitHubError(AgentError):
    """A GitHub REST call failed. status_code is 0 for transport errors."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class LandingError(AgentError):
    """Landing staged writes on the remote repository failed."""


class EmptyStagingError(LandingError):
    """Landing was requested before anything was staged."""

    def __init__(self):
        super().__init__("No files have been written yet. Use write_file first.")
