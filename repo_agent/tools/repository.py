from __future__ import annotations
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from ..config import RepositoryCoordinates, Settings
from ..errors import EmptyStagingError, GitHubError, LandingError
from ..staging import StagedWrite, StagingBuffer
from .github import GitHubClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PullRequestLanding:
    url: str
    number: int
    branch_name: str


@dataclass(frozen=True)
class DirectPushLanding:
    commit_sha: str
    files_committed: int
    branch: str


LandingResult = Union[PullRequestLanding, DirectPushLanding]


class RepositoryAdapter:
    """Executes the agent's tools against one remote GitHub repository.

    read_file, list_directory and search_code never raise: every failure comes
    back as a human-readable string the model can react to. write_file only
    stages. The two landing operations raise LandingError, since a failed
    landing ends that attempt rather than a single tool call.
    """

    def __init__(self, coords: RepositoryCoordinates,
                 buffer: Optional[StagingBuffer] = None,
                 client: Optional[GitHubClient] = None,
                 settings: Optional[Settings] = None):
        settings = settings or Settings()
        self.coords = coords
        self.buffer = buffer if buffer is not None else StagingBuffer()
        self.client = client or GitHubClient(
            coords,
            base_url=settings.github_api_url,
            timeout=settings.http_timeout,
            user_agent=settings.user_agent,
        )

    # ---------- Read-only tools ----------
    def read_file(self, path: str) -> str:
        try:
            data = self.client.get_contents(path)
        except GitHubError as e:
            return f"Error: Could not read {path} - {e.message}"
        if isinstance(data, list):
            return f"Error: {path} is a directory. Use list_directory instead."
        if data.get("encoding") == "base64" and data.get("content"):
            try:
                return base64.b64decode(data["content"]).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                return f"Error: Could not decode {path} as UTF-8 text ({type(e).__name__})"
        return f"Error: File {path} has unsupported encoding or is empty."

    def list_directory(self, path: str = "") -> str:
        clean = "" if path in (".", "", "/") else path
        try:
            data = self.client.get_contents(clean)
        except GitHubError as e:
            return f"Error: Could not list directory {path or 'root'} - {e.message}"
        if not isinstance(data, list):
            return f"{path} is a file, not a directory."
        if not data:
            return f"{path or 'root'} is empty."
        return "\n".join(f"{item['name']}{'/' if item.get('type') == 'dir' else ''}" for item in data)

    def search_code(self, query: str, file_extension: Optional[str] = None) -> str:
        try:
            items = self.client.search_code(query, file_extension)
        except GitHubError as e:
            return f"Search failed: {e.message}. Try read_file with a specific path instead."
        if not items:
            return f'No results found for "{query}"'
        return "\n".join(
            f"{item['path']} ({(item.get('repository') or {}).get('full_name', '')})" for item in items
        )

    # ---------- Staging ----------
    def write_file(self, path: str, content: str, description: str) -> Tuple[str, str]:
        """Stage a write. Returns (tool result text, original content for diffing)."""
        self.buffer.stage(path, content, description)
        result = f'File "{path}" staged for commit. ({len(self.buffer)} file(s) staged total)'
        return result, self._original_content(path)

    def _original_content(self, path: str) -> str:
        try:
            orig = self.read_file(path)
        except Exception as e:  # diff base is best-effort
            logger.debug("could not fetch original content of %s: %s", path, e)
            return ""
        return "" if orig.startswith("Error:") else orig

    # ---------- Landing ----------
    def _commit_writes(self, writes: List[StagedWrite], branch: str,
                       message_for) -> str:
        """Upsert each write on branch, in order. Returns the last commit sha."""
        commit_sha = ""
        for write in writes:
            try:
                existing_sha = self.client.get_file_sha(write.path, ref=branch)
                res = self.client.put_file(
                    write.path, write.content, message_for(write), branch, sha=existing_sha,
                )
            except GitHubError as e:
                raise LandingError(f"Failed to write {write.path}: {e.message}") from e
            commit_sha = (res.get("commit") or {}).get("sha", commit_sha)
            logger.info("%s %s on %s", "updated" if existing_sha else "created", write.path, branch)
        return commit_sha

    def create_pull_request(self, title: str, body: str, branch_name: str) -> PullRequestLanding:
        if not self.buffer:
            raise EmptyStagingError()
        writes = self.buffer.flatten()
        try:
            default_branch = self.client.get_default_branch()
        except GitHubError as e:
            raise LandingError(f"Failed to fetch repo info: {e.message}") from e
        try:
            base_sha = self.client.get_branch_sha(default_branch)
        except GitHubError as e:
            raise LandingError(f"Failed to get branch ref: {e.message}") from e
        try:
            self.client.create_branch(branch_name, base_sha)
        except GitHubError as e:
            raise LandingError(f"Failed to create branch: {e.message}") from e

        self._commit_writes(writes, branch_name, lambda w: f"{w.description} - {w.path}")

        try:
            pr = self.client.create_pull_request(title, body, head=branch_name, base=default_branch)
        except GitHubError as e:
            raise LandingError(f"Failed to create PR: {e.message}") from e
        try:
            landing = PullRequestLanding(url=pr["html_url"], number=pr["number"], branch_name=branch_name)
        except (KeyError, TypeError) as e:
            raise LandingError(f"Failed to create PR: response is missing {e}") from e
        logger.info("opened PR #%s on %s from %s", landing.number, self.coords.full_name, branch_name)
        return landing

    def commit_and_push(self, commit_message: str) -> DirectPushLanding:
        if not self.buffer:
            raise EmptyStagingError()
        writes = self.buffer.flatten()
        try:
            default_branch = self.client.get_default_branch()
        except GitHubError as e:
            raise LandingError(f"Failed to fetch repo info: {e.message}") from e

        if len(writes) == 1:
            message_for = lambda w: commit_message
        else:
            message_for = lambda w: f"{commit_message}: {w.path}"
        commit_sha = self._commit_writes(writes, default_branch, message_for)
        logger.info("pushed %d file(s) to %s:%s", len(writes), self.coords.full_name, default_branch)
        return DirectPushLanding(commit_sha=commit_sha, files_committed=len(writes), branch=default_branch)

    def close(self) -> None:
        self.client.close()
