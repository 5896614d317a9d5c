from __future__ import annotations
import base64
import logging
import urllib.parse
from typing import Any, Dict, List, Optional

import httpx

from ..config import GITHUB_API_URL, RepositoryCoordinates
from ..errors import GitHubError

"""
Thin GitHub REST client covering the calls the agent needs:
repository metadata, branch refs, file contents, pull requests and code search.
Every non-2xx response is raised as GitHubError; transport failures are
raised as GitHubError with status_code 0.
"""

logger = logging.getLogger(__name__)


def quote_path(path: str) -> str:
    return "/".join(urllib.parse.quote(part, safe="") for part in path.strip("/").split("/"))


def _error_message(r: httpx.Response) -> str:
    try:
        data = r.json()
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
    except ValueError:
        pass
    return r.reason_phrase or f"HTTP {r.status_code}"


class GitHubClient:
    def __init__(self, coords: RepositoryCoordinates,
                 base_url: str = GITHUB_API_URL,
                 timeout: float = 30.0,
                 user_agent: str = "repo-agent",
                 transport: Optional[httpx.BaseTransport] = None):
        self.coords = coords
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {coords.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": user_agent,
            },
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.coords.owner}/{self.coords.repo}"

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            r = self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("GitHub %s %s failed: %s", method, url, e)
            raise GitHubError(0, f"{type(e).__name__}: {e}") from e
        if r.status_code >= 400:
            msg = _error_message(r)
            logger.debug("GitHub %s %s -> %s %s", method, url, r.status_code, msg)
            raise GitHubError(r.status_code, msg)
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            logger.debug("GitHub %s %s returned a non-JSON body", method, url)
            raise GitHubError(r.status_code, "invalid JSON response") from e

    # ---------- Repository / refs ----------
    def get_repository(self) -> Dict[str, Any]:
        return self._request("GET", self._repo_path)

    def get_default_branch(self) -> str:
        return self.get_repository().get("default_branch") or "main"

    def get_branch_sha(self, branch: str) -> str:
        data = self._request("GET", f"{self._repo_path}/git/ref/heads/{quote_path(branch)}")
        try:
            return data["object"]["sha"]
        except (KeyError, TypeError) as e:
            raise GitHubError(200, f"ref response for {branch} has no object sha") from e

    def create_branch(self, branch: str, sha: str) -> Dict[str, Any]:
        return self._request("POST", f"{self._repo_path}/git/refs",
                             json={"ref": f"refs/heads/{branch}", "sha": sha})

    # ---------- Contents ----------
    def get_contents(self, path: str, ref: Optional[str] = None) -> Any:
        url = f"{self._repo_path}/contents/{quote_path(path)}" if path.strip("/") else f"{self._repo_path}/contents"
        params = {"ref": ref} if ref else None
        return self._request("GET", url, params=params)

    def get_file_sha(self, path: str, ref: Optional[str] = None) -> Optional[str]:
        """Blob sha of an existing file, or None when nothing exists at path."""
        try:
            data = self.get_contents(path, ref=ref)
        except GitHubError as e:
            if e.status_code == 404:
                return None
            raise
        if isinstance(data, dict):
            return data.get("sha")
        return None

    def put_file(self, path: str, content: str, message: str, branch: str,
                 sha: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            body["sha"] = sha
        return self._request("PUT", f"{self._repo_path}/contents/{quote_path(path)}", json=body)

    # ---------- Pull requests / search ----------
    def create_pull_request(self, title: str, body: str, head: str, base: str) -> Dict[str, Any]:
        return self._request("POST", f"{self._repo_path}/pulls",
                             json={"title": title, "body": body, "head": head, "base": base})

    def search_code(self, query: str, file_extension: Optional[str] = None,
                    per_page: int = 15) -> List[Dict[str, Any]]:
        q = f"{query} repo:{self.coords.full_name}"
        if file_extension:
            q += f" extension:{file_extension.lstrip('.')}"
        data = self._request("GET", "/search/code", params={"q": q, "per_page": per_page})
        return data.get("items") or []
