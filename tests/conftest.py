import base64
import json
import os
import sys
from types import SimpleNamespace
from typing import Dict, List, Optional

import httpx
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from repo_agent.config import RepositoryCoordinates, Settings
from repo_agent.staging import StagingBuffer
from repo_agent.tools.github import GitHubClient
from repo_agent.tools.repository import RepositoryAdapter


class FakeGitHub:
    """In-memory stand-in for the GitHub REST endpoints the agent uses."""

    def __init__(self, owner="acme", repo="shop", default_branch="main"):
        self.owner = owner
        self.repo = repo
        self.default_branch = default_branch
        self.branches: Dict[str, str] = {default_branch: "base000"}
        self.files: Dict[str, Dict[str, str]] = {default_branch: {}}
        self.calls: List[tuple] = []
        self.pulls: List[dict] = []
        self.search_items: List[dict] = []
        self.fail_put_paths: set = set()
        self.fail_search = False
        self.fail_pull = False
        self._commits = 0
        self._blob = 0
        self.shas: Dict[tuple, str] = {}

    # ---------- helpers ----------
    def add_file(self, path: str, content: str, branch: Optional[str] = None):
        branch = branch or self.default_branch
        self.files.setdefault(branch, {})[path] = content
        self._blob += 1
        self.shas[(branch, path)] = f"blob{self._blob}"

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @staticmethod
    def _json(status: int, data) -> httpx.Response:
        return httpx.Response(status, json=data)

    # ---------- routing ----------
    def handle(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path
        self.calls.append((method, path))
        prefix = f"/repos/{self.owner}/{self.repo}"

        if path == "/search/code":
            if self.fail_search:
                return self._json(403, {"message": "API rate limit exceeded"})
            return self._json(200, {"items": self.search_items, "q": request.url.params.get("q")})
        if not path.startswith(prefix):
            return self._json(404, {"message": "Not Found"})
        rest = path[len(prefix):]

        if rest == "" and method == "GET":
            return self._json(200, {"default_branch": self.default_branch})
        if rest.startswith("/git/ref/heads/") and method == "GET":
            branch = rest[len("/git/ref/heads/"):]
            if branch not in self.branches:
                return self._json(404, {"message": "Not Found"})
            return self._json(200, {"object": {"sha": self.branches[branch]}})
        if rest == "/git/refs" and method == "POST":
            body = json.loads(request.content)
            branch = body["ref"][len("refs/heads/"):]
            if branch in self.branches:
                return self._json(422, {"message": "Reference already exists"})
            self.branches[branch] = body["sha"]
            self.files[branch] = dict(self.files[self.default_branch])
            for (b, p), sha in list(self.shas.items()):
                if b == self.default_branch:
                    self.shas[(branch, p)] = sha
            return self._json(201, {"ref": body["ref"], "object": {"sha": body["sha"]}})
        if rest == "/contents" or rest.startswith("/contents/"):
            file_path = rest[len("/contents/"):] if rest.startswith("/contents/") else ""
            if method == "GET":
                return self._get_contents(file_path, request.url.params.get("ref"))
            if method == "PUT":
                return self._put_contents(file_path, json.loads(request.content))
        if rest == "/pulls" and method == "POST":
            if self.fail_pull:
                return self._json(422, {"message": "Validation Failed"})
            body = json.loads(request.content)
            number = len(self.pulls) + 1
            self.pulls.append({**body, "number": number})
            return self._json(201, {
                "number": number,
                "html_url": f"https://github.com/{self.owner}/{self.repo}/pull/{number}",
            })
        return self._json(404, {"message": "Not Found"})

    def _get_contents(self, file_path: str, ref: Optional[str]):
        branch = ref or self.default_branch
        files = self.files.get(branch, {})
        if file_path in files:
            return self._json(200, {
                "type": "file",
                "name": file_path.rsplit("/", 1)[-1],
                "path": file_path,
                "sha": self.shas[(branch, file_path)],
                "encoding": "base64",
                "content": base64.b64encode(files[file_path].encode("utf-8")).decode("ascii"),
            })
        prefix = f"{file_path}/" if file_path else ""
        entries = {}
        for p in files:
            if p.startswith(prefix):
                head, _, tail = p[len(prefix):].partition("/")
                entries[head] = "dir" if tail else "file"
        if entries:
            return self._json(200, [{"name": n, "type": t} for n, t in sorted(entries.items())])
        return self._json(404, {"message": "Not Found"})

    def _put_contents(self, file_path: str, body: dict):
        branch = body["branch"]
        if file_path in self.fail_put_paths:
            return self._json(409, {"message": f"{file_path} does not match"})
        existing = self.shas.get((branch, file_path))
        if existing and body.get("sha") != existing:
            return self._json(422, {"message": "sha wasn't supplied"})
        if not existing and body.get("sha"):
            return self._json(422, {"message": "sha given for a new file"})
        self.add_file(file_path, base64.b64decode(body["content"]).decode("utf-8"), branch)
        self._commits += 1
        return self._json(200 if existing else 201, {
            "content": {"path": file_path, "sha": self.shas[(branch, file_path)]},
            "commit": {"sha": f"commit{self._commits}", "message": body["message"]},
        })

    def writes(self) -> List[str]:
        return [p for m, p in self.calls if m == "PUT"]


@pytest.fixture
def coords():
    return RepositoryCoordinates(owner="acme", repo="shop", token="ghp_test")


@pytest.fixture
def github():
    return FakeGitHub()


@pytest.fixture
def adapter(coords, github):
    client = GitHubClient(coords, transport=github.transport())
    yield RepositoryAdapter(coords, StagingBuffer(), client=client)
    client.close()


# ---------- scripted model responses ----------

def text_block(text):
    return SimpleNamespace(type="text", text=text)


def tool_block(id, name, **input):
    return SimpleNamespace(type="tool_use", id=id, name=name, input=input)


def response(*blocks, stop_reason=None):
    if stop_reason is None:
        stop_reason = "tool_use" if any(b.type == "tool_use" for b in blocks) else "end_turn"
    return SimpleNamespace(content=list(blocks), stop_reason=stop_reason)


@pytest.fixture
def settings():
    return Settings(anthropic_api_key="sk-test")
