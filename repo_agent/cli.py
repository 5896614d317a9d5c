from __future__ import annotations
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .config import MODEL_PRESETS, LandingMode, RepositoryCoordinates, Settings
from .errors import AgentError
from .runner import StaticRepositoryLookup, TaskRequest, run_task
from .steps import AgentStep
from .tools.catalog import CATALOG_VERSION, tool_definitions

# Load environment variables from .env file
load_dotenv()

app = typer.Typer(add_completion=False)
console = Console()


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=debug)],
    )


def _short(tool_input: Optional[Dict[str, Any]], limit: int = 120) -> str:
    if not tool_input:
        return ""
    shown = {k: (v if not isinstance(v, str) or len(v) <= 60 else f"<{len(v)} chars>")
             for k, v in tool_input.items()}
    s = json.dumps(shown)
    return s if len(s) <= limit else s[:limit] + "..."


def render_step(step: AgentStep) -> None:
    if step.type == "thinking":
        console.print(step.content)
    elif step.type == "tool_call":
        console.print(f"[dim]> {step.tool} {_short(step.input)}[/dim]")
    elif step.type == "tool_result":
        console.print(f"[dim]  {step.result}[/dim]")
    elif step.type == "file_write":
        verb = "update" if step.content else "create"
        console.print(f"[cyan]staged {verb}: {step.path}[/cyan] [dim]{step.description or ''}[/dim]")
    elif step.type == "pr_created":
        console.print(f"[bold green]PR #{step.pr_number}[/bold green] {step.pr_url}")
    elif step.type == "push_created":
        console.print(f"[bold green]{step.content}[/bold green]")
    elif step.type == "error":
        console.print(f"[red]{step.content}[/red]")
    elif step.type == "done":
        console.print("[yellow]Agent finished.[/yellow]")
    elif step.type == "complete":
        console.rule(step.content or "")


def _print_sse(step: AgentStep) -> None:
    sys.stdout.write(step.to_sse())
    sys.stdout.flush()


def _read_context_files(paths: List[Path]) -> Dict[str, str]:
    files = {}
    for p in paths:
        if not p.is_file():
            raise typer.BadParameter(f"context file not found: {p}")
        files[p.as_posix()] = p.read_text(encoding="utf-8")
    return files


@app.command()
def models():
    for k, v in MODEL_PRESETS.items():
        console.print(f"[bold]{k}[/bold] -> {v.id}")


@app.command()
def tools(mode: LandingMode = typer.Option(LandingMode.PULL_REQUEST, help="Landing mode")):
    """Print the tool catalog offered to the model."""
    console.print(f"[bold]tool catalog v{CATALOG_VERSION}[/bold] ({mode.value})")
    for t in tool_definitions(mode):
        required = t["input_schema"].get("required", [])
        params = ", ".join(
            name if name in required else f"{name}?" for name in t["input_schema"]["properties"]
        )
        console.print(f"[bold]{t['name']}[/bold]({params}) - {t['description']}")


@app.command()
def run(owner: str = typer.Option(..., help="Repository owner (user or organisation)"),
        repo: str = typer.Option(..., help="Repository name"),
        title: str = typer.Option(..., help="Task title"),
        description: str = typer.Option("", help="Task description"),
        instructions: str = typer.Option(None, help="Extra instructions for the agent"),
        mode: LandingMode = typer.Option(LandingMode.PULL_REQUEST, help="Land as a pull request or push directly"),
        context: List[Path] = typer.Option([], "--context", help="Local file to include as context (repeatable)"),
        model: str = typer.Option(None, help="Model preset or id (overrides REPO_AGENT_MODEL)"),
        max_iters: int = typer.Option(None, help="Max model calls (overrides REPO_AGENT_MAX_ITERATIONS)"),
        token: str = typer.Option(None, help="GitHub token (overrides GITHUB_TOKEN)"),
        sse: bool = typer.Option(False, help="Print steps as server-sent event frames"),
        debug: bool = typer.Option(False, help="Enable debug logging")):
    _setup_logging(debug)
    try:
        settings = Settings.from_env()
    except AgentError as e:
        raise typer.BadParameter(str(e))
    if model:
        settings.model = model
    if max_iters:
        settings.max_iterations = max_iters
    token = token or settings.github_token
    if not token:
        raise typer.BadParameter("a GitHub token is required (--token or GITHUB_TOKEN)")

    coords = RepositoryCoordinates(owner=owner, repo=repo, token=token)
    request = TaskRequest(
        key=coords.full_name,
        title=title,
        description=description,
        instructions=instructions,
        mode=mode,
        context_files=_read_context_files(context),
    )
    try:
        outcome = run_task(
            request,
            client=settings.make_client(),
            lookup=StaticRepositoryLookup(default=coords),
            on_step=_print_sse if sse else render_step,
            settings=settings,
        )
    except AgentError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=2)
    if outcome.landing is None and outcome.files:
        raise typer.Exit(code=1)


def main():
    app()


if __name__ == "__main__":
    main()
