"""
adapters.cli.main - CLI adapter for the recall agent.

Uses the same ServiceFactory and AgentSession as the tests, so all
behaviour (memory retrieval, tools, the agent loop) is identical.

Commands
--------
  chat     Interactive chat session (Ctrl+C cancels the current answer)
  ask      One-shot question
  search   Query the semantic memory directly
  tools    List the tools available to the agent

Usage
-----
  python run_cli.py chat --memory-file memories.json
  python run_cli.py ask "When am I free for a 30 minute call?"
  python run_cli.py search "favourite topics" --memory-file memories.json
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

# ── Ensure src/ is on the path when run as a script ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from application.session import AgentSession
from domain.exceptions import DomainError
from domain.models import AgentOutcome, OutcomeStatus
from factory import ServiceFactory
from infrastructure.config import Settings

__version__ = "1.0.0"

console = Console()
app = typer.Typer(
    help="Recall Agent CLI",
    add_completion=False,
    no_args_is_help=True,
)

MEMORY_FILE_OPTION = typer.Option(
    None, "--memory-file", "-m",
    help="JSON list of {id, text, metadata} records to load into memory.",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", help="Log at INFO level.")

_STATUS_STYLES = {
    OutcomeStatus.ANSWERED: ("Assistant", "green"),
    OutcomeStatus.MAX_ROUNDS_EXCEEDED: ("Partial answer", "yellow"),
    OutcomeStatus.CANCELLED: ("Cancelled", "yellow"),
    OutcomeStatus.FAILED: ("Failed", "red"),
}


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def load_memory_records(path: Path) -> list[dict[str, Any]]:
    """Read memory seed records from a JSON file.

    Raises:
        typer.BadParameter: the file is missing, not JSON, or not a list of
            objects with 'id' and 'text'.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise typer.BadParameter(f"{path} must contain a JSON list of records")
    for i, record in enumerate(data):
        if not isinstance(record, dict) or not record.get("id") or not record.get("text"):
            raise typer.BadParameter(f"Record #{i} in {path} needs 'id' and 'text'")
    return data


def _configure_logging(settings: Settings, verbose: bool) -> None:
    level = logging.INFO if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _make_factory(memory_file: Optional[Path], verbose: bool) -> ServiceFactory:
    """Create a ServiceFactory and seed its memory from memory_file."""
    config = Settings.from_env()
    _configure_logging(config, verbose)
    factory = ServiceFactory(config)

    if memory_file is not None:
        records = load_memory_records(memory_file)
        with console.status(
            f"[bold cyan]Embedding {len(records)} memories…", spinner="dots",
        ):
            try:
                await factory.seed_memory(records)
            except DomainError as exc:
                console.print(f"[bold red]Could not load memories:[/bold red] {exc}")
                raise typer.Exit(code=1)
        console.print(f"  [green]{len(records)} memories loaded.[/green]")
    return factory


async def _send(session: AgentSession, text: str) -> AgentOutcome:
    """Send one message; Ctrl+C sets the cancel event instead of killing the CLI."""
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
    try:
        with console.status("[bold cyan]Thinking…", spinner="dots"):
            return await session.send(text, cancel_event)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)


def _print_outcome(outcome: AgentOutcome) -> None:
    title, style = _STATUS_STYLES[outcome.status]
    body = outcome.answer or "[dim](no answer)[/dim]"
    console.print()
    console.print(Panel(
        Markdown(outcome.answer) if outcome.answer else body,
        title=f"{title} · {outcome.rounds} round(s)",
        border_style=style,
    ))
    if outcome.note:
        console.print(f"[{style}]{outcome.note}[/{style}]")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"recall-agent v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: Agent
# ---------------------------------------------------------------------------

@app.command()
def ask(
    query: str = typer.Argument(..., help="Your question."),
    memory_file: Optional[Path] = MEMORY_FILE_OPTION,
    no_memory: bool = typer.Option(False, "--no-memory", help="Skip context retrieval."),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Ask a one-shot question."""
    async def _run() -> None:
        factory = await _make_factory(memory_file, verbose)
        session = factory.create_session(use_memory=not no_memory)
        try:
            outcome = await _send(session, query)
        except DomainError as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=1)
        _print_outcome(outcome)
        if not outcome.ok:
            raise typer.Exit(code=1)

    asyncio.run(_run())


@app.command()
def chat(
    memory_file: Optional[Path] = MEMORY_FILE_OPTION,
    no_memory: bool = typer.Option(False, "--no-memory", help="Skip context retrieval."),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Start an interactive chat session."""
    async def _run() -> None:
        factory = await _make_factory(memory_file, verbose)
        session = factory.create_session(use_memory=not no_memory)

        console.print(Panel(
            f"[bold]Recall Agent Chat[/bold]\n"
            f"Session [bold]{session.session_id[:8]}[/bold] · "
            f"{len(session.tools)} tool(s) available\n"
            "Type your message, or [bold]exit[/bold] / [bold]quit[/bold] to stop.\n"
            "Press Ctrl+C while the agent is thinking to cancel that answer.",
            border_style="cyan",
        ))

        while True:
            try:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if user_input.strip().lower() in ("exit", "quit", "q", "bye"):
                console.print("[dim]Goodbye![/dim]")
                break

            if not user_input.strip():
                continue

            _print_outcome(await _send(session, user_input))

    asyncio.run(_run())


# ---------------------------------------------------------------------------
# Commands: Inspection
# ---------------------------------------------------------------------------

@app.command()
def search(
    query: str = typer.Argument(..., help="Text to search memory for."),
    memory_file: Optional[Path] = MEMORY_FILE_OPTION,
    limit: int = typer.Option(3, "--limit", "-n", help="Maximum results."),
    min_relevance: float = typer.Option(0.0, "--min-relevance", help="Threshold in [0, 1]."),
    collection: Optional[str] = typer.Option(None, "--collection", "-c"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Search the semantic memory without involving the model."""
    async def _run() -> None:
        factory = await _make_factory(memory_file, verbose)
        target = collection or factory.config.memory_collection
        try:
            hits = await factory.memory_index.query(target, query, limit, min_relevance)
        except DomainError as exc:
            console.print(f"[bold red]{exc}[/bold red]")
            raise typer.Exit(code=1)

        if not hits:
            console.print(Panel(
                "[bold yellow]No memories matched.[/bold yellow]",
                border_style="yellow",
            ))
            return

        t = Table(box=box.SIMPLE, padding=(0, 2))
        t.add_column("Relevance", style="bold", justify="right")
        t.add_column("Id", style="dim")
        t.add_column("Text")
        for hit in hits:
            t.add_row(f"{hit.relevance:.2f}", hit.entry.id, hit.entry.text)
        console.print(Panel(t, title=f"Memory · {target}", border_style="blue"))

    asyncio.run(_run())


@app.command()
def tools() -> None:
    """List the tools the agent can call."""
    factory = ServiceFactory(Settings.from_env())
    registry = factory.create_tool_registry()

    t = Table(box=box.SIMPLE, padding=(0, 2))
    t.add_column("Tool", style="bold")
    t.add_column("Parameters")
    t.add_column("Description")
    for descriptor in registry.describe_all():
        params = ", ".join(
            f"{name}: {p.type}" + ("" if p.required else "?")
            for name, p in descriptor.parameters.items()
        ) or "[dim]none[/dim]"
        t.add_row(descriptor.name, params, descriptor.description)
    console.print(Panel(t, title="Available Tools", border_style="cyan"))


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Recall Agent CLI"""


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
