#!/usr/bin/env python3
"""Grant Context Engine CLI - drive a proposal conversation from the terminal.

Usage:
    # Feed messages into the active session
    python main.py -m "Open Society Foundations" -m "Digital Democracy Shield"

    # Chat interactively
    python main.py --interactive

    # Drafts
    python main.py --save-draft "First version"
    python main.py --list-drafts
    python main.py --export-draft draft_1a2b3c --output draft.json
    python main.py --import-draft draft.json
"""

import sys
import logging
from pathlib import Path
from typing import Optional, Tuple

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.panel import Panel
    from rich.table import Table
except ImportError:
    print("Missing dependencies. Run: pip install click rich")
    sys.exit(1)

from contracts import MessageOutcome
from orchestrator import GrantEngine
from storage import get_storage
from config import settings


console = Console()


def configure_logging(verbose: bool) -> None:
    """Route log records through rich at the chosen level."""
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )


def print_outcome(outcome: MessageOutcome) -> None:
    if outcome.accepted_fields:
        for field in outcome.accepted_fields:
            value = getattr(outcome.context, field, None)
            console.print(f"  [green]✓ {field}:[/green] {value}")
    elif outcome.rejected_fields:
        for field, reason in outcome.rejected_fields.items():
            console.print(f"  [yellow]✗ {field}:[/yellow] {reason}")
    else:
        console.print("  [dim]No new information found[/dim]")

    console.print(f"  [dim]Step:[/dim] {outcome.step.value}")
    if outcome.autosaved:
        console.print("  [dim]Autosaved[/dim]")


def print_status(engine: GrantEngine) -> None:
    status = engine.status()
    console.print(Panel.fit(
        f"[bold]{status['summary']}[/bold]\n"
        f"[dim]Session:[/dim] {status['session_id']}  "
        f"[dim]expires[/dim] {status['expires_at']}",
        title="Grant Context",
        border_style="blue",
    ))
    console.print(f"[green]Step:[/green] {status['step']}")
    console.print(f"[green]Completion:[/green] {status['completion']}%")
    if status["missing"]:
        console.print(f"[yellow]Missing:[/yellow] {', '.join(status['missing'])}")
    if status["current_draft"]:
        console.print(f"[green]Current draft:[/green] {status['current_draft']}")


def print_drafts(engine: GrantEngine) -> None:
    drafts = engine.draft_manager.list_drafts()
    if not drafts:
        console.print("[dim]No drafts saved[/dim]")
        return

    table = Table(title="Drafts")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Version", justify="right")
    table.add_column("Completion", justify="right")
    table.add_column("Updated")
    current = engine.draft_manager.current_draft_id
    for draft in drafts:
        completion = draft.metadata.completion_percentage if draft.metadata else None
        marker = " *" if draft.id == current else ""
        table.add_row(
            f"{draft.id}{marker}",
            draft.name,
            str(draft.version),
            f"{completion:.0f}%" if completion is not None else "-",
            draft.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


def run_interactive(engine: GrantEngine) -> None:
    console.print("[dim]Type your answers. Empty line or 'exit' to quit.[/dim]")
    while True:
        try:
            message = console.input("[bold blue]> [/bold blue]")
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        if not message.strip() or message.strip().lower() in ("exit", "quit"):
            break
        print_outcome(engine.handle_message(message))


@click.command()
@click.option(
    "--message", "-m", "messages",
    multiple=True,
    help="User message to process (repeatable)"
)
@click.option(
    "--interactive", "-i",
    is_flag=True,
    help="Read messages from the terminal until an empty line"
)
@click.option(
    "--show",
    is_flag=True,
    help="Show the current context and workflow step"
)
@click.option(
    "--reset",
    is_flag=True,
    help="Discard the session and its context before anything else"
)
@click.option(
    "--save-draft",
    default=None,
    metavar="NAME",
    help="Save the current state as a named draft"
)
@click.option(
    "--list-drafts",
    is_flag=True,
    help="List saved drafts"
)
@click.option(
    "--load-draft",
    default=None,
    metavar="ID",
    help="Restore a draft into the session"
)
@click.option(
    "--delete-draft",
    default=None,
    metavar="ID",
    help="Delete a draft"
)
@click.option(
    "--export-draft",
    default=None,
    metavar="ID",
    help="Export a draft as JSON"
)
@click.option(
    "--output", "-o",
    default=None,
    help="File for --export-draft (default: stdout)"
)
@click.option(
    "--import-draft",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Import a draft from an export file"
)
@click.option(
    "--stats",
    is_flag=True,
    help="Show draft statistics"
)
@click.option(
    "--storage-dir",
    default=None,
    help=f"Storage directory (default: {settings.storage_dir})"
)
@click.option(
    "--backend",
    type=click.Choice(["file", "memory"]),
    default=None,
    help=f"Storage backend (default: {settings.storage_backend})"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Verbose output"
)
def main(
    messages: Tuple[str, ...],
    interactive: bool,
    show: bool,
    reset: bool,
    save_draft: Optional[str],
    list_drafts: bool,
    load_draft: Optional[str],
    delete_draft: Optional[str],
    export_draft: Optional[str],
    output: Optional[str],
    import_draft: Optional[str],
    stats: bool,
    storage_dir: Optional[str],
    backend: Optional[str],
    verbose: bool,
):
    """Grant Context Engine: conversational proposal assistant.

    Collects organization, project title and funding call from free text,
    tracks the proposal workflow and manages drafts across sessions.
    """
    configure_logging(verbose)
    engine = GrantEngine(storage=get_storage(backend, storage_dir))

    if engine.migration.migrated:
        console.print(f"[dim]Migrated saved context from {engine.migration.source}[/dim]")
        for field in engine.migration.dropped_fields:
            console.print(f"  [yellow]Dropped invalid {field}[/yellow]")

    if reset:
        engine.reset()
        console.print("[green]Session reset[/green]")

    if import_draft:
        draft = engine.draft_manager.import_draft(Path(import_draft).read_text(encoding="utf-8"))
        if draft is None:
            console.print(f"[red]Error: {import_draft} is not a valid draft export[/red]")
            sys.exit(1)
        console.print(f"[green]Imported:[/green] {draft.name} ({draft.id})")

    if load_draft:
        draft = engine.restore_draft(load_draft)
        if draft is None:
            console.print(f"[red]Error: draft {load_draft} not found[/red]")
            sys.exit(1)
        console.print(f"[green]Restored:[/green] {draft.name} v{draft.version}")

    for message in messages:
        console.print(f"\n[bold]> {message}[/bold]")
        print_outcome(engine.handle_message(message))

    if interactive:
        run_interactive(engine)

    if save_draft:
        draft = engine.save_draft(save_draft)
        console.print(f"[green]Saved draft:[/green] {draft.name} ({draft.id}) v{draft.version}")

    if delete_draft:
        if not engine.draft_manager.delete_draft(delete_draft):
            console.print(f"[red]Error: draft {delete_draft} not found[/red]")
            sys.exit(1)
        console.print(f"[green]Deleted draft:[/green] {delete_draft}")

    if export_draft:
        document = engine.draft_manager.export_draft(export_draft)
        if document is None:
            console.print(f"[red]Error: draft {export_draft} not found[/red]")
            sys.exit(1)
        if output:
            Path(output).write_text(document, encoding="utf-8")
            console.print(f"[bold]Export saved to:[/bold] {output}")
        else:
            click.echo(document)

    if list_drafts:
        print_drafts(engine)

    if stats:
        draft_stats = engine.draft_manager.get_draft_stats()
        console.print("\n[bold]Draft Statistics:[/bold]")
        console.print(f"  Drafts:             {draft_stats.total_drafts}")
        console.print(f"  Average completion: {draft_stats.average_completion:.1f}%")
        console.print(f"  Total words:        {draft_stats.total_words:,}")
        last = draft_stats.last_saved.strftime("%Y-%m-%d %H:%M") if draft_stats.last_saved else "-"
        console.print(f"  Last saved:         {last}")

    nothing_requested = not any([
        messages, interactive, reset, save_draft, list_drafts, load_draft,
        delete_draft, export_draft, import_draft, stats,
    ])
    if show or nothing_requested:
        print_status(engine)


if __name__ == "__main__":
    main()
