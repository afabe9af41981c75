# src/chronology/cli.py
"""
Chronology Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`. It is
a thin consumer of :class:`~chronology.core.store.manager.TimelineManager`:
every command loads a timeline file, runs one read view (or a conflict scan),
and renders the result.

Commands
--------
- **check**:  Rescan for conflicts, print findings, optionally persist them.
- **stats**:  Summary counts, date span, conflict and character coverage.
- **list**:   Sorted and filtered event table with formatted dates.
- **search**: Weighted full-text search over titles, descriptions, notes.

Usage
-----
    $ chronology check novel/timeline.json --write
    $ chronology list novel/timeline.json --character c1 --sort chronological
    $ chronology search "wedding" --file novel/timeline.json

When FILE is omitted, `CHRONOLOGY_TIMELINE_PATH` (default `timeline.json`) is used.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from chronology.core.contracts.conflict import TimelineConflict
from chronology.core.contracts.event import TimelineEvent
from chronology.core.contracts.query import EventFilter
from chronology.core.settings import load_settings
from chronology.core.store.manager import TimelineManager
from chronology.core.store.storage import TimelineFile, TimelineFileError
from chronology.core.temporal import format_date

# Ensure env vars (like CHRONOLOGY_TIMELINE_PATH) are loaded before any logic runs
load_dotenv()

app = typer.Typer(
    help="Chronology: track story events and catch timeline conflicts.",
    rich_markup_mode="markdown",
)
console = Console()

_SEVERITY_STYLE = {"error": "bold red", "warning": "yellow", "info": "cyan"}


class SortChoice(str, Enum):
    chronological = "chronological"
    importance = "importance"
    type = "type"
    recent = "recent"


FileArg = Annotated[
    Path | None,
    typer.Argument(
        dir_okay=False,
        help="Timeline JSON file (defaults to CHRONOLOGY_TIMELINE_PATH).",
    ),
]


# --------------------------------------------------------------------------- #
# Helpers: Loading & Rendering
# --------------------------------------------------------------------------- #


def _resolve_path(file: Path | None) -> Path:
    return file if file is not None else load_settings().timeline_path


def _load(path: Path) -> TimelineManager:
    """
    Helper: Build a manager from a timeline file, exiting with code 1 on failure.
    """
    if not path.exists():
        console.print(f"[bold red]❌ No timeline file at {escape(str(path))}[/bold red]")
        raise typer.Exit(code=1)

    manager = TimelineManager()
    try:
        TimelineFile(path).load_into(manager)
    except TimelineFileError as e:
        console.print(f"\n[bold red]❌ Load Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    return manager


def _date_span(event: TimelineEvent) -> str:
    text = format_date(event.start_date)
    if event.end_date is not None:
        text += f" – {format_date(event.end_date)}"
    return text


def _event_table(events: list[TimelineEvent], title: str) -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Date", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Type")
    table.add_column("Importance")
    table.add_column("Characters", style="dim")
    table.add_column("⚠", justify="right")
    for e in events:
        table.add_row(
            escape(_date_span(e)),
            escape(e.title),
            e.type,
            e.importance,
            escape(", ".join(e.character_ids)),
            str(len(e.conflicts)) if e.conflicts else "",
        )
    return table


def _unique_findings(manager: TimelineManager) -> list[TimelineConflict]:
    """Helper: Collapse findings attached to several events into one row each."""
    seen: dict[str, TimelineConflict] = {}
    for event in manager.get_all_events():
        for conflict in event.conflicts:
            seen.setdefault(conflict.id, conflict)
    return list(seen.values())


def _status(conflict: TimelineConflict) -> str:
    if conflict.resolved:
        return "[green]resolved[/green]"
    if conflict.ignored_by_user:
        return "[dim]ignored[/dim]"
    return "open"


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def check(
    file: FileArg = None,
    write: Annotated[
        bool,
        typer.Option("--write", "-w", help="Save the findings back into the file."),
    ] = False,
    show_resolved: Annotated[
        bool,
        typer.Option("--show-resolved", help="Also list resolved and ignored findings."),
    ] = False,
) -> None:
    """
    Rescan the timeline for conflicts and report them.

    Exits with code 1 when open (unresolved, not ignored) errors remain.
    """
    path = _resolve_path(file)
    manager = _load(path)
    manager.detect_all_conflicts()

    findings = _unique_findings(manager)
    shown = [c for c in findings if show_resolved or c.is_open]

    if shown:
        table = Table(title=f"Conflicts in {path.name}")
        table.add_column("Severity", no_wrap=True)
        table.add_column("Type", no_wrap=True)
        table.add_column("Message")
        table.add_column("Status", no_wrap=True)
        for c in shown:
            style = _SEVERITY_STYLE.get(c.severity, "")
            table.add_row(f"[{style}]{c.severity}[/{style}]", c.type, escape(c.message), _status(c))
        console.print(table)
    else:
        console.print("[bold green]✅ No open conflicts.[/bold green]")

    if write:
        saved = TimelineFile(path).write(manager)
        console.print(f"[dim]Findings saved to: {escape(str(saved))}[/dim]")

    open_errors = [c for c in findings if c.is_open and c.severity == "error"]
    if open_errors:
        console.print(f"[bold red]{len(open_errors)} open error(s).[/bold red]")
        raise typer.Exit(code=1)


@app.command()  # type: ignore[misc]
def stats(file: FileArg = None) -> None:
    """Show summary statistics for the timeline."""
    path = _resolve_path(file)
    manager = _load(path)
    s = manager.get_statistics()

    lines = [f"Events: [bold]{s.total_events}[/bold]"]
    if s.earliest_event is not None and s.latest_event is not None:
        lines.append(
            f"Range: {escape(format_date(s.earliest_event.start_date))} → "
            f"{escape(format_date(s.latest_event.start_date))}"
        )
    if s.total_span_days is not None:
        lines.append(f"Span: {s.total_span_days:,.0f} days")
    lines.append("")
    lines.append(
        "By type: "
        + ", ".join(f"{k} {v}" for k, v in s.events_by_type.items() if v)
    )
    lines.append(
        "By importance: "
        + ", ".join(f"{k} {v}" for k, v in s.events_by_importance.items() if v)
    )
    lines.append("")
    lines.append(
        f"Conflicts: {s.total_conflicts} "
        f"([red]{s.unresolved_conflicts} unresolved[/red], {s.ignored_conflicts} ignored)"
    )
    for kind, count in s.conflicts_by_type.items():
        if count:
            lines.append(f"  • {kind}: {count}")
    lines.append(
        f"Characters tracked: {s.characters_tracked} "
        f"(in {s.events_with_characters} event(s))"
    )

    console.print(Panel("\n".join(lines), title=f"Timeline · {path.name}", border_style="cyan"))


@app.command(name="list")  # type: ignore[misc]
def list_events(
    file: FileArg = None,
    types: Annotated[
        list[str] | None,
        typer.Option("--type", "-t", help="Keep only this event type (repeatable)."),
    ] = None,
    characters: Annotated[
        list[str] | None,
        typer.Option("--character", "-c", help="Keep events with this character id."),
    ] = None,
    tags: Annotated[
        list[str] | None,
        typer.Option("--tag", help="Keep events with this tag (repeatable)."),
    ] = None,
    sort: Annotated[
        SortChoice,
        typer.Option("--sort", "-s", help="Sort key."),
    ] = SortChoice.chronological,
    desc: Annotated[bool, typer.Option("--desc", help="Reverse the sort order.")] = False,
) -> None:
    """List events, filtered and sorted."""
    path = _resolve_path(file)
    manager = _load(path)

    try:
        criteria = EventFilter(types=types or None, character_ids=characters, tags=tags)
    except ValidationError as e:
        raise typer.BadParameter(f"unknown event type in {types}") from e

    events = manager.sort_events(manager.filter_events(criteria), by=sort.value, descending=desc)
    if not events:
        console.print("[dim]No matching events.[/dim]")
        return
    console.print(_event_table(events, f"{len(events)} event(s)"))


@app.command()  # type: ignore[misc]
def search(
    query: Annotated[str, typer.Argument(help="Text to look for.")],
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", dir_okay=False, help="Timeline JSON file."),
    ] = None,
) -> None:
    """Search titles, descriptions, locations, tags and notes."""
    manager = _load(_resolve_path(file))
    results = manager.search_events(query)
    if not results:
        console.print(f"[dim]No events match {escape(query)!r}.[/dim]")
        return

    table = Table(title=f"Results for {escape(query)!r}")
    table.add_column("Score", justify="right", style="magenta")
    table.add_column("Title", style="bold")
    table.add_column("Date", style="cyan")
    table.add_column("Matched")
    table.add_column("Excerpt", style="dim")
    for r in results:
        table.add_row(
            str(r.relevance),
            escape(r.event.title),
            escape(_date_span(r.event)),
            ", ".join(r.matched_fields),
            escape(r.excerpt or ""),
        )
    console.print(table)


if __name__ == "__main__":
    app()
