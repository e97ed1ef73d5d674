"""Rich-based display functions for Inbox Declutter."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.prompt import Prompt
from rich.table import Table

from .models import EmailCluster, FilterSuggestion, InboxStats, Report

console = Console()

_ACTION_COLORS = {
    "filter": "red",
    "archive": "yellow",
    "label": "cyan",
    "keep": "green",
}


def create_progress(description: str) -> Progress:
    """Create a configured Rich Progress spinner with a status line."""
    return Progress(
        SpinnerColumn(),
        TextColumn(f"[bold blue]{description}"),
        TextColumn("{task.description}"),
        TimeElapsedColumn(),
        console=console,
    )


def display_stats(stats: InboxStats) -> None:
    qualifier = "" if stats.is_exact else "~"
    lines = [
        f"[bold]Conversations:[/bold] {qualifier}{stats.total}",
        f"[bold]Unread:[/bold] {qualifier}{stats.unread}",
    ]
    if stats.categories:
        mix = ", ".join(f"{name} {count}" for name, count in stats.categories.items())
        lines.append(f"[bold]Categories:[/bold] {mix}")
    console.print(Panel("\n".join(lines), title="Inbox"))


def display_clusters(clusters: list[EmailCluster], limit: int = 25) -> None:
    """Display the largest clusters with their suggested action."""
    table = Table(title="Sender Clusters")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Sender")
    table.add_column("Senders", justify="right")
    table.add_column("Sampled", justify="right")
    table.add_column("In inbox", justify="right")
    table.add_column("Mix (P/U/Pr/S)", justify="right", style="dim")
    table.add_column("Action")

    for idx, cluster in enumerate(clusters[:limit], start=1):
        color = _ACTION_COLORS.get(cluster.suggested_action, "white")
        m = cluster.metrics
        action = cluster.suggested_action
        if cluster.suggested_label:
            action += f" → {cluster.suggested_label}"
        table.add_row(
            str(idx),
            cluster.display_sender,
            str(len(cluster.all_senders)),
            str(cluster.count),
            cluster.count_display or "-",
            f"{m.primary}/{m.updates}/{m.promotions}/{m.social}",
            f"[{color}]{action}[/{color}]",
        )

    console.print(table)
    if len(clusters) > limit:
        console.print(f"[dim]... and {len(clusters) - limit} more clusters[/dim]")


def display_suggestions(suggestions: list[FilterSuggestion]) -> None:
    """Display filter suggestions, flagging sensitive ones."""
    table = Table(title="Filter Suggestions")
    table.add_column("#", justify="right", style="dim")
    table.add_column("From")
    table.add_column("Messages", justify="right")
    table.add_column("Action")
    table.add_column("Notes")

    for idx, suggestion in enumerate(suggestions, start=1):
        if suggestion.action.skip_inbox:
            action = "[red]skip inbox[/red]"
        else:
            action = "[cyan]label only[/cyan]"
        if suggestion.action.add_label:
            action += f" + {suggestion.action.add_label}"
        notes = f"[yellow]{suggestion.warning}[/yellow]" if suggestion.warning else ""
        table.add_row(
            str(idx),
            suggestion.criteria.from_,
            suggestion.count_display or str(suggestion.match_count),
            action,
            notes,
        )

    console.print(table)


def display_report(report: Report) -> None:
    display_stats(report.stats)
    display_clusters(report.clusters)
    if report.filter_suggestions:
        display_suggestions(report.filter_suggestions)
    else:
        console.print("[dim]No filter suggestions.[/dim]")
    console.print(
        Panel(
            f"Clusters: {len(report.clusters)}  |  "
            f"Suggestions: {len(report.filter_suggestions)}  |  "
            f"Existing filters: {len(report.existing_filters)}",
            title="Summary",
        )
    )


def display_filters(filters: list[dict]) -> None:
    table = Table(title="Existing Filters")
    table.add_column("Id", style="dim")
    table.add_column("Criteria")
    table.add_column("Action")
    for f in filters:
        criteria = ", ".join(f"{k}={v}" for k, v in (f.get("criteria") or {}).items())
        action = ", ".join(f"{k}={v}" for k, v in (f.get("action") or {}).items())
        table.add_row(f.get("id", ""), criteria, action)
    console.print(table)


def confirm_actions(selected: list[FilterSuggestion]) -> bool:
    """Prompt the user to confirm creating filters for the selected suggestions."""
    lines = ["[bold]The following filters will be created and applied:[/bold]", ""]
    for suggestion in selected:
        lines.append(f"  - {suggestion.description}")
        if suggestion.warning:
            lines.append(f"    [yellow]{suggestion.warning}[/yellow]")
    console.print(Panel("\n".join(lines), title="Confirm"))

    answer = Prompt.ask('[bold red]Type "APPLY" to confirm[/bold red]', console=console)
    return answer == "APPLY"


def display_action_summary(filters_created: int, modified: int) -> None:
    console.print(
        Panel(
            f"[bold green]Created {filters_created} filters; "
            f"{modified} existing messages updated.[/bold green]",
            title="Done",
        )
    )
