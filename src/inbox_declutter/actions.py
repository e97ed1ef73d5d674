"""Mutating actions - archive, label and filter - plus the interactive workflow."""

from __future__ import annotations

import logging

from .constants import INBOX_QUERY
from .display import (
    confirm_actions,
    console,
    display_action_summary,
    display_suggestions,
)
from .errors import ActionError, AuthorizationError, MailboxError
from .models import FilterSuggestion, Report
from .suggestions import filter_from, from_query

logger = logging.getLogger(__name__)


def _mutate(
    client,
    message_ids: list[str],
    what: str,
    add: list[str] | None = None,
    remove: list[str] | None = None,
) -> int:
    if not message_ids:
        return 0
    try:
        applied, errors = client.batch_mutate_labels(message_ids, add=add, remove=remove)
    except AuthorizationError:
        raise
    except MailboxError as exc:
        raise ActionError(f"Failed to {what}: {exc}") from exc
    if errors:
        raise ActionError(
            f"Failed to {what} {len(message_ids) - applied} of {len(message_ids)} messages: {errors[0]}",
            applied=applied,
        )
    logger.info("%s: %d messages", what, applied)
    return applied


def _call(what: str, fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except AuthorizationError:
        raise
    except MailboxError as exc:
        raise ActionError(f"Failed to {what}: {exc}") from exc


def matching_message_ids(client, query: str) -> list[str]:
    """All message ids matching a query, following continuation tokens."""
    ids: list[str] = []
    page_token: str | None = None
    while True:
        page, page_token = _call("search messages", client.list_message_ids, query, page_token=page_token)
        ids.extend(page)
        if not page_token:
            return ids


def archive_messages(client, message_ids: list[str]) -> int:
    """Remove messages from the inbox. Returns the number archived."""
    return _mutate(client, message_ids, "archive messages", remove=["INBOX"])


def apply_label(client, message_ids: list[str], label_id: str) -> int:
    return _mutate(client, message_ids, "apply label", add=[label_id])


def ensure_label(client, name: str) -> str:
    """Return the id of the user label called ``name``, creating it if needed."""
    labels = _call("list labels", client.list_labels)
    for label in labels:
        if label.get("type") == "user" and label.get("name", "").lower() == name.lower():
            return label["id"]
    created = _call(f"create label {name!r}", client.create_label, name)
    return created["id"]


def create_filter(
    client,
    sender_pattern: str,
    skip_inbox: bool = True,
    label_name: str | None = None,
    apply_to_existing: bool = False,
) -> int:
    """Create a filter for a sender pattern.

    With ``apply_to_existing`` the filter's action is also applied to the
    matching messages already in the inbox. Returns the number of messages
    modified.
    """
    add = [ensure_label(client, label_name)] if label_name else []
    remove = ["INBOX"] if skip_inbox else []

    action: dict = {}
    if add:
        action["addLabelIds"] = add
    if remove:
        action["removeLabelIds"] = remove
    if not action:
        raise ActionError("Filter has no action")

    filter_id = _call(
        "create filter",
        client.create_filter,
        {"from": filter_from(sender_pattern)},
        action,
    )
    logger.info("Created filter %s for %s", filter_id, sender_pattern)

    if not apply_to_existing:
        return 0
    ids = matching_message_ids(client, f"{from_query(sender_pattern)} {INBOX_QUERY}")
    return _mutate(client, ids, "apply filter", add=add or None, remove=remove or None)


def apply_suggestion(client, suggestion: FilterSuggestion, apply_to_existing: bool = True) -> int:
    return create_filter(
        client,
        suggestion.criteria.from_,
        skip_inbox=suggestion.action.skip_inbox,
        label_name=suggestion.action.add_label,
        apply_to_existing=apply_to_existing,
    )


def archive_by_sender(client, sender: str) -> int:
    """Archive every inbox message from a sender or sender pattern."""
    ids = matching_message_ids(client, f"{from_query(sender)} {INBOX_QUERY}")
    return archive_messages(client, ids)


def create_label_and_filter(
    client,
    label_name: str,
    sender_pattern: str,
    skip_inbox: bool = True,
    apply_to_existing: bool = True,
) -> int:
    """Create (or reuse) a label and a filter that files the sender under it."""
    return create_filter(
        client,
        sender_pattern,
        skip_inbox=skip_inbox,
        label_name=label_name,
        apply_to_existing=apply_to_existing,
    )


def interactive_clean(client, report: Report, execute: bool = False) -> dict:
    """Let the user pick suggestions and turn them into filters.

    Returns a summary dict with keys: selected, filters_created, modified.
    """
    suggestions = report.filter_suggestions
    empty = {"selected": 0, "filters_created": 0, "modified": 0}

    if not suggestions:
        console.print("[yellow]No filter suggestions for this mailbox.[/yellow]")
        return empty

    display_suggestions(suggestions)

    console.print()
    console.print(
        "[bold]Select suggestions to apply (comma-separated numbers, 'all', or 'q' to quit):[/bold]"
    )
    selection = console.input("> ").strip()

    if selection.lower() == "q":
        console.print("[dim]Cancelled.[/dim]")
        return empty

    if selection.lower() == "all":
        selected = list(suggestions)
    else:
        try:
            indices = [int(x.strip()) - 1 for x in selection.split(",")]
            selected = [suggestions[i] for i in indices if 0 <= i < len(suggestions)]
        except ValueError:
            console.print("[red]Invalid selection.[/red]")
            return empty

    if not selected:
        console.print("[yellow]No suggestions selected.[/yellow]")
        return empty

    if not execute:
        console.print(
            "\n[yellow][DRY RUN] No filters were created. "
            "Use --execute to apply the selected suggestions.[/yellow]"
        )
        return {"selected": len(selected), "filters_created": 0, "modified": 0}

    if not confirm_actions(selected):
        console.print("[dim]Cancelled.[/dim]")
        return {"selected": len(selected), "filters_created": 0, "modified": 0}

    created = 0
    modified = 0
    for suggestion in selected:
        try:
            modified += apply_suggestion(client, suggestion)
        except ActionError as exc:
            console.print(f"[red]{suggestion.criteria.from_}: {exc}[/red]")
            modified += exc.applied
            continue
        created += 1

    display_action_summary(created, modified)
    return {"selected": len(selected), "filters_created": created, "modified": modified}
