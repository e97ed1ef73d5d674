"""CLI entry point for Inbox Declutter."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .actions import (
    apply_label,
    archive_by_sender,
    create_label_and_filter,
    ensure_label,
    interactive_clean,
    matching_message_ids,
)
from .analysis import analyze_mailbox
from .auth import check_auth, get_gmail_service, service_from_token
from .constants import INBOX_QUERY, TARGET_COUNT, WAVE_DELAY
from .display import console, create_progress, display_filters, display_report
from .errors import ActionError, MailboxError
from .gmail_client import MailboxClient
from .models import Report, ScanConfig
from .stream import ProgressStream, run_streamed
from .suggestions import from_query
from .trust_store import TrustStore


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # The discovery client is chatty at INFO.
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)


def _get_client(token: str | None) -> MailboxClient:
    if token:
        return MailboxClient(service_from_token(token))
    try:
        return MailboxClient(get_gmail_service())
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e


def _run_analysis(client: MailboxClient, config: ScanConfig) -> Report:
    with TrustStore() as store:
        trusted = store.get_all()

    with create_progress("Analyzing") as progress:
        task = progress.add_task("starting", total=None)

        def on_progress(message: str) -> None:
            progress.update(task, description=message)

        try:
            return analyze_mailbox(client, trusted, config, progress=on_progress)
        except MailboxError as e:
            raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version=__version__, prog_name="inbox-declutter")
@click.option(
    "--token",
    envvar="INBOX_DECLUTTER_TOKEN",
    default=None,
    help="Use this OAuth bearer token instead of the stored credentials.",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, token: str | None, verbose: bool) -> None:
    """Inbox Declutter - group inbox senders and suggest filters."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["token"] = token


@cli.command()
@click.option("-t", "--target", default=TARGET_COUNT, type=int, help="Messages to sample.")
@click.option("--delay", default=WAVE_DELAY, type=float, help="Seconds between fetch batches.")
@click.option("--no-reconcile", is_flag=True, help="Keep sampled counts, skip mailbox-wide counts.")
@click.option("--json", "as_json", is_flag=True, help="Emit line-delimited JSON records.")
@click.pass_context
def scan(ctx: click.Context, target: int, delay: float, no_reconcile: bool, as_json: bool) -> None:
    """Scan the inbox, cluster senders and suggest filters."""
    client = _get_client(ctx.obj["token"])
    config = ScanConfig(target_count=target, wave_delay=delay, reconcile=not no_reconcile)

    if as_json:
        with TrustStore() as store:
            trusted = store.get_all()
        stream = ProgressStream()
        report = run_streamed(
            stream,
            lambda progress: analyze_mailbox(client, trusted, config, progress=progress),
        )
        if report is None:
            ctx.exit(1)
        return

    report = _run_analysis(client, config)
    display_report(report)


@cli.command()
@click.option("--execute", is_flag=True, help="Actually create filters (default is dry-run).")
@click.option("-t", "--target", default=TARGET_COUNT, type=int, help="Messages to sample.")
@click.pass_context
def clean(ctx: click.Context, execute: bool, target: int) -> None:
    """Scan, then interactively turn suggestions into filters."""
    client = _get_client(ctx.obj["token"])
    report = _run_analysis(client, ScanConfig(target_count=target))
    try:
        interactive_clean(client, report, execute=execute)
    except MailboxError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.option("-s", "--sender", required=True, help="Address or pattern such as '*@*.example.com'.")
@click.option("--execute", is_flag=True, help="Actually archive (default is dry-run).")
@click.pass_context
def archive(ctx: click.Context, sender: str, execute: bool) -> None:
    """Archive every inbox message from a sender."""
    client = _get_client(ctx.obj["token"])
    try:
        ids = matching_message_ids(client, f"{from_query(sender)} {INBOX_QUERY}")
    except ActionError as e:
        raise click.ClickException(str(e)) from e

    console.print(f"[bold]{len(ids)}[/bold] inbox messages from {sender}")
    if not ids:
        return
    if not execute:
        console.print("[yellow][DRY RUN] Nothing archived. Use --execute to archive.[/yellow]")
        return
    if not click.confirm(f"Archive {len(ids)} messages?"):
        console.print("[dim]Cancelled.[/dim]")
        return

    try:
        archived = archive_by_sender(client, sender)
    except (ActionError, MailboxError) as e:
        raise click.ClickException(str(e)) from e
    console.print(f"[green]Archived {archived} messages.[/green]")


@cli.command()
@click.option("-s", "--sender", required=True, help="Address or pattern such as '*@*.example.com'.")
@click.option("-n", "--name", "label_name", required=True, help="Label to file the messages under.")
@click.option("--keep-in-inbox", is_flag=True, help="Label without archiving.")
@click.option("--no-filter", is_flag=True, help="Label existing messages only, create no filter.")
@click.option("--execute", is_flag=True, help="Actually apply (default is dry-run).")
@click.pass_context
def label(
    ctx: click.Context,
    sender: str,
    label_name: str,
    keep_in_inbox: bool,
    no_filter: bool,
    execute: bool,
) -> None:
    """Label inbox mail from a sender, and by default add a filter for new mail."""
    client = _get_client(ctx.obj["token"])
    what = "label existing messages" if no_filter else "create a label filter"
    if not execute:
        console.print(
            f"[yellow][DRY RUN] Would {what} for {sender} under {label_name!r}. "
            "Use --execute to apply.[/yellow]"
        )
        return

    try:
        if no_filter:
            label_id = ensure_label(client, label_name)
            ids = matching_message_ids(client, f"{from_query(sender)} {INBOX_QUERY}")
            modified = apply_label(client, ids, label_id)
        else:
            modified = create_label_and_filter(
                client, label_name, sender, skip_inbox=not keep_in_inbox
            )
    except (ActionError, MailboxError) as e:
        raise click.ClickException(str(e)) from e
    console.print(f"[green]Labelled {modified} messages as {label_name}.[/green]")


@cli.command()
@click.pass_context
def filters(ctx: click.Context) -> None:
    """List the mailbox's existing filters."""
    client = _get_client(ctx.obj["token"])
    try:
        existing = client.list_filters()
    except MailboxError as e:
        raise click.ClickException(str(e)) from e
    if not existing:
        console.print("[dim]No filters.[/dim]")
        return
    display_filters(existing)


@cli.command()
def auth() -> None:
    """Test Gmail authentication."""
    check_auth()


@cli.group(name="trust")
def trust_group() -> None:
    """Manage trusted senders (never flagged by a scan)."""


@trust_group.command(name="list")
def trust_list() -> None:
    """Show trusted senders."""
    with TrustStore() as store:
        senders = store.get_all()
    if not senders:
        console.print("[dim]No trusted senders.[/dim]")
        return
    for email in senders:
        console.print(email)


@trust_group.command(name="add")
@click.argument("emails", nargs=-1, required=True)
def trust_add(emails: tuple[str, ...]) -> None:
    """Trust one or more sender addresses."""
    with TrustStore() as store:
        senders = store.add_many(emails)
    console.print(f"[green]{len(senders)} trusted senders.[/green]")


@trust_group.command(name="remove")
@click.argument("email")
def trust_remove(email: str) -> None:
    """Stop trusting a sender address."""
    with TrustStore() as store:
        senders = store.remove(email)
    console.print(f"[green]Removed {email.lower()}; {len(senders)} trusted senders.[/green]")
