"""End-to-end analysis: stats, scan, cluster, suggest, reconcile."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from .clustering import build_clusters
from .errors import AuthorizationError, MailboxError
from .models import Report, ScanConfig
from .reconcile import reconcile_clusters, reconcile_suggestions
from .scanner import ProgressSink, check_cancelled, scan_mailbox
from .suggestions import generate_suggestions

logger = logging.getLogger(__name__)


def _ignore(message: str) -> None:
    pass


def analyze_mailbox(
    client,
    trusted: Iterable[str] = (),
    config: ScanConfig | None = None,
    progress: ProgressSink | None = None,
    cancel: threading.Event | None = None,
) -> Report:
    """Run a full analysis and return the report.

    ``trusted`` and the mailbox's existing filters are read once, up front.
    Cancellation raises ScanCancelled; no partial report is produced.
    """
    config = config or ScanConfig()
    emit = progress or _ignore
    trusted = frozenset(t.lower() for t in trusted)

    emit("Reading inbox statistics...")
    check_cancelled(cancel)
    stats = client.inbox_stats()
    qualifier = "" if stats.is_exact else "about "
    emit(f"Inbox has {qualifier}{stats.total} conversations ({stats.unread} unread)")

    check_cancelled(cancel)
    try:
        existing_filters = client.list_filters()
    except AuthorizationError:
        raise
    except MailboxError as exc:
        logger.warning("Could not list existing filters: %s", exc)
        existing_filters = []

    scan = scan_mailbox(client, config, stats=stats, progress=progress, cancel=cancel)
    emit(f"Collected {len(scan.messages)} messages ({scan.scanned} scanned)")

    emit("Grouping senders...")
    clusters = build_clusters(scan.messages, trusted)
    suggestions = generate_suggestions(clusters, existing_filters)
    logger.info("%d clusters, %d suggestions", len(clusters), len(suggestions))

    if config.reconcile:
        emit("Refining counts for top suggestions...")
        reconcile_suggestions(client, suggestions, config, cancel)
        reconcile_clusters(client, clusters, config, cancel)

    return Report(
        stats=stats,
        clusters=clusters,
        filter_suggestions=suggestions,
        existing_filters=existing_filters,
    )
