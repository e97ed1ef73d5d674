"""Replace sampled counts with mailbox-wide counts for the top results."""

from __future__ import annotations

import logging
import threading

from .constants import INBOX_QUERY
from .errors import AuthorizationError, MailboxError
from .models import EmailCluster, FilterSuggestion, ScanConfig
from .scanner import check_cancelled, pause
from .suggestions import describe, from_query

logger = logging.getLogger(__name__)


def mailbox_count(client, pattern: str, cap: int) -> tuple[int, str, bool]:
    """Count inbox mail matching a from-pattern.

    Returns (count, display text, is_exact). Below ``cap`` the count is exact;
    otherwise the provider estimate is kept and displayed as "<cap>+".
    """
    query = f"{from_query(pattern)} {INBOX_QUERY}"
    estimate = client.count_estimate(query)
    if estimate < cap:
        count, more = client.count_exact(query, cap)
        if not more:
            return count, str(count), True
        return max(count, estimate), f"{cap}+", False
    return estimate, f"{cap}+", False


def _lookup(client, pattern: str, config: ScanConfig, position: int, cancel):
    if position:
        pause(config.reconcile_delay, cancel)
    else:
        check_cancelled(cancel)
    try:
        return mailbox_count(client, pattern, config.exact_count_cap)
    except AuthorizationError:
        raise
    except MailboxError as exc:
        logger.warning("Count lookup for %s failed, keeping sampled count: %s", pattern, exc)
        return None


def reconcile_suggestions(
    client,
    suggestions: list[FilterSuggestion],
    config: ScanConfig | None = None,
    cancel: threading.Event | None = None,
) -> list[FilterSuggestion]:
    """Update match counts of the top suggestions in place, one lookup at a time."""
    config = config or ScanConfig()
    for position, suggestion in enumerate(suggestions[: config.top_suggestions]):
        result = _lookup(client, suggestion.criteria.from_, config, position, cancel)
        if result is None:
            continue
        suggestion.match_count, suggestion.count_display, suggestion.count_is_exact = result
        suggestion.description = describe(suggestion, suggestion.count_display)
    return suggestions


def reconcile_clusters(
    client,
    clusters: list[EmailCluster],
    config: ScanConfig | None = None,
    cancel: threading.Event | None = None,
) -> list[EmailCluster]:
    """Attach mailbox-wide counts to the top clusters.

    ``cluster.count`` stays the sampled size; the reconciled figure goes to
    ``count_display``.
    """
    config = config or ScanConfig()
    for position, cluster in enumerate(clusters[: config.top_clusters]):
        result = _lookup(client, cluster.display_sender, config, position, cancel)
        if result is None:
            continue
        _, cluster.count_display, cluster.count_is_exact = result
    return clusters
