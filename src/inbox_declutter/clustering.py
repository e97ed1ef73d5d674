"""Group messages into sender clusters and attach per-sender detail."""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Iterable

from .classifier import is_automated, is_sensitive, sender_reason
from .constants import (
    ARCHIVE_THRESHOLD,
    CATEGORY_LABELS,
    COMPOUND_SUFFIXES,
    FILTER_THRESHOLD,
    PERSONAL_FILTER_THRESHOLD,
    PERSONAL_LABEL_THRESHOLD,
    ROOT_MERGE_MIN_SENDERS,
)
from .models import CategoryMetrics, EmailCluster, Message, SenderInfo

PERSONAL_REASON = "Personal sender"


def root_domain(domain: str) -> str:
    """Registrable domain: the last two labels, or three under a compound suffix."""
    labels = [part for part in domain.lower().strip(".").split(".") if part]
    if len(labels) <= 2:
        return ".".join(labels)
    if ".".join(labels[-2:]) in COMPOUND_SUFFIXES:
        return ".".join(labels[-3:])
    return ".".join(labels[-2:])


def label_name_for(domain: str) -> str:
    """Human label for a domain, e.g. "mail.example.co.uk" -> "Example"."""
    root = root_domain(domain)
    return root.split(".")[0].capitalize() if root else "Other"


def category_metrics(messages: Iterable[Message]) -> CategoryMetrics:
    """Tally messages per inbox category from their label ids."""
    metrics = CategoryMetrics()
    for msg in messages:
        categories = [CATEGORY_LABELS[lid] for lid in msg.label_ids if lid in CATEGORY_LABELS]
        for name in categories:
            setattr(metrics, name, getattr(metrics, name) + 1)
        if not any(lid.startswith("CATEGORY_") for lid in msg.label_ids) and "INBOX" in msg.label_ids:
            metrics.primary += 1
    return metrics


def _sender_details(counts: Counter, personal: bool = False) -> list[SenderInfo]:
    details = []
    for email, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        sensitive = is_sensitive(email)
        if personal and not sensitive:
            reason = PERSONAL_REASON
        else:
            reason = sender_reason(email)
        details.append(
            SenderInfo(email=email, count=count, should_archive=not sensitive, reason=reason)
        )
    return details


def _make_cluster(
    domain_key: str,
    pattern: str,
    messages: list[Message],
    personal: bool = False,
) -> EmailCluster:
    counts = Counter(m.from_email for m in messages)
    details = _sender_details(counts, personal=personal)
    senders = [d.email for d in details]
    display = senders[0] if len(senders) == 1 else pattern

    return EmailCluster(
        domain_key=domain_key,
        display_sender=display,
        messages=list(messages),
        all_senders=senders,
        is_grouped=len(senders) > 1,
        sender_details=details,
        metrics=category_metrics(messages),
    )


def _should_merge(domains: list[str], by_domain: dict[str, list[Message]]) -> bool:
    if len(domains) >= 2:
        return True
    unique_senders = {m.from_email for m in by_domain[domains[0]]}
    return len(unique_senders) >= ROOT_MERGE_MIN_SENDERS


def _automated_action(cluster: EmailCluster) -> None:
    if cluster.count >= FILTER_THRESHOLD:
        cluster.suggested_action = "filter"
    elif cluster.count < ARCHIVE_THRESHOLD:
        cluster.suggested_action = "archive"
    else:
        cluster.suggested_action = "filter"


def _personal_action(cluster: EmailCluster) -> None:
    if cluster.count >= PERSONAL_FILTER_THRESHOLD:
        cluster.suggested_action = "filter"
    elif cluster.count >= PERSONAL_LABEL_THRESHOLD:
        cluster.suggested_action = "label"
        cluster.suggested_label = label_name_for(cluster.domain_key)
    else:
        cluster.suggested_action = "keep"


def cluster_automated(messages: list[Message]) -> list[EmailCluster]:
    """Cluster automated mail by full domain, merging under a shared root domain."""
    by_domain: dict[str, list[Message]] = defaultdict(list)
    for msg in messages:
        by_domain[msg.from_domain].append(msg)

    by_root: dict[str, list[str]] = defaultdict(list)
    for domain in sorted(by_domain):
        by_root[root_domain(domain)].append(domain)

    clusters = []
    for root, domains in by_root.items():
        if _should_merge(domains, by_domain):
            merged = [m for domain in domains for m in by_domain[domain]]
            # "*@*.root" would not match mail sent from the bare root domain.
            pattern = f"*@{root}" if domains == [root] else f"*@*.{root}"
            clusters.append(_make_cluster(root, pattern, merged))
        else:
            for domain in domains:
                clusters.append(_make_cluster(domain, f"*@{domain}", by_domain[domain]))

    for cluster in clusters:
        _automated_action(cluster)
    return clusters


def cluster_personal(messages: list[Message]) -> list[EmailCluster]:
    """Cluster personal mail by exact address only."""
    by_sender: dict[str, list[Message]] = defaultdict(list)
    for msg in messages:
        by_sender[msg.from_email].append(msg)

    clusters = []
    for email, msgs in by_sender.items():
        cluster = _make_cluster(msgs[0].from_domain, email, msgs, personal=True)
        _personal_action(cluster)
        clusters.append(cluster)
    return clusters


def build_clusters(
    messages: Iterable[Message],
    trusted: Iterable[str] = (),
) -> list[EmailCluster]:
    """Build the cluster list for a scan, largest first.

    Messages from trusted senders are left out entirely.
    """
    trusted_set = {t.strip().lower() for t in trusted}
    automated: list[Message] = []
    personal: list[Message] = []

    for msg in messages:
        if msg.from_email in trusted_set:
            continue
        if is_automated(msg.from_email, msg.from_domain):
            automated.append(msg)
        else:
            personal.append(msg)

    clusters = cluster_automated(automated) + cluster_personal(personal)
    clusters.sort(key=lambda c: (-c.count, c.domain_key, c.display_sender))
    return clusters
