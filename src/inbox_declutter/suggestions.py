"""Turn clusters into filter suggestions."""

from __future__ import annotations

import re
from typing import Iterable

from .clustering import label_name_for
from .constants import MIN_SUGGESTION_COUNT
from .models import (
    CategoryMetrics,
    EmailCluster,
    FilterAction,
    FilterCriteria,
    FilterSuggestion,
    Message,
    SenderInfo,
)

_TERM_SPLIT_RE = re.compile(r"[\s,(){}|]+")

SENSITIVE_WARNING = (
    "Includes security or transactional mail; labelled instead of archived. "
    "Review before skipping the inbox."
)


def filter_from(pattern: str) -> str:
    """Gmail "from" criteria for a from-pattern ("*@*.x.com" -> "x.com")."""
    if pattern.startswith("*@*."):
        return pattern[4:]
    if pattern.startswith("*@"):
        return pattern[2:]
    return pattern


def from_query(pattern: str) -> str:
    return f"from:{filter_from(pattern)}"


def existing_from_criteria(filters: Iterable[dict]) -> list[str]:
    """The lowercased "from" criteria of existing mailbox filters."""
    result = []
    for f in filters:
        value = (f.get("criteria") or {}).get("from")
        if value:
            result.append(value.lower())
    return result


def _criterion_terms(criterion: str) -> list[str]:
    """Split a filter's "from" value ("a@x.com OR {b@y.com c.com}") into terms."""
    terms = _TERM_SPLIT_RE.split(criterion.lower())
    return [filter_from(t).lstrip("@") for t in terms if t and t != "or"]


def _term_matches(target: str, term: str) -> bool:
    if target == term:
        return True
    if "@" in term:
        return False
    # A bare domain term matches that domain and its subdomains.
    domain = target.rsplit("@", 1)[-1]
    return domain == term or domain.endswith("." + term)


def is_covered(pattern: str, existing: Iterable[str]) -> bool:
    """True if an existing filter already matches this from-pattern.

    Both sides are compared in filter form, so "*@*.x.com" is covered by a
    "x.com" filter and "noreply@shop.com" by a "shop.com" one.
    """
    target = filter_from(pattern.strip()).lower()
    return any(_term_matches(target, term) for e in existing for term in _criterion_terms(e))


def is_mixed(cluster: EmailCluster) -> bool:
    """Grouped cluster holding both sensitive and archivable senders."""
    if not cluster.is_grouped:
        return False
    flags = {d.should_archive for d in cluster.sender_details}
    return flags == {True, False}


def latest_message(messages: list[Message]) -> Message | None:
    if not messages:
        return None
    return sorted(messages, key=lambda m: m.date, reverse=True)[0]


def describe(suggestion: FilterSuggestion, count_text: str | None = None) -> str:
    count_text = count_text or str(suggestion.match_count)
    if suggestion.is_grouped:
        who = f"{len(suggestion.sender_details)} senders matching {suggestion.criteria.from_}"
    else:
        who = suggestion.criteria.from_
    verb = "Auto-archive" if suggestion.action.skip_inbox else "Label"
    return f"{verb} emails from {who} ({count_text} messages)"


def _suggestion(
    pattern: str,
    messages: list[Message],
    details: list[SenderInfo],
    metrics: CategoryMetrics,
    domain_key: str,
    label: str | None = None,
) -> FilterSuggestion:
    all_sensitive = all(not d.should_archive for d in details)
    if all_sensitive:
        action = FilterAction(skip_inbox=False, add_label=label or label_name_for(domain_key))
        warning = SENSITIVE_WARNING
    else:
        action = FilterAction(skip_inbox=True, add_label=label)
        warning = None

    latest = latest_message(messages)
    suggestion = FilterSuggestion(
        id=f"filter-{pattern}",
        criteria=FilterCriteria(from_=pattern),
        action=action,
        match_count=len(messages),
        description="",
        latest_message_id=latest.id if latest else None,
        is_grouped=len(details) > 1,
        sender_details=details,
        metrics=metrics,
        warning=warning,
    )
    suggestion.description = describe(suggestion)
    return suggestion


def _split_by_sender(cluster: EmailCluster) -> list[FilterSuggestion]:
    suggestions = []
    for detail in cluster.sender_details:
        if detail.count < MIN_SUGGESTION_COUNT:
            continue
        messages = [m for m in cluster.messages if m.from_email == detail.email]
        # The parent's category mix stands in for the sender's own.
        suggestions.append(
            _suggestion(
                detail.email,
                messages,
                [detail],
                cluster.metrics,
                cluster.domain_key,
                cluster.suggested_label,
            )
        )
    return suggestions


def generate_suggestions(
    clusters: Iterable[EmailCluster],
    existing_filters: Iterable[dict] = (),
) -> list[FilterSuggestion]:
    """Build filter suggestions for clusters marked "filter" with enough evidence.

    Mixed clusters are never covered by one wildcard: each qualifying sender
    gets its own suggestion. Senders already matched by an existing filter
    are left out.
    """
    existing = existing_from_criteria(existing_filters)
    suggestions: list[FilterSuggestion] = []

    for cluster in clusters:
        if cluster.suggested_action != "filter" or cluster.count < MIN_SUGGESTION_COUNT:
            continue

        if is_mixed(cluster):
            candidates = _split_by_sender(cluster)
        else:
            candidates = [
                _suggestion(
                    cluster.display_sender,
                    cluster.messages,
                    list(cluster.sender_details),
                    cluster.metrics,
                    cluster.domain_key,
                    cluster.suggested_label,
                )
            ]

        suggestions.extend(s for s in candidates if not is_covered(s.criteria.from_, existing))

    return suggestions
