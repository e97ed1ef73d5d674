"""Data models for Inbox Declutter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .constants import (
    EXACT_COUNT_CAP,
    FATIGUE_LIMIT,
    PAGE_SIZE,
    RECONCILE_DELAY,
    TARGET_COUNT,
    TOP_CLUSTERS,
    TOP_SUGGESTIONS,
    WAVE_DELAY,
    WAVE_SIZE,
)

# Stand-in for a missing or unparseable Date header. Sorts as the oldest message.
UNKNOWN_DATE = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Message:
    """Header-only metadata for a single mailbox message."""

    id: str
    thread_id: str
    from_header: str  # Full From header value
    from_email: str  # Extracted, lowercased address
    from_domain: str  # Everything after the "@"
    subject: str = ""
    snippet: str = ""
    date: datetime = UNKNOWN_DATE
    label_ids: frozenset[str] = frozenset()
    is_unread: bool = False


@dataclass
class SenderInfo:
    email: str
    count: int
    should_archive: bool
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "count": self.count,
            "shouldArchive": self.should_archive,
            "reason": self.reason,
        }


@dataclass
class CategoryMetrics:
    primary: int = 0
    updates: int = 0
    promotions: int = 0
    social: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "primary": self.primary,
            "updates": self.updates,
            "promotions": self.promotions,
            "social": self.social,
        }


@dataclass
class EmailCluster:
    """A group of messages sharing a sender identity (address, domain or root domain)."""

    domain_key: str
    display_sender: str  # Literal address or wildcard pattern
    messages: list[Message] = field(default_factory=list)
    suggested_action: str = "filter"  # archive | label | keep | filter
    suggested_label: str | None = None
    all_senders: list[str] = field(default_factory=list)
    is_grouped: bool = False
    sender_details: list[SenderInfo] = field(default_factory=list)
    metrics: CategoryMetrics = field(default_factory=CategoryMetrics)
    count_display: str = ""
    count_is_exact: bool = False

    @property
    def count(self) -> int:
        return len(self.messages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "domain": self.domain_key,
            "sender": self.display_sender,
            "count": self.count,
            "countDisplay": self.count_display or str(self.count),
            "countIsExact": self.count_is_exact,
            "suggestedAction": self.suggested_action,
            "suggestedLabel": self.suggested_label,
            "allSenders": list(self.all_senders),
            "isGrouped": self.is_grouped,
            "senderDetails": [s.to_dict() for s in self.sender_details],
            "metrics": self.metrics.to_dict(),
            "messageIds": [m.id for m in self.messages],
        }


@dataclass
class FilterCriteria:
    from_: str  # Address, "*@domain" or "*@*.root"


@dataclass
class FilterAction:
    skip_inbox: bool = True
    add_label: str | None = None  # Label name, resolved to an id when the filter is created


@dataclass
class FilterSuggestion:
    id: str
    criteria: FilterCriteria
    action: FilterAction
    match_count: int
    description: str
    latest_message_id: str | None = None
    is_grouped: bool = False
    sender_details: list[SenderInfo] = field(default_factory=list)
    metrics: CategoryMetrics = field(default_factory=CategoryMetrics)
    warning: str | None = None
    count_display: str = ""
    count_is_exact: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "criteria": {"from": self.criteria.from_},
            "action": {
                "skipInbox": self.action.skip_inbox,
                "addLabel": self.action.add_label,
            },
            "matchCount": self.match_count,
            "countDisplay": self.count_display or str(self.match_count),
            "countIsExact": self.count_is_exact,
            "description": self.description,
            "latestMessageId": self.latest_message_id,
            "isGrouped": self.is_grouped,
            "senderDetails": [s.to_dict() for s in self.sender_details],
            "metrics": self.metrics.to_dict(),
            "warning": self.warning,
        }


@dataclass
class InboxStats:
    """Mailbox-level aggregates gathered once per scan."""

    total: int
    unread: int
    is_exact: bool
    has_category_tabs: bool
    categories: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total": self.total,
            "unread": self.unread,
            "isExact": self.is_exact,
        }
        if self.categories:
            data["categories"] = dict(self.categories)
        return data


@dataclass
class ScanResult:
    """Deduplicated working set produced by the scan orchestrator."""

    messages: list[Message] = field(default_factory=list)
    scanned: int = 0
    per_category: dict[str, int] = field(default_factory=dict)
    stats: InboxStats | None = None


@dataclass
class ScanConfig:
    """Tunables for one analysis run."""

    target_count: int = TARGET_COUNT
    page_size: int = PAGE_SIZE
    wave_size: int = WAVE_SIZE
    wave_delay: float = WAVE_DELAY
    fatigue_limit: int = FATIGUE_LIMIT
    reconcile: bool = True
    top_suggestions: int = TOP_SUGGESTIONS
    top_clusters: int = TOP_CLUSTERS
    exact_count_cap: int = EXACT_COUNT_CAP
    reconcile_delay: float = RECONCILE_DELAY


@dataclass
class Report:
    stats: InboxStats
    clusters: list[EmailCluster] = field(default_factory=list)
    filter_suggestions: list[FilterSuggestion] = field(default_factory=list)
    existing_filters: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "clusters": [c.to_dict() for c in self.clusters],
            "filterSuggestions": [s.to_dict() for s in self.filter_suggestions],
            "existingFilters": list(self.existing_filters),
        }
