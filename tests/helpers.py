"""Test helpers: message builders and an in-memory mailbox."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from googleapiclient.errors import HttpError

from inbox_declutter.errors import MailboxError
from inbox_declutter.models import InboxStats, Message

BASE_DATE = datetime(2024, 6, 1, tzinfo=timezone.utc)


def http_error(status: int, message: str = "boom") -> HttpError:
    resp = Mock(status=status, reason=message)
    return HttpError(resp, json.dumps({"error": {"message": message}}).encode())


def make_message(
    message_id: str,
    sender: str,
    labels: tuple[str, ...] = ("INBOX",),
    days_ago: int = 0,
    subject: str = "",
) -> Message:
    domain = sender.split("@", 1)[1] if "@" in sender else ""
    return Message(
        id=message_id,
        thread_id=f"t-{message_id}",
        from_header=f"Sender <{sender}>",
        from_email=sender,
        from_domain=domain,
        subject=subject or f"Subject {message_id}",
        date=BASE_DATE - timedelta(days=days_ago),
        label_ids=frozenset(labels),
        is_unread="UNREAD" in labels,
    )


def messages_from(sender: str, count: int, prefix: str | None = None, **kwargs) -> list[Message]:
    prefix = prefix or sender
    return [make_message(f"{prefix}-{i}", sender, days_ago=i, **kwargs) for i in range(count)]


class FakeMailbox:
    """In-memory stand-in for MailboxClient.

    ``feeds`` maps a search query to its list of pages (each a list of ids).
    ``messages`` maps an id to the Message returned for it; ids missing from
    it behave like failed fetches.
    """

    def __init__(
        self,
        feeds: dict[str, list[list[str]]] | None = None,
        messages: dict[str, Message] | None = None,
        has_category_tabs: bool = True,
    ) -> None:
        self.feeds = feeds or {}
        self.messages = messages or {}
        self.has_category_tabs = has_category_tabs
        self.failing_queries: set[str] = set()
        self.estimates: dict[str, int] = {}
        self.exact: dict[str, tuple[int, bool]] = {}
        self.filters: list[dict] = []
        self.list_calls: list[tuple[str, str | None]] = []
        self.fetch_calls: list[list[str]] = []
        self.count_calls: list[str] = []

    def inbox_stats(self) -> InboxStats:
        return InboxStats(total=100, unread=10, is_exact=True, has_category_tabs=self.has_category_tabs)

    def list_message_ids(self, query, page_size=500, page_token=None):
        self.list_calls.append((query, page_token))
        if query in self.failing_queries:
            raise MailboxError(f"list failed for {query}", status=500)
        pages = self.feeds.get(query, [])
        index = int(page_token) if page_token else 0
        if index >= len(pages):
            return [], None
        next_token = str(index + 1) if index + 1 < len(pages) else None
        return list(pages[index]), next_token

    def get_messages_metadata(self, ids):
        self.fetch_calls.append(list(ids))
        return [self.messages[i] for i in ids if i in self.messages]

    def count_estimate(self, query):
        self.count_calls.append(query)
        if query in self.failing_queries:
            raise MailboxError("estimate failed", status=500)
        return self.estimates.get(query, 0)

    def count_exact(self, query, cap=500):
        return self.exact.get(query, (0, False))

    def list_filters(self):
        return list(self.filters)
