"""Gmail API client for listing, counting, fetching and mutating messages."""

from __future__ import annotations

import logging
import re
from datetime import timezone
from email.utils import parsedate_to_datetime

from googleapiclient.errors import HttpError

from .constants import (
    CATEGORY_ORDER,
    EXACT_COUNT_CAP,
    INBOX_QUERY,
    METADATA_HEADERS,
    MODIFY_BATCH_SIZE,
    PAGE_SIZE,
)
from .errors import AuthorizationError, MailboxError, translate_http_error
from .models import UNKNOWN_DATE, InboxStats, Message

logger = logging.getLogger(__name__)

_FROM_RE = re.compile(r"^(.*?)\s*<([^>]+)>$")


def parse_from_header(from_value: str) -> tuple[str, str]:
    """Parse a From header into (display name, email address).

    Handles formats like:
      "John Doe <john@example.com>" -> ("John Doe", "john@example.com")
      "<john@example.com>"          -> ("", "john@example.com")
      "john@example.com"            -> ("", "john@example.com")
    """
    if not from_value:
        return ("", "")
    m = _FROM_RE.match(from_value.strip())
    if m:
        name = m.group(1).strip().strip('"').strip("'")
        return (name, m.group(2).strip())
    email = from_value.strip().strip("<>")
    return ("", email)


def parse_date(value: str):
    """Parse a Date header into an aware datetime, or UNKNOWN_DATE."""
    if not value:
        return UNKNOWN_DATE
    try:
        dt = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return UNKNOWN_DATE
    if dt is None:
        return UNKNOWN_DATE
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def message_from_response(response: dict) -> Message:
    """Build a Message from a messages.get(format=metadata) response."""
    headers = {}
    for h in response.get("payload", {}).get("headers", []):
        headers[h.get("name", "").lower()] = h.get("value", "")

    from_value = headers.get("from", "")
    _, email = parse_from_header(from_value)
    email = email.lower()
    label_ids = frozenset(response.get("labelIds", []))

    return Message(
        id=response["id"],
        thread_id=response.get("threadId", ""),
        from_header=from_value,
        from_email=email,
        from_domain=email.split("@", 1)[1] if "@" in email else "",
        subject=headers.get("subject", ""),
        snippet=response.get("snippet", ""),
        date=parse_date(headers.get("date", "")),
        label_ids=label_ids,
        is_unread="UNREAD" in label_ids,
    )


def _execute(request):
    """Execute a request, translating HttpError into our taxonomy."""
    try:
        return request.execute()
    except HttpError as exc:
        raise translate_http_error(exc) from exc


class MailboxClient:
    """Typed wrapper around an authenticated Gmail API service."""

    def __init__(self, service) -> None:
        self.service = service

    @property
    def _users(self):
        return self.service.users()

    # --- reading ---

    def list_message_ids(
        self,
        query: str,
        page_size: int = PAGE_SIZE,
        page_token: str | None = None,
    ) -> tuple[list[str], str | None]:
        """Return one page of message ids matching the query and the next page token."""
        kwargs: dict = {
            "userId": "me",
            "q": query,
            "maxResults": page_size,
            "fields": "messages/id,nextPageToken",
        }
        if page_token:
            kwargs["pageToken"] = page_token

        resp = _execute(self._users.messages().list(**kwargs))
        ids = [m["id"] for m in resp.get("messages", [])]
        return ids, resp.get("nextPageToken") or None

    def get_message_metadata(self, message_id: str) -> Message | None:
        """Fetch headers and labels for one message.

        Returns None when the fetch fails so callers can skip the message.
        Authorization failures are still raised.
        """
        request = self._users.messages().get(
            userId="me",
            id=message_id,
            format="metadata",
            metadataHeaders=METADATA_HEADERS,
        )
        try:
            return message_from_response(_execute(request))
        except AuthorizationError:
            raise
        except (MailboxError, KeyError) as exc:
            logger.warning("Failed to get message %s: %s", message_id, exc)
            return None

    def get_messages_metadata(self, message_ids: list[str]) -> list[Message]:
        """Fetch metadata for a set of messages in one batched HTTP request.

        Messages whose individual fetch fails are dropped.
        """
        if not message_ids:
            return []

        results: dict[str, Message] = {}
        auth_failures: list[HttpError] = []
        batch = self.service.new_batch_http_request()

        def _make_callback(msg_id: str):
            def _cb(request_id, response, exception):
                if exception is not None:
                    if isinstance(exception, HttpError):
                        error = translate_http_error(exception)
                        if isinstance(error, AuthorizationError):
                            auth_failures.append(exception)
                            return
                    logger.warning("Failed to get message %s: %s", msg_id, exception)
                    return
                try:
                    results[msg_id] = message_from_response(response)
                except KeyError as exc:
                    logger.warning("Malformed response for message %s: %s", msg_id, exc)

            return _cb

        for msg_id in message_ids:
            batch.add(
                self._users.messages().get(
                    userId="me",
                    id=msg_id,
                    format="metadata",
                    metadataHeaders=METADATA_HEADERS,
                ),
                callback=_make_callback(msg_id),
            )

        try:
            _execute(batch)
        except AuthorizationError:
            raise
        except MailboxError as exc:
            logger.warning("Batch fetch of %d messages failed: %s", len(message_ids), exc)
            return []

        if auth_failures:
            raise translate_http_error(auth_failures[0]) from auth_failures[0]

        return [results[i] for i in message_ids if i in results]

    def count_estimate(self, query: str) -> int:
        """Provider-side approximate match count from a single request."""
        resp = _execute(
            self._users.messages().list(userId="me", q=query, maxResults=1)
        )
        return int(resp.get("resultSizeEstimate", 0) or 0)

    def count_exact(self, query: str, cap: int = EXACT_COUNT_CAP) -> tuple[int, bool]:
        """Page through matches up to ``cap``.

        Returns the literal count (at most ``cap``) and whether more exist.
        """
        count = 0
        page_token: str | None = None

        while True:
            ids, page_token = self.list_message_ids(
                query, page_size=min(PAGE_SIZE, cap - count), page_token=page_token
            )
            count += len(ids)
            if not page_token:
                return count, False
            if count >= cap:
                return cap, True

    def count_threads(self, query: str, cap: int | None = None) -> int:
        """Count threads matching a query by paging through threads.list."""
        count = 0
        page_token: str | None = None

        while True:
            kwargs: dict = {"userId": "me", "q": query, "maxResults": PAGE_SIZE}
            if page_token:
                kwargs["pageToken"] = page_token
            resp = _execute(self._users.threads().list(**kwargs))
            count += len(resp.get("threads", []))
            page_token = resp.get("nextPageToken")
            if not page_token or (cap is not None and count >= cap):
                return count

    def estimate_threads(self, query: str) -> int:
        resp = _execute(self._users.threads().list(userId="me", q=query, maxResults=1))
        return int(resp.get("resultSizeEstimate", 0) or 0)

    def inbox_stats(self) -> InboxStats:
        """Gather total/unread counts and a per-category breakdown.

        Counts are in threads to match what the Gmail UI shows. When the
        mailbox has category tabs the primary tab is used as the baseline.
        """
        has_tabs = self.estimate_threads(f"{INBOX_QUERY} category:primary") > 0
        base_query = f"{INBOX_QUERY} category:primary" if has_tabs else INBOX_QUERY
        unread_query = f"{base_query} is:unread"

        total = self.estimate_threads(base_query)
        unread = self.estimate_threads(unread_query)
        is_exact = False
        if total < EXACT_COUNT_CAP:
            total = self.count_threads(base_query)
            unread = self.count_threads(unread_query)
            is_exact = True

        categories: dict[str, int] = {}
        if has_tabs:
            for name in CATEGORY_ORDER:
                categories[name] = self.count_estimate(f"{INBOX_QUERY} category:{name}")

        logger.info(
            "Inbox stats: total=%d unread=%d exact=%s tabs=%s",
            total, unread, is_exact, has_tabs,
        )
        return InboxStats(
            total=total,
            unread=unread,
            is_exact=is_exact,
            has_category_tabs=has_tabs,
            categories=categories,
        )

    def get_profile(self) -> dict:
        return _execute(self._users.getProfile(userId="me"))

    def list_labels(self) -> list[dict]:
        return _execute(self._users.labels().list(userId="me")).get("labels", [])

    def list_filters(self) -> list[dict]:
        resp = _execute(self._users.settings().filters().list(userId="me"))
        return resp.get("filter", [])

    # --- writing ---

    def create_label(self, name: str) -> dict:
        body = {
            "name": name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
        }
        return _execute(self._users.labels().create(userId="me", body=body))

    def create_filter(self, criteria: dict, action: dict) -> str:
        """Create a server-side filter and return its id."""
        body = {"criteria": criteria, "action": action}
        result = _execute(self._users.settings().filters().create(userId="me", body=body))
        return result.get("id", "")

    def batch_mutate_labels(
        self,
        message_ids: list[str],
        add: list[str] | None = None,
        remove: list[str] | None = None,
    ) -> tuple[int, list[str]]:
        """Add/remove labels on messages in chunks of MODIFY_BATCH_SIZE.

        A failed chunk does not stop the remaining chunks. Returns the number
        of messages actually modified and the error text of each failed chunk.
        Authorization failures are raised immediately.
        """
        applied = 0
        errors: list[str] = []

        for start in range(0, len(message_ids), MODIFY_BATCH_SIZE):
            chunk = message_ids[start : start + MODIFY_BATCH_SIZE]
            body: dict = {"ids": chunk}
            if add:
                body["addLabelIds"] = list(add)
            if remove:
                body["removeLabelIds"] = list(remove)
            try:
                _execute(self._users.messages().batchModify(userId="me", body=body))
            except AuthorizationError:
                raise
            except MailboxError as exc:
                logger.warning("batchModify failed for chunk at %d: %s", start, exc)
                errors.append(str(exc))
                continue
            applied += len(chunk)

        return applied, errors
