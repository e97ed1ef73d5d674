"""Scan orchestration - category-prioritised, rate-limited sampling of the inbox."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .constants import CATCH_ALL, CATEGORY_ORDER, INBOX_QUERY
from .errors import AuthorizationError, MailboxError, ScanCancelled
from .models import InboxStats, Message, ScanConfig, ScanResult

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str], None]


def category_queries(has_category_tabs: bool) -> list[tuple[str, str]]:
    """Ordered (category, query) pairs to scan, catch-all last."""
    if not has_category_tabs:
        return [(CATCH_ALL, INBOX_QUERY)]
    queries = [(name, f"{INBOX_QUERY} category:{name}") for name in CATEGORY_ORDER]
    queries.append((CATCH_ALL, INBOX_QUERY))
    return queries


def check_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ScanCancelled("Scan cancelled")


def pause(seconds: float, cancel: threading.Event | None) -> None:
    """Sleep between mailbox calls, waking early if the scan is cancelled."""
    if seconds <= 0:
        check_cancelled(cancel)
        return
    if cancel is None:
        time.sleep(seconds)
    elif cancel.wait(seconds):
        raise ScanCancelled("Scan cancelled")


@dataclass
class _ScanState:
    target: int
    seen: set[str] = field(default_factory=set)
    messages: list[Message] = field(default_factory=list)
    scanned: int = 0

    @property
    def remaining(self) -> int:
        return self.target - len(self.messages)


def _scan_category(
    client,
    name: str,
    query: str,
    state: _ScanState,
    config: ScanConfig,
    progress: ProgressSink | None,
    cancel: threading.Event | None,
) -> int:
    """Collect new messages from one category. Returns how many were collected."""
    collected = 0
    fatigue = 0
    page_token: str | None = None

    while state.remaining > 0:
        check_cancelled(cancel)
        try:
            ids, page_token = client.list_message_ids(
                query, page_size=config.page_size, page_token=page_token
            )
        except AuthorizationError:
            raise
        except MailboxError as exc:
            logger.warning("Listing %s failed, moving on: %s", name, exc)
            return collected

        for start in range(0, len(ids), config.wave_size):
            if state.remaining <= 0:
                return collected

            wave = ids[start : start + config.wave_size]
            fresh = [i for i in wave if i not in state.seen][: state.remaining]
            state.seen.update(fresh)
            state.scanned += len(wave)

            fetched: list[Message] = []
            if fresh:
                check_cancelled(cancel)
                fetched = client.get_messages_metadata(fresh)
                state.messages.extend(fetched)
                collected += len(fetched)

            fatigue = 0 if fetched else fatigue + 1

            if progress:
                progress(
                    f"Scanning {name}: {state.scanned} scanned, "
                    f"{len(state.messages)}/{state.target} collected"
                )

            if fatigue >= config.fatigue_limit:
                logger.info(
                    "No new messages in %d consecutive batches of %s, skipping the rest",
                    fatigue, name,
                )
                return collected

            if fresh:
                pause(config.wave_delay, cancel)

        if not page_token:
            break

    return collected


def scan_mailbox(
    client,
    config: ScanConfig | None = None,
    stats: InboxStats | None = None,
    progress: ProgressSink | None = None,
    cancel: threading.Event | None = None,
) -> ScanResult:
    """Collect a deduplicated working set of up to ``config.target_count`` messages.

    Categories are scanned in priority order. Within a category, ids are
    fetched in waves of ``config.wave_size`` with a fixed delay between waves.
    A category is abandoned after ``config.fatigue_limit`` consecutive waves
    that add nothing new, or when listing one of its pages fails.
    """
    config = config or ScanConfig()
    check_cancelled(cancel)
    if stats is None:
        stats = client.inbox_stats()

    state = _ScanState(target=config.target_count)
    per_category: dict[str, int] = {}

    for name, query in category_queries(stats.has_category_tabs):
        if state.remaining <= 0:
            break
        per_category[name] = _scan_category(client, name, query, state, config, progress, cancel)
        logger.info("Category %s: %d new messages", name, per_category[name])

    return ScanResult(
        messages=state.messages,
        scanned=state.scanned,
        per_category=per_category,
        stats=stats,
    )
