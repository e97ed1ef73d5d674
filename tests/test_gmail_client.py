"""Tests for the Gmail client module."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from inbox_declutter.errors import AuthorizationError, MailboxError
from inbox_declutter.gmail_client import (
    MailboxClient,
    message_from_response,
    parse_date,
    parse_from_header,
)
from inbox_declutter.models import UNKNOWN_DATE
from tests.helpers import http_error


def _response(message_id: str = "m1", sender: str = "Shop <NoReply@Shop.com>", labels=None) -> dict:
    return {
        "id": message_id,
        "threadId": f"t-{message_id}",
        "snippet": "Big sale",
        "labelIds": labels if labels is not None else ["INBOX", "UNREAD", "CATEGORY_PROMOTIONS"],
        "payload": {
            "headers": [
                {"name": "From", "value": sender},
                {"name": "Subject", "value": "50% off"},
                {"name": "Date", "value": "Mon, 03 Jun 2024 10:00:00 +0000"},
            ]
        },
    }


class FakeBatch:
    """Stands in for BatchHttpRequest; replays canned (response, exception) pairs."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.callbacks = []

    def add(self, request, callback):
        self.callbacks.append(callback)

    def execute(self):
        for callback, (response, exception) in zip(self.callbacks, self.outcomes):
            callback(None, response, exception)


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(service):
    return MailboxClient(service)


def test_parse_from_header():
    assert parse_from_header("John Doe <john@example.com>") == ("John Doe", "john@example.com")
    assert parse_from_header('"Doe, John" <john@example.com>') == ("Doe, John", "john@example.com")
    assert parse_from_header("<john@example.com>") == ("", "john@example.com")
    assert parse_from_header("john@example.com") == ("", "john@example.com")
    assert parse_from_header("") == ("", "")


def test_parse_date():
    assert parse_date("Mon, 03 Jun 2024 10:00:00 +0000") == datetime(2024, 6, 3, 10, tzinfo=timezone.utc)
    assert parse_date("not a date") == UNKNOWN_DATE
    assert parse_date("") == UNKNOWN_DATE


def test_parse_date_without_zone_is_utc():
    assert parse_date("Mon, 03 Jun 2024 10:00:00 -0000").tzinfo is not None


def test_message_from_response():
    msg = message_from_response(_response())
    assert msg.id == "m1"
    assert msg.thread_id == "t-m1"
    assert msg.from_email == "noreply@shop.com"
    assert msg.from_domain == "shop.com"
    assert msg.subject == "50% off"
    assert msg.is_unread is True
    assert "CATEGORY_PROMOTIONS" in msg.label_ids


def test_message_without_address_has_no_domain():
    msg = message_from_response(_response(sender="", labels=[]))
    assert msg.from_email == ""
    assert msg.from_domain == ""
    assert msg.is_unread is False


def test_list_message_ids(client, service):
    service.users().messages().list().execute.return_value = {
        "messages": [{"id": "a"}, {"id": "b"}],
        "nextPageToken": "tok",
    }
    ids, token = client.list_message_ids("in:inbox", page_size=100, page_token="prev")

    assert ids == ["a", "b"]
    assert token == "tok"
    kwargs = service.users().messages().list.call_args_list[-1].kwargs
    assert kwargs["q"] == "in:inbox"
    assert kwargs["maxResults"] == 100
    assert kwargs["pageToken"] == "prev"


def test_list_message_ids_last_page(client, service):
    service.users().messages().list().execute.return_value = {}
    assert client.list_message_ids("in:inbox") == ([], None)


def test_get_message_metadata_failure_returns_none(client, service):
    service.users().messages().get().execute.side_effect = http_error(500)
    assert client.get_message_metadata("m1") is None


def test_get_message_metadata_auth_failure_raises(client, service):
    service.users().messages().get().execute.side_effect = http_error(401)
    with pytest.raises(AuthorizationError):
        client.get_message_metadata("m1")


def test_get_messages_metadata_drops_failures(client, service):
    service.new_batch_http_request.return_value = FakeBatch(
        [
            (_response("m1"), None),
            (None, http_error(404)),
            (_response("m3"), None),
        ]
    )
    messages = client.get_messages_metadata(["m1", "m2", "m3"])
    assert [m.id for m in messages] == ["m1", "m3"]


def test_get_messages_metadata_auth_failure_raises(client, service):
    service.new_batch_http_request.return_value = FakeBatch(
        [(_response("m1"), None), (None, http_error(401))]
    )
    with pytest.raises(AuthorizationError):
        client.get_messages_metadata(["m1", "m2"])


def test_get_messages_metadata_empty(client, service):
    assert client.get_messages_metadata([]) == []
    service.new_batch_http_request.assert_not_called()


def test_count_estimate(client, service):
    service.users().messages().list().execute.return_value = {"resultSizeEstimate": 1234}
    assert client.count_estimate("from:x.com") == 1234


def test_count_exact_under_cap(client, service):
    service.users().messages().list().execute.side_effect = [
        {"messages": [{"id": str(i)} for i in range(3)], "nextPageToken": "p2"},
        {"messages": [{"id": "x"}]},
    ]
    assert client.count_exact("from:x.com", cap=500) == (4, False)


def test_count_exact_reports_more_beyond_cap(client, service):
    service.users().messages().list().execute.return_value = {
        "messages": [{"id": str(i)} for i in range(10)],
        "nextPageToken": "more",
    }
    assert client.count_exact("from:x.com", cap=10) == (10, True)


def test_batch_mutate_labels_reports_partial_failure(client, service, monkeypatch):
    monkeypatch.setattr("inbox_declutter.gmail_client.MODIFY_BATCH_SIZE", 2)
    service.users().messages().batchModify().execute.side_effect = [
        {},
        http_error(500, "backend error"),
        {},
    ]

    applied, errors = client.batch_mutate_labels(["a", "b", "c", "d", "e"], remove=["INBOX"])

    assert applied == 3
    assert len(errors) == 1
    body = service.users().messages().batchModify.call_args_list[-1].kwargs["body"]
    assert body == {"ids": ["e"], "removeLabelIds": ["INBOX"]}


def test_batch_mutate_labels_auth_failure_raises(client, service):
    service.users().messages().batchModify().execute.side_effect = http_error(401)
    with pytest.raises(AuthorizationError):
        client.batch_mutate_labels(["a"], add=["Label_1"])


def test_create_and_list_filters(client, service):
    service.users().settings().filters().create().execute.return_value = {"id": "f1"}
    service.users().settings().filters().list().execute.return_value = {
        "filter": [{"id": "f1", "criteria": {"from": "x.com"}}]
    }

    assert client.create_filter({"from": "x.com"}, {"removeLabelIds": ["INBOX"]}) == "f1"
    assert client.list_filters()[0]["criteria"] == {"from": "x.com"}


def test_list_filters_error_translated(client, service):
    service.users().settings().filters().list().execute.side_effect = http_error(503)
    with pytest.raises(MailboxError) as excinfo:
        client.list_filters()
    assert excinfo.value.status == 503
    assert not isinstance(excinfo.value, AuthorizationError)


def test_inbox_stats_small_mailbox(client, service):
    service.users().threads().list().execute.side_effect = [
        {"resultSizeEstimate": 3},  # category:primary probe
        {"resultSizeEstimate": 3},  # total estimate
        {"resultSizeEstimate": 1},  # unread estimate
        {"threads": [{"id": "1"}, {"id": "2"}, {"id": "3"}]},  # exact total
        {"threads": [{"id": "1"}]},  # exact unread
    ]
    service.users().messages().list().execute.return_value = {"resultSizeEstimate": 7}

    stats = client.inbox_stats()

    assert stats.has_category_tabs is True
    assert stats.is_exact is True
    assert (stats.total, stats.unread) == (3, 1)
    assert stats.categories == {"primary": 7, "updates": 7, "promotions": 7, "social": 7}
