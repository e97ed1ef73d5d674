"""Tests for the actions module."""

from unittest.mock import MagicMock

import pytest

from inbox_declutter import actions
from inbox_declutter.errors import ActionError, AuthorizationError, MailboxError
from inbox_declutter.models import FilterAction, FilterCriteria, FilterSuggestion, InboxStats, Report


@pytest.fixture
def client():
    mock = MagicMock()
    mock.batch_mutate_labels.side_effect = lambda ids, add=None, remove=None: (len(ids), [])
    mock.list_message_ids.return_value = (["a", "b", "c"], None)
    mock.list_labels.return_value = [
        {"id": "INBOX", "name": "INBOX", "type": "system"},
        {"id": "Label_7", "name": "Shopping", "type": "user"},
    ]
    mock.create_label.return_value = {"id": "Label_9", "name": "Bank"}
    mock.create_filter.return_value = "f1"
    return mock


def _suggestion(pattern: str, skip_inbox: bool = True, label: str | None = None) -> FilterSuggestion:
    return FilterSuggestion(
        id=f"filter-{pattern}",
        criteria=FilterCriteria(from_=pattern),
        action=FilterAction(skip_inbox=skip_inbox, add_label=label),
        match_count=12,
        description=f"Auto-archive emails from {pattern} (12 messages)",
    )


def test_archive_messages(client):
    assert actions.archive_messages(client, ["a", "b"]) == 2
    client.batch_mutate_labels.assert_called_once_with(["a", "b"], add=None, remove=["INBOX"])


def test_archive_nothing(client):
    assert actions.archive_messages(client, []) == 0
    client.batch_mutate_labels.assert_not_called()


def test_partial_failure_reports_applied_count(client):
    client.batch_mutate_labels.side_effect = None
    client.batch_mutate_labels.return_value = (1000, ["backend error"])

    with pytest.raises(ActionError) as excinfo:
        actions.archive_messages(client, [str(i) for i in range(1500)])

    assert excinfo.value.applied == 1000
    assert "500 of 1500" in str(excinfo.value)


def test_authorization_failure_propagates(client):
    client.batch_mutate_labels.side_effect = AuthorizationError("revoked", status=401)
    with pytest.raises(AuthorizationError):
        actions.archive_messages(client, ["a"])


def test_apply_label(client):
    assert actions.apply_label(client, ["a"], "Label_7") == 1
    client.batch_mutate_labels.assert_called_once_with(["a"], add=["Label_7"], remove=None)


def test_ensure_label_reuses_existing(client):
    assert actions.ensure_label(client, "shopping") == "Label_7"
    client.create_label.assert_not_called()


def test_ensure_label_creates_missing(client):
    assert actions.ensure_label(client, "Bank") == "Label_9"
    client.create_label.assert_called_once_with("Bank")


def test_matching_message_ids_follows_pages(client):
    client.list_message_ids.side_effect = [(["a", "b"], "p2"), (["c"], None)]
    assert actions.matching_message_ids(client, "from:x.com in:inbox") == ["a", "b", "c"]


def test_create_filter_for_wildcard(client):
    modified = actions.create_filter(client, "*@*.x.com", apply_to_existing=True)

    assert modified == 3
    client.create_filter.assert_called_once_with({"from": "x.com"}, {"removeLabelIds": ["INBOX"]})
    assert client.list_message_ids.call_args.args[0] == "from:x.com in:inbox"


def test_create_filter_without_applying(client):
    assert actions.create_filter(client, "noreply@shop.com") == 0
    client.list_message_ids.assert_not_called()
    client.batch_mutate_labels.assert_not_called()


def test_create_filter_needs_an_action(client):
    with pytest.raises(ActionError):
        actions.create_filter(client, "a@x.com", skip_inbox=False)
    client.create_filter.assert_not_called()


def test_create_filter_failure_wrapped(client):
    client.create_filter.side_effect = MailboxError("Filter already exists", status=400)
    with pytest.raises(ActionError, match="Filter already exists"):
        actions.create_filter(client, "a@x.com")


def test_apply_label_only_suggestion(client):
    suggestion = _suggestion("*@*.bank.com", skip_inbox=False, label="Bank")

    actions.apply_suggestion(client, suggestion)

    client.create_filter.assert_called_once_with({"from": "bank.com"}, {"addLabelIds": ["Label_9"]})
    client.batch_mutate_labels.assert_called_once_with(["a", "b", "c"], add=["Label_9"], remove=None)


def test_create_label_and_filter(client):
    actions.create_label_and_filter(client, "Shopping", "*@shop.com")

    criteria, action = client.create_filter.call_args.args
    assert criteria == {"from": "shop.com"}
    assert action == {"addLabelIds": ["Label_7"], "removeLabelIds": ["INBOX"]}


def test_archive_by_sender(client):
    assert actions.archive_by_sender(client, "noreply@shop.com") == 3
    assert client.list_message_ids.call_args.args[0] == "from:noreply@shop.com in:inbox"


def test_interactive_clean_dry_run(client, monkeypatch):
    report = Report(
        stats=InboxStats(total=10, unread=0, is_exact=True, has_category_tabs=False),
        filter_suggestions=[_suggestion("noreply@shop.com"), _suggestion("promo@deals.com")],
    )
    monkeypatch.setattr(actions.console, "input", lambda *args, **kwargs: "1")

    summary = actions.interactive_clean(client, report, execute=False)

    assert summary == {"selected": 1, "filters_created": 0, "modified": 0}
    client.create_filter.assert_not_called()


def test_interactive_clean_execute(client, monkeypatch):
    report = Report(
        stats=InboxStats(total=10, unread=0, is_exact=True, has_category_tabs=False),
        filter_suggestions=[_suggestion("noreply@shop.com"), _suggestion("promo@deals.com")],
    )
    monkeypatch.setattr(actions.console, "input", lambda *args, **kwargs: "all")
    monkeypatch.setattr(actions, "confirm_actions", lambda selected: True)

    summary = actions.interactive_clean(client, report, execute=True)

    assert summary == {"selected": 2, "filters_created": 2, "modified": 6}
