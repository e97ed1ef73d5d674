"""Tests for the NDJSON progress stream."""

import io
import json

import pytest

from inbox_declutter.errors import ScanCancelled
from inbox_declutter.models import InboxStats, Report
from inbox_declutter.stream import ProgressStream, run_streamed


def _records(out: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in out.getvalue().splitlines()]


def _report() -> Report:
    stats = InboxStats(total=10, unread=2, is_exact=True, has_category_tabs=False)
    return Report(stats=stats, clusters=[], filter_suggestions=[], existing_filters=[])


def test_progress_then_result():
    out = io.StringIO()
    stream = ProgressStream(out)

    def analyze(progress):
        progress("Scanning primary: 25 scanned, 25/1000 collected")
        progress("Grouping senders...")
        return _report()

    report = run_streamed(stream, analyze)

    records = _records(out)
    assert report is not None
    assert [r["type"] for r in records] == ["progress", "progress", "result"]
    assert records[0]["message"].startswith("Scanning primary")
    assert set(records[-1]["data"]) == {"stats", "clusters", "filterSuggestions", "existingFilters"}
    assert records[-1]["data"]["stats"]["total"] == 10


def test_failure_ends_with_single_error():
    out = io.StringIO()
    stream = ProgressStream(out)

    def analyze(progress):
        progress("Reading inbox statistics...")
        raise RuntimeError("quota exhausted")

    assert run_streamed(stream, analyze) is None

    records = _records(out)
    assert [r["type"] for r in records] == ["progress", "error"]
    assert records[-1]["message"] == "quota exhausted"


def test_nothing_written_after_terminal_record():
    out = io.StringIO()
    stream = ProgressStream(out)
    stream.result(_report())

    with pytest.raises(RuntimeError):
        stream.progress("late")
    assert len(_records(out)) == 1


def test_cancellation_writes_no_terminal_record():
    out = io.StringIO()
    stream = ProgressStream(out)

    def analyze(progress):
        progress("Scanning updates: 50 scanned, 50/1000 collected")
        raise ScanCancelled()

    with pytest.raises(ScanCancelled):
        run_streamed(stream, analyze)
    assert [r["type"] for r in _records(out)] == ["progress"]
