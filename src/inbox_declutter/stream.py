"""Line-delimited JSON progress stream."""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, Callable

from .errors import ScanCancelled
from .models import Report

logger = logging.getLogger(__name__)


class ProgressStream:
    """Writes "progress" records followed by exactly one "result" or "error"."""

    def __init__(self, out: IO[str] | None = None) -> None:
        self.out = out or sys.stdout
        self.closed = False

    def _write(self, record: dict) -> None:
        if self.closed:
            raise RuntimeError("Progress stream already finished")
        self.out.write(json.dumps(record) + "\n")
        self.out.flush()

    def progress(self, message: str) -> None:
        self._write({"type": "progress", "message": message})

    def result(self, report: Report) -> None:
        self._write({"type": "result", "data": report.to_dict()})
        self.closed = True

    def error(self, message: str) -> None:
        self._write({"type": "error", "message": message})
        self.closed = True


def run_streamed(stream: ProgressStream, analyze: Callable[[Callable[[str], None]], Report]) -> Report | None:
    """Run ``analyze(progress)`` and finish the stream with its outcome.

    Returns the report, or None when the run failed. A cancelled run or a
    disconnected reader ends the stream without a terminal record.
    """
    try:
        report = analyze(stream.progress)
    except (ScanCancelled, BrokenPipeError):
        raise
    except Exception as exc:  # noqa: BLE001
        logger.error("Analysis failed: %s", exc)
        stream.error(str(exc))
        return None
    stream.result(report)
    return report
