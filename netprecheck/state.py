from __future__ import annotations

import threading
from typing import Any

from netprecheck.checks.results import Report
from netprecheck.reporting import report_summary


class ReportStore:
    """In-memory history of the most recent reports, newest last."""

    def __init__(self, max_reports: int = 20) -> None:
        self._reports: list[Report] = []
        self._max_reports = max_reports
        self._lock = threading.Lock()

    def add(self, report: Report) -> None:
        with self._lock:
            self._reports.append(report)
            if len(self._reports) > self._max_reports:
                self._reports = self._reports[-self._max_reports :]

    def latest(self) -> Report | None:
        with self._lock:
            return self._reports[-1] if self._reports else None

    def summaries(self, limit: int = 20) -> list[dict[str, Any]]:
        with self._lock:
            recent = list(reversed(self._reports[-limit:]))
        return [report_summary(report) for report in recent]
