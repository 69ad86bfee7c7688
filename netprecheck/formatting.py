from __future__ import annotations

from netprecheck.checks.results import CheckStatus, Report

STATUS_MARKERS = {
    CheckStatus.PASS: "[PASS]   ",
    CheckStatus.FAIL: "[FAIL]   ",
    CheckStatus.TIMEOUT: "[TIMEOUT]",
    CheckStatus.ERROR: "[ERROR]  ",
}


def render_text(report: Report) -> str:
    width = max((len(r.id) for r in report.results), default=0)
    lines = []
    for result in report.results:
        lines.append(
            f"{STATUS_MARKERS[result.status]} {result.id.ljust(width)}  "
            f"{result.detail} ({result.duration_ms} ms)"
        )
    counts = report.counts()
    lines.append("")
    lines.append(
        f"Overall: {report.status.value.upper()} - {counts['pass']}/{counts['total']} passed, "
        f"{counts['fail']} failed, {counts['timeout']} timed out, {counts['error']} errors"
    )
    return "\n".join(lines)
