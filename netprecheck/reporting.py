from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Iterable

from netprecheck.checks.results import CheckResult, CheckStatus, Report

MAX_DETAIL_LEN = 500


def serialize_ts(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def utcnow_iso() -> str:
    return serialize_ts(datetime.now(timezone.utc)) or ""


def overall_status(results: Iterable[CheckResult]) -> CheckStatus:
    # Timeout and Error count as non-pass here; they stay distinct per check
    for result in results:
        if result.status is not CheckStatus.PASS:
            return CheckStatus.FAIL
    return CheckStatus.PASS


def aggregate(
    results: Iterable[CheckResult],
    *,
    started_at: str | None = None,
    finished_at: str | None = None,
    duration_ms: int = 0,
) -> Report:
    ordered = tuple(results)
    now = utcnow_iso()
    return Report(
        results=ordered,
        status=overall_status(ordered),
        started_at=started_at or now,
        finished_at=finished_at or now,
        duration_ms=duration_ms,
    )


def report_to_json(report: Report, *, indent: int | None = 2) -> str:
    return json.dumps(report.to_dict(), indent=indent, default=str)


def report_summary(report: Report) -> dict[str, Any]:
    return {
        "status": report.status.value,
        "started_at": report.started_at,
        "finished_at": report.finished_at,
        "duration_ms": report.duration_ms,
        "counts": report.counts(),
        "failing": [r.id for r in report.results if not r.passed],
    }


def _cell(text: str) -> str:
    return (text or "")[:MAX_DETAIL_LEN].replace("|", "\\|").replace("\n", " ")


def render_report_markdown(report: Report) -> str:
    counts = report.counts()
    lines: list[str] = []
    lines.append(f"# Network Precheck Report ({report.finished_at})")
    lines.append("")
    lines.append(f"**Overall:** {report.status.value.upper()}")
    lines.append("")
    lines.append("## Summary")
    lines.append(
        f"- Checks: total={counts['total']}, pass={counts['pass']}, fail={counts['fail']}, "
        f"timeout={counts['timeout']}, error={counts['error']}"
    )
    lines.append(f"- Duration: {report.duration_ms} ms")
    lines.append("")
    lines.append("## Results")
    lines.append("| Check | Kind | Status | Duration | Detail |")
    lines.append("|---|---|---|---|---|")
    for result in report.results:
        lines.append(
            f"| {result.id} | {result.kind} | {result.status.value.upper()} | "
            f"{result.duration_ms} ms | {_cell(result.detail)} |"
        )
    lines.append("")

    failed = [r for r in report.results if r.status is CheckStatus.FAIL]
    lines.append("## Failures")
    if failed:
        for result in failed:
            lines.append(f"- **{result.id}**: {_cell(result.detail)}")
    else:
        lines.append("- None")
    lines.append("")

    inconclusive = [r for r in report.results if r.status in {CheckStatus.TIMEOUT, CheckStatus.ERROR}]
    lines.append("## Inconclusive")
    if inconclusive:
        for result in inconclusive:
            lines.append(f"- **{result.id}** ({result.status.value}): {_cell(result.error or result.detail)}")
    else:
        lines.append("- None")
    return "\n".join(lines)
