from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from netprecheck.checks.results import CheckResult, CheckStatus
from netprecheck.models import CheckSpec
from netprecheck.probes.results import ProbeResult


@dataclass
class CheckContext:
    deadline: float
    cancel: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(cls, timeout_s: float, cancel: threading.Event | None = None) -> "CheckContext":
        return cls(deadline=time.monotonic() + timeout_s, cancel=cancel or threading.Event())

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.cancel.is_set() or self.remaining() <= 0


@dataclass
class TargetOutcome:
    target: str
    status: CheckStatus
    observed: Any = None
    detail: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "target": self.target,
            "status": self.status.value,
            "observed": self.observed,
            "detail": self.detail,
        }
        out.update(self.extra)
        return out


def outcome_for_failed_probe(target: str, result: ProbeResult) -> TargetOutcome | None:
    """Map a probe that did not succeed to a TargetOutcome; None when it succeeded."""
    if result.timed_out:
        return TargetOutcome(target=target, status=CheckStatus.TIMEOUT, detail=result.error or "timed out")
    if not result.ok:
        return TargetOutcome(target=target, status=CheckStatus.FAIL, detail=result.error or "failed")
    return None


def expired_outcome(target: str) -> TargetOutcome:
    return TargetOutcome(target=target, status=CheckStatus.TIMEOUT, detail="check deadline reached")


def combined_status(outcomes: Iterable[TargetOutcome]) -> CheckStatus:
    statuses = {outcome.status for outcome in outcomes}
    # any timeout makes the whole check inconclusive
    for status in (CheckStatus.TIMEOUT, CheckStatus.ERROR, CheckStatus.FAIL):
        if status in statuses:
            return status
    return CheckStatus.PASS


def make_result(
    spec: CheckSpec,
    status: CheckStatus,
    detail: str,
    *,
    observed: Any = None,
    error: str | None = None,
    data: dict[str, Any] | None = None,
) -> CheckResult:
    return CheckResult(
        id=spec.id,
        kind=spec.kind.value,
        status=status,
        detail=detail,
        observed=observed,
        error=error,
        data=data or {},
    )


def combine(
    spec: CheckSpec,
    outcomes: list[TargetOutcome],
    *,
    pass_detail: str,
    data: dict[str, Any] | None = None,
) -> CheckResult:
    status = combined_status(outcomes)
    if status is CheckStatus.PASS:
        detail = pass_detail
        error = None
    else:
        problems = [f"{o.target}: {o.detail}" for o in outcomes if o.status is not CheckStatus.PASS]
        detail = "; ".join(problems)
        error = None if status is CheckStatus.FAIL else detail

    if len(outcomes) == 1:
        observed = outcomes[0].observed
    else:
        observed = {o.target: o.observed for o in outcomes}

    payload = {"targets": [o.to_dict() for o in outcomes]}
    payload.update(data or {})
    return make_result(spec, status, detail, observed=observed, error=error, data=payload)
