from __future__ import annotations

from netprecheck.checks.base import (
    CheckContext,
    TargetOutcome,
    combine,
    expired_outcome,
    outcome_for_failed_probe,
)
from netprecheck.checks.results import CheckResult, CheckStatus
from netprecheck.models import CheckSpec
from netprecheck.probes.base import Probes

DEFAULT_MAX_OFFSET_S = 1.0


def check_ntp(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    max_offset_s = float(spec.options.get("max_offset_s", DEFAULT_MAX_OFFSET_S))

    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.ntp_status(target, timeout_s=ctx.remaining(), cancel=ctx.cancel)
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            outcomes.append(failed)
            continue

        status = res.value
        observed = status.to_dict()
        if not status.synchronized:
            outcomes.append(
                TargetOutcome(
                    target.name,
                    CheckStatus.FAIL,
                    observed,
                    f"clock not synchronized (leap status: {status.leap_status or 'unknown'})",
                )
            )
        elif status.offset_s is not None and abs(status.offset_s) > max_offset_s:
            outcomes.append(
                TargetOutcome(
                    target.name,
                    CheckStatus.FAIL,
                    observed,
                    f"offset {status.offset_s:+.6f}s exceeds {max_offset_s}s",
                )
            )
        else:
            outcomes.append(
                TargetOutcome(target.name, CheckStatus.PASS, observed, f"synchronized to {status.reference}")
            )

    return combine(
        spec,
        outcomes,
        pass_detail=f"all {len(outcomes)} nodes synchronized within {max_offset_s}s",
        data={"max_offset_s": max_offset_s},
    )
