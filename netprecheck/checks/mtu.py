from __future__ import annotations

from netprecheck.checks.base import (
    CheckContext,
    TargetOutcome,
    combine,
    expired_outcome,
    outcome_for_failed_probe,
)
from netprecheck.checks.results import CheckResult, CheckStatus
from netprecheck.errors import CheckInternalError
from netprecheck.models import CheckSpec
from netprecheck.probes.base import Probes


def check_mtu(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    if isinstance(spec.expected, bool) or not isinstance(spec.expected, int):
        raise CheckInternalError(f"check {spec.id}: expected MTU must be an integer, got {spec.expected!r}")
    expected = spec.expected
    interface = spec.options.get("interface")
    interfaces = spec.options.get("interfaces", {})

    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.query_mtu(
            target,
            interfaces.get(target.name, interface),
            timeout_s=ctx.remaining(),
            cancel=ctx.cancel,
        )
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            outcomes.append(failed)
            continue

        mtu = res.value
        if mtu == expected:
            outcomes.append(
                TargetOutcome(target.name, CheckStatus.PASS, mtu, f"mtu {mtu}", {"match": True})
            )
        else:
            outcomes.append(
                TargetOutcome(
                    target.name,
                    CheckStatus.FAIL,
                    mtu,
                    f"mtu {mtu} != expected {expected}",
                    {"match": False},
                )
            )

    nodes = {
        o.target: {"mtu": o.observed, "status": o.status.value, "match": o.extra.get("match")}
        for o in outcomes
    }
    mismatched = [o.target for o in outcomes if o.extra.get("match") is False]
    return combine(
        spec,
        outcomes,
        pass_detail=f"all {len(outcomes)} nodes report mtu {expected}",
        data={"expected": expected, "nodes": nodes, "mismatched": mismatched},
    )
