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


def check_route(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    # expected, when set, names the interface the route must leave through
    expected_interface = spec.expected or None

    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.route_lookup(target.address, timeout_s=ctx.remaining(), cancel=ctx.cancel)
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            failed.detail = f"no route to {target.address}: {failed.detail}"
            outcomes.append(failed)
            continue

        route = res.value
        via = f" via {route.gateway}" if route.gateway else ""
        if expected_interface and route.interface != expected_interface:
            outcomes.append(
                TargetOutcome(
                    target.name,
                    CheckStatus.FAIL,
                    route.to_dict(),
                    f"route to {target.address} uses {route.interface}, expected {expected_interface}",
                )
            )
        else:
            outcomes.append(
                TargetOutcome(
                    target.name,
                    CheckStatus.PASS,
                    route.to_dict(),
                    f"route to {target.address} dev {route.interface}{via}",
                )
            )

    pass_detail = outcomes[0].detail if len(outcomes) == 1 else f"routes to all {len(outcomes)} targets"
    return combine(spec, outcomes, pass_detail=pass_detail)
