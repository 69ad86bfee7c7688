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


def _expected_addresses(spec: CheckSpec) -> list[str]:
    expected = spec.expected
    if expected in (None, "", []):
        return []
    if isinstance(expected, str):
        return [expected]
    if isinstance(expected, (list, tuple)) and all(isinstance(a, str) for a in expected):
        return list(expected)
    raise CheckInternalError(f"check {spec.id}: expected addresses must be strings, got {expected!r}")


def check_dns(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    expected = _expected_addresses(spec)
    record_type = spec.options.get("record_type", "A")
    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        name = target.address
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.resolve(name, timeout_s=ctx.remaining(), cancel=ctx.cancel, record_type=record_type)
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            outcomes.append(failed)
            continue

        resolved = list(res.value or [])
        missing = [addr for addr in expected if addr not in resolved]
        if missing:
            outcomes.append(
                TargetOutcome(
                    target=target.name,
                    status=CheckStatus.FAIL,
                    observed=resolved,
                    detail=f"{name} resolved to {', '.join(resolved) or 'nothing'}, expected {', '.join(expected)}",
                    extra={"missing_addresses": missing},
                )
            )
        else:
            outcomes.append(
                TargetOutcome(
                    target=target.name,
                    status=CheckStatus.PASS,
                    observed=resolved,
                    detail=f"{name} resolved to {', '.join(resolved)}",
                )
            )

    pass_detail = outcomes[0].detail if len(outcomes) == 1 else f"all {len(outcomes)} names resolved"
    return combine(spec, outcomes, pass_detail=pass_detail, data={"expected": expected})
