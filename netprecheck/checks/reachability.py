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


def check_ping(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.ping(target, timeout_s=ctx.remaining(), cancel=ctx.cancel)
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            failed.detail = f"{target.address} unreachable: {failed.detail}"
            outcomes.append(failed)
            continue
        outcomes.append(
            TargetOutcome(
                target=target.name,
                status=CheckStatus.PASS,
                observed=res.value,
                detail=f"{target.address} reachable ({res.value} ms)",
            )
        )
    return combine(spec, outcomes, pass_detail=_pass_detail(outcomes, "reachable"))


def check_tcp(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.tcp_connect(
            target.address, target.port, timeout_s=ctx.remaining(), cancel=ctx.cancel
        )
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            failed.detail = f"{target.describe()}: {failed.detail}"
            outcomes.append(failed)
            continue
        outcomes.append(
            TargetOutcome(
                target=target.name,
                status=CheckStatus.PASS,
                observed=res.latency_ms,
                detail=f"{target.describe()} accepted a connection in {res.latency_ms} ms",
            )
        )
    return combine(spec, outcomes, pass_detail=_pass_detail(outcomes, "accepting connections"))


def _expected_statuses(spec: CheckSpec) -> set[int] | None:
    expected = spec.expected
    if expected is None or expected == []:
        return None
    if isinstance(expected, int):
        return {expected}
    if isinstance(expected, (list, tuple, set, frozenset)) and all(isinstance(c, int) for c in expected):
        return set(expected)
    raise CheckInternalError(f"check {spec.id}: expected HTTP statuses must be integers, got {expected!r}")


def check_http(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    expected = _expected_statuses(spec)
    verify = bool(spec.options.get("verify_tls", True))
    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
            continue
        res = probes.http_get(target.url, timeout_s=ctx.remaining(), cancel=ctx.cancel, verify=verify)
        failed = outcome_for_failed_probe(target.name, res)
        if failed is not None:
            failed.detail = f"{target.url}: {failed.detail}"
            outcomes.append(failed)
            continue

        status_code = res.value
        if expected is None:
            ok = 200 <= status_code < 400
        else:
            ok = status_code in expected
        outcomes.append(
            TargetOutcome(
                target=target.name,
                status=CheckStatus.PASS if ok else CheckStatus.FAIL,
                observed=status_code,
                detail=f"{target.url} returned HTTP {status_code}",
                extra={"latency_ms": res.latency_ms},
            )
        )
    return combine(spec, outcomes, pass_detail=_pass_detail(outcomes, "responding"))


def _pass_detail(outcomes: list[TargetOutcome], verb: str) -> str:
    if len(outcomes) == 1:
        return outcomes[0].detail
    return f"all {len(outcomes)} targets {verb}"
