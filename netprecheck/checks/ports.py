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
from netprecheck.models import CheckSpec, Target
from netprecheck.probes.base import Probes

PORT_MODES = ("firewall", "reachability")


def _required_ports(spec: CheckSpec) -> list[int]:
    expected = spec.expected
    if not expected:
        raise CheckInternalError(f"check {spec.id}: no required ports configured")
    if isinstance(expected, int):
        expected = [expected]
    try:
        ports = sorted({int(p) for p in expected})
    except (TypeError, ValueError) as e:
        raise CheckInternalError(f"check {spec.id}: invalid required ports {expected!r}") from e
    return ports


def _firewall_outcome(
    target: Target, required: list[int], protocol: str, probes: Probes, ctx: CheckContext
) -> TargetOutcome:
    res = probes.list_open_ports(target, protocol, timeout_s=ctx.remaining(), cancel=ctx.cancel)
    failed = outcome_for_failed_probe(target.name, res)
    if failed is not None:
        return failed

    open_ports = set(res.value)
    missing = [p for p in required if p not in open_ports]
    observed = sorted(p for p in required if p in open_ports)
    if missing:
        return TargetOutcome(
            target=target.name,
            status=CheckStatus.FAIL,
            observed=observed,
            detail=f"missing ports: {', '.join(map(str, missing))}",
            extra={"missing_ports": missing},
        )
    return TargetOutcome(
        target=target.name,
        status=CheckStatus.PASS,
        observed=observed,
        detail=f"all required {protocol} ports open",
        extra={"missing_ports": []},
    )


def _reachability_outcome(
    target: Target, required: list[int], probes: Probes, ctx: CheckContext
) -> TargetOutcome:
    reachable: list[int] = []
    missing: list[int] = []
    timed_out: list[int] = []
    for port in required:
        if ctx.expired:
            timed_out.append(port)
            continue
        res = probes.tcp_connect(target.address, port, timeout_s=ctx.remaining(), cancel=ctx.cancel)
        if res.timed_out:
            timed_out.append(port)
        elif res.ok:
            reachable.append(port)
        else:
            missing.append(port)

    extra = {"missing_ports": missing, "timed_out_ports": timed_out}
    if timed_out:
        detail = f"no answer on ports: {', '.join(map(str, timed_out))}"
        if missing:
            detail += f"; missing ports: {', '.join(map(str, missing))}"
        return TargetOutcome(target.name, CheckStatus.TIMEOUT, reachable, detail, extra)
    if missing:
        return TargetOutcome(
            target.name,
            CheckStatus.FAIL,
            reachable,
            f"missing ports: {', '.join(map(str, missing))}",
            extra,
        )
    return TargetOutcome(target.name, CheckStatus.PASS, reachable, "all required ports reachable", extra)


def check_ports(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    required = _required_ports(spec)
    mode = spec.options.get("mode", "firewall")
    if mode not in PORT_MODES:
        raise CheckInternalError(f"check {spec.id}: unknown port check mode {mode!r}")
    protocol = spec.options.get("protocol", "tcp")

    outcomes: list[TargetOutcome] = []
    for target in spec.targets:
        if ctx.expired:
            outcomes.append(expired_outcome(target.name))
        elif mode == "firewall":
            outcomes.append(_firewall_outcome(target, required, protocol, probes, ctx))
        else:
            outcomes.append(_reachability_outcome(target, required, probes, ctx))

    missing_all = sorted({p for o in outcomes for p in o.extra.get("missing_ports", [])})
    pass_detail = f"required ports {', '.join(map(str, required))} open ({mode})"
    return combine(
        spec,
        outcomes,
        pass_detail=pass_detail,
        data={"required_ports": required, "missing_ports": missing_all, "mode": mode},
    )
