from __future__ import annotations

import dataclasses
import time
from typing import Callable

from netprecheck.checks.base import CheckContext, make_result
from netprecheck.checks.dns_check import check_dns
from netprecheck.checks.mtu import check_mtu
from netprecheck.checks.ntp import check_ntp
from netprecheck.checks.ports import check_ports
from netprecheck.checks.reachability import check_http, check_ping, check_tcp
from netprecheck.checks.results import CheckResult, CheckStatus
from netprecheck.checks.route import check_route
from netprecheck.errors import CheckInternalError, ProbeFailure, ProbeTimeout
from netprecheck.models import CheckKind, CheckSpec
from netprecheck.probes.base import Probes

CheckHandler = Callable[[CheckSpec, Probes, CheckContext], CheckResult]

CHECK_HANDLERS: dict[CheckKind, CheckHandler] = {
    CheckKind.PING: check_ping,
    CheckKind.DNS_RESOLVE: check_dns,
    CheckKind.TCP_CONNECT: check_tcp,
    CheckKind.HTTP_GET: check_http,
    CheckKind.PORT_OPEN: check_ports,
    CheckKind.MTU_QUERY: check_mtu,
    CheckKind.NTP_SYNC: check_ntp,
    CheckKind.ROUTE_CHECK: check_route,
}


def execute_check(spec: CheckSpec, probes: Probes, ctx: CheckContext) -> CheckResult:
    """Run one check and convert probe failures and bad check definitions into a result.

    Any other exception propagates; the runner turns it into an Error result.
    """
    start = time.perf_counter()
    handler = CHECK_HANDLERS.get(spec.kind)
    try:
        if handler is None:
            raise CheckInternalError(f"no handler for check kind {spec.kind!r}")
        result = handler(spec, probes, ctx)
    except ProbeTimeout as e:
        result = make_result(spec, CheckStatus.TIMEOUT, str(e), error=str(e))
    except ProbeFailure as e:
        result = make_result(spec, CheckStatus.FAIL, str(e), error=str(e))
    except CheckInternalError as e:
        result = make_result(spec, CheckStatus.ERROR, str(e), error=str(e))

    duration_ms = int((time.perf_counter() - start) * 1000)
    return dataclasses.replace(result, duration_ms=duration_ms)
