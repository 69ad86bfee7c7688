from __future__ import annotations

import threading
import time

import dns.exception
import dns.resolver

from netprecheck.probes.results import ProbeResult


def run_dns(
    name: str,
    timeout_s: float,
    record_type: str = "A",
    nameservers: list[str] | None = None,
    cancel: threading.Event | None = None,
) -> ProbeResult:
    start = time.perf_counter()
    if cancel is not None and cancel.is_set():
        return ProbeResult(ok=False, latency_ms=0, error="cancelled", timed_out=True)

    resolver = dns.resolver.Resolver()
    if nameservers:
        resolver.nameservers = list(nameservers)
    try:
        answer = resolver.resolve(name, record_type, lifetime=timeout_s)
        latency_ms = int((time.perf_counter() - start) * 1000)
        addresses = sorted({rdata.to_text() for rdata in answer})
        return ProbeResult(ok=True, latency_ms=latency_ms, value=addresses)
    except dns.exception.Timeout:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False,
            latency_ms=latency_ms,
            error=f"DNS lookup for {name} timed out after {timeout_s}s",
            timed_out=True,
        )
    except dns.resolver.NXDOMAIN:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(ok=False, latency_ms=latency_ms, error=f"NXDOMAIN: {name}")
    except dns.resolver.NoAnswer:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False, latency_ms=latency_ms, error=f"no {record_type} record for {name}"
        )
    except dns.exception.DNSException as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False, latency_ms=latency_ms, error=f"{e.__class__.__name__}: {e}"
        )
