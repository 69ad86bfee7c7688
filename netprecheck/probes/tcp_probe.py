from __future__ import annotations

import socket
import threading
import time

from netprecheck.probes.results import ProbeResult


def run_tcp(
    host: str,
    port: int,
    timeout_s: float,
    cancel: threading.Event | None = None,
) -> ProbeResult:
    start = time.perf_counter()
    if cancel is not None and cancel.is_set():
        return ProbeResult(ok=False, latency_ms=0, error="cancelled", timed_out=True)
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            latency_ms = int((time.perf_counter() - start) * 1000)
            return ProbeResult(ok=True, latency_ms=latency_ms, value=latency_ms)
    except socket.timeout:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False,
            latency_ms=latency_ms,
            error=f"connect to {host}:{port} timed out after {timeout_s}s",
            timed_out=True,
        )
    except OSError as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(ok=False, latency_ms=latency_ms, error=str(e) or e.__class__.__name__)
