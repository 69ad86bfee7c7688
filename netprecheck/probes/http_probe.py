from __future__ import annotations

import threading
import time

import requests

from netprecheck.probes.results import ProbeResult


def run_http(
    url: str,
    timeout_s: float,
    connect_timeout_s: float | None = None,
    verify: bool = True,
    cancel: threading.Event | None = None,
) -> ProbeResult:
    start = time.perf_counter()
    if cancel is not None and cancel.is_set():
        return ProbeResult(ok=False, latency_ms=0, error="cancelled", timed_out=True)
    try:
        connect_timeout = timeout_s if connect_timeout_s is None else connect_timeout_s
        # only the status line and headers are read; the body is never downloaded
        with requests.get(
            url, timeout=(connect_timeout, timeout_s), verify=verify, stream=True
        ) as r:
            latency_ms = int((time.perf_counter() - start) * 1000)
            return ProbeResult(ok=True, latency_ms=latency_ms, value=r.status_code)
    except requests.Timeout as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(ok=False, latency_ms=latency_ms, error=str(e), timed_out=True)
    except requests.RequestException as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False,
            latency_ms=latency_ms,
            error=f"{e.__class__.__name__}: {e}",
        )
