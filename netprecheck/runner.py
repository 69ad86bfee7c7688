from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field

from netprecheck.checks.base import CheckContext, make_result
from netprecheck.checks.executor import execute_check
from netprecheck.checks.results import CheckResult, CheckStatus, Report
from netprecheck.models import CheckSpec
from netprecheck.probes.base import Probes
from netprecheck.registry import CheckRegistry
from netprecheck.reporting import aggregate, utcnow_iso

logger = logging.getLogger(__name__)

# Time a check gets past its own timeout to hand back its result before the runner
# records it as Timeout. Never extends the global deadline.
TIMEOUT_GRACE_S = 0.25

RETRYABLE = {CheckStatus.FAIL, CheckStatus.TIMEOUT}


@dataclass
class _Slot:
    index: int
    spec: CheckSpec
    timeout_s: float
    retries: int
    cancel: threading.Event = field(default_factory=threading.Event)
    # written once by the worker thread
    started_at: float | None = None

    def enforce_at(self, global_deadline: float) -> float | None:
        if self.started_at is None:
            return None
        return min(self.started_at + self.timeout_s + TIMEOUT_GRACE_S, global_deadline)


def _run_attempts(slot: _Slot, probes: Probes, global_deadline: float) -> CheckResult:
    deadline = min(slot.started_at + slot.timeout_s, global_deadline)
    attempts = 0
    while True:
        attempts += 1
        ctx = CheckContext(deadline=deadline, cancel=slot.cancel)
        result = execute_check(slot.spec, probes, ctx)
        if result.status not in RETRYABLE or attempts > slot.retries or ctx.expired:
            return dataclasses.replace(result, attempts=attempts)
        logger.info(
            "Retrying check %s after %s (attempt %s of %s)",
            slot.spec.id,
            result.status.value,
            attempts + 1,
            slot.retries + 1,
        )


def _run_slot(slot: _Slot, probes: Probes, global_deadline: float) -> CheckResult:
    slot.started_at = time.monotonic()
    try:
        result = _run_attempts(slot, probes, global_deadline)
    except Exception as e:
        logger.exception("Check %s raised an unexpected error", slot.spec.id)
        result = make_result(
            slot.spec,
            CheckStatus.ERROR,
            f"internal error: {e.__class__.__name__}: {e}",
            error=f"{e.__class__.__name__}: {e}",
        )
    duration_ms = int((time.monotonic() - slot.started_at) * 1000)
    return dataclasses.replace(result, duration_ms=duration_ms)


def _timeout_result(slot: _Slot, reason: str, now: float) -> CheckResult:
    duration_ms = 0 if slot.started_at is None else int((now - slot.started_at) * 1000)
    result = make_result(slot.spec, CheckStatus.TIMEOUT, reason, error=reason)
    return dataclasses.replace(result, duration_ms=duration_ms)


def run(
    registry: CheckRegistry,
    probes: Probes,
    *,
    global_timeout_s: float,
    max_parallel: int,
    default_timeout_s: float | None = None,
    default_retries: int = 0,
) -> Report:
    """Execute every registered check concurrently and return the report.

    The report lists every check exactly once, in registration order. Checks
    still running at their own timeout or at the global deadline are cancelled
    and recorded as Timeout; the runner does not wait for them.
    """
    if max_parallel < 1:
        raise ValueError("max_parallel must be at least 1")
    if global_timeout_s <= 0:
        raise ValueError("global_timeout_s must be positive")

    specs = registry.all()
    started_at = utcnow_iso()
    start = time.monotonic()
    global_deadline = start + global_timeout_s

    slots = [
        _Slot(
            index=i,
            spec=spec,
            timeout_s=spec.timeout_s or default_timeout_s or global_timeout_s,
            retries=default_retries if spec.retries is None else spec.retries,
        )
        for i, spec in enumerate(specs)
    ]
    results: list[CheckResult | None] = [None] * len(slots)

    logger.info(
        "Running %s checks (max_parallel=%s, global_timeout=%ss)",
        len(slots),
        max_parallel,
        global_timeout_s,
    )

    executor = ThreadPoolExecutor(max_workers=max_parallel, thread_name_prefix="precheck")
    pending: dict[Future, _Slot] = {}
    try:
        for slot in slots:
            pending[executor.submit(_run_slot, slot, probes, global_deadline)] = slot

        while pending:
            now = time.monotonic()
            if now >= global_deadline:
                break

            # wake for the earliest running check's timeout, or for the shortest
            # timeout of a check that may start while we wait
            wake = global_deadline
            for slot in pending.values():
                enforce_at = slot.enforce_at(global_deadline)
                if enforce_at is None:
                    enforce_at = now + slot.timeout_s + TIMEOUT_GRACE_S
                wake = min(wake, enforce_at)

            done, _ = wait(pending, timeout=max(0.0, wake - now), return_when=FIRST_COMPLETED)
            for future in done:
                slot = pending.pop(future)
                results[slot.index] = future.result()
                _log_result(results[slot.index])

            now = time.monotonic()
            for future, slot in list(pending.items()):
                enforce_at = slot.enforce_at(global_deadline)
                if enforce_at is not None and now >= enforce_at and now < global_deadline:
                    slot.cancel.set()
                    del pending[future]
                    results[slot.index] = _timeout_result(
                        slot, f"check did not finish within {slot.timeout_s}s", now
                    )
                    _log_result(results[slot.index])

        if pending:
            done, _ = wait(pending, timeout=0)
            for future in done:
                slot = pending.pop(future)
                results[slot.index] = future.result()
            now = time.monotonic()
            for future, slot in pending.items():
                slot.cancel.set()
                future.cancel()
                if slot.started_at is None:
                    reason = f"global deadline of {global_timeout_s}s reached before the check started"
                else:
                    reason = f"global deadline of {global_timeout_s}s reached"
                results[slot.index] = _timeout_result(slot, reason, now)
                _log_result(results[slot.index])
            logger.warning("Global deadline reached with %s checks unfinished", len(pending))
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    finished = time.monotonic()
    return aggregate(
        [r for r in results if r is not None],
        started_at=started_at,
        finished_at=utcnow_iso(),
        duration_ms=int((finished - start) * 1000),
    )


def _log_result(result: CheckResult) -> None:
    if result.status is CheckStatus.PASS:
        logger.info("Check %s passed in %sms", result.id, result.duration_ms)
    else:
        logger.warning(
            "Check %s %s in %sms: %s",
            result.id,
            result.status.value,
            result.duration_ms,
            result.detail,
        )
