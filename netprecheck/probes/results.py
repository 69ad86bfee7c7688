from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from netprecheck.errors import ProbeFailure, ProbeTimeout


@dataclass(frozen=True)
class ProbeResult:
    ok: bool
    latency_ms: int
    value: Any = None
    error: str | None = None
    timed_out: bool = False

    def unwrap(self) -> Any:
        if self.timed_out:
            raise ProbeTimeout(self.error or "probe timed out")
        if not self.ok:
            raise ProbeFailure(self.error or "probe failed")
        return self.value
