from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CheckStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class CheckResult:
    id: str
    kind: str
    status: CheckStatus
    detail: str = ""
    observed: Any = None
    error: str | None = None
    duration_ms: int = 0
    attempts: int = 1
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status is CheckStatus.PASS

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "status": self.status.value,
            "detail": self.detail,
            "observed": self.observed,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "attempts": self.attempts,
            "data": self.data,
        }


@dataclass(frozen=True)
class Report:
    results: tuple[CheckResult, ...]
    status: CheckStatus
    started_at: str
    finished_at: str
    duration_ms: int

    @property
    def passed(self) -> bool:
        return self.status is CheckStatus.PASS

    def counts(self) -> dict[str, int]:
        out = {status.value: 0 for status in CheckStatus}
        for result in self.results:
            out[result.status.value] += 1
        out["total"] = len(self.results)
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_ms": self.duration_ms,
            "counts": self.counts(),
            "results": [result.to_dict() for result in self.results],
        }
