from __future__ import annotations

from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field

Status = Literal["pass", "fail", "timeout", "error"]


class HealthResponse(BaseModel):
    status: str = Field(description="Health status")


class ConfigResponse(BaseModel):
    config_path: str
    global_timeout_s: float = Field(gt=0)
    max_parallel: int = Field(ge=1)
    default_timeout_s: float = Field(gt=0)


class RegistryCheck(BaseModel):
    id: str
    kind: str
    targets: list[str]
    expected: Any = None
    timeout_s: float | None = None
    retries: int | None = None


class RegistryResponse(BaseModel):
    checks: list[RegistryCheck]
    count: int


class RunRequest(BaseModel):
    only: list[str] = Field(default_factory=list, description="Run only checks whose id starts with one of these")
    global_timeout: float | None = Field(default=None, gt=0, le=3600)
    max_parallel: int | None = Field(default=None, ge=1, le=256)


class CheckCounts(BaseModel):
    total: int
    # "pass" is a keyword
    pass_: int = Field(alias="pass")
    fail: int
    timeout: int
    error: int

    model_config = ConfigDict(populate_by_name=True)


class CheckResultResponse(BaseModel):
    id: str
    kind: str
    status: Status
    detail: str = ""
    observed: Any = None
    error: str | None = None
    duration_ms: int = 0
    attempts: int = 1
    data: dict[str, Any] = Field(default_factory=dict)


class ReportResponse(BaseModel):
    status: Literal["pass", "fail"]
    started_at: str
    finished_at: str
    duration_ms: int
    counts: CheckCounts
    results: list[CheckResultResponse]


class ReportSummaryResponse(BaseModel):
    status: Literal["pass", "fail"]
    started_at: str
    finished_at: str
    duration_ms: int
    counts: CheckCounts
    failing: list[str]


REPORT_JSON_SCHEMA: dict[str, Any] = ReportResponse.model_json_schema(by_alias=True)
