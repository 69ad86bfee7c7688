import logging

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import PlainTextResponse

from netprecheck.api_schemas import (
    ConfigResponse,
    HealthResponse,
    RegistryResponse,
    ReportResponse,
    ReportSummaryResponse,
    RunRequest,
)
from netprecheck.config import settings
from netprecheck.errors import ConfigError
from netprecheck.registry import build_registry, load_config
from netprecheck.reporting import render_report_markdown
from netprecheck.service import resolve_run_settings, run_precheck
from netprecheck.state import ReportStore

logger = logging.getLogger(__name__)
store = ReportStore(max_reports=settings.PRECHECK_REPORT_HISTORY)

app = FastAPI(
    title="Network Precheck",
    version="1.0.0",
    description=(
        "Pre-deployment network validator that loads the cluster description from "
        "a YAML file, runs reachability/DNS/port/MTU/NTP/route checks concurrently, "
        "and exposes the resulting reports."
    ),
)


def _load_config():
    try:
        return load_config(settings.PRECHECK_CONFIG_PATH)
    except ConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["system"],
    summary="Health Check",
    description="Liveness endpoint used by probes and orchestration.",
)
def health():
    return {"status": "ok"}


@app.get(
    "/config",
    response_model=ConfigResponse,
    tags=["system"],
    summary="Current Effective Config",
    description="Returns non-secret runtime settings after applying the config file.",
)
def config():
    try:
        run_settings = resolve_run_settings(_load_config())
    except ConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "config_path": settings.PRECHECK_CONFIG_PATH,
        "global_timeout_s": run_settings.global_timeout_s,
        "max_parallel": run_settings.max_parallel,
        "default_timeout_s": run_settings.default_timeout_s,
    }


@app.get(
    "/api/registry",
    response_model=RegistryResponse,
    tags=["registry"],
    summary="Check Registry",
    description="Checks that a run would execute, in report order.",
)
def registry():
    try:
        reg = build_registry(_load_config())
    except ConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    checks = [
        {
            "id": spec.id,
            "kind": spec.kind.value,
            "targets": [target.describe() for target in spec.targets],
            "expected": spec.expected,
            "timeout_s": spec.timeout_s,
            "retries": spec.retries,
        }
        for spec in reg
    ]
    return {"checks": checks, "count": len(checks)}


@app.post(
    "/api/precheck/run",
    response_model=ReportResponse,
    tags=["precheck"],
    summary="Run Precheck",
    description="Runs every registered check (or the selected subset) and returns the report.",
)
def precheck_run(request: RunRequest):
    cfg = _load_config()
    try:
        report = run_precheck(
            cfg,
            only=request.only,
            global_timeout_s=request.global_timeout,
            max_parallel=request.max_parallel,
        )
    except ConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    store.add(report)
    return report.to_dict()


@app.get(
    "/api/precheck/reports",
    response_model=list[ReportSummaryResponse],
    tags=["precheck"],
    summary="Recent Reports",
    description="Summaries of recent runs, newest first.",
)
def precheck_reports(
    limit: int = Query(default=20, ge=1, le=500, description="Max number of reports to return")
):
    return store.summaries(limit=limit)


@app.get(
    "/api/precheck/reports/latest",
    response_model=ReportResponse,
    tags=["precheck"],
    summary="Latest Report",
)
def precheck_latest():
    report = store.latest()
    if report is None:
        raise HTTPException(status_code=404, detail="No precheck has run yet")
    return report.to_dict()


@app.get(
    "/api/precheck/reports/latest/markdown",
    response_class=PlainTextResponse,
    tags=["precheck"],
    summary="Latest Report (Markdown)",
)
def precheck_latest_markdown():
    report = store.latest()
    if report is None:
        raise HTTPException(status_code=404, detail="No precheck has run yet")
    return render_report_markdown(report)
